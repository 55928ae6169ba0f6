"""Liveness and readiness probes."""

import time

from fastapi import APIRouter, Response, status

from orderflow.core.record_store import ALL_TABLES
from orderflow.core.supabase import probe_table
from orderflow.schemas.common import CheckResult, HealthResponse, HealthStatus, ReadinessResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Liveness check")
async def health_check() -> HealthResponse:
    """Report that the process is up. Touches no dependency."""
    return HealthResponse(status=HealthStatus.HEALTHY)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "At least one store table is unreachable"}},
    summary="Readiness check",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Probe every store table with a one-row read.

    Responds 503 when any probe fails, listing each table's result.
    """
    checks = []
    for table in ALL_TABLES:
        started = time.perf_counter()
        result = probe_table(table.name)
        checks.append(
            CheckResult(
                name=table.name,
                healthy=result["healthy"],
                latency_ms=round((time.perf_counter() - started) * 1000, 2),
                error=result.get("error"),
            )
        )

    ready = all(check.healthy for check in checks)
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(status=HealthStatus.HEALTHY if ready else HealthStatus.UNHEALTHY, checks=checks)
