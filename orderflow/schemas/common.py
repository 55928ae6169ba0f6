"""Response bodies shared by every route: health probes and errors."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    status: HealthStatus
    timestamp: datetime = Field(default_factory=_utcnow)
    version: str = "0.1.0"


class CheckResult(BaseModel):
    """Outcome of probing one store table."""

    name: str
    healthy: bool
    latency_ms: float | None = None
    error: str | None = None


class ReadinessResponse(BaseModel):
    status: HealthStatus
    timestamp: datetime = Field(default_factory=_utcnow)
    checks: list[CheckResult] = Field(default_factory=list)


class ErrorDetail(BaseModel):
    """One entry of ``ErrorResponse.details``.

    For business rule rejections ``type`` is the name of the violated rule,
    e.g. ``terminal_status`` or ``key_status_reversal``.
    """

    loc: list[str] | None = Field(default=None, description="Field path, when the error concerns one field")
    msg: str
    type: str = Field(description="Error type or violated rule")


class ErrorResponse(BaseModel):
    """Body of every non-2xx response rendered by the error middleware."""

    error: str = Field(description="Error category, e.g. validation_error or store_error")
    message: str
    details: list[ErrorDetail] | None = None
    request_id: str | None = Field(default=None, description="Echo of the X-Request-ID header")
    timestamp: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_exception(
        cls,
        error_type: str,
        message: str,
        details: list[dict[str, Any]] | None = None,
        request_id: str | None = None,
    ) -> "ErrorResponse":
        """Build a response from an error's type, message and raw detail dicts."""
        return cls(
            error=error_type,
            message=message,
            details=[
                ErrorDetail(loc=d.get("loc"), msg=d.get("msg", str(d)), type=d.get("type", "error")) for d in details
            ]
            if details
            else None,
            request_id=request_id,
        )
