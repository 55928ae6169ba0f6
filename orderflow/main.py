"""Application factory and ASGI entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from orderflow.api.middleware.error_handler import error_handler_middleware
from orderflow.api.routes import catalog, health, notifications, orders, users
from orderflow.core.config import get_settings
from orderflow.services.email_outbox import init_email_outbox, shutdown_email_outbox

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_ROUTERS = (orders.router, catalog.router, notifications.router, users.router)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Run the email outbox worker for the lifetime of the app."""
    settings = get_settings()
    logger.info("Starting %s (%s)", settings.app_name, settings.app_env)
    if not settings.email_enabled:
        logger.warning("RESEND_API_KEY not set; notification emails will be dropped")

    outbox = await init_email_outbox()
    try:
        yield
    finally:
        if outbox.pending:
            logger.warning("Shutting down with %d queued email(s)", outbox.pending)
        await shutdown_email_outbox()
        logger.info("Stopped %s", settings.app_name)


def create_app() -> FastAPI:
    """Build the FastAPI app: CORS, error middleware, health probes and the v1 API."""
    settings = get_settings()
    docs = settings.debug

    app = FastAPI(
        title="Orderflow API",
        description="Work order lifecycle backend",
        version="0.1.0",
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
        openapi_url="/openapi.json" if docs else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Added last, so it wraps everything
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)

    app.include_router(health.router)
    api_v1 = APIRouter(prefix="/api/v1")
    for router in API_ROUTERS:
        api_v1.include_router(router)
    app.include_router(api_v1)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("orderflow.main:app", host=settings.host, port=settings.port, reload=settings.debug)
