"""Error taxonomy for the order engine and the middleware that renders it."""

import logging
import traceback
from typing import Any, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from orderflow.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

# Status codes raised as HTTPException by dependencies, mapped to error types
HTTP_ERROR_TYPES = {
    status.HTTP_401_UNAUTHORIZED: "authentication_error",
    status.HTTP_403_FORBIDDEN: "authorization_error",
    status.HTTP_404_NOT_FOUND: "not_found",
}


class APIError(Exception):
    """Base class for errors raised by the engine.

    Subclasses fix ``default_status`` and ``default_type``; services raise
    them without knowing about HTTP and the middleware turns them into an
    ``ErrorResponse`` body.
    """

    default_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_type: str = "api_error"
    default_message: str = "Internal error"

    def __init__(
        self,
        message: str | None = None,
        details: list[dict[str, Any]] | None = None,
        status_code: int | None = None,
        error_type: str | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            message: Human-readable message; defaults to ``default_message``.
            details: Optional per-field or per-rule details.
            status_code: Overrides ``default_status``.
            error_type: Overrides ``default_type``.
        """
        self.message = message or self.default_message
        self.details = details
        self.status_code = status_code or self.default_status
        self.error_type = error_type or self.default_type
        super().__init__(self.message)


class NotFoundError(APIError):
    """Unknown order, notification or user id."""

    default_status = status.HTTP_404_NOT_FOUND
    default_type = "not_found"
    default_message = "Resource not found"


class ValidationError(APIError):
    """A business rule rejected the request before any write.

    ``rule`` names the violated rule and is echoed as ``details[0].type``.
    """

    default_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_type = "validation_error"
    default_message = "Validation error"

    def __init__(
        self,
        message: str | None = None,
        rule: str = "validation_error",
        field: str | None = None,
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        message = message or self.default_message
        if details is None:
            details = [{"loc": [field] if field else None, "msg": message, "type": rule}]
        super().__init__(message, details)
        self.rule = rule


class AuthorizationError(APIError):
    """A requester acted on an order they do not own, or on an admin-only route."""

    default_status = status.HTTP_403_FORBIDDEN
    default_type = "authorization_error"
    default_message = "Access denied"


class StoreError(APIError):
    """The remote store is unreachable or returned rows that do not fit the schema."""

    default_status = status.HTTP_503_SERVICE_UNAVAILABLE
    default_type = "store_error"
    default_message = "Record store unavailable"


class DispatchError(APIError):
    """Notification persistence or email delivery failed.

    Only ever logged; the triggering mutation has already committed.
    """

    default_type = "dispatch_error"
    default_message = "Notification dispatch failed"


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Render an error as the standard ``ErrorResponse`` JSON body."""
    body = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json", exclude_none=True))


def _log_api_error(request: Request, error: APIError, request_id: str | None) -> None:
    extra = {"request_id": request_id, "status_code": error.status_code, "path": request.url.path}
    if error.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s on %s %s: %s", error.error_type, request.method, request.url.path, error.message, extra=extra)
    else:
        rule = getattr(error, "rule", None)
        logger.warning(
            "%s on %s %s: %s%s",
            error.error_type,
            request.method,
            request.url.path,
            error.message,
            f" (rule {rule})" if rule else "",
            extra=extra,
        )


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Convert engine errors and unexpected exceptions into JSON responses.

    Store outages are logged at ERROR, rejected requests at WARNING and
    anything unexpected with its stack trace; clients never see internals.
    """
    request_id = request.headers.get("X-Request-ID")

    try:
        return await call_next(request)

    except APIError as e:
        _log_api_error(request, e, request_id)
        return create_error_response(e.error_type, e.message, e.status_code, e.details, request_id)

    except HTTPException as e:
        logger.warning("HTTP %s on %s: %s", e.status_code, request.url.path, e.detail, extra={"request_id": request_id})
        return create_error_response(
            HTTP_ERROR_TYPES.get(e.status_code, "http_error"),
            str(e.detail),
            e.status_code,
            request_id=request_id,
        )

    except Exception as e:
        logger.error(
            "Unhandled exception on %s %s: %s\n%s",
            request.method,
            request.url.path,
            e,
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            "internal_error",
            "An unexpected error occurred",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )
