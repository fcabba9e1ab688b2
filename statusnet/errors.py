"""
statusnet error taxonomy.

Every service raises these; the FastAPI layer renders them as
``{"detail": ...}`` with the matching status code and the HTTP clients map
status codes back into the same classes, so a failure crosses service
boundaries unchanged.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

logger = logging.getLogger(__name__)

__all__ = (
    "StatusNetError",
    "BadRequest",
    "Forbidden",
    "NotFound",
    "InvalidCredentials",
    "ServiceUnavailable",
    "InternalError",
    "error_for_status",
    "install_error_handlers",
)


class StatusNetError(Exception):
    """Base class for all service errors."""

    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class BadRequest(StatusNetError):
    """Malformed path, body or identifier; raised before any backend call."""

    status_code = 400
    default_message = "Bad request"


class Forbidden(StatusNetError):
    """No active session, or token permission too weak for the operation."""

    status_code = 403
    default_message = "Forbidden"


class NotFound(StatusNetError):
    """Missing record, scope mismatch or expired token.

    These causes are reported identically so an unauthorized caller learns
    nothing about table layout.
    """

    status_code = 404
    default_message = "Not found"


class InvalidCredentials(NotFound):
    """Unknown user id or wrong secret. One variant for both causes."""

    default_message = "Not found"


class ServiceUnavailable(StatusNetError):
    status_code = 503
    default_message = "Service unavailable"


class InternalError(StatusNetError):
    status_code = 500
    default_message = "Internal error"


_BY_STATUS = {
    400: BadRequest,
    403: Forbidden,
    404: NotFound,
    503: ServiceUnavailable,
}


def error_for_status(status_code: int, message: Optional[str] = None) -> StatusNetError:
    """Map an HTTP status from a downstream service into the taxonomy."""
    cls = _BY_STATUS.get(status_code)
    if cls is None:
        return InternalError(message or f"Unexpected status {status_code}",
                             details={"status_code": status_code})
    return cls(message)


def install_error_handlers(app, operations: Iterable[str] = ()) -> None:
    """Render StatusNetError (and anything unexpected) as JSON responses.

    ``operations`` names the first path segment of the app's routes; a request
    under one of them that matches no route is missing a segment and gets 400
    instead of the router's 404.
    """
    from fastapi import Request
    from fastapi.exception_handlers import http_exception_handler
    from fastapi.exceptions import RequestValidationError
    from fastapi.responses import JSONResponse
    from starlette.exceptions import HTTPException as StarletteHTTPException

    known = frozenset(operations)

    @app.exception_handler(StarletteHTTPException)
    async def _short_path(request: Request, exc: StarletteHTTPException):
        operation = request.url.path.lstrip("/").split("/", 1)[0]
        if exc.status_code == 404 and operation in known:
            return JSONResponse(status_code=BadRequest.status_code,
                                content={"detail": "Malformed request: missing path segment"})
        return await http_exception_handler(request, exc)

    @app.exception_handler(StatusNetError)
    async def _statusnet_error(request: Request, exc: StatusNetError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _malformed_request(request: Request, exc: RequestValidationError):
        fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
        return JSONResponse(status_code=BadRequest.status_code,
                            content={"detail": f"Malformed request: {', '.join(fields)}"})

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": InternalError.default_message})
