"""Failure taxonomy shared by services and the HTTP layer.

Every error carries a short ``kind`` and the HTTP status it maps to. The
handlers installed by :func:`register_error_handlers` render all of them as
``{"success": false, "message": ..., "error": ...}``.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class PortalError(Exception):
    kind = "PortalError"
    status_code = 500

    def __init__(self, message: str, *, error: str | None = None):
        super().__init__(message)
        self.message = message
        self.error = error or self.kind


class NotFound(PortalError):
    kind = "NotFound"
    status_code = 404


class InvalidPayload(PortalError):
    kind = "InvalidPayload"
    status_code = 400


class PayloadTooLarge(PortalError):
    kind = "PayloadTooLarge"
    status_code = 413


class UploadError(PortalError):
    kind = "UploadError"
    status_code = 502


class InvalidTest(PortalError):
    kind = "InvalidTest"
    status_code = 422


class PersistenceError(PortalError):
    """Metadata write failed after the media was stored; the blob is orphaned."""

    kind = "PersistenceError"
    status_code = 500

    def __init__(self, message: str, *, orphan_url: str | None = None, error: str | None = None):
        super().__init__(message, error=error)
        self.orphan_url = orphan_url


class AuthError(PortalError):
    kind = "AuthError"
    status_code = 401


class Conflict(PortalError):
    kind = "Conflict"
    status_code = 409


class SessionClosed(PortalError):
    kind = "SessionClosed"
    status_code = 409


def failure_body(message: str, error: str) -> dict:
    return {"success": False, "message": message, "error": error}


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.kind)
        return JSONResponse(status_code=exc.status_code, content=failure_body(exc.message, exc.error))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        detail = first.get("msg", "invalid request")
        message = f"Invalid payload: {field}: {detail}" if field else f"Invalid payload: {detail}"
        return JSONResponse(status_code=400, content=failure_body(message, InvalidPayload.kind))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content=failure_body(str(exc.detail), "HTTPError"))
