"""
Error taxonomy for the relay API.

Every failure a handler can report is one of these exceptions. The handlers
registered in main.py render them as JSON bodies of the form
{"error": ..., "details": ..., "hint": ...}, omitting empty fields.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class RelayError(Exception):
    """Base class for errors returned to API clients."""
    
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "Internal server error"
    
    def __init__(
        self,
        error: Optional[str] = None,
        details: Any = None,
        hint: Optional[str] = None,
        status_code: Optional[int] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        if error is not None:
            self.error = error
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        self.hint = hint
        self.extra = extra or {}
        super().__init__(self.error)
    
    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        if self.hint:
            body["hint"] = self.hint
        body.update(self.extra)
        return body
    
    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return None


class BadRequest(RelayError):
    """Malformed or missing input."""
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Bad request"


class Unauthorized(RelayError):
    """Missing, invalid or expired bearer token, or bad credentials."""
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "Unauthorized"
    
    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return {"WWW-Authenticate": "Bearer"}


class RateLimited(RelayError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error = "Too many requests"


class PayloadTooLarge(RelayError):
    status_code = 413
    error = "File too large"


class ConfigurationError(RelayError):
    """Server is missing credentials or identifiers it needs."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Server configuration error"


class StorageError(RelayError):
    """Object storage provider rejected or failed a request."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Storage provider error"


class IdentityProviderError(RelayError):
    """Identity provider failed for a reason other than bad credentials."""
    status_code = status.HTTP_502_BAD_GATEWAY
    error = "Identity provider error"


class PaymentProviderError(RelayError):
    """Payment provider rejected the request or could not be reached."""
    status_code = status.HTTP_502_BAD_GATEWAY
    error = "Payment provider error"


class InternalError(RelayError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Internal server error"


def error_response(exc: RelayError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers,
    )


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            f"{request.method} {request.url.path} failed: {exc.error}",
            extra={"event": "request_failed", "status": exc.status_code, "details": str(exc.details)},
        )
    return error_response(exc)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]),
            "message": err.get("msg"),
        }
        for err in exc.errors()
    ]
    return error_response(BadRequest("Invalid request", details=details))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        f"Unhandled error on {request.method} {request.url.path}: {exc}",
        extra={"event": "unhandled_exception"},
    )
    return error_response(InternalError(details=str(exc)))


def register_error_handlers(app: FastAPI) -> None:
    """Install JSON error rendering for the relay taxonomy."""
    app.add_exception_handler(RelayError, relay_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
