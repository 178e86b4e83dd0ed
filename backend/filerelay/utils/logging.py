"""
Structured JSON logging for the relay.

Every record carries timestamp, level, logger name and service. Records
written through the helpers below also carry an `event` name plus whichever
of user_id, storage_key, session_id and duration_ms apply.

Usage:
    from filerelay.utils.logging import configure_logging, log_upload_completed

    configure_logging('file-relay-api', 'INFO')
    log_upload_completed(logger, storage_key='1700000000000_a.txt', size=12)
"""
import logging
import sys
from typing import Any, Optional

from pythonjsonlogger.json import JsonFormatter

# Never emitted, even if a caller passes them as extra fields
REDACTED_FIELDS = frozenset({"password", "token", "access_token", "refresh_token", "authorization"})


class ServiceFilter(logging.Filter):
    """Stamps the service name on every record and strips credentials."""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = self.service_name
        for field in REDACTED_FIELDS:
            if field in record.__dict__:
                setattr(record, field, "[redacted]")
        return True


def configure_logging(service_name: str, log_level: str = "INFO") -> None:
    """
    Route all logging to stdout as JSON.

    Safe to call more than once; only the first call installs the handler.
    """
    root_logger = logging.getLogger()
    if any(isinstance(h.formatter, JsonFormatter) for h in root_logger.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter(
        '%(timestamp)s %(levelname)s %(name)s %(message)s',
        timestamp=True,
        json_ensure_ascii=False,
    ))
    handler.addFilter(ServiceFilter(service_name))

    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # uvicorn installs its own handlers unless told otherwise
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True


def _emit(
    logger: logging.Logger,
    level: int,
    message: str,
    event: str,
    duration_ms: Optional[float] = None,
    **fields: Any,
) -> None:
    extra = {"event": event}
    extra.update({key: value for key, value in fields.items() if value is not None})
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)
    logger.log(level, message, extra=extra)


# Files

def log_upload_completed(
    logger: logging.Logger,
    storage_key: str,
    size: int,
    user_id: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a stored upload.

    Args:
        logger: Logger instance
        storage_key: Key the object was stored under
        size: Payload size in bytes
        user_id: Uploading account, when authenticated
        duration_ms: Time spent in the storage call
        **kwargs: Additional fields (bucket, ...)
    """
    _emit(
        logger, logging.INFO, f"File uploaded: {storage_key}", "upload_completed",
        duration_ms=duration_ms, storage_key=storage_key, size=size, user_id=user_id, **kwargs
    )


def log_files_listed(
    logger: logging.Logger,
    count: int,
    user_id: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
):
    _emit(
        logger, logging.INFO, f"Listed {count} files", "files_listed",
        duration_ms=duration_ms, count=count, user_id=user_id, **kwargs
    )


# Auth

def log_auth_event(
    logger: logging.Logger,
    action: str,
    username: Optional[str] = None,
    user_id: Optional[str] = None,
    success: bool = True,
    reason: Optional[str] = None,
    **kwargs
):
    """
    Log signup, login, logout and token verification outcomes.

    Failures go out at WARNING with the provider's reason.
    """
    if success:
        level, message = logging.INFO, f"Auth {action} succeeded"
    else:
        level, message = logging.WARNING, f"Auth {action} failed: {reason}"
    _emit(
        logger, level, message, f"auth_{action}",
        username=username, user_id=user_id, success=success, reason=reason, **kwargs
    )


# Payments

def log_checkout_created(
    logger: logging.Logger,
    session_id: str,
    product_id: str,
    quantity: int,
    user_id: Optional[str] = None,
    **kwargs
):
    _emit(
        logger, logging.INFO, f"Checkout session created: {session_id}", "checkout_created",
        session_id=session_id, product_id=product_id, quantity=quantity, user_id=user_id, **kwargs
    )


def log_payment_verified(
    logger: logging.Logger,
    session_id: str,
    status: str,
    verified: bool,
    **kwargs
):
    _emit(
        logger, logging.INFO, f"Payment session {session_id} status: {status}", "payment_verified",
        session_id=session_id, status=status, verified=verified, **kwargs
    )


def log_webhook_received(
    logger: logging.Logger,
    event_type: str,
    kind: Optional[str] = None,
    event_id: Optional[str] = None,
    **kwargs
):
    """Log a provider-pushed event before it is dispatched."""
    _emit(
        logger, logging.INFO, f"Webhook received: {event_type}", "webhook_received",
        event_type=event_type, kind=kind, event_id=event_id, **kwargs
    )


# Providers

def log_provider_failure(
    logger: logging.Logger,
    provider: str,
    operation: str,
    error: str,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a failed call to an external provider.

    Args:
        logger: Logger instance
        provider: supabase-auth, supabase-storage or stripe
        operation: signup, login, upload, checkout, ...
        error: Provider message
        duration_ms: Time spent before the failure
        **kwargs: Additional fields (status, ...)
    """
    _emit(
        logger, logging.ERROR, f"Provider failure: {provider}.{operation} - {error}", "provider_failure",
        duration_ms=duration_ms, provider=provider, operation=operation, error=str(error), **kwargs
    )
