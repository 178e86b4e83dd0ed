"""
Pydantic schemas for API request/response validation.
"""
from filerelay.schemas.auth import (
    CredentialsRequest,
    AuthResponse,
    VerifyResponse,
    MessageResponse,
)
from filerelay.schemas.file import (
    FileResponse,
    UploadResponse,
    FileListResponse,
)
from filerelay.schemas.payment import (
    CheckoutRequest,
    CheckoutResponse,
    PaymentVerificationResponse,
    WebhookAck,
)

__all__ = [
    "CredentialsRequest",
    "AuthResponse",
    "VerifyResponse",
    "MessageResponse",
    "FileResponse",
    "UploadResponse",
    "FileListResponse",
    "CheckoutRequest",
    "CheckoutResponse",
    "PaymentVerificationResponse",
    "WebhookAck",
]
