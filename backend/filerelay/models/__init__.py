"""
Domain records exchanged with the external providers.
"""
from filerelay.models.account import Account, AuthSession
from filerelay.models.file_object import FileObject
from filerelay.models.checkout import CheckoutSession, CheckoutStatus, WebhookEvent, WebhookEventKind

__all__ = [
    "Account",
    "AuthSession",
    "FileObject",
    "CheckoutSession",
    "CheckoutStatus",
    "WebhookEvent",
    "WebhookEventKind",
]
