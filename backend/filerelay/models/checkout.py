"""
Checkout session and webhook event records.
Sessions are owned and mutated by the payment provider only.
"""
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class CheckoutStatus(enum.Enum):
    """Status of a checkout session."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class WebhookEventKind(enum.Enum):
    """Provider-independent webhook event kinds."""
    CHECKOUT_COMPLETED = "checkout.completed"
    PAYMENT_SUCCEEDED = "payment.succeeded"
    CHECKOUT_CANCELLED = "checkout.cancelled"
    PAYMENT_FAILED = "payment.failed"
    OTHER = "other"


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    checkout_url: Optional[str]
    status: CheckoutStatus = CheckoutStatus.PENDING


@dataclass(frozen=True)
class WebhookEvent:
    """A parsed provider event."""
    id: Optional[str]
    type: str
    kind: WebhookEventKind
    data: Dict[str, Any] = field(default_factory=dict)
    
    @property
    def metadata(self) -> Dict[str, Any]:
        return self.data.get("metadata") or {}
