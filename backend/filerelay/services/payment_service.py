"""
Stripe service for the one-time checkout.
Handles checkout session creation, status pulls and webhook parsing.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import stripe
from starlette.concurrency import run_in_threadpool

from filerelay.errors import BadRequest, ConfigurationError, PaymentProviderError
from filerelay.models.account import Account
from filerelay.models.checkout import (
    CheckoutSession,
    CheckoutStatus,
    WebhookEvent,
    WebhookEventKind,
)
from filerelay.utils.logging import (
    log_checkout_created,
    log_payment_verified,
    log_provider_failure,
    log_webhook_received,
)
from filerelay.utils.metrics import (
    checkout_sessions_created_total,
    provider_failures_total,
    webhook_events_total,
)

logger = logging.getLogger(__name__)

PROVIDER = "stripe"

# Stripe event types and the canonical kinds they map to.
# Canonical names are accepted as-is.
EVENT_KINDS: Dict[str, WebhookEventKind] = {
    "checkout.session.completed": WebhookEventKind.CHECKOUT_COMPLETED,
    "checkout.session.async_payment_succeeded": WebhookEventKind.PAYMENT_SUCCEEDED,
    "payment_intent.succeeded": WebhookEventKind.PAYMENT_SUCCEEDED,
    "checkout.session.expired": WebhookEventKind.CHECKOUT_CANCELLED,
    "checkout.session.async_payment_failed": WebhookEventKind.PAYMENT_FAILED,
    "payment_intent.payment_failed": WebhookEventKind.PAYMENT_FAILED,
    **{kind.value: kind for kind in WebhookEventKind if kind is not WebhookEventKind.OTHER},
}

PAID_STATUSES = ("paid", "no_payment_required")


def session_status(session: Any) -> CheckoutStatus:
    """Collapse Stripe's session status/payment_status pair into CheckoutStatus."""
    status = getattr(session, "status", None)
    payment_status = getattr(session, "payment_status", None)
    if status == "complete" and payment_status in PAID_STATUSES:
        return CheckoutStatus.COMPLETED
    if status == "expired":
        return CheckoutStatus.CANCELLED
    return CheckoutStatus.PENDING


class PaymentService:
    """
    Checkout operations for a single configured product.
    
    The API key is passed on every Stripe call instead of being set on the
    stripe module, so the service carries all of its configuration.
    """
    
    def __init__(
        self,
        api_key: Optional[str],
        product_id: Optional[str],
        return_url: str,
        cancel_url: Optional[str] = None,
        webhook_secret: Optional[str] = None,
    ):
        self.api_key = api_key
        self.product_id = product_id
        self.return_url = return_url
        self.cancel_url = cancel_url or return_url
        self.webhook_secret = webhook_secret
        if api_key:
            logger.info("Stripe payment service configured")
        else:
            logger.warning("Stripe secret key not configured, checkout disabled")
    
    def _require_api_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError(
                "Payment provider not configured",
                details="STRIPE_SECRET_KEY is not set",
                hint="Set STRIPE_SECRET_KEY in the server environment",
            )
        return self.api_key
    
    def _provider_error(self, operation: str, e: stripe.StripeError) -> PaymentProviderError:
        provider_status = getattr(e, "http_status", None)
        message = getattr(e, "user_message", None) or str(e)
        provider_failures_total.labels(provider=PROVIDER, operation=operation).inc()
        log_provider_failure(logger, PROVIDER, operation, message, status=provider_status)
        
        # A 401 here means the server's key is bad; clients treat 401 as logout
        status_code = 502
        if provider_status and 400 <= provider_status < 600 and provider_status not in (401, 403):
            status_code = provider_status
        return PaymentProviderError(
            "Payment provider rejected the request",
            details=message,
            status_code=status_code,
            extra={"providerStatus": provider_status},
        )
    
    def _resolve_price(self, api_key: str, product_id: str) -> str:
        """Default (or first active) price of a product."""
        product = stripe.Product.retrieve(product_id, api_key=api_key)
        default_price = getattr(product, "default_price", None)
        if default_price:
            return default_price if isinstance(default_price, str) else default_price.id
        
        prices = stripe.Price.list(product=product_id, active=True, limit=1, api_key=api_key)
        if not prices.data:
            raise ConfigurationError(
                "Payment product has no price",
                details=f"Product '{product_id}' has no active price",
            )
        return prices.data[0].id
    
    def _create_session(
        self,
        api_key: str,
        product_id: str,
        quantity: int,
        account: Optional[Account],
    ):
        price_id = self._resolve_price(api_key, product_id)
        
        metadata = {
            "product_id": product_id,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        params: Dict[str, Any] = {}
        if account is not None:
            metadata["user_id"] = account.id
            metadata["username"] = account.username
            params["client_reference_id"] = account.id
            if account.email:
                params["customer_email"] = account.email
        
        return stripe.checkout.Session.create(
            api_key=api_key,
            mode="payment",
            line_items=[{"price": price_id, "quantity": quantity}],
            success_url=f"{self.return_url}?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=self.cancel_url,
            metadata=metadata,
            **params,
        )
    
    async def create_checkout(
        self,
        account: Optional[Account],
        product_id: Optional[str] = None,
        quantity: int = 1,
    ) -> CheckoutSession:
        """
        Create a hosted checkout session.
        
        Args:
            account: Paying account; None when checkout runs unauthenticated
            product_id: Product to sell; defaults to the configured product
            quantity: Units to buy
            
        Raises:
            ConfigurationError: no API key or product id (no provider call made)
            PaymentProviderError: Stripe rejected the request
        """
        api_key = self._require_api_key()
        product_id = product_id or self.product_id
        if not product_id:
            raise ConfigurationError(
                "Payment product not configured",
                details="STRIPE_PRODUCT_ID is not set and no productId was supplied",
            )
        if quantity < 1:
            raise BadRequest("Invalid quantity", details="quantity must be at least 1")
        
        try:
            session = await run_in_threadpool(
                self._create_session, api_key, product_id, quantity, account
            )
        except stripe.StripeError as e:
            raise self._provider_error("checkout", e) from e
        
        checkout_sessions_created_total.inc()
        log_checkout_created(
            logger,
            session_id=session.id,
            product_id=product_id,
            quantity=quantity,
            user_id=account.id if account else None,
        )
        return CheckoutSession(
            session_id=session.id,
            checkout_url=session.url,
            status=session_status(session),
        )
    
    async def get_status(self, session_id: str) -> CheckoutStatus:
        """
        Pull the current status of a checkout session.
        
        A session the provider refuses to return (unknown id, malformed id)
        reports FAILED instead of raising.
        
        Raises:
            ConfigurationError: no API key
            PaymentProviderError: provider could not be reached or refused our key
        """
        api_key = self._require_api_key()
        try:
            session = await run_in_threadpool(
                stripe.checkout.Session.retrieve, session_id, api_key=api_key
            )
        except (stripe.APIConnectionError, stripe.AuthenticationError, stripe.PermissionError) as e:
            raise self._provider_error("verify", e) from e
        except stripe.StripeError as e:
            logger.warning(f"Stripe refused session {session_id}: {e}")
            status = CheckoutStatus.FAILED
        else:
            status = session_status(session)
        
        log_payment_verified(
            logger,
            session_id=session_id,
            status=status.value,
            verified=status is CheckoutStatus.COMPLETED,
        )
        return status
    
    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> WebhookEvent:
        """
        Parse (and, with a signing secret configured, authenticate) an event.
        
        Raises:
            BadRequest: malformed body, or missing/invalid signature
        """
        if self.webhook_secret:
            if not signature:
                raise BadRequest("Missing webhook signature")
            try:
                stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
            except ValueError as e:
                raise BadRequest("Invalid webhook payload", details=str(e)) from e
            except stripe.SignatureVerificationError as e:
                raise BadRequest("Invalid webhook signature", details=str(e)) from e
        else:
            logger.warning("STRIPE_WEBHOOK_SECRET not set, accepting unsigned webhook")
        
        try:
            body = json.loads(payload)
        except ValueError as e:
            raise BadRequest("Invalid webhook payload", details=str(e)) from e
        if not isinstance(body, dict) or not isinstance(body.get("type"), str):
            raise BadRequest("Invalid webhook payload", details="Expected an event object with a type")
        
        data = body.get("data")
        data_object = data.get("object") if isinstance(data, dict) else None
        return WebhookEvent(
            id=body.get("id"),
            type=body["type"],
            kind=EVENT_KINDS.get(body["type"], WebhookEventKind.OTHER),
            data=data_object if isinstance(data_object, dict) else {},
        )
    
    def handle_webhook(self, event: WebhookEvent) -> None:
        """
        Record a parsed event.
        
        The relay keeps no payment state, so every branch only logs; callers
        acknowledge the event whatever happens here.
        """
        webhook_events_total.labels(kind=event.kind.value).inc()
        object_id = event.data.get("id")
        user_id = event.metadata.get("user_id")
        log_webhook_received(
            logger,
            event_type=event.type,
            kind=event.kind.value,
            event_id=event.id,
            object_id=object_id,
            user_id=user_id,
        )
        
        if event.kind is WebhookEventKind.CHECKOUT_COMPLETED:
            logger.info(f"Checkout {object_id} completed for user {user_id}")
        elif event.kind is WebhookEventKind.PAYMENT_SUCCEEDED:
            logger.info(f"Payment {object_id} succeeded for user {user_id}")
        elif event.kind is WebhookEventKind.CHECKOUT_CANCELLED:
            logger.info(f"Checkout {object_id} cancelled")
        elif event.kind is WebhookEventKind.PAYMENT_FAILED:
            error = (event.data.get("last_payment_error") or {}).get("message", "Unknown error")
            logger.warning(f"Payment {object_id} failed: {error}")
        else:
            logger.info(f"Unhandled event type: {event.type}")
