"""
Webhook endpoints for external services.
Handles Stripe payment events.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from filerelay.providers import get_payment_service
from filerelay.schemas.payment import WebhookAck
from filerelay.services.payment_service import PaymentService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/payment", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    payments: PaymentService = Depends(get_payment_service),
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
):
    """
    Payment provider webhook.
    
    Handles:
    - checkout.completed / payment.succeeded
    - checkout.cancelled / payment.failed
    
    Security:
    - Validates the Stripe signature when STRIPE_WEBHOOK_SECRET is set
    - Without a secret, trusts the network boundary
    
    Once the body parses the event is acknowledged, even if handling it
    fails, so the provider does not retry a business-level no-op.
    """
    body = await request.body()
    event = payments.parse_webhook(body, stripe_signature)
    
    try:
        payments.handle_webhook(event)
    except Exception as e:
        logger.exception(f"Error handling webhook event {event.id} ({event.type}): {e}")
    
    return {"received": True}
