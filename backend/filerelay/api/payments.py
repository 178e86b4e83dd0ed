"""
Payment API endpoints.
Handles Stripe checkout session creation and status verification.
"""
from typing import Optional

from fastapi import APIRouter, Body, Depends

from filerelay.auth.dependencies import get_payment_account
from filerelay.models.account import Account
from filerelay.models.checkout import CheckoutStatus
from filerelay.providers import get_payment_service
from filerelay.schemas.payment import (
    CheckoutRequest,
    CheckoutResponse,
    PaymentVerificationResponse,
)
from filerelay.services.payment_service import PaymentService

router = APIRouter()


@router.post("/checkout/create", response_model=CheckoutResponse)
async def create_checkout(
    body: Optional[CheckoutRequest] = Body(None),
    current_account: Optional[Account] = Depends(get_payment_account),
    payments: PaymentService = Depends(get_payment_service),
):
    """
    Create a Stripe Checkout Session.
    
    Returns a URL to redirect the user to Stripe's hosted checkout page.
    The client keeps sessionId until the user comes back, then calls
    /payment/verify/{sessionId}.
    """
    body = body or CheckoutRequest()
    session = await payments.create_checkout(
        account=current_account,
        product_id=body.productId,
        quantity=body.quantity,
    )
    return {"checkoutUrl": session.checkout_url, "sessionId": session.session_id}


@router.get("/payment/verify/{session_id}", response_model=PaymentVerificationResponse)
async def verify_payment(
    session_id: str,
    current_account: Optional[Account] = Depends(get_payment_account),
    payments: PaymentService = Depends(get_payment_service),
):
    """Report whether a checkout session has been paid."""
    status = await payments.get_status(session_id)
    return {"verified": status is CheckoutStatus.COMPLETED, "status": status.value}
