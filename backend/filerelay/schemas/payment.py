"""
Pydantic schemas for checkout, verification and webhook endpoints.
Field names are camelCase to match what the browser client reads.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class CheckoutRequest(BaseModel):
    """Request schema for creating a checkout session."""
    productId: Optional[str] = Field(None, description="Product to buy; server default when omitted")
    quantity: int = Field(1, ge=1, description="Number of units")
    
    model_config = ConfigDict(
        json_schema_extra={
            "example": {"productId": "prod_123", "quantity": 1}
        }
    )


class CheckoutResponse(BaseModel):
    checkoutUrl: str
    sessionId: str


class PaymentVerificationResponse(BaseModel):
    verified: bool
    status: str


class WebhookAck(BaseModel):
    received: bool = True
