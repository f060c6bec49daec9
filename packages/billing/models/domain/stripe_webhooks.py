"""
Domain models for Stripe webhook payloads.

Strongly-typed Pydantic models for the Stripe objects we read. Unknown
fields are ignored, and the event type is kept as a plain string so new
event types parse and fall through to the no-op branch.
"""

from typing import Optional, Any
from enum import Enum
from pydantic import BaseModel, Field


class StripeWebhookType(str, Enum):
    """Stripe webhook event types we act on."""

    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"

    SUBSCRIPTION_CREATED = "customer.subscription.created"
    SUBSCRIPTION_UPDATED = "customer.subscription.updated"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"

    INVOICE_PAID = "invoice.paid"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"


class StripeMetadata(BaseModel):
    """Stripe metadata (we store the initiating account id here)."""

    account_id: Optional[str] = None
    userId: Optional[str] = None  # set by older checkout sessions

    def correlation_id(self) -> Optional[str]:
        return self.account_id or self.userId


class StripeSubscriptionData(BaseModel):
    """Stripe subscription object."""

    id: str
    customer: str
    status: str
    current_period_end: Optional[int] = None
    cancel_at_period_end: bool = False
    canceled_at: Optional[int] = None
    metadata: StripeMetadata = Field(default_factory=StripeMetadata)


class StripeInvoiceData(BaseModel):
    """Stripe invoice object."""

    id: str
    customer: Optional[str] = None
    subscription: Optional[str] = None
    status: Optional[str] = None
    amount_due: int = 0
    amount_paid: int = 0
    currency: str = "usd"
    payment_intent: Optional[str] = None
    attempt_count: Optional[int] = None
    description: Optional[str] = None


class StripeCheckoutSessionData(BaseModel):
    """Stripe checkout session object."""

    id: str
    client_reference_id: Optional[str] = None
    customer: Optional[str] = None
    subscription: Optional[str] = None
    mode: Optional[str] = None  # payment, setup or subscription
    payment_intent: Optional[str] = None
    payment_status: str
    status: Optional[str] = None
    amount_total: Optional[int] = None
    currency: Optional[str] = None
    metadata: StripeMetadata = Field(default_factory=StripeMetadata)


class StripeEventData(BaseModel):
    """Stripe event data wrapper."""

    object: dict[str, Any]  # The actual object (subscription, invoice, session, ...)


class StripeWebhookPayload(BaseModel):
    """Complete Stripe webhook payload."""

    id: str
    type: str
    data: StripeEventData
    created: int
    livemode: bool = False
