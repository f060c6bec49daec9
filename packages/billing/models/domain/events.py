"""
Normalised external subscription events.

Provider payloads are mapped into exactly one of these variants before the
reconciler sees them. `kind` is the discriminator; anything we do not act
on becomes UnknownEvent.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field

from packages.billing.models.domain.enums import (
    EventKind,
    EventOutcome,
    PaymentStatus,
    SubscriptionStatus,
)


class ExternalSubscriptionSnapshot(BaseModel):
    """Subscription state as reported by the provider at event time."""

    subscription_id: str
    customer_id: str
    status: SubscriptionStatus
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    event_created_at: datetime


class _EventBase(BaseModel):
    event_id: str
    event_type: str  # provider event type, kept for the ledger and logs
    created_at: datetime


class CheckoutCompletedEvent(_EventBase):
    kind: Literal[EventKind.CHECKOUT_COMPLETED] = EventKind.CHECKOUT_COMPLETED
    session_id: str
    account_id: Optional[str] = None  # correlation id of the initiating account
    customer_id: Optional[str] = None
    subscription_id: Optional[str] = None
    # None for sessions that do not start a subscription
    status: Optional[SubscriptionStatus] = None
    paid: bool = False
    amount_cents: Optional[int] = None
    currency: Optional[str] = None
    payment_intent_id: Optional[str] = None


class SubscriptionChangedEvent(_EventBase):
    kind: Literal[
        EventKind.SUBSCRIPTION_CREATED,
        EventKind.SUBSCRIPTION_UPDATED,
        EventKind.SUBSCRIPTION_DELETED,
    ]
    snapshot: ExternalSubscriptionSnapshot


class PaymentEvent(_EventBase):
    kind: Literal[EventKind.PAYMENT_SUCCEEDED, EventKind.PAYMENT_FAILED]
    customer_id: Optional[str] = None
    subscription_id: Optional[str] = None
    invoice_id: str
    payment_intent_id: Optional[str] = None
    amount_cents: int = 0
    currency: str = "USD"
    attempt_count: Optional[int] = None
    description: Optional[str] = None

    @property
    def payment_status(self) -> PaymentStatus:
        if self.kind == EventKind.PAYMENT_SUCCEEDED:
            return PaymentStatus.SUCCEEDED
        return PaymentStatus.FAILED


class UnknownEvent(_EventBase):
    kind: Literal[EventKind.UNKNOWN] = EventKind.UNKNOWN


ExternalSubscriptionEvent = Annotated[
    Union[CheckoutCompletedEvent, SubscriptionChangedEvent, PaymentEvent, UnknownEvent],
    Field(discriminator="kind"),
]


class ApplyOutcome(BaseModel):
    """Result of applying one external event."""

    event_id: str
    event_type: str
    outcome: EventOutcome
    # Set on skipped-duplicate: what the first delivery did
    previous_outcome: Optional[EventOutcome] = None
    account_id: Optional[str] = None


class AppliedEvent(BaseModel):
    """Idempotency ledger entry."""

    id: int
    event_id: str
    event_type: str
    outcome: EventOutcome
    account_id: Optional[str] = None
    applied_at: datetime

    class Config:
        from_attributes = True


class AppliedEventCreateModel(BaseModel):
    event_id: str
    event_type: str
    outcome: str
    account_id: Optional[str] = None
