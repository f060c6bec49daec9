"""
Domain models for payment history and the subscription audit trail.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, field_validator

from packages.billing.models.domain.enums import PaymentStatus, SubscriptionStatus


class PaymentRecord(BaseModel):
    id: int
    account_id: str
    event_id: str
    invoice_id: Optional[str] = None
    payment_intent_id: Optional[str] = None
    subscription_id: Optional[str] = None
    amount_cents: int
    currency: str
    status: PaymentStatus
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentRecordCreateModel(BaseModel):
    account_id: str
    event_id: str
    invoice_id: Optional[str] = None
    payment_intent_id: Optional[str] = None
    subscription_id: Optional[str] = None
    amount_cents: int = 0
    currency: str = "USD"
    status: str
    description: Optional[str] = None

    @field_validator("currency", mode="before")
    @classmethod
    def upper_currency(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        if isinstance(v, PaymentStatus):
            return v.value
        return v


class SubscriptionEventRecord(BaseModel):
    """One applied subscription-affecting event, for the account's audit trail."""

    id: int
    account_id: str
    event_id: str
    event_type: str
    old_status: Optional[SubscriptionStatus] = None
    new_status: Optional[SubscriptionStatus] = None
    subscription_id: Optional[str] = None
    event_metadata: dict
    created_at: datetime

    class Config:
        from_attributes = True


class SubscriptionEventCreateModel(BaseModel):
    account_id: str
    event_id: str
    event_type: str
    old_status: Optional[str] = None
    new_status: Optional[str] = None
    subscription_id: Optional[str] = None
    event_metadata: dict = {}

    @field_validator("old_status", "new_status", mode="before")
    @classmethod
    def validate_status(cls, v):
        if isinstance(v, SubscriptionStatus):
            return v.value
        return v
