from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, field_validator

from packages.billing.models.domain.enums import (
    SubscriptionStatus,
    SubscriptionTier,
    derive_tier,
)


class Account(BaseModel):
    id: str
    email: Optional[str] = None
    is_registered: bool = True

    external_customer_id: Optional[str] = None
    external_subscription_id: Optional[str] = None

    subscription_status: SubscriptionStatus = SubscriptionStatus.NONE
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    subscription_event_at: Optional[datetime] = None

    daily_usage_count: int = 0
    usage_window_start: Optional[date] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def tier(self) -> SubscriptionTier:
        return derive_tier(self.subscription_status, self.is_registered)

    def used_on(self, day: date) -> int:
        """Usage counted for `day`; a stale window counts as zero."""
        if self.usage_window_start is None or self.usage_window_start < day:
            return 0
        return self.daily_usage_count


class AccountCreateModel(BaseModel):
    """Model for registering a new account."""

    id: str
    email: Optional[str] = None
    is_registered: bool = True
    subscription_status: str = SubscriptionStatus.NONE.value
    daily_usage_count: int = 0
    usage_window_start: Optional[date] = None


class AccountUpdateModel(BaseModel):
    """Model for updating profile fields of an account."""

    email: Optional[str] = None
    is_registered: Optional[bool] = None

    @field_validator("email", mode="before")
    @classmethod
    def normalise_email(cls, v):
        if isinstance(v, str):
            return v.strip().lower() or None
        return v
