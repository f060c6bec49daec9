from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field

from packages.accounts.models.domain.account import Account
from packages.billing.models.domain.enums import SubscriptionStatus, SubscriptionTier


class AccountCreate(BaseModel):
    account_id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    email: Optional[str] = None
    is_registered: bool = True


class AccountUpdate(BaseModel):
    email: Optional[str] = None
    is_registered: Optional[bool] = None


class AccountResponse(BaseModel):
    id: str
    email: Optional[str] = None
    is_registered: bool
    tier: SubscriptionTier
    subscription_status: SubscriptionStatus
    external_customer_id: Optional[str] = None
    external_subscription_id: Optional[str] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool
    daily_usage_count: int
    usage_window_start: Optional[date] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id,
            email=account.email,
            is_registered=account.is_registered,
            tier=account.tier,
            subscription_status=account.subscription_status,
            external_customer_id=account.external_customer_id,
            external_subscription_id=account.external_subscription_id,
            current_period_end=account.current_period_end,
            cancel_at_period_end=account.cancel_at_period_end,
            daily_usage_count=account.daily_usage_count,
            usage_window_start=account.usage_window_start,
            created_at=account.created_at,
        )
