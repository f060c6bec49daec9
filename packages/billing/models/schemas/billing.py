"""
API schemas for billing and usage operations.

Request and response models for billing endpoints. Unbounded limits are
reported as -1 on the wire.
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from packages.billing.models.domain.enums import (
    PaymentStatus,
    PrincipalKind,
    SubscriptionStatus,
    SubscriptionTier,
)
from packages.billing.models.domain.usage import QuotaResult

UNBOUNDED = -1


def _wire_count(value: Optional[int]) -> int:
    return UNBOUNDED if value is None else value


# ============================================================================
# Usage Schemas
# ============================================================================


class UsageRequest(BaseModel):
    """Identifies the caller; anonymous when account_id is absent."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    account_id: Optional[str] = None
    calculator_type: str = Field(default="default", min_length=1, max_length=100)
    input_data: Optional[dict[str, Any]] = None


class UsageStatusResponse(BaseModel):
    """Current allowance for the caller."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    allowed: bool
    remaining: int = Field(..., description="-1 when unbounded")
    used: int
    limit: int = Field(..., description="-1 when unbounded")
    reset_time: datetime
    requires_upgrade: bool
    user_type: str
    message: str

    @classmethod
    def from_result(cls, result: QuotaResult) -> "UsageStatusResponse":
        return cls(
            allowed=result.allowed,
            remaining=_wire_count(result.remaining),
            used=result.used,
            limit=_wire_count(result.limit),
            reset_time=result.reset_at,
            requires_upgrade=result.requires_upgrade,
            user_type=_user_type(result),
            message=result.get_user_message(),
        )


class UsageIncrementResponse(BaseModel):
    """Outcome of a check-and-consume call."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    remaining: int
    used: int
    limit: int
    reset_time: datetime
    requires_upgrade: bool
    message: str

    @classmethod
    def from_result(cls, result: QuotaResult) -> "UsageIncrementResponse":
        return cls(
            success=result.allowed,
            remaining=_wire_count(result.remaining),
            used=result.used,
            limit=_wire_count(result.limit),
            reset_time=result.reset_at,
            requires_upgrade=result.requires_upgrade,
            message=result.get_user_message(),
        )


def _user_type(result: QuotaResult) -> str:
    if result.principal_kind == PrincipalKind.ANONYMOUS:
        return "anonymous"
    return result.tier.value


# ============================================================================
# Subscription Schemas
# ============================================================================


class SubscriptionSummaryResponse(BaseModel):
    """Subscription and usage summary for an account."""

    account_id: str
    tier: SubscriptionTier
    status: SubscriptionStatus
    has_access: bool = Field(..., description="Whether paid features are available")
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool
    daily_limit: int = Field(..., description="-1 when unbounded")
    daily_used: int
    daily_remaining: int = Field(..., description="-1 when unbounded")
    can_upgrade: bool
    next_reset_at: datetime


class PaymentRecordResponse(BaseModel):
    id: int
    invoice_id: Optional[str] = None
    payment_intent_id: Optional[str] = None
    subscription_id: Optional[str] = None
    amount_cents: int
    currency: str
    status: PaymentStatus
    description: Optional[str] = None
    created_at: datetime


class PaymentHistoryResponse(BaseModel):
    account_id: str
    payments: list[PaymentRecordResponse]


class SubscriptionEventResponse(BaseModel):
    id: int
    event_id: str
    event_type: str
    old_status: Optional[SubscriptionStatus] = None
    new_status: Optional[SubscriptionStatus] = None
    subscription_id: Optional[str] = None
    metadata: dict[str, Any]
    created_at: datetime


class SubscriptionEventHistoryResponse(BaseModel):
    account_id: str
    events: list[SubscriptionEventResponse]


# ============================================================================
# Webhook Schemas
# ============================================================================


class WebhookAckResponse(BaseModel):
    received: bool
    outcome: str
