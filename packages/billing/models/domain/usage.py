"""
Domain models for usage tracking and quotas.
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from packages.billing.models.domain.enums import PrincipalKind, SubscriptionTier


class Principal(BaseModel):
    """The registered account or anonymous pseudo-identity being metered."""

    model_config = ConfigDict(frozen=True)

    kind: PrincipalKind
    key: str

    @classmethod
    def registered(cls, account_id: str) -> "Principal":
        return cls(kind=PrincipalKind.REGISTERED, key=account_id)

    @classmethod
    def anonymous(cls, client_key: str) -> "Principal":
        return cls(kind=PrincipalKind.ANONYMOUS, key=client_key)


class QuotaPolicy(BaseModel):
    """
    Daily limit per tier. None means unbounded.

    Built once from settings; immutable at runtime.
    """

    model_config = ConfigDict(frozen=True)

    free: Optional[int] = 5
    registered: Optional[int] = 10
    pro: Optional[int] = None

    def limit_for(self, tier: SubscriptionTier) -> Optional[int]:
        return getattr(self, tier.value)

    def lowest_tier(self) -> SubscriptionTier:
        return SubscriptionTier.FREE


class QuotaResult(BaseModel):
    """
    Result of a quota check.

    `limit` and `remaining` are None when the tier is unbounded.
    """

    allowed: bool
    principal_kind: PrincipalKind
    tier: SubscriptionTier
    used: int
    limit: Optional[int] = None
    remaining: Optional[int] = None
    reset_at: datetime
    unknown_principal: bool = False

    @property
    def is_unbounded(self) -> bool:
        return self.limit is None

    @property
    def requires_upgrade(self) -> bool:
        if self.unknown_principal:
            return True
        return not self.allowed and self.tier != SubscriptionTier.PRO

    def get_user_message(self) -> str:
        """User-facing summary of the quota state."""
        if self.is_unbounded:
            return "Unlimited calculations on your current plan."

        if self.unknown_principal:
            return "Account not found. Sign in again to continue."

        if not self.allowed or self.remaining == 0:
            if self.principal_kind == PrincipalKind.ANONYMOUS:
                return (
                    f"Daily limit of {self.limit} free calculations reached. "
                    "Create an account or upgrade to Pro to keep going."
                )
            return (
                f"Daily limit of {self.limit} calculations reached. "
                "Upgrade to Pro for unlimited calculations."
            )

        noun = "calculation" if self.remaining == 1 else "calculations"
        return f"{self.remaining} {noun} left today."


class UsageLedgerEntry(BaseModel):
    id: int
    principal_kind: PrincipalKind
    principal_key: str
    calculator_kind: str
    input_metadata: dict
    occurred_at: datetime

    class Config:
        from_attributes = True


class UsageLedgerCreateModel(BaseModel):
    principal_kind: str
    principal_key: str
    calculator_kind: str
    input_metadata: dict = {}


class AnonymousUsageCounter(BaseModel):
    id: int
    principal_key: str
    usage_date: date
    usage_count: int

    class Config:
        from_attributes = True
