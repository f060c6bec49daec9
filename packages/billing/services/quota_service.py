"""
Service for daily quota accounting.

Every allowed call consumes exactly one unit and writes exactly one usage
ledger row, in the same transaction as the counter update. Denied calls
write nothing.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional, Tuple
from zoneinfo import ZoneInfo

from common.core.config import settings
from common.core.otel_axiom_exporter import trace_span, get_logger
from common.db.context import readonly, transactional
from packages.accounts.repositories.account_repository import AccountRepository
from packages.billing.repositories.usage_repository import (
    UsageLedgerRepository,
    AnonymousUsageCounterRepository,
)
from packages.billing.models.domain.usage import (
    Principal,
    QuotaPolicy,
    QuotaResult,
    UsageLedgerCreateModel,
)
from packages.billing.models.domain.enums import PrincipalKind, SubscriptionTier

logger = get_logger(__name__)


def default_quota_policy() -> QuotaPolicy:
    return QuotaPolicy(
        free=settings.quota_daily_limit_free,
        registered=settings.quota_daily_limit_registered,
        pro=None,
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuotaService:
    """Check-and-consume against the per-tier daily limit."""

    def __init__(
        self,
        policy: Optional[QuotaPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.policy = policy or default_quota_policy()
        self.clock = clock or _utcnow
        self.tz = ZoneInfo(settings.usage_timezone)
        self.account_repo = AccountRepository()
        self.ledger_repo = UsageLedgerRepository()
        self.counter_repo = AnonymousUsageCounterRepository()

    def current_window(self) -> Tuple[date, datetime]:
        """Today in the reference time zone, and when tomorrow starts."""
        today = self.clock().astimezone(self.tz).date()
        reset_at = datetime.combine(today + timedelta(days=1), time.min, tzinfo=self.tz)
        return today, reset_at

    def _effective_tier(
        self, principal: Principal, tier: SubscriptionTier
    ) -> SubscriptionTier:
        if principal.kind == PrincipalKind.ANONYMOUS:
            return self.policy.lowest_tier()
        return tier

    def _result(
        self,
        principal: Principal,
        tier: SubscriptionTier,
        allowed: bool,
        used: int,
        limit: Optional[int],
        reset_at: datetime,
    ) -> QuotaResult:
        remaining = None if limit is None else max(limit - used, 0)
        if not allowed:
            remaining = 0
        return QuotaResult(
            allowed=allowed,
            principal_kind=principal.kind,
            tier=tier,
            used=used,
            limit=limit,
            remaining=remaining,
            reset_at=reset_at,
        )

    def _unknown_principal(
        self, principal: Principal, tier: SubscriptionTier, reset_at: datetime
    ) -> QuotaResult:
        # Fail safe: a missing account is treated as exhausted, not unlimited
        logger.warning(
            f"Usage check for unknown account {principal.key}",
            extra={"account_id": principal.key},
        )
        return QuotaResult(
            allowed=False,
            principal_kind=principal.kind,
            tier=tier,
            used=0,
            limit=0,
            remaining=0,
            reset_at=reset_at,
            unknown_principal=True,
        )

    @trace_span
    async def check_and_consume(
        self,
        principal: Principal,
        tier: SubscriptionTier,
        calculator_kind: str = "default",
        input_metadata: Optional[dict] = None,
    ) -> QuotaResult:
        """
        Consume one unit of the principal's daily allowance if any is left.

        Anonymous principals always get the lowest tier's limit regardless of
        the tier passed in.
        """
        tier = self._effective_tier(principal, tier)
        limit = self.policy.limit_for(tier)
        today, reset_at = self.current_window()

        if limit is not None and limit <= 0:
            return self._result(principal, tier, False, 0, limit, reset_at)

        return await self._consume(
            principal,
            tier,
            limit,
            today,
            reset_at,
            calculator_kind,
            input_metadata or {},
        )

    @transactional
    async def _consume(
        self,
        principal: Principal,
        tier: SubscriptionTier,
        limit: Optional[int],
        today: date,
        reset_at: datetime,
        calculator_kind: str,
        input_metadata: dict,
    ) -> QuotaResult:
        if principal.kind == PrincipalKind.REGISTERED:
            new_count = await self.account_repo.consume_daily_quota(
                principal.key, today, limit
            )
            if new_count is None:
                account = await self.account_repo.get(principal.key)
                if account is None:
                    return self._unknown_principal(principal, tier, reset_at)
                used = account.used_on(today)
        else:
            new_count = await self.counter_repo.consume(principal.key, today, limit)
            used = limit or 0

        if new_count is None:
            logger.warning(
                f"Daily quota reached for {principal.kind.value} principal {principal.key}",
                extra={
                    "principal_kind": principal.kind.value,
                    "principal_key": principal.key,
                    "tier": tier.value,
                    "limit": limit,
                },
            )
            return self._result(principal, tier, False, used, limit, reset_at)

        await self.ledger_repo.append(
            UsageLedgerCreateModel(
                principal_kind=principal.kind.value,
                principal_key=principal.key,
                calculator_kind=calculator_kind,
                input_metadata=input_metadata,
            )
        )
        logger.info(
            f"Consumed quota for {principal.kind.value} principal {principal.key}",
            extra={
                "principal_kind": principal.kind.value,
                "principal_key": principal.key,
                "calculator_kind": calculator_kind,
                "used": new_count,
                "limit": limit,
            },
        )
        return self._result(principal, tier, True, new_count, limit, reset_at)

    @trace_span
    @readonly
    async def get_usage_status(
        self, principal: Principal, tier: SubscriptionTier
    ) -> QuotaResult:
        """Current allowance without consuming anything."""
        tier = self._effective_tier(principal, tier)
        limit = self.policy.limit_for(tier)
        today, reset_at = self.current_window()

        if principal.kind == PrincipalKind.REGISTERED:
            account = await self.account_repo.get(principal.key)
            if account is None:
                return self._unknown_principal(principal, tier, reset_at)
            used = account.used_on(today)
        else:
            counter = await self.counter_repo.get_for_day(principal.key, today)
            used = counter.usage_count if counter else 0

        allowed = limit is None or used < limit
        return self._result(principal, tier, allowed, used, limit, reset_at)
