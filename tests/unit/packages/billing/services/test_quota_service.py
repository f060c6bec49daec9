"""
Unit tests for QuotaService.

Daily windows are driven by an injected clock so day boundaries are
deterministic.
"""

import pytest
from datetime import datetime, timedelta, timezone

from packages.accounts.repositories.account_repository import AccountRepository
from packages.billing.models.domain.enums import PrincipalKind, SubscriptionTier
from packages.billing.models.domain.usage import Principal, QuotaPolicy
from packages.billing.repositories.usage_repository import (
    AnonymousUsageCounterRepository,
    UsageLedgerRepository,
)
from packages.billing.services.quota_service import QuotaService

DAY_ONE = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FixedClock(DAY_ONE)


@pytest.fixture
def quota_service(clock):
    return QuotaService(
        policy=QuotaPolicy(free=5, registered=10, pro=None), clock=clock
    )


class TestQuotaWindow:
    def test_reset_at_is_next_midnight(self, quota_service):
        today, reset_at = quota_service.current_window()

        assert today.isoformat() == "2024-06-01"
        assert reset_at == datetime(2024, 6, 2, tzinfo=timezone.utc)

    def test_late_evening_still_same_day(self, quota_service, clock):
        clock.now = datetime(2024, 6, 1, 23, 59, 59, tzinfo=timezone.utc)
        today, _ = quota_service.current_window()

        assert today.isoformat() == "2024-06-01"


@pytest.mark.asyncio
class TestRegisteredQuota:
    async def test_consumes_until_limit(self, quota_service, sample_account):
        principal = Principal.registered(sample_account.id)

        results = [
            await quota_service.check_and_consume(
                principal, SubscriptionTier.REGISTERED
            )
            for _ in range(10)
        ]

        assert all(r.allowed for r in results)
        assert [r.used for r in results] == list(range(1, 11))
        assert results[0].remaining == 9
        assert results[-1].remaining == 0

        denied = await quota_service.check_and_consume(
            principal, SubscriptionTier.REGISTERED
        )
        assert denied.allowed is False
        assert denied.used == 10
        assert denied.remaining == 0
        assert denied.requires_upgrade

        account = await AccountRepository().get(sample_account.id)
        assert account.daily_usage_count == 10

    async def test_only_allowed_calls_are_ledgered(self, quota_service, sample_account):
        principal = Principal.registered(sample_account.id)
        for _ in range(12):
            await quota_service.check_and_consume(
                principal, SubscriptionTier.REGISTERED
            )

        count = await UsageLedgerRepository().count_for_principal(sample_account.id)
        assert count == 10

    async def test_ledger_keeps_calculator_and_inputs(
        self, quota_service, sample_account
    ):
        await quota_service.check_and_consume(
            Principal.registered(sample_account.id),
            SubscriptionTier.REGISTERED,
            calculator_kind="mortgage",
            input_metadata={"principal": 250000},
        )

        entries = await UsageLedgerRepository().get_by_principal(sample_account.id)
        assert len(entries) == 1
        assert entries[0].principal_kind == PrincipalKind.REGISTERED
        assert entries[0].calculator_kind == "mortgage"
        assert entries[0].input_metadata == {"principal": 250000}

    async def test_new_day_resets_counter(self, quota_service, clock, sample_account):
        principal = Principal.registered(sample_account.id)
        for _ in range(10):
            await quota_service.check_and_consume(
                principal, SubscriptionTier.REGISTERED
            )

        clock.advance(days=1)
        result = await quota_service.check_and_consume(
            principal, SubscriptionTier.REGISTERED
        )

        assert result.allowed is True
        assert result.used == 1
        assert result.remaining == 9
        assert result.reset_at == datetime(2024, 6, 3, tzinfo=timezone.utc)

    async def test_pro_is_unbounded(self, quota_service, sample_account):
        principal = Principal.registered(sample_account.id)

        for _ in range(25):
            result = await quota_service.check_and_consume(
                principal, SubscriptionTier.PRO
            )
            assert result.allowed is True

        assert result.limit is None
        assert result.remaining is None
        assert result.is_unbounded
        assert result.used == 25

    async def test_unknown_account_is_exhausted(self, quota_service):
        result = await quota_service.check_and_consume(
            Principal.registered("acc_ghost"), SubscriptionTier.REGISTERED
        )

        assert result.allowed is False
        assert result.unknown_principal is True
        assert result.limit == 0
        assert await UsageLedgerRepository().count_for_principal("acc_ghost") == 0

    async def test_zero_limit_denies_without_writing(self, clock, sample_account):
        service = QuotaService(policy=QuotaPolicy(registered=0), clock=clock)

        result = await service.check_and_consume(
            Principal.registered(sample_account.id), SubscriptionTier.REGISTERED
        )

        assert result.allowed is False
        account = await AccountRepository().get(sample_account.id)
        assert account.daily_usage_count == 0


@pytest.mark.asyncio
class TestAnonymousQuota:
    async def test_anonymous_limit_and_next_day(self, quota_service, clock):
        principal = Principal.anonymous("8.8.8.8")

        for expected_remaining in (4, 3, 2, 1, 0):
            result = await quota_service.check_and_consume(
                principal, SubscriptionTier.FREE
            )
            assert result.allowed is True
            assert result.remaining == expected_remaining

        denied = await quota_service.check_and_consume(principal, SubscriptionTier.FREE)
        assert denied.allowed is False
        assert denied.used == 5
        assert "free calculations" in denied.get_user_message()

        clock.advance(days=1)
        result = await quota_service.check_and_consume(principal, SubscriptionTier.FREE)
        assert result.allowed is True
        assert result.remaining == 4

    async def test_anonymous_ignores_requested_tier(self, quota_service):
        principal = Principal.anonymous("1.1.1.1")

        result = await quota_service.check_and_consume(principal, SubscriptionTier.PRO)

        assert result.tier == SubscriptionTier.FREE
        assert result.limit == 5

    async def test_keys_are_counted_separately(self, quota_service, clock):
        for _ in range(5):
            await quota_service.check_and_consume(
                Principal.anonymous("8.8.8.8"), SubscriptionTier.FREE
            )

        result = await quota_service.check_and_consume(
            Principal.anonymous("1.1.1.1"), SubscriptionTier.FREE
        )
        assert result.allowed is True
        assert result.used == 1

    async def test_counter_is_per_day(self, quota_service, clock):
        principal = Principal.anonymous("8.8.8.8")
        await quota_service.check_and_consume(principal, SubscriptionTier.FREE)
        clock.advance(days=1)
        await quota_service.check_and_consume(principal, SubscriptionTier.FREE)

        repo = AnonymousUsageCounterRepository()
        first = await repo.get_for_day("8.8.8.8", DAY_ONE.date())
        second = await repo.get_for_day("8.8.8.8", (DAY_ONE + timedelta(days=1)).date())
        assert first.usage_count == 1
        assert second.usage_count == 1


@pytest.mark.asyncio
class TestUsageStatus:
    async def test_status_does_not_consume(self, quota_service, sample_account):
        principal = Principal.registered(sample_account.id)
        await quota_service.check_and_consume(principal, SubscriptionTier.REGISTERED)

        first = await quota_service.get_usage_status(
            principal, SubscriptionTier.REGISTERED
        )
        second = await quota_service.get_usage_status(
            principal, SubscriptionTier.REGISTERED
        )

        assert first.used == second.used == 1
        assert first.remaining == 9
        assert first.allowed is True

    async def test_status_for_stale_window_is_fresh(
        self, quota_service, clock, sample_account
    ):
        principal = Principal.registered(sample_account.id)
        for _ in range(10):
            await quota_service.check_and_consume(
                principal, SubscriptionTier.REGISTERED
            )

        exhausted = await quota_service.get_usage_status(
            principal, SubscriptionTier.REGISTERED
        )
        clock.advance(days=1)
        fresh = await quota_service.get_usage_status(
            principal, SubscriptionTier.REGISTERED
        )

        assert exhausted.allowed is False
        assert fresh.allowed is True
        assert fresh.used == 0
        assert fresh.remaining == 10

    async def test_status_for_unseen_anonymous_key(self, quota_service):
        result = await quota_service.get_usage_status(
            Principal.anonymous("9.9.9.9"), SubscriptionTier.FREE
        )

        assert result.allowed is True
        assert result.used == 0
        assert result.remaining == 5

    async def test_status_for_unknown_account(self, quota_service):
        result = await quota_service.get_usage_status(
            Principal.registered("acc_ghost"), SubscriptionTier.REGISTERED
        )

        assert result.allowed is False
        assert result.unknown_principal is True
