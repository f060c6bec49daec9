"""
Unit tests for AccountRepository.

Tests the guarded subscription update and the atomic daily counter against
the test database.
"""

import pytest
from datetime import date, datetime, timedelta, timezone

from packages.accounts.models.domain.account import (
    AccountCreateModel,
    AccountUpdateModel,
)
from packages.accounts.repositories.account_repository import AccountRepository
from packages.billing.models.domain.enums import SubscriptionStatus, SubscriptionTier

TODAY = date(2024, 6, 1)


@pytest.mark.asyncio
class TestAccountRepository:
    async def test_create_account(self, test_db):
        repo = AccountRepository(test_db)

        account = await repo.create(
            AccountCreateModel(id="acc_new", email="new@example.com")
        )

        assert account.id == "acc_new"
        assert account.subscription_status == SubscriptionStatus.NONE
        assert account.tier == SubscriptionTier.REGISTERED
        assert account.daily_usage_count == 0
        assert account.created_at is not None

    async def test_unregistered_account_is_free(self, test_db):
        account = await AccountRepository(test_db).create(
            AccountCreateModel(id="acc_guest", is_registered=False)
        )

        assert account.tier == SubscriptionTier.FREE

    async def test_get_by_external_customer_id(self, linked_account):
        repo = AccountRepository()

        found = await repo.get_by_external_customer_id("cus_linked")
        missing = await repo.get_by_external_customer_id("cus_nobody")

        assert found.id == "acc_linked"
        assert missing is None

    async def test_update_profile(self, sample_account):
        repo = AccountRepository()

        updated = await repo.update(
            sample_account.id, AccountUpdateModel(email="  New@Example.COM ")
        )

        assert updated.email == "new@example.com"
        assert updated.is_registered is True


@pytest.mark.asyncio
class TestApplySubscriptionState:
    async def test_first_event_applies(self, sample_account):
        repo = AccountRepository()
        at = datetime(2024, 6, 1, tzinfo=timezone.utc)

        applied = await repo.apply_subscription_state(
            sample_account.id, {"subscription_status": "active"}, at
        )

        assert applied is True
        account = await repo.get(sample_account.id)
        assert account.subscription_status == SubscriptionStatus.ACTIVE

    async def test_older_event_is_rejected(self, linked_account):
        repo = AccountRepository()
        older = datetime(2023, 12, 31, tzinfo=timezone.utc)

        applied = await repo.apply_subscription_state(
            linked_account.id, {"subscription_status": "canceled"}, older
        )

        assert applied is False
        account = await repo.get(linked_account.id)
        assert account.subscription_status == SubscriptionStatus.ACTIVE

    async def test_newer_event_moves_the_guard(self, linked_account):
        repo = AccountRepository()
        newer = datetime(2024, 2, 1, tzinfo=timezone.utc)

        assert await repo.apply_subscription_state(
            linked_account.id, {"subscription_status": "past_due"}, newer
        )
        assert not await repo.apply_subscription_state(
            linked_account.id,
            {"subscription_status": "active"},
            newer - timedelta(seconds=1),
        )

    async def test_missing_account(self):
        applied = await AccountRepository().apply_subscription_state(
            "acc_ghost", {"subscription_status": "active"}, datetime.now(timezone.utc)
        )

        assert applied is False


@pytest.mark.asyncio
class TestConsumeDailyQuota:
    async def test_increments_until_limit(self, sample_account):
        repo = AccountRepository()

        counts = [
            await repo.consume_daily_quota(sample_account.id, TODAY, 3)
            for _ in range(4)
        ]

        assert counts == [1, 2, 3, None]

    async def test_new_day_restarts_at_one(self, sample_account):
        repo = AccountRepository()
        for _ in range(3):
            await repo.consume_daily_quota(sample_account.id, TODAY, 3)

        count = await repo.consume_daily_quota(
            sample_account.id, TODAY + timedelta(days=1), 3
        )

        assert count == 1
        account = await repo.get(sample_account.id)
        assert account.usage_window_start == TODAY + timedelta(days=1)
        assert account.used_on(TODAY + timedelta(days=1)) == 1

    async def test_unbounded(self, sample_account):
        repo = AccountRepository()

        for _ in range(20):
            count = await repo.consume_daily_quota(sample_account.id, TODAY, None)

        assert count == 20

    async def test_missing_account(self):
        count = await AccountRepository().consume_daily_quota("acc_ghost", TODAY, 5)

        assert count is None

    async def test_used_on_ignores_stale_window(self, sample_account):
        repo = AccountRepository()
        await repo.consume_daily_quota(sample_account.id, TODAY, 3)

        account = await repo.get(sample_account.id)

        assert account.used_on(TODAY) == 1
        assert account.used_on(TODAY + timedelta(days=1)) == 0
