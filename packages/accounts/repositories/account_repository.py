from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy import case, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from common.core.otel_axiom_exporter import trace_span, get_logger
from common.repositories.base import BaseRepository
from packages.accounts.models.database.account import AccountEntity
from packages.accounts.models.domain.account import Account

logger = get_logger(__name__)


class AccountRepository(BaseRepository[AccountEntity, Account]):
    def __init__(self, db_session: Optional[AsyncSession] = None):
        super().__init__(AccountEntity, Account, db_session)

    @trace_span
    async def get_by_external_customer_id(self, customer_id: str) -> Optional[Account]:
        query = select(AccountEntity).where(
            AccountEntity.external_customer_id == customer_id
        )
        async with self._get_session() as session:
            result = await session.execute(query)
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def apply_subscription_state(
        self, account_id: str, values: Dict[str, Any], event_at: datetime
    ) -> bool:
        """
        Compare-and-update of the subscription fields.

        Writes only if no newer provider event has been applied to this
        account. Returns False when the update was rejected as stale (or the
        account does not exist).
        """
        stmt = (
            update(AccountEntity)
            .where(
                AccountEntity.id == account_id,
                or_(
                    AccountEntity.subscription_event_at.is_(None),
                    AccountEntity.subscription_event_at <= event_at,
                ),
            )
            .values(subscription_event_at=event_at, **values)
            .returning(AccountEntity.id)
            .execution_options(synchronize_session=False)
        )
        async with self._get_session() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none() is not None

    @trace_span
    async def consume_daily_quota(
        self, account_id: str, today: date, limit: Optional[int]
    ) -> Optional[int]:
        """
        Atomically reset-if-new-day and increment the account's counter.

        One statement, so concurrent calls for the same account serialise on
        the row. Returns the new count, or None when the account is at its
        limit (or missing). limit=None means unbounded.
        """
        window_expired = or_(
            AccountEntity.usage_window_start.is_(None),
            AccountEntity.usage_window_start < today,
        )
        stmt = update(AccountEntity).where(AccountEntity.id == account_id)
        if limit is not None:
            stmt = stmt.where(
                or_(window_expired, AccountEntity.daily_usage_count < limit)
            )
        stmt = (
            stmt.values(
                daily_usage_count=case(
                    (window_expired, 1),
                    else_=AccountEntity.daily_usage_count + 1,
                ),
                usage_window_start=today,
            )
            .returning(AccountEntity.daily_usage_count)
            .execution_options(synchronize_session=False)
        )
        async with self._get_session() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none()
