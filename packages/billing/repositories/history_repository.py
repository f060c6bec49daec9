"""
Repositories for payment history and the subscription audit trail.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from common.repositories.base import BaseRepository
from packages.billing.models.database.history import (
    PaymentRecordEntity,
    SubscriptionEventEntity,
)
from packages.billing.models.domain.history import (
    PaymentRecord,
    SubscriptionEventRecord,
)
from common.core.otel_axiom_exporter import trace_span


class PaymentRecordRepository(BaseRepository[PaymentRecordEntity, PaymentRecord]):
    def __init__(self, db_session: Optional[AsyncSession] = None):
        super().__init__(PaymentRecordEntity, PaymentRecord, db_session)

    @trace_span
    async def get_by_account(
        self, account_id: str, limit: int = 50, offset: int = 0
    ) -> list[PaymentRecord]:
        """Payments for an account, newest first."""
        async with self._get_session() as session:
            result = await session.execute(
                select(PaymentRecordEntity)
                .where(PaymentRecordEntity.account_id == account_id)
                .order_by(
                    PaymentRecordEntity.created_at.desc(),
                    PaymentRecordEntity.id.desc(),
                )
                .limit(limit)
                .offset(offset)
            )
            return self._entities_to_domain(result.scalars().all())


class SubscriptionEventRepository(
    BaseRepository[SubscriptionEventEntity, SubscriptionEventRecord]
):
    def __init__(self, db_session: Optional[AsyncSession] = None):
        super().__init__(
            SubscriptionEventEntity, SubscriptionEventRecord, db_session
        )

    @trace_span
    async def get_by_account(
        self, account_id: str, limit: int = 50, offset: int = 0
    ) -> list[SubscriptionEventRecord]:
        """Audit trail for an account, newest first."""
        async with self._get_session() as session:
            result = await session.execute(
                select(SubscriptionEventEntity)
                .where(SubscriptionEventEntity.account_id == account_id)
                .order_by(
                    SubscriptionEventEntity.created_at.desc(),
                    SubscriptionEventEntity.id.desc(),
                )
                .limit(limit)
                .offset(offset)
            )
            return self._entities_to_domain(result.scalars().all())
