"""
Repositories for usage metering.
"""

from datetime import date
from typing import Optional
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from common.repositories.base import BaseRepository
from packages.billing.models.database.usage import (
    UsageLedgerEntity,
    AnonymousUsageCounterEntity,
)
from packages.billing.models.domain.usage import (
    UsageLedgerEntry,
    UsageLedgerCreateModel,
    AnonymousUsageCounter,
)
from common.core.otel_axiom_exporter import trace_span


class UsageLedgerRepository(BaseRepository[UsageLedgerEntity, UsageLedgerEntry]):
    """Append-only record of allowed usage."""

    def __init__(self, db_session: Optional[AsyncSession] = None):
        super().__init__(UsageLedgerEntity, UsageLedgerEntry, db_session)

    @trace_span
    async def append(self, entry: UsageLedgerCreateModel) -> UsageLedgerEntry:
        return await self.create(entry)

    @trace_span
    async def count_for_principal(self, principal_key: str) -> int:
        async with self._get_session() as session:
            result = await session.execute(
                select(func.count(UsageLedgerEntity.id)).where(
                    UsageLedgerEntity.principal_key == principal_key
                )
            )
            return result.scalar_one() or 0

    @trace_span
    async def get_by_principal(
        self, principal_key: str, limit: int = 100
    ) -> list[UsageLedgerEntry]:
        async with self._get_session() as session:
            result = await session.execute(
                select(UsageLedgerEntity)
                .where(UsageLedgerEntity.principal_key == principal_key)
                .order_by(UsageLedgerEntity.occurred_at.desc())
                .limit(limit)
            )
            return self._entities_to_domain(result.scalars().all())


class AnonymousUsageCounterRepository(
    BaseRepository[AnonymousUsageCounterEntity, AnonymousUsageCounter]
):
    """Per-(key, day) counters for anonymous principals."""

    def __init__(self, db_session: Optional[AsyncSession] = None):
        super().__init__(
            AnonymousUsageCounterEntity, AnonymousUsageCounter, db_session
        )

    @trace_span
    async def get_for_day(
        self, principal_key: str, usage_date: date
    ) -> Optional[AnonymousUsageCounter]:
        async with self._get_session() as session:
            result = await session.execute(
                select(AnonymousUsageCounterEntity).where(
                    AnonymousUsageCounterEntity.principal_key == principal_key,
                    AnonymousUsageCounterEntity.usage_date == usage_date,
                )
            )
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def consume(
        self, principal_key: str, usage_date: date, limit: Optional[int]
    ) -> Optional[int]:
        """
        Ensure the day's counter exists, then increment it if under limit.

        Returns the new count, or None when the limit is reached. The
        increment is a single guarded UPDATE so concurrent callers for the
        same key cannot both pass the check.
        """
        async with self._get_session() as session:
            dialect = session.get_bind().dialect.name
            insert = pg_insert if dialect == "postgresql" else sqlite_insert
            await session.execute(
                insert(AnonymousUsageCounterEntity)
                .values(
                    principal_key=principal_key, usage_date=usage_date, usage_count=0
                )
                .on_conflict_do_nothing(index_elements=["principal_key", "usage_date"])
            )

            stmt = update(AnonymousUsageCounterEntity).where(
                AnonymousUsageCounterEntity.principal_key == principal_key,
                AnonymousUsageCounterEntity.usage_date == usage_date,
            )
            if limit is not None:
                stmt = stmt.where(AnonymousUsageCounterEntity.usage_count < limit)
            stmt = (
                stmt.values(usage_count=AnonymousUsageCounterEntity.usage_count + 1)
                .returning(AnonymousUsageCounterEntity.usage_count)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none()
