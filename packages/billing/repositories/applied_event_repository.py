"""
Repository for the idempotency ledger.
"""

from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from common.repositories.base import BaseRepository
from packages.billing.models.database.applied_event import AppliedEventEntity
from packages.billing.models.domain.events import (
    AppliedEvent,
    AppliedEventCreateModel,
)
from common.core.otel_axiom_exporter import trace_span


class AppliedEventRepository(BaseRepository[AppliedEventEntity, AppliedEvent]):
    """Records which provider events have been processed, by event id."""

    def __init__(self, db_session: Optional[AsyncSession] = None):
        super().__init__(AppliedEventEntity, AppliedEvent, db_session)

    @trace_span
    async def get_by_event_id(self, event_id: str) -> Optional[AppliedEvent]:
        async with self._get_session() as session:
            result = await session.execute(
                select(AppliedEventEntity).where(
                    AppliedEventEntity.event_id == event_id
                )
            )
            entity = result.scalar_one_or_none()
            return self._entity_to_domain(entity) if entity else None

    @trace_span
    async def record(self, entry: AppliedEventCreateModel) -> AppliedEvent:
        """
        Insert the ledger row.

        Raises IntegrityError if the event id is already recorded; callers
        run this inside the same transaction as the mutation it records.
        """
        return await self.create(entry)
