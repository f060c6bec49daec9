from datetime import datetime
from typing import Optional
from uuid import uuid4
from zoneinfo import ZoneInfo

from fastapi import HTTPException, status

from common.core.config import settings
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.accounts.repositories.account_repository import AccountRepository
from packages.accounts.models.domain.account import (
    Account,
    AccountCreateModel,
    AccountUpdateModel,
)

logger = get_logger(__name__)


class AccountService:
    """Service for account registration and lookup."""

    def __init__(self):
        self.account_repo = AccountRepository()

    @trace_span
    async def register_account(
        self,
        account_id: Optional[str] = None,
        email: Optional[str] = None,
        is_registered: bool = True,
    ) -> Account:
        """Register a new account with no subscription and a fresh usage window."""
        account_id = account_id or f"acc_{uuid4().hex}"

        existing = await self.account_repo.get(account_id)
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Account '{account_id}' already exists",
            )

        today = datetime.now(ZoneInfo(settings.usage_timezone)).date()
        account = await self.account_repo.create(
            AccountCreateModel(
                id=account_id,
                email=email.strip().lower() if email else None,
                is_registered=is_registered,
                usage_window_start=today,
            )
        )
        logger.info(
            f"Registered account {account.id}",
            extra={"account_id": account.id, "is_registered": is_registered},
        )
        return account

    @trace_span
    async def get_account(self, account_id: str) -> Optional[Account]:
        return await self.account_repo.get(account_id)

    @trace_span
    async def get_by_external_customer_id(self, customer_id: str) -> Optional[Account]:
        return await self.account_repo.get_by_external_customer_id(customer_id)

    @trace_span
    async def update_account(
        self, account_id: str, account_update: AccountUpdateModel
    ) -> Optional[Account]:
        existing = await self.account_repo.get(account_id)
        if not existing:
            return None
        return await self.account_repo.update(account_id, account_update)
