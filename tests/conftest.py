# Shared pytest configuration and fixtures for all test types
import pytest_asyncio
from datetime import datetime, timezone
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from slowapi import Limiter
from slowapi.util import get_remote_address
from unittest.mock import patch

# Create test limiter with no limits and in-memory storage
test_limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri="memory://",
    enabled=False,
)

# Patch the limiter before importing the app so decorators use test limiter
with patch("common.providers.rate_limiter.limiter.limiter", test_limiter):
    from api.main import app

from common.db.session import get_db
from common.db.base import Base
from packages.accounts.models.database.account import AccountEntity
from packages.billing.models.database import (  # noqa: F401
    AppliedEventEntity,
    PaymentRecordEntity,
    SubscriptionEventEntity,
    UsageLedgerEntity,
    AnonymousUsageCounterEntity,
)
from packages.billing.models.domain.enums import SubscriptionStatus

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine and initialize schema."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_connection(test_engine):
    """Create test connection with outer transaction for rollback isolation."""
    async with test_engine.connect() as connection:
        trans = await connection.begin()
        yield connection
        await trans.rollback()


@pytest_asyncio.fixture(scope="function")
async def test_session_factory(test_connection):
    """Create session factory bound to test connection.

    Using join_transaction_mode="create_savepoint" so nested transaction()
    calls create savepoints instead of real nested transactions.
    """
    return async_sessionmaker(
        bind=test_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )


@pytest_asyncio.fixture(scope="function")
async def test_db(test_session_factory):
    """Create a test database session."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function", autouse=True)
async def patch_lazy_sessions(test_session_factory, monkeypatch):
    """
    Patch session factories to use test database.

    This allows real transaction() and get_session() to run with proper
    commit/rollback/ContextVar semantics while using the test database.
    """
    monkeypatch.setattr("common.db.scoped.AsyncSessionLocal", test_session_factory)
    monkeypatch.setattr(
        "common.db.scoped.AsyncSessionLocalReadonly", test_session_factory
    )


@pytest_asyncio.fixture(scope="function")
async def client(test_db: AsyncSession):
    """Create a test client."""

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def sample_account(test_db: AsyncSession):
    """Registered account with no subscription."""
    account = AccountEntity(
        id="acc_test123",
        email="test@example.com",
        is_registered=True,
        subscription_status=SubscriptionStatus.NONE.value,
        daily_usage_count=0,
    )
    test_db.add(account)
    await test_db.commit()
    await test_db.refresh(account)
    return account


@pytest_asyncio.fixture(scope="function")
async def linked_account(test_db: AsyncSession):
    """Account already linked to a Stripe customer and active subscription."""
    account = AccountEntity(
        id="acc_linked",
        email="linked@example.com",
        is_registered=True,
        external_customer_id="cus_linked",
        external_subscription_id="sub_linked",
        subscription_status=SubscriptionStatus.ACTIVE.value,
        subscription_event_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        daily_usage_count=0,
    )
    test_db.add(account)
    await test_db.commit()
    await test_db.refresh(account)
    return account


@pytest_asyncio.fixture(scope="function")
async def exhausted_account(test_db: AsyncSession):
    """Registered account that has used its whole allowance today."""
    account = AccountEntity(
        id="acc_exhausted",
        email="busy@example.com",
        is_registered=True,
        subscription_status=SubscriptionStatus.NONE.value,
        daily_usage_count=10,
        usage_window_start=datetime.now(timezone.utc).date(),
    )
    test_db.add(account)
    await test_db.commit()
    await test_db.refresh(account)
    return account
