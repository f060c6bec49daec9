"""
Database session context.

Holds the session of the enclosing transaction (if any) in a ContextVar so
repositories called from inside it share one connection, and exposes the
@transactional / @readonly decorators that services use to draw those
boundaries.

Usage:
    @transactional
    async def apply(event):
        await ledger_repo.record(event)    # same session
        await account_repo.set_status(...)  # same session, commits together

    @readonly
    async def usage_snapshot(account_id):
        ...  # all repository reads use the read session
"""

from contextvars import ContextVar
from functools import wraps
from typing import Optional, Callable, TypeVar, ParamSpec

from sqlalchemy.ext.asyncio import AsyncSession

from common.core.otel_axiom_exporter import get_logger

logger = get_logger(__name__)


_write_session: ContextVar[Optional[AsyncSession]] = ContextVar(
    "db_write_session", default=None
)
_read_session: ContextVar[Optional[AsyncSession]] = ContextVar(
    "db_read_session", default=None
)
_force_readonly: ContextVar[bool] = ContextVar("db_force_readonly", default=False)


def is_readonly_forced() -> bool:
    return _force_readonly.get()


def get_current_session(readonly: bool = False) -> Optional[AsyncSession]:
    """Session of the enclosing transaction, or None when there is none."""
    if readonly or is_readonly_forced():
        return _read_session.get()
    return _write_session.get()


def set_current_session(session: AsyncSession, readonly: bool = False) -> object:
    if readonly:
        return _read_session.set(session)
    return _write_session.set(session)


def reset_current_session(token: object, readonly: bool = False) -> None:
    if readonly:
        _read_session.reset(token)
    else:
        _write_session.reset(token)


def in_transaction(readonly: bool = False) -> bool:
    return get_current_session(readonly=readonly) is not None


P = ParamSpec("P")
T = TypeVar("T")


def readonly(func: Callable[P, T]) -> Callable[P, T]:
    """
    Force every DB operation in this call chain onto a readonly session.

    Usage:
        @readonly
        async def get_usage_status(principal):
            account = await account_repo.get(principal.key)
            ...
    """

    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        token = _force_readonly.set(True)
        try:
            return await func(*args, **kwargs)
        finally:
            _force_readonly.reset(token)

    return wrapper


def transactional(func: Callable[P, T]) -> Callable[P, T]:
    """
    Run the decorated coroutine inside one transaction.

    Everything it does through repositories shares a session and either
    commits together or rolls back together. Nested use joins the outer
    transaction rather than opening a second one.
    """

    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        from common.db.scoped import transaction as tx  # noqa: PLC0415

        if in_transaction(readonly=is_readonly_forced()):
            return await func(*args, **kwargs)

        async with tx():
            return await func(*args, **kwargs)

    return wrapper
