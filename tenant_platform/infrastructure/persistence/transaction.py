"""
Transaction orchestration.

Every write in the platform runs through ``TransactionManager``: one session per
transaction, committed on normal exit and rolled back on any error, timeout or
cancellation before the error propagates. Storage-layer errors are translated
into domain exceptions here so callers never see driver internals.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from enum import Enum
from typing import TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from tenant_platform.domain.exceptions import (
    AlreadyExistsError,
    ConcurrencyConflictError,
    DatabaseOperationError,
    TenantPlatformException,
    TransactionTimeoutError,
    ValidationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Postgres: 'Key (subdomain)=(acme) already exists.'
_PG_UNIQUE_KEY = re.compile(r"Key \(([^)]+)\)=\(([^)]*)\)")
# SQLite: 'UNIQUE constraint failed: tenant.subdomain'
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: [\w]+\.(\w+)")
_PG_UNIQUE_VIOLATION = "23505"


class IsolationLevel(str, Enum):
    READ_COMMITTED = "READ COMMITTED"
    REPEATABLE_READ = "REPEATABLE READ"
    SERIALIZABLE = "SERIALIZABLE"


def translate_integrity_error(
    exc: IntegrityError, resource_type: str = "Record"
) -> AlreadyExistsError | ValidationError:
    """
    Unique violations become AlreadyExistsError naming the conflicting field
    when the driver reports it; other constraint failures become ValidationError.
    """
    message = str(exc.orig) if exc.orig is not None else str(exc)
    match = _PG_UNIQUE_KEY.search(message)
    if match and getattr(exc.orig, "sqlstate", _PG_UNIQUE_VIOLATION) == _PG_UNIQUE_VIOLATION:
        return AlreadyExistsError(resource_type, field=match.group(1), value=match.group(2))
    match = _SQLITE_UNIQUE.search(message)
    if match:
        return AlreadyExistsError(resource_type, field=match.group(1))
    if "unique" in message.lower() or "duplicate key" in message.lower():
        return AlreadyExistsError(resource_type)
    return ValidationError(f"{resource_type} violates a data constraint")


def translate_storage_error(exc: Exception, resource_type: str = "Record") -> TenantPlatformException:
    """Domain exception for a failure raised while working in a session"""
    if isinstance(exc, TenantPlatformException):
        return exc
    if isinstance(exc, IntegrityError):
        return translate_integrity_error(exc, resource_type)
    if isinstance(exc, StaleDataError):
        return ConcurrencyConflictError()
    if isinstance(exc, SQLAlchemyError):
        return DatabaseOperationError()
    return DatabaseOperationError(f"{resource_type.lower()} operation")


class TransactionManager:
    """
    Opens sessions and runs units of work inside a transaction.

    Args:
        session_factory: Session factory (AsyncSessionLocal in the app, a test
            engine's factory in tests)
        default_timeout: Timeout in seconds applied by ``run`` when the caller
            does not pass one; None means no limit
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        default_timeout: float | None = None,
    ):
        self.session_factory = session_factory
        self.default_timeout = default_timeout

    @asynccontextmanager
    async def transaction(
        self, isolation_level: IsolationLevel | str | None = None
    ) -> AsyncIterator[AsyncSession]:
        """
        Yield a session inside BEGIN ... COMMIT.

        Raises:
            AlreadyExistsError: On unique constraint violations
            ConcurrencyConflictError: When an optimistic-lock check fails
            DatabaseOperationError: For any other non-domain failure
        """
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    await self._apply_isolation_level(session, isolation_level)
                    yield session
            except TenantPlatformException:
                logger.debug("Transaction rolled back on domain error")
                raise
            except IntegrityError as e:
                logger.debug("Transaction rolled back on integrity error: %s", e.orig)
                raise translate_integrity_error(e) from e
            except StaleDataError as e:
                logger.debug("Transaction rolled back on stale version: %s", e)
                raise ConcurrencyConflictError() from e
            except SQLAlchemyError as e:
                logger.error("Transaction failed with database error: %s", e)
                raise DatabaseOperationError() from e
            except Exception as e:
                logger.error("Transaction failed with unexpected error: %s", e, exc_info=True)
                raise DatabaseOperationError("transaction") from e

    async def run(
        self,
        operation: Callable[[AsyncSession], Awaitable[T]],
        isolation_level: IsolationLevel | str | None = None,
        timeout: float | None = None,
    ) -> T:
        """
        Run ``operation(session)`` in a transaction and return its result.

        With a timeout the operation is raced against the clock; on expiry it is
        cancelled, the transaction rolls back and TransactionTimeoutError is raised.
        """
        timeout = timeout if timeout is not None else self.default_timeout
        async with self.transaction(isolation_level) as session:
            if timeout is None:
                return await operation(session)
            try:
                return await asyncio.wait_for(operation(session), timeout=timeout)
            except asyncio.TimeoutError as e:
                logger.warning("Transaction exceeded %.3fs, rolling back", timeout)
                raise TransactionTimeoutError(timeout) from e

    async def run_consistent_read(
        self, operation: Callable[[AsyncSession], Awaitable[T]], timeout: float | None = None
    ) -> T:
        """Run with REPEATABLE READ isolation"""
        return await self.run(operation, IsolationLevel.REPEATABLE_READ, timeout)

    async def run_critical(
        self, operation: Callable[[AsyncSession], Awaitable[T]], timeout: float | None = None
    ) -> T:
        """Run with SERIALIZABLE isolation"""
        return await self.run(operation, IsolationLevel.SERIALIZABLE, timeout)

    @staticmethod
    async def _apply_isolation_level(
        session: AsyncSession, isolation_level: IsolationLevel | str | None
    ) -> None:
        if isolation_level is None:
            return
        level = IsolationLevel(isolation_level).value
        bind = session.bind
        if bind is not None and bind.dialect.name == "sqlite":
            # SQLite transactions are always serializable
            logger.debug("Ignoring isolation level %s on sqlite", level)
            return
        await session.connection(execution_options={"isolation_level": level})
