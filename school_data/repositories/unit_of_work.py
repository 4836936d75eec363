"""
Unit of work over one AsyncSession.

A unit of work coordinates several writes of one business operation through
one session and, when atomicity across several flushes is needed, one explicit
transaction:

    async with UnitOfWork(session) as uow:
        await uow.begin_transaction()
        try:
            await uow.repository.add(teacher)
            await uow.repository.add(student)
            await uow.commit()
        except Exception:
            await uow.rollback()
            raise

or, equivalently, with the wrapped form:

    await uow.execute_in_transaction(create_teacher_with_students)

Nested ``execute_in_transaction`` calls on the same instance reuse the outer
transaction; only the outermost call commits or rolls back.

Leniency: ``begin_transaction()`` with a transaction already active is a
no-op, ``commit()`` without one is a plain ``save_changes()``, and
``rollback()`` without one does nothing. With ``strict=True`` each of these
raises TransactionMisuseError instead.

The session is owned by the caller: closing the unit of work releases a
still-open transaction but never closes the session.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from school_data.db.config import get_settings
from school_data.exceptions import InvalidArgumentError, TransactionMisuseError
from .base import get_explicit_transaction, set_explicit_transaction
from .generic import Repository

ResultT = TypeVar("ResultT")


class UnitOfWork:
    """One session, one deferred-flush repository, at most one explicit transaction."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        strict: Optional[bool] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if session is None:
            raise InvalidArgumentError("session", "must not be None")
        self._session = session
        self._strict = get_settings().UOW_STRICT_TRANSACTIONS if strict is None else strict
        self._logger = logger or logging.getLogger(__name__)
        self._transaction: Optional[AsyncSessionTransaction] = None
        self._repository: Optional[Repository] = None

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def repository(self) -> Repository:
        """Repository sharing this unit of work's session; writes are never flushed by it."""
        if self._repository is None:
            self._repository = Repository(self._session, auto_flush=False, logger=self._logger)
        return self._repository

    @property
    def session(self) -> AsyncSession:
        """The underlying session. Prefer the repository for data access."""
        return self._session

    @property
    def strict(self) -> bool:
        return self._strict

    @property
    def has_active_transaction(self) -> bool:
        return self._transaction is not None

    # PUBLIC_INTERFACE
    async def begin_transaction(self) -> None:
        """
        Open an explicit transaction.

        If one is already active this is a no-op (strict mode: raises
        TransactionMisuseError). A transaction the session began implicitly
        for earlier reads is adopted as the explicit one; outside an explicit
        transaction every flush is committed immediately, so such a
        transaction carries no uncommitted writes.
        """
        if self._transaction is not None:
            if self._strict:
                raise TransactionMisuseError("A transaction is already active on this unit of work")
            self._logger.debug("begin_transaction ignored: transaction already active")
            return
        if get_explicit_transaction(self._session) is not None:
            raise TransactionMisuseError(
                "The session already carries an explicit transaction owned by another unit of work"
            )

        transaction = self._session.get_transaction()
        if transaction is None:
            transaction = await self._session.begin()
        self._transaction = transaction
        set_explicit_transaction(self._session, transaction)
        self._logger.debug("Transaction begun")

    # PUBLIC_INTERFACE
    async def save_changes(self) -> int:
        """Flush staged changes now. Does not begin or end a transaction."""
        return await self.repository.save_changes()

    # PUBLIC_INTERFACE
    async def commit(self) -> None:
        """
        Persist staged changes and commit the active transaction.

        Without an active transaction this performs a single save_changes()
        (strict mode: raises TransactionMisuseError). If the flush or the
        commit fails, the error propagates and the transaction stays recorded:
        the caller is expected to call rollback().
        """
        if self._transaction is None:
            if self._strict:
                raise TransactionMisuseError("commit() called without an active transaction")
            await self.save_changes()
            return

        await self._session.flush()
        await self._transaction.commit()
        self._release()
        self._logger.debug("Transaction committed")

    # PUBLIC_INTERFACE
    async def rollback(self) -> None:
        """
        Roll back the active transaction.

        Without an active transaction this is a no-op (strict mode: raises
        TransactionMisuseError). In-memory entities keep their state (the
        session expires them); discard the unit of work afterwards. If the
        rollback itself fails, that error propagates; the transaction is
        released either way.
        """
        if self._transaction is None:
            if self._strict:
                raise TransactionMisuseError("rollback() called without an active transaction")
            return

        transaction = self._transaction
        self._release()
        await transaction.rollback()
        self._logger.warning("Transaction rolled back")

    # PUBLIC_INTERFACE
    async def execute_in_transaction(
        self, action: Callable[[Repository], Awaitable[ResultT]]
    ) -> ResultT:
        """
        Run ``action(repository)`` atomically and return its result.

        Outermost call: begins a transaction, runs the action, commits; any
        exception (cancellation included) rolls back and is re-raised.
        Nested call (a transaction is already active): runs the action
        directly; the outer caller commits or rolls back.
        """
        if action is None:
            raise InvalidArgumentError("action", "must not be None")

        if self._transaction is not None:
            return await action(self.repository)

        await self.begin_transaction()
        try:
            result = await action(self.repository)
            await self.commit()
        except BaseException:
            await self.rollback()
            raise
        return result

    # PUBLIC_INTERFACE
    async def close(self) -> None:
        """
        Release a still-open transaction by rolling it back. Idempotent.

        The unit of work stays usable: a later begin_transaction() starts a new
        transaction, and closing again releases that one too. The session
        itself is left open; its lifetime belongs to the caller.
        """
        if self._transaction is not None:
            self._logger.warning("Unit of work closed with an open transaction; rolling back")
            await self.rollback()

    def _release(self) -> None:
        self._transaction = None
        set_explicit_transaction(self._session, None)
