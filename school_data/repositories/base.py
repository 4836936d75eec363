from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import Executable, event
from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction
from sqlalchemy.orm import Session

from school_data.exceptions import InvalidArgumentError

# Key under AsyncSession.info where a unit of work records its explicit
# transaction. Every repository bound to the same session reads it.
TRANSACTION_INFO_KEY = "school_data.explicit_transaction"

# Key under Session.info accumulating rows written by flushes (explicit or
# query-triggered) since the last save_changes(), commit or rollback.
FLUSHED_ROWS_INFO_KEY = "school_data.flushed_rows"


@event.listens_for(Session, "after_flush")
def _count_flushed_rows(session: Session, flush_context) -> None:
    # new/dirty/deleted still hold their pre-flush contents here.
    modified = sum(1 for obj in session.dirty if session.is_modified(obj))
    written = len(session.new) + len(session.deleted) + modified
    session.info[FLUSHED_ROWS_INFO_KEY] = session.info.get(FLUSHED_ROWS_INFO_KEY, 0) + written


@event.listens_for(Session, "after_commit")
@event.listens_for(Session, "after_soft_rollback")
def _reset_flushed_rows(session: Session, *args) -> None:
    session.info.pop(FLUSHED_ROWS_INFO_KEY, None)


# PUBLIC_INTERFACE
def pop_flushed_rows(session: AsyncSession) -> int:
    """Return and reset the number of rows flushed on ``session`` since the last call."""
    return session.info.pop(FLUSHED_ROWS_INFO_KEY, 0)


# PUBLIC_INTERFACE
def get_explicit_transaction(session: AsyncSession) -> Optional[AsyncSessionTransaction]:
    """Return the explicit transaction recorded on ``session``, if any."""
    return session.info.get(TRANSACTION_INFO_KEY)


# PUBLIC_INTERFACE
def set_explicit_transaction(
    session: AsyncSession, transaction: Optional[AsyncSessionTransaction]
) -> None:
    """Record (or clear, with None) the explicit transaction of ``session``."""
    if transaction is None:
        session.info.pop(TRANSACTION_INFO_KEY, None)
    else:
        session.info[TRANSACTION_INFO_KEY] = transaction


class BaseRepository:
    """
    Base class for repositories providing common helpers.

    Holds the AsyncSession the repository is bound to for its whole lifetime,
    and the logger it reports to. The logger is injected by the caller; the
    module logger is used when none is given.
    """

    def __init__(self, session: AsyncSession, *, logger: Optional[logging.Logger] = None) -> None:
        if session is None:
            raise InvalidArgumentError("session", "must not be None")
        self.session = session
        self.logger = logger or logging.getLogger(__name__)

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute a SQLAlchemy statement."""
        return await self.session.execute(statement, params or {})

    async def scalars(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return scalars."""
        result = await self.execute(statement, params)
        return result.scalars()

    @property
    def in_explicit_transaction(self) -> bool:
        """True while a unit of work holds an explicit transaction on this session."""
        return get_explicit_transaction(self.session) is not None
