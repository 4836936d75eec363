"""
Exceptions raised by the data-access layer.

Only local, pre-I/O checks and transaction misuse (in strict mode) are raised
here. Errors coming out of the persistence engine during flush or commit
(``sqlalchemy.exc.IntegrityError``, ``sqlalchemy.orm.exc.StaleDataError``,
``sqlalchemy.exc.DBAPIError``) are propagated unchanged so callers can match on
them directly. Missing records are reported as ``None`` or ``0``, never as an
exception.
"""
from __future__ import annotations


class DataAccessError(Exception):
    """Base class for errors raised by repositories and units of work."""


class InvalidArgumentError(DataAccessError, ValueError):
    """A required argument was missing, empty, or out of range."""

    def __init__(self, argument: str, message: str) -> None:
        super().__init__(f"{argument}: {message}")
        self.argument = argument


class TransactionMisuseError(DataAccessError, RuntimeError):
    """A transaction operation was called in the wrong state (strict mode only)."""


# PUBLIC_INTERFACE
def ensure_not_none(value: object, argument: str) -> None:
    """Raise InvalidArgumentError if ``value`` is None."""
    if value is None:
        raise InvalidArgumentError(argument, "must not be None")
