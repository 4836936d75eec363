"""Repository and unit-of-work contracts consumed by services and HTTP handlers."""

from __future__ import annotations

from typing import (
    Any,
    Awaitable,
    Callable,
    Iterable,
    List,
    Optional,
    Protocol,
    Sequence,
    TypeVar,
    Union,
)

from sqlalchemy import ColumnElement, Select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import QueryableAttribute
from sqlalchemy.sql.base import ExecutableOption

from .paging import PagedResult

KeyT = TypeVar("KeyT")
EntityT = TypeVar("EntityT")
ResultT = TypeVar("ResultT")


class Entity(Protocol[KeyT]):
    """A persistable record exposing exactly one identifier attribute, ``id``."""

    id: KeyT


# A filter is any boolean SQL expression over the entity's columns,
# e.g. ``TeacherInfo.age > 30``.
Predicate = ColumnElement[bool]

# Related entities to load with the primary rows: relationship attributes
# (``TeacherInfo.students``) or loader options (``joinedload(...)``).
IncludeSpec = Iterable[Union[QueryableAttribute[Any], ExecutableOption]]

OrderBy = Union[ColumnElement[Any], QueryableAttribute[Any], Sequence[Union[ColumnElement[Any], QueryableAttribute[Any]]]]


class QueryRepository(Protocol):
    """Read-only operations. None of them stage mutations."""

    def get_queryable(self, entity_type: type[EntityT]) -> Select[tuple[EntityT]]:
        """Return a composable SELECT over ``entity_type``."""

    async def list_query(self, statement: Select[tuple[EntityT]]) -> List[EntityT]:
        """Materialize a statement built from ``get_queryable``."""

    async def get_by_id(self, entity_type: type[EntityT], id: Any) -> Optional[EntityT]:
        """Return the entity with identifier ``id`` or None."""

    async def get_first_or_default(
        self,
        entity_type: type[EntityT],
        predicate: Predicate,
        includes: Optional[IncludeSpec] = None,
    ) -> Optional[EntityT]:
        """Return the first entity matching ``predicate`` or None."""

    async def get_all(self, entity_type: type[EntityT]) -> List[EntityT]:
        """Return every entity of ``entity_type``."""

    async def get_list(
        self,
        entity_type: type[EntityT],
        predicate: Predicate,
        includes: Optional[IncludeSpec] = None,
    ) -> List[EntityT]:
        """Return all entities matching ``predicate``."""

    async def get_paged(
        self,
        entity_type: type[EntityT],
        page_index: int,
        page_size: int,
        predicate: Optional[Predicate] = None,
        order_by: Optional[OrderBy] = None,
    ) -> PagedResult[EntityT]:
        """Return one page of the filtered, ordered entities."""

    async def exists(self, entity_type: type[EntityT], predicate: Predicate) -> bool:
        """Return True iff at least one entity matches ``predicate``."""

    async def count(self, entity_type: type[EntityT], predicate: Optional[Predicate] = None) -> int:
        """Count entities matching ``predicate`` (all when None)."""


class Repository(QueryRepository, Protocol):
    """Query operations plus staged writes."""

    @property
    def auto_flush(self) -> bool:
        """Whether each write call flushes immediately."""

    async def add(self, entity: EntityT) -> int:
        """Stage an insert."""

    async def add_range(self, entities: Iterable[EntityT]) -> int:
        """Stage a batch of inserts."""

    async def update(self, entity: EntityT) -> int:
        """Stage an overwrite of ``entity``'s current field values."""

    async def update_range(self, entities: Iterable[EntityT]) -> int:
        """Stage a batch of updates."""

    async def delete(self, entity: EntityT) -> int:
        """Stage a removal."""

    async def delete_by_id(self, entity_type: type[EntityT], id: Any) -> int:
        """Stage removal of the entity with identifier ``id``; 0 if missing."""

    async def delete_range(self, entities: Iterable[EntityT]) -> int:
        """Stage a batch of removals."""

    async def save_changes(self) -> int:
        """Persist all staged mutations now and return the rows affected."""


class UnitOfWork(Protocol):
    """One session, one deferred repository, at most one explicit transaction."""

    @property
    def repository(self) -> Repository:
        """Repository bound to this unit of work's session, never auto-flushing."""

    @property
    def session(self) -> AsyncSession:
        """The underlying session."""

    @property
    def has_active_transaction(self) -> bool:
        """True while an explicit transaction is open."""

    async def begin_transaction(self) -> None:
        """Open an explicit transaction unless one is already active."""

    async def save_changes(self) -> int:
        """Flush staged changes without ending the transaction."""

    async def commit(self) -> None:
        """Flush and commit the active transaction, or just flush if none."""

    async def rollback(self) -> None:
        """Roll back the active transaction, if any."""

    async def execute_in_transaction(
        self, action: Callable[[Repository], Awaitable[ResultT]]
    ) -> ResultT:
        """Run ``action`` inside the outermost transaction of this unit of work."""

    async def close(self) -> None:
        """Release a still-open transaction. Does not close the session."""
