"""
Generic SQLAlchemy repository over any mapped entity class.

Every operation takes the entity class as its first argument, so one
repository instance serves all entity types of the session it is bound to:

    repo = Repository(session)
    teacher = await repo.get_by_id(TeacherInfo, 1)
    adults = await repo.get_list(StudentInfo, StudentInfo.age >= 18)

Writes are staged on the session. With ``auto_flush=True`` (the default for a
stand-alone repository) every write call is persisted immediately and returns
the number of rows affected. With ``auto_flush=False`` (the repository of a
unit of work) writes only stage and return 0; the caller persists them with
``save_changes()`` or ``UnitOfWork.commit()``.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Sequence

from sqlalchemy import ColumnElement, Select, func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import QueryableAttribute, selectinload
from sqlalchemy.orm.exc import StaleDataError

from school_data.exceptions import InvalidArgumentError, ensure_not_none
from .base import BaseRepository, pop_flushed_rows
from .interfaces import EntityT, IncludeSpec, OrderBy, Predicate
from .paging import PagedResult


def _primary_key_columns(entity_type: type) -> Sequence[ColumnElement[Any]]:
    return inspect(entity_type).primary_key


def _require_non_empty(entities: Optional[Iterable[Any]], argument: str) -> List[Any]:
    if entities is None:
        raise InvalidArgumentError(argument, "must not be None")
    items = list(entities)
    if not items:
        raise InvalidArgumentError(argument, "must not be empty")
    return items


class Repository(BaseRepository):
    """Query and write operations for every entity type of one session."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        auto_flush: bool = True,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(session, logger=logger or logging.getLogger(__name__))
        self._auto_flush = auto_flush

    @property
    def auto_flush(self) -> bool:
        return self._auto_flush

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_queryable(self, entity_type: type[EntityT]) -> Select[tuple[EntityT]]:
        """Return ``SELECT entity`` for callers to compose; nothing is executed."""
        return select(entity_type)

    async def list_query(self, statement: Select[tuple[EntityT]]) -> List[EntityT]:
        """Materialize a composed statement through this repository's session."""
        result = await self.scalars(statement)
        return list(result.unique().all())

    # PUBLIC_INTERFACE
    async def get_by_id(self, entity_type: type[EntityT], id: Any) -> Optional[EntityT]:
        """
        Return the entity whose identifier equals ``id``, or None.

        Entities staged for insert in this session are found first; then the
        session's identity map, then a primary-key lookup in the database.
        """
        ensure_not_none(id, "id")
        for staged in self.session.new:
            if isinstance(staged, entity_type) and getattr(staged, "id", None) == id:
                return staged
        return await self.session.get(entity_type, id)

    # PUBLIC_INTERFACE
    async def get_first_or_default(
        self,
        entity_type: type[EntityT],
        predicate: Predicate,
        includes: Optional[IncludeSpec] = None,
    ) -> Optional[EntityT]:
        """
        Return the first entity matching ``predicate`` (in primary-key order),
        or None. ``includes`` names related entities to load with it.
        """
        ensure_not_none(predicate, "predicate")
        stmt = self._filtered(entity_type, predicate, includes)
        stmt = stmt.order_by(*_primary_key_columns(entity_type)).limit(1)
        result = await self.scalars(stmt)
        return result.unique().first()

    async def get_all(self, entity_type: type[EntityT]) -> List[EntityT]:
        """Return every entity of ``entity_type`` in primary-key order."""
        stmt = select(entity_type).order_by(*_primary_key_columns(entity_type))
        return await self.list_query(stmt)

    # PUBLIC_INTERFACE
    async def get_list(
        self,
        entity_type: type[EntityT],
        predicate: Predicate,
        includes: Optional[IncludeSpec] = None,
    ) -> List[EntityT]:
        """Return all entities matching ``predicate`` in primary-key order."""
        ensure_not_none(predicate, "predicate")
        stmt = self._filtered(entity_type, predicate, includes)
        stmt = stmt.order_by(*_primary_key_columns(entity_type))
        return await self.list_query(stmt)

    # PUBLIC_INTERFACE
    async def get_paged(
        self,
        entity_type: type[EntityT],
        page_index: int,
        page_size: int,
        predicate: Optional[Predicate] = None,
        order_by: Optional[OrderBy] = None,
    ) -> PagedResult[EntityT]:
        """
        Return one page of entities.

        Parameters:
            page_index: zero-based page number, >= 0
            page_size: rows per page, > 0
            predicate: optional filter; total_count is computed over it
            order_by: column expression(s); defaults to the primary key so the
                paging is deterministic
        Returns:
            PagedResult with at most page_size items.
        """
        if page_index is None or page_index < 0:
            raise InvalidArgumentError("page_index", "must be >= 0")
        if page_size is None or page_size <= 0:
            raise InvalidArgumentError("page_size", "must be > 0")

        total_count = await self.count(entity_type, predicate)

        stmt = self._filtered(entity_type, predicate)
        stmt = stmt.order_by(*self._order_columns(entity_type, order_by))
        stmt = stmt.offset(page_index * page_size).limit(page_size)
        items = await self.list_query(stmt)

        return PagedResult(
            items=tuple(items),
            total_count=total_count,
            page_index=page_index,
            page_size=page_size,
        )

    async def exists(self, entity_type: type[EntityT], predicate: Predicate) -> bool:
        """Return True iff at least one entity matches ``predicate``."""
        ensure_not_none(predicate, "predicate")
        stmt = select(select(entity_type).where(predicate).exists())
        result = await self.execute(stmt)
        return bool(result.scalar())

    async def count(self, entity_type: type[EntityT], predicate: Optional[Predicate] = None) -> int:
        """Count entities matching ``predicate``; all of them when it is None."""
        stmt = select(func.count()).select_from(entity_type)
        if predicate is not None:
            stmt = stmt.where(predicate)
        result = await self.execute(stmt)
        return int(result.scalar_one())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add(self, entity: EntityT) -> int:
        """Stage ``entity`` for insertion."""
        ensure_not_none(entity, "entity")
        self.session.add(entity)
        return await self._after_write()

    async def add_range(self, entities: Iterable[EntityT]) -> int:
        """Stage a non-empty batch of entities for insertion."""
        items = _require_non_empty(entities, "entities")
        self.session.add_all(items)
        return await self._after_write()

    async def update(self, entity: EntityT) -> int:
        """
        Stage ``entity``'s current field values for overwrite.

        An instance already tracked by the session stays as it is; a detached
        instance is merged into the session. A detached instance whose row no
        longer exists raises StaleDataError and nothing is staged for it; an
        instance that was never persisted raises InvalidArgumentError.
        """
        ensure_not_none(entity, "entity")
        await self._staging(self._attach, [entity])
        return await self._after_write()

    async def update_range(self, entities: Iterable[EntityT]) -> int:
        """Stage a non-empty batch of updates."""
        items = _require_non_empty(entities, "entities")
        await self._staging(self._attach, items)
        return await self._after_write()

    async def delete(self, entity: EntityT) -> int:
        """
        Stage removal of ``entity``.

        Removing a detached instance whose row is already gone raises
        StaleDataError, as SQLAlchemy does when a flushed delete matches no row.
        """
        ensure_not_none(entity, "entity")
        await self._staging(self._stage_delete, [entity])
        return await self._after_write()

    # PUBLIC_INTERFACE
    async def delete_by_id(self, entity_type: type[EntityT], id: Any) -> int:
        """
        Stage removal of the entity with identifier ``id``.

        A missing entity is not an error: nothing is staged and 0 is returned.
        """
        entity = await self.get_by_id(entity_type, id)
        if entity is None:
            self.logger.debug("delete_by_id: %s(%r) not found", entity_type.__name__, id)
            return 0
        await self._stage_delete(entity)
        return await self._after_write()

    async def delete_range(self, entities: Iterable[EntityT]) -> int:
        """Stage removal of a non-empty batch of entities."""
        items = _require_non_empty(entities, "entities")
        await self._staging(self._stage_delete, items)
        return await self._after_write()

    # PUBLIC_INTERFACE
    async def save_changes(self) -> int:
        """
        Persist all staged mutations and return the number of rows affected.

        Inside a unit-of-work transaction this only flushes; the transaction
        stays open. Otherwise the flush is committed at once. A failed flush
        outside an explicit transaction rolls the session back before the
        engine error propagates; inside one, rolling back is left to the
        owner of the transaction.

        The count covers every row written since the previous save, including
        rows a query autoflush already sent to the database.
        """
        explicit = self.in_explicit_transaction
        try:
            await self.session.flush()
            affected = pop_flushed_rows(self.session)
            if not explicit:
                await self.session.commit()
        except Exception:
            if not explicit:
                self.logger.warning("Flush failed; rolling back the session", exc_info=True)
                await self.session.rollback()
            raise
        self.logger.debug("Saved %d change(s) (explicit_transaction=%s)", affected, explicit)
        return affected

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _after_write(self) -> int:
        if self._auto_flush:
            return await self.save_changes()
        return 0

    async def _staging(self, stage, items: Sequence[Any]) -> None:
        try:
            for entity in items:
                await stage(entity)
        except (StaleDataError, InvalidArgumentError):
            if self._auto_flush and not self.in_explicit_transaction:
                # Drop what earlier items of the batch staged.
                await self.session.rollback()
            raise

    async def _attach(self, entity: Any) -> Any:
        if entity in self.session:
            return entity
        state = inspect(entity)
        if state.key is None:
            raise InvalidArgumentError("entity", "is not persisted; use add()")
        merged = await self.session.merge(entity)
        if merged in self.session.new:
            # merge() turns a vanished row into a pending insert.
            self.session.expunge(merged)
            raise StaleDataError(
                f"{type(entity).__name__} {state.identity!r} no longer exists"
            )
        return merged

    async def _stage_delete(self, entity: Any) -> None:
        if entity in self.session.new:
            # Never written: un-stage the insert.
            self.session.expunge(entity)
            return
        await self.session.delete(await self._attach(entity))

    @staticmethod
    def _filtered(
        entity_type: type[EntityT],
        predicate: Optional[Predicate],
        includes: Optional[IncludeSpec] = None,
    ) -> Select[tuple[EntityT]]:
        stmt = select(entity_type)
        if predicate is not None:
            stmt = stmt.where(predicate)
        options = [
            selectinload(item) if isinstance(item, QueryableAttribute) else item
            for item in (includes or ())
        ]
        if options:
            stmt = stmt.options(*options)
        return stmt

    @staticmethod
    def _order_columns(entity_type: type, order_by: Optional[OrderBy]) -> Sequence[Any]:
        if order_by is None:
            return _primary_key_columns(entity_type)
        if isinstance(order_by, (list, tuple)):
            return order_by
        return [order_by]
