"""
Ordered collection management for display_order columns.

A collection is one model's table, optionally narrowed to a scope by a
foreign-key column (category_id, parent_id). Within a scope display_order is
kept dense: 0..n-1 with no duplicates or gaps.
"""
import asyncio
import logging
import weakref
from collections.abc import Sequence
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, Hashable, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_cms.exceptions import InvalidInputError, NotFoundError

logger = logging.getLogger(__name__)


class OrderedCollection:
    """
    Dense ordering of a model's rows within a scope.

    Args:
        model: SQLAlchemy model with `id` and `display_order` columns
        scope_field: Column name that partitions the table into scopes,
            or None when the whole table shares one ordering
    """

    _locks: "weakref.WeakValueDictionary[Tuple[str, Hashable], asyncio.Lock]" = weakref.WeakValueDictionary()

    def __init__(self, model: Any, scope_field: Optional[str] = None):
        self.model = model
        self.scope_field = scope_field

    @property
    def order_column(self):
        return self.model.display_order

    def scope_of(self, record: Any) -> Optional[Any]:
        """Scope value a record belongs to."""
        if self.scope_field is None:
            return None
        return getattr(record, self.scope_field)

    def _scope_criteria(self, scope: Optional[Any]) -> list:
        if self.scope_field is None:
            return []
        column = getattr(self.model, self.scope_field)
        if scope is None:
            return [column.is_(None)]
        return [column == scope]

    def lock(self, scope: Optional[Any] = None) -> asyncio.Lock:
        """
        Process-local lock serializing append, delete, move and reorder of one
        scope. Does not coordinate across worker processes.

        Locks are held weakly and disappear once no coroutine references them.
        """
        key = (self.model.__tablename__, scope if self.scope_field else None)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def lock_scopes(self, *scopes: Optional[Any]):
        """
        Hold the locks of several scopes at once.
        Acquired in a fixed order (None first, then ascending) so two opposite
        moves cannot deadlock.
        """
        if self.scope_field is None:
            scopes = (None,)
        ordered = sorted(set(scopes), key=lambda scope: (scope is not None, scope))
        async with AsyncExitStack() as stack:
            for scope in ordered:
                await stack.enter_async_context(self.lock(scope))
            yield

    async def next_order(self, db: AsyncSession, scope: Optional[Any] = None) -> int:
        """
        Order value for a record appended to the end of the scope.

        An empty scope yields 0, so appends alone keep the scope dense.
        Nothing is persisted; the caller writes the value on the new record.
        """
        result = await db.execute(
            select(func.coalesce(func.max(self.order_column), -1))
            .where(*self._scope_criteria(scope))
        )
        return result.scalar() + 1

    async def list(self, db: AsyncSession, scope: Optional[Any] = None) -> List[Any]:
        """Records of the scope ordered by display_order, ties broken by id."""
        result = await db.execute(
            select(self.model)
            .where(*self._scope_criteria(scope))
            .order_by(self.order_column.asc(), self.model.id.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def reorder(
        self,
        db: AsyncSession,
        ordered_ids: Sequence,
        scope: Optional[Any] = None,
    ) -> List[Any]:
        """
        Apply a caller-supplied ordering to the scope.

        ordered_ids[i] receives display_order = i. Records of the scope that
        are missing from the list keep their current value. All updates are
        committed together; on any failure the transaction is rolled back and
        the scope keeps its previous ordering.

        Raises:
            InvalidInputError: ordered_ids is empty, not a list of integers,
                or contains duplicates
            NotFoundError: an id does not belong to the scope
        """
        if isinstance(ordered_ids, (str, bytes)) or not isinstance(ordered_ids, Sequence):
            raise InvalidInputError("Invalid order data provided", "Expected a list of ids")
        if len(ordered_ids) == 0:
            raise InvalidInputError("Invalid order data provided", "At least one id is required")
        if any(isinstance(i, bool) or not isinstance(i, int) for i in ordered_ids):
            raise InvalidInputError("Invalid order data provided", "Ids must be integers")
        if len(set(ordered_ids)) != len(ordered_ids):
            raise InvalidInputError("Invalid order data provided", "Duplicate ids are not allowed")

        try:
            result = await db.execute(
                select(self.model)
                .where(self.model.id.in_(ordered_ids), *self._scope_criteria(scope))
            )
            records = {record.id: record for record in result.scalars().all()}

            missing_ids = [i for i in ordered_ids if i not in records]
            if missing_ids:
                raise NotFoundError(
                    f"{self.model.__name__} records not found",
                    f"Ids not found: {missing_ids}",
                )

            for position, record_id in enumerate(ordered_ids):
                records[record_id].display_order = position

            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            f"Reordered {len(ordered_ids)} {self.model.__tablename__} record(s) "
            f"(scope: {self.scope_field}={scope})"
        )
        return await self.list(db, scope)

    async def close_gap(
        self,
        db: AsyncSession,
        removed_order: int,
        scope: Optional[Any] = None,
    ) -> None:
        """
        Shift every record after a removed position up by one.

        Single bulk UPDATE; runs inside the caller's transaction and does not
        commit.
        """
        await db.execute(
            update(self.model)
            .where(self.order_column > removed_order, *self._scope_criteria(scope))
            .values(display_order=self.order_column - 1)
            .execution_options(synchronize_session="fetch")
        )

    async def compact(self, db: AsyncSession, scope: Optional[Any] = None) -> int:
        """
        Rewrite the scope as 0..n-1 following its current sort.

        Repairs duplicates or gaps left behind by partial reorders. Does not
        commit. Returns the number of records whose order changed.
        """
        changed = 0
        for position, record in enumerate(await self.list(db, scope)):
            if record.display_order != position:
                record.display_order = position
                changed += 1
        await db.flush()
        return changed

    async def scopes(self, db: AsyncSession) -> List[Optional[Any]]:
        """Distinct scope values present in the table."""
        if self.scope_field is None:
            return [None]
        column = getattr(self.model, self.scope_field)
        result = await db.execute(select(column).distinct())
        return list(result.scalars().all())
