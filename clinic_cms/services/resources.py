"""
Generic CRUD service for orderable CMS resources.

One OrderedResource per model combines the ordered collection with the
optional image attachment, so promotions, services, specialists, timeline
entries and gallery records all share the same create/update/delete/reorder
behaviour.
"""
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_cms.exceptions import InvalidInputError, NotFoundError
from clinic_cms.services.attachments import AttachmentManager
from clinic_cms.services.ordering import OrderedCollection
from clinic_cms.utils.uploads import IncomingFile

logger = logging.getLogger(__name__)


class OrderedResource:
    """
    CRUD operations for a model with a display_order column.

    Args:
        model: SQLAlchemy model
        label: Human readable name used in error messages
        scope_field: Column partitioning the ordering (None = global)
        attachments: Attachment manager for the image field, if any
        image_required: Reject creation without an uploaded image
    """

    def __init__(
        self,
        model: Any,
        label: str,
        scope_field: Optional[str] = None,
        attachments: Optional[AttachmentManager] = None,
        image_required: bool = False,
    ):
        self.model = model
        self.label = label
        self.collection = OrderedCollection(model, scope_field)
        self.attachments = attachments
        self.image_required = image_required

    @property
    def scope_field(self) -> Optional[str]:
        return self.collection.scope_field

    async def get(self, db: AsyncSession, record_id: int) -> Any:
        record = await db.get(self.model, record_id, populate_existing=True)
        if record is None:
            raise NotFoundError(
                f"{self.label} not found",
                f"{self.label} with ID {record_id} not found",
            )
        return record

    async def list(self, db: AsyncSession, scope: Optional[Any] = None) -> List[Any]:
        return await self.collection.list(db, scope)

    async def create(
        self,
        db: AsyncSession,
        data: Dict[str, Any],
        upload: Optional[IncomingFile] = None,
    ) -> Any:
        """
        Insert a record at the end of its scope.

        Raises:
            InvalidInputError: An image is required and none was uploaded
            StorageWriteError: The upload could not be written
        """
        if self.image_required and upload is None:
            raise InvalidInputError("Image file is required", f"{self.label} requires an image file")

        scope = data.get(self.scope_field) if self.scope_field else None
        async with self.collection.lock(scope):
            record = self.model(**data)
            record.display_order = await self.collection.next_order(db, scope)

            reference = None
            if upload is not None and self.attachments is not None:
                reference = await self.attachments.attach(record, upload)

            db.add(record)
            try:
                await db.commit()
            except Exception:
                await db.rollback()
                if reference:
                    await self.attachments.discard(reference)
                raise

        await db.refresh(record)
        logger.info(f"Created {self.label} {record.id} at display_order={record.display_order}")
        return record

    @asynccontextmanager
    async def locked_record(self, db: AsyncSession, record_id: int, *scopes: Optional[Any]):
        """
        Hold the lock of a record's scope (and of any extra scopes) and yield
        the record re-read under it.

        The record is looked up again once the lock is held, so order values
        seen by the caller are never stale. If it changed scope while waiting,
        the lock of its new scope is taken instead.
        """
        while True:
            record = await self.get(db, record_id)
            scope = self.collection.scope_of(record)
            async with self.collection.lock_scopes(scope, *scopes):
                record = await self.get(db, record_id)
                if self.collection.scope_of(record) == scope:
                    yield record
                    return

    async def _save(self, db: AsyncSession, record: Any, upload: Optional[IncomingFile]) -> None:
        if upload is not None and self.attachments is not None:
            await self.attachments.replace(db, record, upload)
            return
        try:
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    async def update(
        self,
        db: AsyncSession,
        record_id: int,
        data: Dict[str, Any],
        upload: Optional[IncomingFile] = None,
    ) -> Any:
        """
        Apply field changes and optionally replace the image.

        Moving a record to another scope closes the gap it leaves behind and
        appends it to the end of the new scope, holding the locks of both
        scopes until the move is committed.
        """
        record = await self.get(db, record_id)
        moving = (
            self.scope_field is not None
            and self.scope_field in data
            and data[self.scope_field] != self.collection.scope_of(record)
        )

        if not moving:
            for field, value in data.items():
                setattr(record, field, value)
            await self._save(db, record, upload)
        else:
            new_scope = data[self.scope_field]
            async with self.locked_record(db, record_id, new_scope) as record:
                old_scope = self.collection.scope_of(record)
                old_order = record.display_order
                for field, value in data.items():
                    setattr(record, field, value)

                try:
                    if new_scope != old_scope:
                        record.display_order = await self.collection.next_order(db, new_scope)
                        await db.flush()
                        await self.collection.close_gap(db, old_order, old_scope)
                except Exception:
                    await db.rollback()
                    raise
                await self._save(db, record, upload)

            logger.info(
                f"Moved {self.label} {record_id} from {self.scope_field}={old_scope} "
                f"to {self.scope_field}={new_scope}"
            )

        await db.refresh(record)
        logger.info(f"Updated {self.label} {record_id}")
        return record

    async def delete(self, db: AsyncSession, record_id: int) -> Any:
        """Delete a record and its file, then close the ordering gap."""
        async with self.locked_record(db, record_id) as record:
            scope = self.collection.scope_of(record)
            removed_order = record.display_order

            async def close_gap(session: AsyncSession) -> None:
                await self.collection.close_gap(session, removed_order, scope)

            if self.attachments is not None:
                await self.attachments.delete(db, record, before_commit=close_gap)
            else:
                try:
                    await db.delete(record)
                    await db.flush()
                    await close_gap(db)
                    await db.commit()
                except Exception:
                    await db.rollback()
                    raise

        logger.info(f"Deleted {self.label} {record_id} (display_order={removed_order})")
        return record

    async def reorder(
        self,
        db: AsyncSession,
        ordered_ids: Sequence[int],
        scope: Optional[Any] = None,
    ) -> List[Any]:
        async with self.collection.lock(scope):
            return await self.collection.reorder(db, ordered_ids, scope)
