"""
Lifecycle of the image file attached to a record.

The record is always saved before the file it no longer references is
removed, so a failure part-way leaves at worst an orphaned file on disk,
never a record pointing at a missing one. Disk I/O runs in the threadpool.
"""
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_cms.services.file_storage import LocalFileStorage, get_storage
from clinic_cms.utils.uploads import IncomingFile

logger = logging.getLogger(__name__)


class AttachmentManager:
    """
    Binds zero or one stored file to a record attribute.

    Args:
        field: Record attribute holding the stored reference
        storage: Storage backend; the process default when omitted
    """

    def __init__(self, field: str = "image", storage: Optional[LocalFileStorage] = None):
        self.field = field
        self._storage = storage

    @property
    def storage(self) -> LocalFileStorage:
        return self._storage or get_storage()

    def reference(self, record: Any) -> Optional[str]:
        return getattr(record, self.field)

    async def store(self, upload: IncomingFile) -> str:
        return await run_in_threadpool(self.storage.store, upload.content, upload.filename)

    async def discard(self, reference: Optional[str]) -> bool:
        return await run_in_threadpool(self.storage.discard, reference)

    async def attach(self, record: Any, upload: IncomingFile) -> str:
        """Store a file for a record that does not have one yet."""
        reference = await self.store(upload)
        setattr(record, self.field, reference)
        return reference

    async def replace(self, db: AsyncSession, record: Any, upload: IncomingFile) -> str:
        """
        Swap the record's file for a new upload.

        Writes the new file, commits the record (together with any other
        pending changes), then deletes the previous file.

        Raises:
            StorageWriteError: The new file could not be written; pending
                changes are rolled back and the record is left unmodified
        """
        previous = self.reference(record)
        try:
            reference = await self.store(upload)
        except Exception:
            await db.rollback()
            raise
        setattr(record, self.field, reference)

        try:
            await db.commit()
        except Exception:
            await db.rollback()
            await self.discard(reference)
            raise

        if previous and previous != reference:
            await self.discard(previous)
        logger.info(f"Replaced {type(record).__name__} {record.id} {self.field}: {previous} -> {reference}")
        return reference

    async def delete(
        self,
        db: AsyncSession,
        record: Any,
        before_commit: Optional[Callable[[AsyncSession], Awaitable[None]]] = None,
    ) -> None:
        """
        Delete a record and then its file.

        before_commit runs after the DELETE is flushed and inside the same
        transaction (used to close the ordering gap).
        """
        reference = self.reference(record)
        try:
            await db.delete(record)
            await db.flush()
            if before_commit is not None:
                await before_commit(db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if reference:
            await self.discard(reference)

    async def discard_all(self, references: Iterable[Optional[str]]) -> int:
        """Remove files left behind by cascaded deletes. Returns the count removed."""
        removed = 0
        for reference in references:
            if reference and await self.discard(reference):
                removed += 1
        return removed
