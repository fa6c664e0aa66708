"""Tests for the attached-file lifecycle."""
import logging
import threading
from pathlib import Path

import pytest
from sqlalchemy import select

from clinic_cms.exceptions import InvalidInputError
from clinic_cms.models import Promotion, Specialist
from clinic_cms.services.attachments import AttachmentManager
from clinic_cms.services.resources import OrderedResource


@pytest.fixture
def attachments():
    return AttachmentManager("image")


@pytest.fixture
def specialists(attachments):
    return OrderedResource(Specialist, "Specialist", attachments=attachments)


async def create_specialist(specialists, db, upload=None):
    return await specialists.create(db, {"name": "Dr. Ana Ruiz", "specialty": "Dermatology"}, upload)


async def stored_image(db, record_id):
    result = await db.execute(select(Specialist.image).where(Specialist.id == record_id))
    return result.scalar_one()


class TestStore:

    async def test_create_stores_file_and_reference(self, db, specialists, storage, upload):
        record = await create_specialist(specialists, db, upload())

        assert record.image
        assert storage.exists(record.image)
        assert await stored_image(db, record.id) == record.image

    async def test_create_without_upload_has_no_image(self, db, specialists, storage):
        record = await create_specialist(specialists, db)

        assert record.image is None
        assert storage.list_files() == []

    async def test_required_image_is_enforced(self, db):
        promotions = OrderedResource(Promotion, "Promotion", attachments=AttachmentManager(), image_required=True)

        with pytest.raises(InvalidInputError):
            await promotions.create(db, {"title": "Spring", "description": "Checkups", "discount": 10})

    async def test_failed_insert_discards_written_file(self, db, specialists, storage, upload, monkeypatch):
        async def failing_commit():
            raise RuntimeError("database went away")

        monkeypatch.setattr(db, "commit", failing_commit)

        with pytest.raises(RuntimeError):
            await create_specialist(specialists, db, upload())

        assert storage.list_files() == []


class TestReplace:

    async def test_new_file_saved_and_old_removed(self, db, specialists, storage, upload):
        record = await create_specialist(specialists, db, upload(color=(1, 2, 3)))
        old_reference = record.image

        updated = await specialists.update(db, record.id, {}, upload(color=(9, 9, 9)))

        assert updated.image != old_reference
        assert storage.exists(updated.image)
        assert not storage.exists(old_reference)
        assert await stored_image(db, record.id) == updated.image

    async def test_update_without_upload_keeps_file(self, db, specialists, storage, upload):
        record = await create_specialist(specialists, db, upload())
        reference = record.image

        updated = await specialists.update(db, record.id, {"specialty": "Pediatrics"})

        assert updated.image == reference
        assert storage.exists(reference)

    async def test_failed_save_keeps_old_file(self, db, specialists, attachments, storage, upload, monkeypatch):
        record = await create_specialist(specialists, db, upload())
        old_reference = record.image

        async def failing_commit():
            raise RuntimeError("database went away")

        monkeypatch.setattr(db, "commit", failing_commit)

        with pytest.raises(RuntimeError):
            await attachments.replace(db, record, upload(filename="new.png"))

        assert storage.list_files() == [old_reference]

    async def test_cleanup_failure_is_only_logged(self, db, specialists, storage, upload, monkeypatch, caplog):
        record = await create_specialist(specialists, db, upload())
        old_reference = record.image

        def failing_unlink(self, missing_ok=False):
            raise PermissionError("read-only filesystem")

        monkeypatch.setattr(Path, "unlink", failing_unlink)

        with caplog.at_level(logging.WARNING):
            updated = await specialists.update(db, record.id, {}, upload())

        assert updated.image != old_reference
        assert storage.exists(old_reference)
        assert "Storage cleanup failed" in caplog.text


class TestDelete:

    async def test_removes_record_and_file(self, db, specialists, storage, upload):
        record = await create_specialist(specialists, db, upload())
        reference = record.image

        await specialists.delete(db, record.id)

        assert not storage.exists(reference)
        assert await specialists.list(db) == []

    async def test_missing_file_does_not_block_delete(self, db, specialists, storage, upload):
        record = await create_specialist(specialists, db, upload())
        storage.discard(record.image)

        await specialists.delete(db, record.id)

        assert await specialists.list(db) == []

    async def test_hook_runs_before_commit(self, db, specialists, attachments, upload):
        record = await create_specialist(specialists, db, upload())
        calls = []

        async def hook(session):
            calls.append(session)

        await attachments.delete(db, record, before_commit=hook)

        assert calls == [db]


async def test_discard_all_counts_removed_files(attachments, storage):
    names = [storage.store(b"x", "a.png"), storage.store(b"y", "b.png")]

    assert await attachments.discard_all([*names, None, "gone.png"]) == 2
    assert storage.list_files() == []


async def test_disk_io_runs_off_the_event_loop(db, specialists, storage, upload, monkeypatch):
    threads = []
    store, discard = storage.store, storage.discard

    def tracking_store(*args):
        threads.append(threading.current_thread())
        return store(*args)

    def tracking_discard(*args):
        threads.append(threading.current_thread())
        return discard(*args)

    monkeypatch.setattr(storage, "store", tracking_store)
    monkeypatch.setattr(storage, "discard", tracking_discard)

    record = await create_specialist(specialists, db, upload())
    await specialists.update(db, record.id, {}, upload())
    await specialists.delete(db, record.id)

    assert len(threads) == 4
    assert threading.main_thread() not in threads
