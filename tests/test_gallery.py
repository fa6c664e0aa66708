"""Tests for the gallery category tree and categorized images."""
import pytest
from sqlalchemy import func, select

from clinic_cms.exceptions import InvalidInputError, NotFoundError, StorageWriteError
from clinic_cms.models import GalleryCategory, GalleryImage
from clinic_cms.services.gallery import gallery_service as gallery


async def category(db, name, parent=None):
    return await gallery.create_category(
        db, {"name": name, "description": "", "parent_id": parent.id if parent else None}
    )


async def image(db, owner, upload, caption=None):
    return await gallery.create_image(
        db, {"category_id": owner.id, "alt": caption, "caption": caption}, upload()
    )


async def count(db, model):
    return (await db.execute(select(func.count(model.id)))).scalar()


class TestCategories:

    async def test_main_and_subcategories_are_ordered_separately(self, db):
        clinic = await category(db, "Clinic")
        team = await category(db, "Team")
        rooms = await category(db, "Rooms", clinic)
        equipment = await category(db, "Equipment", clinic)

        assert (clinic.display_order, team.display_order) == (0, 1)
        assert (rooms.display_order, equipment.display_order) == (0, 1)
        assert clinic.is_main_category is True
        assert rooms.is_main_category is False

    async def test_tree_lists_main_categories_with_children(self, db, upload):
        clinic = await category(db, "Clinic")
        await category(db, "Team")
        rooms = await category(db, "Rooms", clinic)
        await image(db, rooms, upload, "Waiting room")

        tree = await gallery.list_categories(db)

        assert [c.name for c in tree] == ["Clinic", "Team"]
        assert [s.name for s in tree[0].subcategories] == ["Rooms"]
        assert [i.caption for i in tree[0].subcategories[0].images] == ["Waiting room"]
        assert rooms.id not in [c.id for c in tree]

    async def test_subcategory_cannot_have_children(self, db):
        clinic = await category(db, "Clinic")
        rooms = await category(db, "Rooms", clinic)

        with pytest.raises(InvalidInputError):
            await category(db, "Corners", rooms)

    async def test_parent_must_exist(self, db):
        with pytest.raises(NotFoundError):
            await gallery.create_category(db, {"name": "Orphan", "description": "", "parent_id": 404})

    async def test_category_cannot_be_its_own_parent(self, db):
        clinic = await category(db, "Clinic")

        with pytest.raises(InvalidInputError):
            await gallery.update_category(db, clinic.id, {"parent_id": clinic.id})

    async def test_category_with_children_stays_main(self, db):
        clinic = await category(db, "Clinic")
        team = await category(db, "Team")
        await category(db, "Rooms", clinic)

        with pytest.raises(InvalidInputError):
            await gallery.update_category(db, clinic.id, {"parent_id": team.id})

    async def test_moving_category_under_parent_closes_gap(self, db):
        clinic = await category(db, "Clinic")
        team = await category(db, "Team")
        events = await category(db, "Events")

        moved = await gallery.update_category(db, team.id, {"parent_id": clinic.id})

        assert moved.parent_id == clinic.id
        assert moved.is_main_category is False
        assert moved.display_order == 0
        main = await gallery.list_categories(db)
        assert [(c.name, c.display_order) for c in main] == [("Clinic", 0), ("Events", 1)]
        assert events.id == main[1].id

    async def test_reorder_subcategories_within_parent(self, db):
        clinic = await category(db, "Clinic")
        rooms = await category(db, "Rooms", clinic)
        equipment = await category(db, "Equipment", clinic)

        result = await gallery.reorder_categories(db, [equipment.id, rooms.id], clinic.id)

        assert [(s.name, s.display_order) for s in result] == [("Equipment", 0), ("Rooms", 1)]

    async def test_reorder_rejects_category_from_other_parent(self, db):
        clinic = await category(db, "Clinic")
        team = await category(db, "Team")
        rooms = await category(db, "Rooms", clinic)

        with pytest.raises(NotFoundError):
            await gallery.reorder_categories(db, [rooms.id, team.id])

    async def test_delete_cascades_to_subcategories_images_and_files(self, db, storage, upload):
        clinic = await category(db, "Clinic")
        team = await category(db, "Team")
        rooms = await category(db, "Rooms", clinic)
        await image(db, clinic, upload)
        await image(db, rooms, upload)
        await image(db, rooms, upload)
        kept = await image(db, team, upload)

        await gallery.delete_category(db, clinic.id)

        assert await count(db, GalleryCategory) == 1
        assert await count(db, GalleryImage) == 1
        assert storage.list_files() == [kept.image]
        main = await gallery.list_categories(db)
        assert [(c.name, c.display_order) for c in main] == [("Team", 0)]

    async def test_delete_missing_category(self, db):
        with pytest.raises(NotFoundError):
            await gallery.delete_category(db, 12)


class TestImages:

    async def test_images_append_within_category(self, db, upload):
        clinic = await category(db, "Clinic")
        team = await category(db, "Team")

        first = await image(db, clinic, upload)
        second = await image(db, clinic, upload)
        other = await image(db, team, upload)

        assert [first.display_order, second.display_order, other.display_order] == [0, 1, 0]

    async def test_image_requires_existing_category(self, db, upload):
        with pytest.raises(NotFoundError):
            await gallery.create_image(db, {"category_id": 99}, upload())

    async def test_image_requires_file(self, db):
        clinic = await category(db, "Clinic")

        with pytest.raises(InvalidInputError):
            await gallery.create_image(db, {"category_id": clinic.id}, None)

    async def test_moving_image_closes_gap_and_appends(self, db, upload):
        clinic = await category(db, "Clinic")
        team = await category(db, "Team")
        a = await image(db, clinic, upload, "a")
        await image(db, clinic, upload, "b")
        await image(db, clinic, upload, "c")
        await image(db, team, upload, "x")

        moved = await gallery.update_image(db, a.id, {"category_id": team.id})

        assert (moved.category_id, moved.display_order) == (team.id, 1)
        remaining = await gallery.list_images(db, clinic.id)
        assert [(i.caption, i.display_order) for i in remaining] == [("b", 0), ("c", 1)]

    async def test_failed_upload_during_move_keeps_both_categories(self, db, storage, upload, monkeypatch):
        clinic = await category(db, "Clinic")
        team = await category(db, "Team")
        a = await image(db, clinic, upload, "a")
        await image(db, clinic, upload, "b")
        await image(db, team, upload, "x")

        def failing_store(content, filename):
            raise StorageWriteError("Failed to store uploaded file", "disk full")

        monkeypatch.setattr(storage, "store", failing_store)

        with pytest.raises(StorageWriteError):
            await gallery.update_image(db, a.id, {"category_id": team.id}, upload())

        clinic_images = await gallery.list_images(db, clinic.id)
        team_images = await gallery.list_images(db, team.id)
        assert [(i.caption, i.display_order) for i in clinic_images] == [("a", 0), ("b", 1)]
        assert [(i.caption, i.display_order) for i in team_images] == [("x", 0)]

    async def test_reorder_and_delete_keep_category_dense(self, db, storage, upload):
        clinic = await category(db, "Clinic")
        a = await image(db, clinic, upload, "a")
        b = await image(db, clinic, upload, "b")
        c = await image(db, clinic, upload, "c")

        await gallery.reorder_images(db, [c.id, a.id, b.id], clinic.id)
        await gallery.delete_image(db, a.id)

        remaining = await gallery.list_images(db, clinic.id)
        assert [(i.caption, i.display_order) for i in remaining] == [("c", 0), ("b", 1)]
        assert not storage.exists(a.image)

    async def test_pages_follow_display_order(self, db, upload):
        clinic = await category(db, "Clinic")
        for caption in "abcde":
            await image(db, clinic, upload, caption)

        page, cursor, has_more, total = await gallery.page_images(db, clinic.id, limit=2)
        assert [i.caption for i in page] == ["a", "b"]
        assert (cursor, has_more, total) == (1, True, 5)

        page, cursor, has_more, _ = await gallery.page_images(db, clinic.id, limit=2, cursor=cursor)
        assert [i.caption for i in page] == ["c", "d"]

        page, cursor, has_more, _ = await gallery.page_images(db, clinic.id, limit=2, cursor=cursor)
        assert [i.caption for i in page] == ["e"]
        assert (cursor, has_more) == (None, False)

    async def test_page_limit_is_bounded(self, db):
        clinic = await category(db, "Clinic")

        with pytest.raises(InvalidInputError):
            await gallery.page_images(db, clinic.id, limit=0)

    async def test_subcategory_images_require_matching_parent(self, db, upload):
        clinic = await category(db, "Clinic")
        team = await category(db, "Team")
        rooms = await category(db, "Rooms", clinic)
        await image(db, rooms, upload, "lobby")

        images = await gallery.subcategory_images(db, clinic.id, rooms.id)
        assert [i.caption for i in images] == ["lobby"]

        with pytest.raises(NotFoundError):
            await gallery.subcategory_images(db, team.id, rooms.id)
