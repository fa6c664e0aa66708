"""
Gallery service: two-level category tree and the images inside it.

Main categories share one ordering, subcategories are ordered within their
parent and images within their category.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from clinic_cms.exceptions import InvalidInputError, NotFoundError
from clinic_cms.models import GalleryCategory, GalleryImage
from clinic_cms.services.attachments import AttachmentManager
from clinic_cms.services.resources import OrderedResource
from clinic_cms.utils.uploads import IncomingFile

logger = logging.getLogger(__name__)


def _tree_options():
    return (
        selectinload(GalleryCategory.images),
        selectinload(GalleryCategory.subcategories).selectinload(GalleryCategory.images),
    )


class GalleryService:
    """Categories (scope: parent_id) and images (scope: category_id)."""

    def __init__(self, attachments: Optional[AttachmentManager] = None):
        self.categories = OrderedResource(
            GalleryCategory, "Gallery category", scope_field="parent_id"
        )
        self.images = OrderedResource(
            GalleryImage,
            "Gallery image",
            scope_field="category_id",
            attachments=attachments or AttachmentManager("image"),
            image_required=True,
        )

    # Categories

    async def _validate_parent(
        self,
        db: AsyncSession,
        parent_id: Optional[int],
        category_id: Optional[int] = None,
    ) -> None:
        if parent_id is None:
            return
        if category_id is not None and parent_id == category_id:
            raise InvalidInputError("Invalid parent category", "A category cannot be its own parent")

        parent = await self.categories.get(db, parent_id)
        if parent.parent_id is not None:
            raise InvalidInputError(
                "Invalid parent category",
                f"Gallery category {parent_id} is a subcategory and cannot have subcategories",
            )

        if category_id is not None:
            result = await db.execute(
                select(func.count(GalleryCategory.id)).where(GalleryCategory.parent_id == category_id)
            )
            if result.scalar():
                raise InvalidInputError(
                    "Invalid parent category",
                    f"Gallery category {category_id} has subcategories and must stay a main category",
                )

    async def list_categories(self, db: AsyncSession) -> List[GalleryCategory]:
        """Main categories with their subcategories and images nested, all in display order."""
        result = await db.execute(
            select(GalleryCategory)
            .where(GalleryCategory.parent_id.is_(None))
            .order_by(GalleryCategory.display_order.asc(), GalleryCategory.id.asc())
            .options(*_tree_options())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_category(self, db: AsyncSession, category_id: int) -> GalleryCategory:
        result = await db.execute(
            select(GalleryCategory)
            .where(GalleryCategory.id == category_id)
            .options(*_tree_options())
            .execution_options(populate_existing=True)
        )
        category = result.scalar_one_or_none()
        if category is None:
            raise NotFoundError(
                "Gallery category not found",
                f"Gallery category with ID {category_id} not found",
            )
        return category

    async def create_category(self, db: AsyncSession, data: Dict[str, Any]) -> GalleryCategory:
        await self._validate_parent(db, data.get("parent_id"))
        data = {**data, "is_main_category": data.get("parent_id") is None}
        category = await self.categories.create(db, data)
        return await self.get_category(db, category.id)

    async def update_category(
        self,
        db: AsyncSession,
        category_id: int,
        data: Dict[str, Any],
    ) -> GalleryCategory:
        if "parent_id" in data:
            await self.categories.get(db, category_id)
            await self._validate_parent(db, data["parent_id"], category_id)
            data = {**data, "is_main_category": data["parent_id"] is None}
        await self.categories.update(db, category_id, data)
        return await self.get_category(db, category_id)

    async def delete_category(self, db: AsyncSession, category_id: int) -> None:
        """
        Delete a category with its subcategories and images.

        Rows are removed by the ON DELETE CASCADE foreign keys; the image files
        of every affected category are collected under the scope lock and
        discarded after the commit.
        """
        async with self.categories.locked_record(db, category_id) as category:
            scope = category.parent_id
            removed_order = category.display_order

            result = await db.execute(
                select(GalleryCategory.id).where(GalleryCategory.parent_id == category_id)
            )
            affected_ids = [category_id, *result.scalars().all()]
            result = await db.execute(
                select(GalleryImage.image).where(GalleryImage.category_id.in_(affected_ids))
            )
            references = list(result.scalars().all())

            try:
                await db.delete(category)
                await db.flush()
                await self.categories.collection.close_gap(db, removed_order, scope)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        removed = await self.images.attachments.discard_all(references)
        logger.info(
            f"Deleted gallery category {category_id} with {len(affected_ids) - 1} subcategories "
            f"and {len(references)} images ({removed} files removed)"
        )

    async def reorder_categories(
        self,
        db: AsyncSession,
        category_ids: List[int],
        parent_id: Optional[int] = None,
    ) -> List[GalleryCategory]:
        await self.categories.reorder(db, category_ids, parent_id)
        if parent_id is None:
            return await self.list_categories(db)
        return (await self.get_category(db, parent_id)).subcategories

    # Images

    async def list_images(
        self,
        db: AsyncSession,
        category_id: Optional[int] = None,
    ) -> List[GalleryImage]:
        if category_id is not None:
            await self.categories.get(db, category_id)
            return await self.images.list(db, category_id)

        result = await db.execute(
            select(GalleryImage)
            .order_by(
                GalleryImage.category_id.asc(),
                GalleryImage.display_order.asc(),
                GalleryImage.id.asc(),
            )
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def page_images(
        self,
        db: AsyncSession,
        category_id: int,
        limit: int = 12,
        cursor: Optional[int] = None,
    ) -> Tuple[List[GalleryImage], Optional[int], bool, int]:
        """
        Cursor-based page of a category's images.

        Args:
            category_id: Category whose images are listed
            limit: Page size (1-100)
            cursor: Last display_order of the previous page

        Returns:
            (images, next_cursor, has_more, total_count)
        """
        if limit < 1 or limit > 100:
            raise InvalidInputError("Invalid limit", "Limit must be between 1 and 100")
        await self.categories.get(db, category_id)

        query = (
            select(GalleryImage)
            .where(GalleryImage.category_id == category_id)
            .order_by(GalleryImage.display_order.asc(), GalleryImage.id.asc())
        )
        if cursor is not None:
            query = query.where(GalleryImage.display_order > cursor)

        # Fetch limit + 1 to determine if there are more results
        result = await db.execute(query.limit(limit + 1))
        images = list(result.scalars().all())

        has_more = len(images) > limit
        if has_more:
            images = images[:limit]
        next_cursor = images[-1].display_order if images and has_more else None

        count_result = await db.execute(
            select(func.count(GalleryImage.id)).where(GalleryImage.category_id == category_id)
        )
        return images, next_cursor, has_more, count_result.scalar()

    async def subcategory_images(
        self,
        db: AsyncSession,
        category_id: int,
        subcategory_id: int,
    ) -> List[GalleryImage]:
        subcategory = await self.categories.get(db, subcategory_id)
        if subcategory.parent_id != category_id:
            raise NotFoundError(
                "Gallery subcategory not found",
                f"Gallery category {subcategory_id} is not a subcategory of {category_id}",
            )
        return await self.images.list(db, subcategory_id)

    async def get_image(self, db: AsyncSession, image_id: int) -> GalleryImage:
        return await self.images.get(db, image_id)

    async def create_image(
        self,
        db: AsyncSession,
        data: Dict[str, Any],
        upload: Optional[IncomingFile],
    ) -> GalleryImage:
        await self.categories.get(db, data["category_id"])
        return await self.images.create(db, data, upload)

    async def update_image(
        self,
        db: AsyncSession,
        image_id: int,
        data: Dict[str, Any],
        upload: Optional[IncomingFile] = None,
    ) -> GalleryImage:
        if data.get("category_id") is not None:
            await self.categories.get(db, data["category_id"])
        return await self.images.update(db, image_id, data, upload)

    async def delete_image(self, db: AsyncSession, image_id: int) -> None:
        await self.images.delete(db, image_id)

    async def reorder_images(
        self,
        db: AsyncSession,
        image_ids: List[int],
        category_id: int,
    ) -> List[GalleryImage]:
        return await self.images.reorder(db, image_ids, category_id)


gallery_service = GalleryService()
