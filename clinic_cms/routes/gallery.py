"""
Gallery routes: category tree and categorized images.
Reads are public; writes require a CMS token.
"""
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import logging

from clinic_cms.database import get_db
from clinic_cms.routes.resource_router import parse_form_data
from clinic_cms.schemas import (
    CategoryReorderRequest,
    GalleryCategoryCreate,
    GalleryCategoryResponse,
    GalleryCategoryUpdate,
    GalleryImageCreate,
    GalleryImageResponse,
    GalleryImagesPageResponse,
    GalleryImageUpdate,
    GallerySubcategoryResponse,
    ImageReorderRequest,
    PaginationMetadata,
)
from clinic_cms.services.gallery import gallery_service
from clinic_cms.utils.security import verify_cms_token
from clinic_cms.utils.uploads import read_image_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/gallery", tags=["gallery"])


# Categories

@router.get("/categories", response_model=List[GalleryCategoryResponse])
async def get_categories(db: AsyncSession = Depends(get_db)):
    """
    Get the gallery category tree.

    Returns main categories ordered by display_order, each with its images
    and subcategories (and their images) nested in display order.
    """
    categories = await gallery_service.list_categories(db)
    logger.info(f"Retrieved {len(categories)} main gallery categories")
    return [GalleryCategoryResponse.model_validate(category) for category in categories]


@router.api_route("/categories/reorder", methods=["PATCH", "POST"])
async def reorder_categories(
    request: CategoryReorderRequest,
    db: AsyncSession = Depends(get_db),
    authenticated: dict = Depends(verify_cms_token),
):
    """
    Reorder main categories, or the subcategories of `parentId`.

    Returns:
        The refreshed sibling list in its new order
    """
    categories = await gallery_service.reorder_categories(db, request.category_ids, request.parent_id)
    schema = GalleryCategoryResponse if request.parent_id is None else GallerySubcategoryResponse
    return [schema.model_validate(category) for category in categories]


@router.get("/categories/{category_id}", response_model=GalleryCategoryResponse)
async def get_category(category_id: int, db: AsyncSession = Depends(get_db)):
    return GalleryCategoryResponse.model_validate(await gallery_service.get_category(db, category_id))


@router.post("/categories", response_model=GalleryCategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: GalleryCategoryCreate,
    db: AsyncSession = Depends(get_db),
    authenticated: dict = Depends(verify_cms_token),
):
    """
    Create a main category, or a subcategory when `parentId` is given.

    Raises:
        NotFoundError: parent does not exist
        InvalidInputError: parent is itself a subcategory
    """
    category = await gallery_service.create_category(db, payload.model_dump())
    return GalleryCategoryResponse.model_validate(category)


@router.patch("/categories/{category_id}", response_model=GalleryCategoryResponse)
async def update_category(
    category_id: int,
    payload: GalleryCategoryUpdate,
    db: AsyncSession = Depends(get_db),
    authenticated: dict = Depends(verify_cms_token),
):
    category = await gallery_service.update_category(db, category_id, payload.changes())
    return GalleryCategoryResponse.model_validate(category)


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: int,
    db: AsyncSession = Depends(get_db),
    authenticated: dict = Depends(verify_cms_token),
):
    """
    Delete a category together with its subcategories and their images.
    Image files are removed from storage after the rows are gone.
    """
    await gallery_service.delete_category(db, category_id)
    return {"message": "Gallery category deleted successfully", "id": category_id}


@router.get("/categories/{category_id}/images", response_model=GalleryImagesPageResponse)
async def get_category_images(
    category_id: int,
    limit: int = 12,
    cursor: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
):
    """
    Get paginated images of one category.

    Implements cursor-based pagination using the display_order field.

    Args:
        category_id: Category to list
        limit: Number of images to return (default: 12, max: 100)
        cursor: Last display_order from previous page

    Returns:
        GalleryImagesPageResponse: Paginated images with metadata
    """
    images, next_cursor, has_more, total_count = await gallery_service.page_images(
        db, category_id, limit=limit, cursor=cursor
    )
    logger.info(
        f"Retrieved {len(images)} images of category {category_id} "
        f"(cursor: {cursor}, next: {next_cursor}, has_more: {has_more})"
    )
    return GalleryImagesPageResponse(
        images=[GalleryImageResponse.model_validate(image) for image in images],
        pagination=PaginationMetadata(
            next_cursor=next_cursor,
            has_more=has_more,
            total_count=total_count,
        ),
    )


@router.get(
    "/categories/{category_id}/subcategories/{subcategory_id}/images",
    response_model=List[GalleryImageResponse],
)
async def get_subcategory_images(
    category_id: int,
    subcategory_id: int,
    db: AsyncSession = Depends(get_db),
):
    images = await gallery_service.subcategory_images(db, category_id, subcategory_id)
    return [GalleryImageResponse.model_validate(image) for image in images]


# Images

@router.get("/images", response_model=List[GalleryImageResponse])
async def get_images(category_id: Optional[int] = None, db: AsyncSession = Depends(get_db)):
    """All images grouped by category, or the images of `category_id`, in display order."""
    images = await gallery_service.list_images(db, category_id)
    return [GalleryImageResponse.model_validate(image) for image in images]


@router.api_route("/images/reorder", methods=["PATCH", "POST"], response_model=List[GalleryImageResponse])
async def reorder_images(
    request: ImageReorderRequest,
    db: AsyncSession = Depends(get_db),
    authenticated: dict = Depends(verify_cms_token),
):
    """
    Reorder the images of one category.

    The frontend sends an array of image IDs in the desired display order.
    Each image's display_order is set to its index in the array.
    """
    images = await gallery_service.reorder_images(db, request.image_ids, request.category_id)
    return [GalleryImageResponse.model_validate(image) for image in images]


@router.get("/images/{image_id}", response_model=GalleryImageResponse)
async def get_image(image_id: int, db: AsyncSession = Depends(get_db)):
    return GalleryImageResponse.model_validate(await gallery_service.get_image(db, image_id))


@router.post("/images", response_model=GalleryImageResponse, status_code=status.HTTP_201_CREATED)
async def create_image(
    data: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    authenticated: dict = Depends(verify_cms_token),
):
    """
    Upload an image into a category.

    Expects multipart/form-data with the JSON `data` field
    ({"categoryId": 1, "alt": "...", "caption": "..."}) and the `image` file.
    """
    payload = parse_form_data(GalleryImageCreate, data)
    upload = await read_image_upload(image)
    created = await gallery_service.create_image(db, payload.model_dump(), upload)
    return GalleryImageResponse.model_validate(created)


@router.patch("/images/{image_id}", response_model=GalleryImageResponse)
async def update_image(
    image_id: int,
    data: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    authenticated: dict = Depends(verify_cms_token),
):
    """
    Update caption/alt text, move the image to another category, and/or
    replace the file. The previous file is deleted once the record is saved.
    """
    changes = parse_form_data(GalleryImageUpdate, data or "{}").changes()
    upload = await read_image_upload(image)
    updated = await gallery_service.update_image(db, image_id, changes, upload)
    return GalleryImageResponse.model_validate(updated)


@router.delete("/images/{image_id}")
async def delete_image(
    image_id: int,
    db: AsyncSession = Depends(get_db),
    authenticated: dict = Depends(verify_cms_token),
):
    await gallery_service.delete_image(db, image_id)
    return {"message": "Image deleted successfully", "image_id": image_id}
