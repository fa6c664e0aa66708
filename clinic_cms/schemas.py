"""
Pydantic schemas for request and response data validation.
Defines data structures for API endpoints with automatic validation and serialization.

Request schemas accept the camelCase field names the admin frontend sends as
well as snake_case.
"""
from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional, Set

from clinic_cms.services.file_storage import resolve_public_url


class PartialUpdate(BaseModel):
    """
    Base for PATCH payloads.
    Only fields sent by the client are applied; explicit nulls are kept only
    for columns that may be empty.
    """
    nullable_fields: ClassVar[Set[str]] = set()

    model_config = ConfigDict(populate_by_name=True)

    def changes(self) -> Dict[str, Any]:
        data = self.model_dump(exclude_unset=True)
        return {
            field: value for field, value in data.items()
            if value is not None or field in self.nullable_fields
        }


class ImageResponseMixin(BaseModel):
    image: Optional[str] = None

    @computed_field
    @property
    def image_url(self) -> Optional[str]:
        return resolve_public_url(self.image)


class OrderedResponse(BaseModel):
    id: int
    display_order: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Promotions

class PromotionCreate(BaseModel):
    """
    Request schema for creating promotions.
    Sent as the JSON `data` field of POST /api/promotions.
    """
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    discount: float = Field(ge=0, le=100)
    promotional_price: float = Field(default=0, ge=0, alias="promotionalPrice")
    start_date: Optional[datetime] = Field(default=None, alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")
    is_active: bool = Field(default=True, alias="isActive")

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def validate_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class PromotionUpdate(PartialUpdate):
    nullable_fields: ClassVar[Set[str]] = {"start_date", "end_date"}

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    discount: Optional[float] = Field(default=None, ge=0, le=100)
    promotional_price: Optional[float] = Field(default=None, ge=0, alias="promotionalPrice")
    start_date: Optional[datetime] = Field(default=None, alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")
    is_active: Optional[bool] = Field(default=None, alias="isActive")


class PromotionResponse(ImageResponseMixin, OrderedResponse):
    title: str
    description: str
    discount: float
    promotional_price: float
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_active: bool


# Services

class ServiceCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    description: str = Field(min_length=10, max_length=1000)
    price: float = Field(ge=0)
    duration: int = Field(ge=1, description="Duration in minutes")
    icon: str = Field(default="stethoscope", max_length=50)


class ServiceUpdate(PartialUpdate):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, min_length=10, max_length=1000)
    price: Optional[float] = Field(default=None, ge=0)
    duration: Optional[int] = Field(default=None, ge=1)
    icon: Optional[str] = Field(default=None, max_length=50)


class ServiceResponse(ImageResponseMixin, OrderedResponse):
    name: str
    description: str
    price: float
    duration: int
    icon: str


# Specialists

class SpecialistCreate(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    specialty: str = Field(min_length=1, max_length=150)
    bio: Optional[str] = None


class SpecialistUpdate(PartialUpdate):
    nullable_fields: ClassVar[Set[str]] = {"bio"}

    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    specialty: Optional[str] = Field(default=None, min_length=1, max_length=150)
    bio: Optional[str] = None


class SpecialistResponse(ImageResponseMixin, OrderedResponse):
    name: str
    specialty: str
    bio: Optional[str] = None


# Timeline

class TimelineCreate(BaseModel):
    year: str = Field(min_length=4, max_length=4)
    title: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=10, max_length=1000)
    video_url: Optional[str] = Field(default=None, max_length=500, alias="videoUrl")

    model_config = ConfigDict(populate_by_name=True)


class TimelineUpdate(PartialUpdate):
    nullable_fields: ClassVar[Set[str]] = {"video_url"}

    year: Optional[str] = Field(default=None, min_length=4, max_length=4)
    title: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, min_length=10, max_length=1000)
    video_url: Optional[str] = Field(default=None, max_length=500, alias="videoUrl")


class TimelineResponse(ImageResponseMixin, OrderedResponse):
    year: str
    title: str
    description: str
    video_url: Optional[str] = None


# Gallery

class GalleryCategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=150)
    description: str = ""
    parent_id: Optional[int] = Field(default=None, alias="parentId")

    model_config = ConfigDict(populate_by_name=True)


class GalleryCategoryUpdate(PartialUpdate):
    nullable_fields: ClassVar[Set[str]] = {"parent_id"}

    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    description: Optional[str] = None
    parent_id: Optional[int] = Field(default=None, alias="parentId")


class GalleryImageCreate(BaseModel):
    """
    Request schema for creating gallery images.
    Sent as the JSON `data` field next to the `image` file.
    """
    category_id: int = Field(alias="categoryId")
    alt: Optional[str] = Field(default=None, max_length=255)
    caption: Optional[str] = Field(default=None, max_length=500)

    model_config = ConfigDict(populate_by_name=True)


class GalleryImageUpdate(PartialUpdate):
    nullable_fields: ClassVar[Set[str]] = {"alt", "caption"}

    category_id: Optional[int] = Field(default=None, alias="categoryId")
    alt: Optional[str] = Field(default=None, max_length=255)
    caption: Optional[str] = Field(default=None, max_length=500)


class GalleryImageResponse(ImageResponseMixin, OrderedResponse):
    """
    Response schema for gallery image data.
    """
    category_id: int
    alt: Optional[str] = None
    caption: Optional[str] = None


class GallerySubcategoryResponse(OrderedResponse):
    name: str
    description: str
    parent_id: Optional[int] = None
    is_main_category: bool
    images: List[GalleryImageResponse] = []


class GalleryCategoryResponse(GallerySubcategoryResponse):
    """Main category with its subcategories and images nested."""
    subcategories: List[GallerySubcategoryResponse] = []


class PaginationMetadata(BaseModel):
    """
    Pagination metadata for cursor-based pagination.
    """
    next_cursor: Optional[int] = None
    has_more: bool
    total_count: int


class GalleryImagesPageResponse(BaseModel):
    """
    Paginated response for gallery images.
    """
    images: List[GalleryImageResponse]
    pagination: PaginationMetadata


# Reordering

class ReorderRequest(BaseModel):
    """
    Complete desired ordering of a collection, position 0 first.
    Used by the /reorder endpoints of promotions, services, specialists and history.
    """
    ordered_ids: List[int] = Field(alias="orderedIds")

    model_config = ConfigDict(populate_by_name=True)


class CategoryReorderRequest(BaseModel):
    """Ordering of main categories, or of the subcategories of parent_id."""
    category_ids: List[int] = Field(alias="categoryIds")
    parent_id: Optional[int] = Field(default=None, alias="parentId")

    model_config = ConfigDict(populate_by_name=True)


class ImageReorderRequest(BaseModel):
    """Ordering of the images of one category."""
    image_ids: List[int] = Field(alias="imageIds")
    category_id: int = Field(alias="categoryId")

    model_config = ConfigDict(populate_by_name=True)


# Auth

class LoginRequest(BaseModel):
    password: str = Field(min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
