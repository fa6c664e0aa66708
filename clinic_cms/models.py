"""
SQLAlchemy models for the application.
All database models inherit from Base (declarative base).

Every CMS table carries a display_order column; the scope that shares one
ordering is noted on each model.
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from clinic_cms.database import Base


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class Promotion(TimestampMixin, Base):
    """
    Promotion shown in the home page carousel.
    Ordered globally.
    """
    __tablename__ = "promotions"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    image = Column(String(255), nullable=True)
    discount = Column(Numeric(5, 2), nullable=False, default=0)
    promotional_price = Column(Numeric(10, 2), nullable=False, default=0)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    display_order = Column(Integer, nullable=False, default=0, index=True)


class Service(TimestampMixin, Base):
    """
    Medical service offered by the clinic.
    Ordered globally.
    """
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    duration = Column(Integer, nullable=False)
    image = Column(String(255), nullable=True)
    icon = Column(String(50), nullable=False, default="stethoscope")
    display_order = Column(Integer, nullable=False, default=0, index=True)


class Specialist(TimestampMixin, Base):
    """Staff member listed on the specialists page. Ordered globally."""
    __tablename__ = "specialists"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    specialty = Column(String(150), nullable=False)
    bio = Column(Text, nullable=True)
    image = Column(String(255), nullable=True)
    display_order = Column(Integer, nullable=False, default=0, index=True)


class TimelineEntry(TimestampMixin, Base):
    """Milestone of the clinic history timeline. Ordered globally."""
    __tablename__ = "timeline"

    id = Column(Integer, primary_key=True, index=True)
    year = Column(String(4), nullable=False)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    image = Column(String(255), nullable=True)
    video_url = Column(String(500), nullable=True)
    display_order = Column(Integer, nullable=False, default=0, index=True)


class GalleryCategory(TimestampMixin, Base):
    """
    Gallery category. Main categories have no parent; subcategories point at
    a main category. Ordered within siblings (scope: parent_id).
    """
    __tablename__ = "gallery_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=False, default="")
    parent_id = Column(
        Integer,
        ForeignKey("gallery_categories.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    is_main_category = Column(Boolean, nullable=False, default=True)
    display_order = Column(Integer, nullable=False, default=0, index=True)

    parent = relationship(
        "GalleryCategory",
        remote_side=[id],
        back_populates="subcategories",
    )
    subcategories = relationship(
        "GalleryCategory",
        back_populates="parent",
        order_by="GalleryCategory.display_order",
        cascade="save-update, merge, delete",
        passive_deletes=True,
    )
    images = relationship(
        "GalleryImage",
        back_populates="category",
        order_by="GalleryImage.display_order",
        cascade="save-update, merge, delete",
        passive_deletes=True,
    )


class GalleryImage(TimestampMixin, Base):
    """
    Gallery image model.
    Stores the uploaded file reference and caption. Ordered within its category.
    """
    __tablename__ = "gallery_images"

    id = Column(Integer, primary_key=True, index=True)
    image = Column(String(255), nullable=False)
    alt = Column(String(255), nullable=True)
    caption = Column(String(500), nullable=True)
    category_id = Column(
        Integer,
        ForeignKey("gallery_categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    display_order = Column(Integer, nullable=False, default=0, index=True)

    category = relationship("GalleryCategory", back_populates="images")
