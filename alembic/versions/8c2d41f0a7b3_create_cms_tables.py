"""create_cms_tables

Revision ID: 8c2d41f0a7b3
Revises:
Create Date: 2026-10-19 10:12:04.518230

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8c2d41f0a7b3'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def _ordered_indexes(table: str) -> None:
    op.create_index(op.f(f'ix_{table}_id'), table, ['id'], unique=False)
    op.create_index(op.f(f'ix_{table}_display_order'), table, ['display_order'], unique=False)


def upgrade() -> None:
    op.create_table(
        'promotions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('image', sa.String(length=255), nullable=True),
        sa.Column('discount', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('promotional_price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    _ordered_indexes('promotions')

    op.create_table(
        'services',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('image', sa.String(length=255), nullable=True),
        sa.Column('icon', sa.String(length=50), nullable=False, server_default='stethoscope'),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    _ordered_indexes('services')

    op.create_table(
        'specialists',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('specialty', sa.String(length=150), nullable=False),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('image', sa.String(length=255), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    _ordered_indexes('specialists')

    op.create_table(
        'timeline',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('year', sa.String(length=4), nullable=False),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('image', sa.String(length=255), nullable=True),
        sa.Column('video_url', sa.String(length=500), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    _ordered_indexes('timeline')

    op.create_table(
        'gallery_categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('is_main_category', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['parent_id'], ['gallery_categories.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    _ordered_indexes('gallery_categories')
    op.create_index(op.f('ix_gallery_categories_parent_id'), 'gallery_categories', ['parent_id'], unique=False)

    op.create_table(
        'gallery_images',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('image', sa.String(length=255), nullable=False),
        sa.Column('alt', sa.String(length=255), nullable=True),
        sa.Column('caption', sa.String(length=500), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['category_id'], ['gallery_categories.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    _ordered_indexes('gallery_images')
    op.create_index(op.f('ix_gallery_images_category_id'), 'gallery_images', ['category_id'], unique=False)


def downgrade() -> None:
    op.drop_table('gallery_images')
    op.drop_table('gallery_categories')
    op.drop_table('timeline')
    op.drop_table('specialists')
    op.drop_table('services')
    op.drop_table('promotions')
