"""create formula catalog tables

Revision ID: a3f1c9e2b7d4
Revises:
Create Date: 2026-09-14 10:02:41.118204

Product types, styles, component types, formula templates and the SKU
catalog. Skips tables that Base.metadata.create_all() already made.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = 'a3f1c9e2b7d4'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(table_name):
    """Check if a table exists."""
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    if not _table_exists("product_types"):
        op.create_table(
            "product_types",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("code", sa.String(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("default_post_spacing", sa.Float(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("code"),
        )

    if not _table_exists("product_styles"):
        op.create_table(
            "product_styles",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("product_type_id", sa.Integer(), nullable=False),
            sa.Column("code", sa.String(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["product_type_id"], ["product_types.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("product_type_id", "code", name="uq_product_style_code"),
        )

    if not _table_exists("component_types"):
        op.create_table(
            "component_types",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("code", sa.String(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("unit_type", sa.String(), nullable=True),
            sa.Column("display_order", sa.Integer(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("code"),
        )

    if not _table_exists("formula_templates"):
        op.create_table(
            "formula_templates",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("product_type_id", sa.Integer(), nullable=False),
            sa.Column("product_style_id", sa.Integer(), nullable=True),
            sa.Column("component_type_id", sa.Integer(), nullable=False),
            sa.Column("formula", sa.Text(), nullable=False),
            sa.Column("rounding_level", sa.String(), nullable=False),
            sa.Column("plain_english", sa.Text(), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("priority", sa.Integer(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["product_type_id"], ["product_types.id"]),
            sa.ForeignKeyConstraint(["product_style_id"], ["product_styles.id"]),
            sa.ForeignKeyConstraint(["component_type_id"], ["component_types.id"]),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _table_exists("sku_catalog"):
        op.create_table(
            "sku_catalog",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("sku_code", sa.String(), nullable=False),
            sa.Column("sku_name", sa.String(), nullable=False),
            sa.Column("product_type_id", sa.Integer(), nullable=False),
            sa.Column("product_style_id", sa.Integer(), nullable=False),
            sa.Column("height", sa.Float(), nullable=False),
            sa.Column("post_type", sa.String(), nullable=False),
            sa.Column("variables", sa.JSON(), nullable=True),
            sa.Column("components", sa.JSON(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["product_type_id"], ["product_types.id"]),
            sa.ForeignKeyConstraint(["product_style_id"], ["product_styles.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("sku_code"),
        )


def downgrade() -> None:
    for table_name in ["sku_catalog", "formula_templates", "component_types",
                       "product_styles", "product_types"]:
        if _table_exists(table_name):
            op.drop_table(table_name)
