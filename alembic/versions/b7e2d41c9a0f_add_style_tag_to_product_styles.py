"""add style_tag to product_styles

Revision ID: b7e2d41c9a0f
Revises: a3f1c9e2b7d4
Create Date: 2026-09-28 15:47:09.530872

Legacy calculators dispatched on free-text style names ("Good Neighbor",
"Board-on-Board"). This adds an explicit style_tag column and backfills it
ONCE from the existing names with the legacy heuristic. After this runs,
nothing classifies styles by substring at calculation time.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

from fence_bom.engine.legacy import classify_style_name


# revision identifiers, used by Alembic.
revision: str = 'b7e2d41c9a0f'
down_revision: Union[str, None] = 'a3f1c9e2b7d4'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _column_exists(table_name, column_name):
    """Check if a column already exists in the table."""
    bind = op.get_bind()
    insp = inspect(bind)
    columns = [c["name"] for c in insp.get_columns(table_name)]
    return column_name in columns


def upgrade() -> None:
    if not _column_exists("product_styles", "legacy_name"):
        op.add_column("product_styles", sa.Column("legacy_name", sa.String(), nullable=True))

    if not _column_exists("product_styles", "style_tag"):
        op.add_column(
            "product_styles",
            sa.Column("style_tag", sa.String(), nullable=False, server_default="standard"),
        )

        bind = op.get_bind()
        rows = bind.execute(sa.text("SELECT id, name, legacy_name FROM product_styles")).fetchall()
        for row in rows:
            tag = classify_style_name(row.legacy_name or row.name)
            bind.execute(
                sa.text("UPDATE product_styles SET style_tag = :tag WHERE id = :id"),
                {"tag": tag.value, "id": row.id},
            )


def downgrade() -> None:
    for col_name in ["style_tag", "legacy_name"]:
        if _column_exists("product_styles", col_name):
            op.drop_column("product_styles", col_name)
