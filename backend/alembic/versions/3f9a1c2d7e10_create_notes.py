"""create notes

Revision ID: 3f9a1c2d7e10
Revises: 
Create Date: 2026-10-18 10:12:44.180233

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2d7e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "notes",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("original_content", sa.Text(), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("image_data", sa.Text(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column("tags", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column("embedding", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index("ix_notes_category", "notes", ["category"])
    op.create_index("idx_notes_created", "notes", ["created_at"])
    op.create_index("idx_notes_category_created", "notes", ["category", "created_at"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("idx_notes_category_created", table_name="notes")
    op.drop_index("idx_notes_created", table_name="notes")
    op.drop_index("ix_notes_category", table_name="notes")
    op.drop_table("notes")
