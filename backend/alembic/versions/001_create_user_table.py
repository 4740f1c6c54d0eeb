"""Create user table with soft-delete column

Revision ID: 001_create_user
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_create_user"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("password", sa.String(), nullable=False),
        sa.Column("nickname", sa.String(), nullable=False),
        sa.Column("mbti", sa.String(length=4), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        # Soft delete marker: NULL for live accounts
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_email", "user", ["email"], unique=True)
    op.create_index("ix_user_nickname", "user", ["nickname"], unique=True)
    op.create_index("ix_user_deleted_at", "user", ["deleted_at"])


def downgrade() -> None:
    op.drop_index("ix_user_deleted_at", table_name="user")
    op.drop_index("ix_user_nickname", table_name="user")
    op.drop_index("ix_user_email", table_name="user")
    op.drop_table("user")
