"""Create users, habits, entries, tags and habit_tags

Revision ID: 3f9a1c7d2b10
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3f9a1c7d2b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


FREQUENCY_VALUES = ("daily", "monthly", "annually")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        "users",
        sa.Column("user_id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(255), nullable=True),
        sa.Column("last_name", sa.String(255), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("username"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "habits",
        sa.Column("habit_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "frequency",
            sa.Enum(*FREQUENCY_VALUES, name="habitfrequency", create_constraint=True),
            nullable=False,
        ),
        sa.Column("target_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("target_count > 0", name="ck_habit_target_count_positive"),
    )
    op.create_index("idx_habit_user_deleted", "habits", ["user_id", "deleted_at"])

    op.create_table(
        "entries",
        sa.Column("entry_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "habit_id",
            sa.Uuid(),
            sa.ForeignKey("habits.habit_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("completion_date", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_entry_habit_completion", "entries", ["habit_id", "completion_date"])

    op.create_table(
        "tags",
        sa.Column("tag_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "created_by_id",
            sa.Uuid(),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("color", sa.String(16), nullable=False, server_default=""),
        *_timestamps(),
    )
    op.create_index("idx_tag_creator_deleted", "tags", ["created_by_id", "deleted_at"])

    op.create_table(
        "habit_tags",
        sa.Column("habit_tag_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "habit_id",
            sa.Uuid(),
            sa.ForeignKey("habits.habit_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "tag_id",
            sa.Uuid(),
            sa.ForeignKey("tags.tag_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    # At most one live association per (habit, tag); retired rows are kept
    op.create_index(
        "uq_habit_tag_live",
        "habit_tags",
        ["habit_id", "tag_id"],
        unique=True,
        postgresql_where=sa.text("deleted_at IS NULL"),
        sqlite_where=sa.text("deleted_at IS NULL"),
    )
    op.create_index("idx_habit_tag_tag", "habit_tags", ["tag_id"])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("idx_habit_tag_tag", table_name="habit_tags")
    op.drop_index("uq_habit_tag_live", table_name="habit_tags")
    op.drop_table("habit_tags")

    op.drop_index("idx_tag_creator_deleted", table_name="tags")
    op.drop_table("tags")

    op.drop_index("idx_entry_habit_completion", table_name="entries")
    op.drop_table("entries")

    op.drop_index("idx_habit_user_deleted", table_name="habits")
    op.drop_table("habits")
    sa.Enum(name="habitfrequency").drop(op.get_bind(), checkfirst=True)

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
