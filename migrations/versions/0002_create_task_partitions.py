"""create active and completed task tables"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0002_create_task_partitions"
down_revision = "0001_create_actors"
branch_labels = None
depends_on = None

INDEXED = (
    "project_id",
    "assigned_to",
    "target_team_id",
    "target_group_id",
    "created_by",
    "status",
    "working_by",
)


def _task_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("task_number", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("priority", sa.String(length=20), nullable=False, server_default="Medium"),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("deadline", sa.DateTime(), nullable=True),
        sa.Column("reminder_times", sa.JSON(), nullable=False),
        sa.Column("attachment", sa.String(length=500), nullable=True),
        sa.Column("project_id", sa.String(length=36), nullable=False),
        sa.Column("assigned_to", sa.String(length=36), nullable=True),
        sa.Column("target_team_id", sa.String(length=36), nullable=True),
        sa.Column("target_group_id", sa.String(length=36), nullable=True),
        sa.Column("created_by", sa.String(length=36), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Pending"),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("reviewed_times", sa.JSON(), nullable=False),
        sa.Column("remark", sa.Text(), nullable=True),
        sa.Column("working_by", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table("tasks", *_task_columns())
    op.create_table(
        "completed_tasks",
        *_task_columns(),
        sa.Column("moved_at", sa.DateTime(), nullable=False),
    )
    for table in ("tasks", "completed_tasks"):
        op.create_index(f"ix_{table}_task_number", table, ["task_number"], unique=True)
        for column in INDEXED:
            op.create_index(f"ix_{table}_{column}", table, [column], unique=False)


def downgrade() -> None:
    for table in ("completed_tasks", "tasks"):
        for column in INDEXED:
            op.drop_index(f"ix_{table}_{column}", table_name=table)
        op.drop_index(f"ix_{table}_task_number", table_name=table)
        op.drop_table(table)
