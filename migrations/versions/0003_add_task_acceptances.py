"""add task acceptances table"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0003_add_task_acceptances"
down_revision = "0002_create_task_partitions"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "task_acceptances",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("task_id", sa.String(length=36), nullable=False),
        sa.Column("actor_id", sa.String(length=36), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Pending"),
        sa.Column("remark", sa.Text(), nullable=True),
        sa.Column("responded_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("task_id", "actor_id", name="uq_task_acceptances_task_actor"),
    )
    op.create_index("ix_task_acceptances_task_id", "task_acceptances", ["task_id"], unique=False)
    op.create_index("ix_task_acceptances_actor_id", "task_acceptances", ["actor_id"], unique=False)
    op.create_index("ix_task_acceptances_status", "task_acceptances", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_task_acceptances_status", table_name="task_acceptances")
    op.drop_index("ix_task_acceptances_actor_id", table_name="task_acceptances")
    op.drop_index("ix_task_acceptances_task_id", table_name="task_acceptances")
    op.drop_table("task_acceptances")
