"""create actors and group members tables"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_create_actors"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "actors",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=True, unique=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="EMPLOYEE"),
        sa.Column("group_id", sa.String(length=36), nullable=True),
        sa.Column("company_id", sa.String(length=36), nullable=True),
        sa.Column("location_id", sa.String(length=36), nullable=True),
        sa.Column("sub_location_id", sa.String(length=36), nullable=True),
        sa.Column("team_id", sa.String(length=36), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Active"),
    )
    for column in ("group_id", "company_id", "location_id", "sub_location_id", "status"):
        op.create_index(f"ix_actors_{column}", "actors", [column], unique=False)

    op.create_table(
        "group_members",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("group_id", sa.String(length=36), nullable=False),
        sa.Column(
            "actor_id",
            sa.String(length=36),
            sa.ForeignKey("actors.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.UniqueConstraint("group_id", "actor_id", name="uq_group_members_group_actor"),
    )
    op.create_index("ix_group_members_group_id", "group_members", ["group_id"], unique=False)
    op.create_index("ix_group_members_actor_id", "group_members", ["actor_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_group_members_actor_id", table_name="group_members")
    op.drop_index("ix_group_members_group_id", table_name="group_members")
    op.drop_table("group_members")
    for column in ("group_id", "company_id", "location_id", "sub_location_id", "status"):
        op.drop_index(f"ix_actors_{column}", table_name="actors")
    op.drop_table("actors")
