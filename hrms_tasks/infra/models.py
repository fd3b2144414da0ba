from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text, UniqueConstraint

from .db import Base


def utcnow() -> datetime:
    return datetime.utcnow()


def new_id() -> str:
    return str(uuid4())


class ActorModel(Base):
    __tablename__ = "actors"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), nullable=True, unique=True)
    role = Column(String(20), nullable=False, default="EMPLOYEE")
    group_id = Column(String(36), nullable=True, index=True)
    company_id = Column(String(36), nullable=True, index=True)
    location_id = Column(String(36), nullable=True, index=True)
    sub_location_id = Column(String(36), nullable=True, index=True)
    team_id = Column(String(36), nullable=True)
    status = Column(String(20), nullable=False, default="Active", index=True)


class GroupMemberModel(Base):
    __tablename__ = "group_members"
    __table_args__ = (UniqueConstraint("group_id", "actor_id", name="uq_group_members_group_actor"),)

    id = Column(String(36), primary_key=True, default=new_id)
    group_id = Column(String(36), nullable=False, index=True)
    actor_id = Column(String(36), ForeignKey("actors.id", ondelete="CASCADE"), nullable=False, index=True)


class TaskColumnsMixin:
    """Columns shared by both task partitions so a row copies across unchanged."""

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(200), nullable=False)
    priority = Column(String(20), nullable=False, default="Medium")
    note = Column(Text, nullable=True)
    deadline = Column(DateTime, nullable=True)
    reminder_times = Column(JSON, nullable=False, default=list)
    attachment = Column(String(500), nullable=True)
    project_id = Column(String(36), nullable=False, index=True)
    assigned_to = Column(String(36), nullable=True, index=True)
    target_team_id = Column(String(36), nullable=True, index=True)
    target_group_id = Column(String(36), nullable=True, index=True)
    created_by = Column(String(36), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="Pending", index=True)
    completed_at = Column(DateTime, nullable=True)
    reviewed_times = Column(JSON, nullable=False, default=list)
    remark = Column(Text, nullable=True)
    working_by = Column(String(36), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class ActiveTaskModel(TaskColumnsMixin, Base):
    __tablename__ = "tasks"

    task_number = Column(String(32), nullable=False, unique=True, index=True)


class CompletedTaskModel(TaskColumnsMixin, Base):
    __tablename__ = "completed_tasks"

    task_number = Column(String(32), nullable=False, unique=True, index=True)
    moved_at = Column(DateTime, nullable=False, default=utcnow)


TASK_COLUMNS = tuple(
    column.name for column in ActiveTaskModel.__table__.columns
)


class TaskAcceptanceModel(Base):
    __tablename__ = "task_acceptances"
    __table_args__ = (UniqueConstraint("task_id", "actor_id", name="uq_task_acceptances_task_actor"),)

    id = Column(String(36), primary_key=True, default=new_id)
    task_id = Column(String(36), nullable=False, index=True)
    actor_id = Column(String(36), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="Pending", index=True)
    remark = Column(Text, nullable=True)
    responded_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class NotificationModel(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    recipient_id = Column(String(36), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    type = Column(String(20), nullable=False, default="SYSTEM")
    extra = Column("metadata", JSON, nullable=False, default=dict)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class AuditLogModel(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=new_id)
    actor_id = Column(String(36), nullable=True, index=True)
    action = Column(String(30), nullable=False)
    entity = Column(String(50), nullable=False)
    entity_id = Column(String(36), nullable=False, index=True)
    old_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
