"""Task model."""

from datetime import date
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Task(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tasks"

    title: str = Field(max_length=255, nullable=False)
    description: Optional[str] = Field(default=None, sa_type=sa.Text)
    status: str = Field(nullable=False, default="TODO", max_length=20)  # TODO | IN_PROGRESS | DONE | CANCELLED
    due_date: Optional[date] = None
    project_id: uuid.UUID = Field(
        foreign_key="projects.id", nullable=False, index=True, ondelete="CASCADE"
    )
    assignee_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="users.id", index=True, ondelete="SET NULL"
    )
