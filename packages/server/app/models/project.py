"""Project model."""

from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Project(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "projects"

    name: str = Field(max_length=100, nullable=False)
    description: Optional[str] = Field(default=None, sa_type=sa.Text)
    color: Optional[str] = Field(default=None, max_length=30)  # e.g. "bg-sky-500" or "#3B82F6"
    icon_name: Optional[str] = Field(default=None, max_length=50)
    is_favorite: bool = Field(default=False, nullable=False)
    owner_id: uuid.UUID = Field(
        foreign_key="users.id", nullable=False, index=True, ondelete="CASCADE"
    )
