"""Category hierarchy and project models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from docsync.models.base import Base

ROOT_PARENT_ID = 0


class SyncStatus(StrEnum):
    """Lifecycle state of a project's last sync attempt."""

    NEVER = "never"
    SYNCING = "syncing"
    SUCCESS = "success"
    FAILED = "failed"


class Category(Base):
    """A node in the documentation hierarchy.

    Top-level nodes (``parent_id == 0``) are projects. Sibling names are
    unique case-insensitively by convention only; the schema does not
    enforce it.
    """

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(String(200), nullable=False)
    parent_id: Mapped[int] = mapped_column(Integer, nullable=False, default=ROOT_PARENT_ID)

    __table_args__ = (Index("idx_categories_parent", "parent_id"),)


class Project(Base):
    """Repository settings and sync state attached to a top-level category."""

    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True
    )
    repo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    docs_path: Mapped[str] = mapped_column(Text, nullable=False, default="docs")
    branch: Mapped[str] = mapped_column(Text, nullable=False, default="main")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    last_sync_sha: Mapped[str | None] = mapped_column(String(64), nullable=True)
    last_sync_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    files_synced: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sync_status: Mapped[str] = mapped_column(String(16), nullable=False, default=SyncStatus.NEVER)
    sync_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    sync_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    category: Mapped[Category] = relationship(lazy="joined")

    @property
    def name(self) -> str:
        return self.category.name

    @property
    def slug(self) -> str:
        return self.category.slug
