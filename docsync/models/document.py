"""Synced document model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from docsync.models.base import Base


class Document(Base):
    """One documentation file mirrored from a repository.

    ``source_file`` is the path relative to the project's docs directory and
    identifies the document within its project's category subtree. It is not
    unique across projects.
    """

    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    excerpt: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False
    )

    # Sync metadata
    source_file: Mapped[str] = mapped_column(Text, nullable=False)
    filesize: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    source_timestamp: Mapped[str] = mapped_column(Text, nullable=False, default="")
    synced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_documents_source_file", "source_file"),
        Index("idx_documents_category", "category_id"),
    )
