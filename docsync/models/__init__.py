"""SQLAlchemy ORM models for DocSync."""

from docsync.models.base import Base
from docsync.models.category import Category, Project, SyncStatus
from docsync.models.document import Document

__all__ = [
    "Base",
    "Category",
    "Document",
    "Project",
    "SyncStatus",
]
