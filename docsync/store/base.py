"""Protocol for the content store the sync engine writes into."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from docsync.models import Category, Document, Project


@runtime_checkable
class ContentStore(Protocol):
    """Category and document CRUD scoped by project subtree.

    Every write is applied immediately; there is no transaction spanning
    several calls.
    """

    async def get_project(self, project_id: int) -> Project | None: ...

    async def list_projects(self) -> list[Project]: ...

    async def set_sync_status(
        self,
        project_id: int,
        status: str,
        *,
        error: str | None = None,
        started_at: datetime | None = None,
    ) -> None: ...

    async def record_sync_success(
        self, project_id: int, *, sha: str, synced_at: datetime, files_synced: int
    ) -> None: ...

    async def update_project_description(self, project_id: int, description: str) -> None: ...

    async def find_child_category(self, parent_id: int, name: str) -> Category | None: ...

    async def create_category(self, parent_id: int, name: str, slug: str) -> Category: ...

    async def find_document(self, source_file: str, project_id: int) -> Document | None: ...

    async def list_project_documents(self, project_id: int) -> list[Document]: ...

    async def create_document(
        self,
        *,
        title: str,
        body: str,
        excerpt: str,
        category_id: int,
        source_file: str,
        filesize: int,
        source_timestamp: str,
    ) -> Document: ...

    async def update_document(
        self,
        document_id: int,
        *,
        title: str,
        body: str,
        excerpt: str,
        category_id: int,
        filesize: int,
        source_timestamp: str,
    ) -> None: ...

    async def set_document_source_file(self, document_id: int, source_file: str) -> None: ...

    async def set_document_body(self, document_id: int, body: str) -> None: ...

    async def delete_document(self, document_id: int) -> bool: ...

    async def document_permalink(self, document_id: int) -> str | None: ...
