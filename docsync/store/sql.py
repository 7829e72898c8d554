"""SQLAlchemy-backed content store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from docsync.exceptions import StoreError
from docsync.models import Category, Document, Project, SyncStatus
from docsync.models.category import ROOT_PARENT_ID
from docsync.services.datetime_service import now_utc
from docsync.services.slug_service import slugify

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


def _subtree_ids(project_id: int) -> Select[tuple[int]]:
    """Select the ids of a project's category and all of its descendants."""
    tree = select(Category.id).where(Category.id == project_id).cte("subtree", recursive=True)
    tree = tree.union_all(select(Category.id).where(Category.parent_id == tree.c.id))
    return select(tree.c.id)


class SqlContentStore:
    """Content store over an ``AsyncSession``; every write commits immediately."""

    def __init__(self, session: AsyncSession, url_prefix: str = "/docs") -> None:
        self.session = session
        self.url_prefix = url_prefix.rstrip("/")

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreError(f"Content store write failed: {exc}") from exc

    async def _execute(self, statement: Any) -> Any:
        try:
            return await self.session.execute(statement)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreError(f"Content store query failed: {exc}") from exc

    # Projects

    async def create_project(
        self,
        name: str,
        repo_url: str | None,
        *,
        slug: str | None = None,
        docs_path: str = "docs",
        branch: str = "main",
    ) -> Project:
        """Create a top-level category with its project record."""
        category = Category(name=name, slug=slug or slugify(name), parent_id=ROOT_PARENT_ID)
        self.session.add(category)
        try:
            await self.session.flush()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreError(f"Failed to create project {name!r}: {exc}") from exc
        project = Project(
            id=category.id,
            repo_url=repo_url,
            docs_path=docs_path.strip("/"),
            branch=branch,
            files_synced=0,
            sync_status=SyncStatus.NEVER,
        )
        project.category = category
        self.session.add(project)
        await self._commit()
        logger.info("Created project %r (id=%d)", name, project.id)
        return project

    async def get_project(self, project_id: int) -> Project | None:
        result = await self._execute(
            select(Project)
            .where(Project.id == project_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def list_projects(self) -> list[Project]:
        result = await self._execute(select(Project).order_by(Project.id))
        return list(result.scalars().all())

    async def set_sync_status(
        self,
        project_id: int,
        status: str,
        *,
        error: str | None = None,
        started_at: datetime | None = None,
    ) -> None:
        values: dict[str, Any] = {"sync_status": str(status)}
        if error:
            values["sync_error"] = error
        elif status == SyncStatus.SUCCESS:
            values["sync_error"] = None
        if status == SyncStatus.SYNCING:
            values["sync_started_at"] = started_at or now_utc()
        else:
            values["sync_started_at"] = None
        await self._execute(update(Project).where(Project.id == project_id).values(**values))
        await self._commit()

    async def record_sync_success(
        self, project_id: int, *, sha: str, synced_at: datetime, files_synced: int
    ) -> None:
        await self._execute(
            update(Project)
            .where(Project.id == project_id)
            .values(last_sync_sha=sha, last_sync_time=synced_at, files_synced=files_synced)
        )
        await self._commit()

    async def update_project_description(self, project_id: int, description: str) -> None:
        await self._execute(
            update(Project).where(Project.id == project_id).values(description=description)
        )
        await self._commit()

    # Categories

    async def find_child_category(self, parent_id: int, name: str) -> Category | None:
        """Find a child of *parent_id* whose name matches *name* case-insensitively.

        With duplicate names the lowest id wins.
        """
        result = await self._execute(
            select(Category).where(Category.parent_id == parent_id).order_by(Category.id)
        )
        wanted = name.casefold()
        for child in result.scalars().all():
            if child.name.casefold() == wanted:
                return child
        return None

    async def create_category(self, parent_id: int, name: str, slug: str) -> Category:
        category = Category(name=name, slug=slug, parent_id=parent_id)
        self.session.add(category)
        await self._commit()
        return category

    # Documents

    async def find_document(self, source_file: str, project_id: int) -> Document | None:
        result = await self._execute(
            select(Document)
            .where(
                Document.source_file == source_file,
                Document.category_id.in_(_subtree_ids(project_id)),
            )
            .order_by(Document.id)
            .limit(1)
        )
        return result.scalars().first()

    async def list_project_documents(self, project_id: int) -> list[Document]:
        result = await self._execute(
            select(Document)
            .where(Document.category_id.in_(_subtree_ids(project_id)))
            .order_by(Document.id)
        )
        return list(result.scalars().all())

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
    ) -> Document:
        document = Document(
            title=title,
            slug=slugify(title),
            body=body,
            excerpt=excerpt,
            category_id=category_id,
            source_file=source_file,
            filesize=filesize,
            source_timestamp=source_timestamp,
            synced_at=now_utc(),
        )
        self.session.add(document)
        await self._commit()
        return document

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
    ) -> None:
        await self._execute(
            update(Document)
            .where(Document.id == document_id)
            .values(
                title=title,
                slug=slugify(title),
                body=body,
                excerpt=excerpt,
                category_id=category_id,
                filesize=filesize,
                source_timestamp=source_timestamp,
                synced_at=now_utc(),
            )
        )
        await self._commit()

    async def set_document_source_file(self, document_id: int, source_file: str) -> None:
        await self._execute(
            update(Document).where(Document.id == document_id).values(source_file=source_file)
        )
        await self._commit()

    async def set_document_body(self, document_id: int, body: str) -> None:
        await self._execute(update(Document).where(Document.id == document_id).values(body=body))
        await self._commit()

    async def delete_document(self, document_id: int) -> bool:
        result = await self._execute(delete(Document).where(Document.id == document_id))
        await self._commit()
        return bool(result.rowcount)

    async def document_permalink(self, document_id: int) -> str | None:
        """Build ``/docs/{project}/{category...}/{document}/`` from the category chain."""
        document = await self.session.get(Document, document_id)
        if document is None:
            return None

        slugs: list[str] = []
        category_id = document.category_id
        while category_id != ROOT_PARENT_ID:
            category = await self.session.get(Category, category_id)
            if category is None:
                break
            slugs.append(category.slug)
            category_id = category.parent_id
        slugs.reverse()
        return "/".join([self.url_prefix, *slugs, document.slug]) + "/"
