"""Tests for document upserts."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from docsync.services.record_service import UpsertAction, UpsertResult, upsert_document

if TYPE_CHECKING:
    from docsync.models import Project
    from docsync.store.sql import SqlContentStore


async def _upsert(
    store: SqlContentStore, project: Project, **overrides: Any
) -> UpsertResult:
    fields = {
        "source_file": "guides/setup.md",
        "title": "Setup",
        "body": "Install it.\n",
        "project_id": project.id,
        "filesize": 24,
        "source_timestamp": "abc123",
        "subpath": ["Guides"],
        "excerpt": "Install it.",
    }
    fields.update(overrides)
    return await upsert_document(store, **fields)


class TestUpsertDocument:
    async def test_creates_new_document(self, store: SqlContentStore, project: Project) -> None:
        result = await _upsert(store, project)

        assert result.action == UpsertAction.CREATED
        assert result.categories_created == ["Guides"]
        document = await store.find_document("guides/setup.md", project.id)
        assert document is not None
        assert document.id == result.document_id
        assert document.slug == "setup"
        assert document.excerpt == "Install it."

    async def test_same_fingerprint_is_unchanged(
        self, store: SqlContentStore, project: Project
    ) -> None:
        created = await _upsert(store, project)
        result = await _upsert(store, project, body="ignored")

        assert result.action == UpsertAction.UNCHANGED
        assert result.document_id == created.document_id
        assert result.categories_created == []
        document = await store.find_document("guides/setup.md", project.id)
        assert document is not None
        assert document.body == "Install it.\n"

    async def test_force_updates_matching_fingerprint(
        self, store: SqlContentStore, project: Project
    ) -> None:
        await _upsert(store, project)
        result = await _upsert(store, project, body="Forced.\n", force=True)

        assert result.action == UpsertAction.UPDATED
        document = await store.find_document("guides/setup.md", project.id)
        assert document is not None
        assert document.body == "Forced.\n"

    async def test_changed_fingerprint_updates(
        self, store: SqlContentStore, project: Project
    ) -> None:
        created = await _upsert(store, project)
        result = await _upsert(
            store,
            project,
            title="Setup Guide",
            source_timestamp="def456",
            subpath=["Guides", "Install"],
        )

        assert result.action == UpsertAction.UPDATED
        assert result.document_id == created.document_id
        assert result.categories_created == ["Install"]
        document = await store.find_document("guides/setup.md", project.id)
        assert document is not None
        assert document.title == "Setup Guide"
        assert document.slug == "setup-guide"
        assert document.source_timestamp == "def456"
        permalink = await store.document_permalink(document.id)
        assert permalink == "/docs/acme-docs/guides/install/setup-guide/"

    async def test_size_change_alone_updates(
        self, store: SqlContentStore, project: Project
    ) -> None:
        await _upsert(store, project)
        result = await _upsert(store, project, filesize=25)
        assert result.action == UpsertAction.UPDATED
