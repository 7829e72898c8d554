"""Document upsert with change-fingerprint short-circuit."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from docsync.services.hierarchy_service import resolve_path

if TYPE_CHECKING:
    from collections.abc import Sequence

    from docsync.store.base import ContentStore

logger = logging.getLogger(__name__)


class UpsertAction(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass
class UpsertResult:
    action: UpsertAction
    document_id: int
    categories_created: list[str] = field(default_factory=list)


async def upsert_document(
    store: ContentStore,
    *,
    source_file: str,
    title: str,
    body: str,
    project_id: int,
    filesize: int,
    source_timestamp: str,
    subpath: Sequence[str],
    excerpt: str = "",
    force: bool = False,
) -> UpsertResult:
    """Create or update the document identified by *source_file* in a project.

    The subpath is resolved first, creating category nodes as needed. An
    existing document whose ``(filesize, source_timestamp)`` fingerprint
    matches is left untouched unless *force* is set.
    """
    resolution = await resolve_path(store, project_id, subpath, create_missing=True)
    existing = await store.find_document(source_file, project_id)

    if existing is not None:
        if (
            not force
            and existing.filesize == filesize
            and existing.source_timestamp == source_timestamp
        ):
            return UpsertResult(
                action=UpsertAction.UNCHANGED,
                document_id=existing.id,
                categories_created=resolution.created,
            )

        await store.update_document(
            existing.id,
            title=title,
            body=body,
            excerpt=excerpt,
            category_id=resolution.leaf_id,
            filesize=filesize,
            source_timestamp=source_timestamp,
        )
        logger.debug("Updated document %s (id=%d)", source_file, existing.id)
        return UpsertResult(
            action=UpsertAction.UPDATED,
            document_id=existing.id,
            categories_created=resolution.created,
        )

    document = await store.create_document(
        title=title,
        body=body,
        excerpt=excerpt,
        category_id=resolution.leaf_id,
        source_file=source_file,
        filesize=filesize,
        source_timestamp=source_timestamp,
    )
    logger.debug("Created document %s (id=%d)", source_file, document.id)
    return UpsertResult(
        action=UpsertAction.CREATED,
        document_id=document.id,
        categories_created=resolution.created,
    )
