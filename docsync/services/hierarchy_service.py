"""Category hierarchy resolution: name paths to leaf category ids."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from docsync.exceptions import CategoryNotFoundError
from docsync.services.slug_service import slugify

if TYPE_CHECKING:
    from collections.abc import Sequence

    from docsync.store.base import ContentStore

logger = logging.getLogger(__name__)


@dataclass
class HierarchyResolution:
    """Leaf category reached by a path, and the names of nodes created on the way."""

    leaf_id: int
    created: list[str] = field(default_factory=list)


async def resolve_path(
    store: ContentStore,
    root_id: int,
    names: Sequence[str],
    *,
    create_missing: bool = False,
) -> HierarchyResolution:
    """Walk *names* down from *root_id*, one child level per name.

    Children are matched by case-insensitive name. Missing nodes are created
    with a slug derived from the name when *create_missing* is set, otherwise
    ``CategoryNotFoundError`` is raised. If siblings share a name, whichever
    the store returns first wins. An empty path resolves to *root_id*.
    """
    resolution = HierarchyResolution(leaf_id=root_id)
    parent_id = root_id

    for raw_name in names:
        name = raw_name.strip()
        if not name:
            continue

        child = await store.find_child_category(parent_id, name)
        if child is None:
            if not create_missing:
                raise CategoryNotFoundError(f"Category not found: {name}")
            child = await store.create_category(parent_id, name, slugify(name))
            resolution.created.append(name)
            logger.debug("Created category %r under %d (id=%d)", name, parent_id, child.id)

        parent_id = child.id

    resolution.leaf_id = parent_id
    return resolution
