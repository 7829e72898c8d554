"""Slug generation for category nodes, documents and fallback link paths."""

from __future__ import annotations

import re
import unicodedata

MAX_SLUG_LENGTH = 80


def slugify(text: str, fallback: str = "untitled") -> str:
    """Generate a URL-safe slug from a name or title.

    - Normalize unicode to ASCII (NFKD)
    - Lowercase, strip
    - Replace non-alphanumeric chars with hyphens
    - Collapse multiple hyphens
    - Strip leading/trailing hyphens
    - Truncate to 80 chars (don't cut mid-word if possible)
    - Return *fallback* for empty/whitespace-only input
    """
    # Normalize unicode to decomposed form, then drop non-ASCII
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    text = text.lower().strip()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    text = text.strip("-")

    if not text:
        return fallback

    if len(text) > MAX_SLUG_LENGTH:
        truncated = text[:MAX_SLUG_LENGTH]
        last_hyphen = truncated.rfind("-")
        if last_hyphen > 0:
            truncated = truncated[:last_hyphen]
        text = truncated.rstrip("-")

    return text


def path_to_slug(path: str, extension: str = ".md") -> str:
    """Convert a docs-relative file path into a slash-separated URL slug.

    ``guides/Getting Started.md`` becomes ``guides/getting-started``.
    Directory separators are kept so the slug mirrors the source layout.
    """
    slug = path.removesuffix(extension).lower()
    slug = re.sub(r"[^a-z0-9/]+", "-", slug)
    return slug.strip("-/")


def segment_to_name(segment: str) -> str:
    """Turn a directory name into a category display name.

    Hyphens and underscores become spaces and every word is title-cased:
    ``getting-started`` -> ``Getting Started``.
    """
    cleaned = segment.replace("-", " ").replace("_", " ")
    return cleaned.title()


def build_subpath(relative_path: str) -> list[str]:
    """Map the directory part of a docs-relative path onto category names.

    ``guides/advanced/config.md`` -> ``["Guides", "Advanced"]``.
    """
    parts = relative_path.split("/")[:-1]
    return [segment_to_name(part) for part in parts if part and part != "."]
