"""Markdown detection, title handling and intra-repository link rewriting."""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import frontmatter
import yaml

from docsync.services.slug_service import path_to_slug

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    PermalinkLookup = Callable[[str], Awaitable[str | None]]

logger = logging.getLogger(__name__)

_BLOCK_MARKER = "<!-- wp:"
_BLOCK_CONTAINER_RE = re.compile(
    r"^<(html|head|body|div|section|article|header|footer|nav|aside|main)\b", re.IGNORECASE
)
_HTML_OPEN_RE = re.compile(r"^<[a-z]", re.IGNORECASE)
_MARKDOWN_SIGNATURES: tuple[re.Pattern[str], ...] = (
    re.compile(r"^#{1,6}\s+.+$", re.MULTILINE),  # headers
    re.compile(r"^\s*[-*+]\s+.+$", re.MULTILINE),  # bullet lists
    re.compile(r"^\s*\d+\.\s+.+$", re.MULTILINE),  # ordered lists
    re.compile(r"^```", re.MULTILINE),  # fenced code
    re.compile(r"\[.+?\]\(.+?\)"),  # links
    re.compile(r"^\|.+\|$", re.MULTILINE),  # tables
    re.compile(r"^>\s+.+$", re.MULTILINE),  # blockquotes
    re.compile(r"\*\*.+?\*\*"),  # emphasis
    re.compile(r"`.+?`"),  # inline code
)
_H1_RE = re.compile(r"^#[ \t]+(.+)$")
_EXTERNAL_PREFIXES = ("http://", "https://", "//", "mailto:")


@dataclass
class RewriteResult:
    """Markdown with rewritten links plus the targets that fell back."""

    text: str
    unresolved: list[str] = field(default_factory=list)


def is_markdown(content: str) -> bool:
    """Detect whether *content* is markdown rather than structured markup.

    Block-editor markers and documents opening with a block-level container
    tag are markup. Otherwise any markdown signature wins, and text that
    does not open with an HTML tag defaults to markdown.
    """
    content = content.strip()
    if not content:
        return False
    if _BLOCK_MARKER in content:
        return False
    if _BLOCK_CONTAINER_RE.match(content):
        return False
    if any(pattern.search(content) for pattern in _MARKDOWN_SIGNATURES):
        return True
    return not _HTML_OPEN_RE.match(content)


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Split YAML front matter from the document body.

    Text without front matter, or with front matter that fails to parse, is
    returned unchanged with empty metadata.
    """
    if not text.startswith("---"):
        return {}, text
    try:
        post = frontmatter.loads(text)
    except (yaml.YAMLError, ValueError) as exc:
        logger.debug("Ignoring unparseable front matter: %s", exc)
        return {}, text
    return dict(post.metadata), post.content


def _h1_line_index(markdown: str) -> int | None:
    """Index of the first level-1 ATX heading line outside fenced code."""
    in_code_block = False
    for i, line in enumerate(markdown.split("\n")):
        if line.strip().startswith("```"):
            in_code_block = not in_code_block
            continue
        if not in_code_block and _H1_RE.match(line):
            return i
    return None


def extract_title(markdown: str) -> str | None:
    """Extract the title from the first ``# heading``, or None when there is none."""
    index = _h1_line_index(markdown)
    if index is None:
        return None
    match = _H1_RE.match(markdown.split("\n")[index])
    title = match.group(1).strip() if match else ""
    return title or None


def strip_title(markdown: str) -> str:
    """Remove the first ``# heading`` line and the blank lines that follow it."""
    index = _h1_line_index(markdown)
    if index is None:
        return markdown
    lines = markdown.split("\n")
    rest = lines[index + 1 :]
    while rest and not rest[0].strip():
        rest.pop(0)
    return "\n".join(lines[:index] + rest)


def normalize_path(path: str) -> str:
    """Resolve ``.`` and ``..`` segments; ``..`` at the root is dropped."""
    normalized: list[str] = []
    for part in path.split("/"):
        if part == "..":
            if normalized:
                normalized.pop()
        elif part not in (".", ""):
            normalized.append(part)
    return "/".join(normalized)


def resolve_link_path(target: str, current_path: str) -> str:
    """Resolve a link target relative to the docs-relative path of the linking file.

    A leading ``/`` is relative to the docs root rather than the file.
    """
    target = target.removeprefix("./")
    if target.startswith("/"):
        return normalize_path(target)
    current_dir = posixpath.dirname(current_path)
    return normalize_path(f"{current_dir}/{target}" if current_dir else target)


def _link_pattern(extension: str) -> re.Pattern[str]:
    return re.compile(r"\[([^\]]+)\]\(([^)#]+" + re.escape(extension) + r")(#[^)]*)?\)")


async def rewrite_links(
    markdown: str,
    current_path: str,
    lookup: PermalinkLookup,
    fallback_prefix: str,
    extension: str = ".md",
) -> RewriteResult:
    """Rewrite inline links to other documentation files.

    Each ``[text](target.md#anchor)`` is resolved against *current_path* and
    looked up; a known document gets its permalink, anything else gets the
    deterministic ``{fallback_prefix}/{slug}/`` path.
    """
    parts: list[str] = []
    unresolved: list[str] = []
    position = 0

    for match in _link_pattern(extension).finditer(markdown):
        text, target, anchor = match.group(1), match.group(2).strip(), match.group(3) or ""
        parts.append(markdown[position : match.start()])
        position = match.end()

        if target.startswith(_EXTERNAL_PREFIXES):
            parts.append(match.group(0))
            continue

        resolved = resolve_link_path(target, current_path)
        permalink = await lookup(resolved)
        if permalink is None:
            unresolved.append(resolved)
            slug = path_to_slug(resolved, extension)
            href = f"{fallback_prefix.rstrip('/')}/{slug}/{anchor}"
        else:
            href = f"{permalink}{anchor}"
        parts.append(f"[{text}]({href})")

    parts.append(markdown[position:])
    return RewriteResult(text="".join(parts), unresolved=unresolved)


async def process_markdown(
    markdown: str,
    current_path: str,
    lookup: PermalinkLookup,
    fallback_prefix: str,
    extension: str = ".md",
) -> str:
    """Return storable content for a markdown document with links rewritten."""
    result = await rewrite_links(markdown, current_path, lookup, fallback_prefix, extension)
    return result.text


def generate_excerpt(content: str, max_length: int = 300) -> str:
    """Generate a plain one-paragraph excerpt from markdown.

    Strips headings, code blocks and images but keeps inline formatting.
    """
    lines: list[str] = []
    in_code_block = False
    for line in content.split("\n"):
        stripped = line.strip()
        if stripped.startswith("```"):
            in_code_block = not in_code_block
            continue
        if in_code_block:
            continue
        if stripped.startswith("#") or stripped.startswith("!["):
            continue
        if stripped:
            lines.append(stripped)

    text = " ".join(lines)
    if len(text) > max_length:
        text = text[:max_length].rsplit(" ", maxsplit=1)[0] + "..."
    return text
