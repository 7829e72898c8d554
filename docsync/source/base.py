"""Base protocol, data classes and errors for repository source clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from docsync.exceptions import DocSyncError


class SourceError(DocSyncError):
    """Raised when the source repository API cannot answer a request."""


class SourceNotFoundError(SourceError):
    """The requested ref, path or field does not exist (HTTP 404 or missing data)."""


class SourceTransportError(SourceError):
    """Timeout, connection failure, auth failure, non-2xx status or malformed payload."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class TreeEntry:
    """One documentation blob in a repository tree."""

    blob_path: str
    content_hash: str
    size: int


@dataclass(frozen=True)
class RenamedFile:
    """A rename reported by a commit comparison, as docs-relative paths."""

    previous: str
    new: str


@dataclass
class FileDiff:
    """Documentation files changed between two commits, as docs-relative paths."""

    added: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    renamed: list[RenamedFile] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.modified or self.removed or self.renamed)


@dataclass(frozen=True)
class RepositoryInfo:
    full_name: str
    description: str | None
    default_branch: str
    private: bool


@dataclass(frozen=True)
class TokenInfo:
    user: str
    scopes: list[str]
    rate_limit_remaining: str


@runtime_checkable
class SourceClient(Protocol):
    """Protocol for read-only repository APIs used by the sync engine."""

    async def latest_commit(self, owner: str, repo: str, branch: str) -> str:
        """Resolve *branch* to a commit SHA."""
        ...

    async def tree(self, owner: str, repo: str, path: str, ref: str) -> dict[str, TreeEntry]:
        """List documentation blobs under *path* at *ref*, keyed by docs-relative path."""
        ...

    async def content(self, owner: str, repo: str, blob_path: str, ref: str) -> bytes:
        """Fetch the raw bytes of one file at *ref*."""
        ...

    async def diff(
        self, owner: str, repo: str, base_sha: str, head_sha: str, path: str
    ) -> FileDiff:
        """Compare two commits, restricted to documentation files under *path*."""
        ...

    async def repository(self, owner: str, repo: str) -> RepositoryInfo:
        """Fetch repository metadata."""
        ...
