"""Application-level exception types.

Convention:
- Configuration errors (``ConfigurationError``, ``InvalidRepositoryURLError``,
  ``ProjectNotFoundError``) fail fast before any sync state is written.
- Content and store errors (``ContentError``, ``StoreError``) are scoped to a
  single file: the orchestrator records the message on the sync result and
  keeps processing the remaining files.
- Source errors live in ``docsync.source.base`` next to the client protocol.
"""

from __future__ import annotations


class DocSyncError(Exception):
    """Base class for all DocSync errors."""


class ConfigurationError(DocSyncError):
    """Raised when required configuration is missing or invalid."""


class InvalidRepositoryURLError(ConfigurationError):
    """Raised when a stored repository URL cannot be parsed into owner/repo."""


class ProjectNotFoundError(ConfigurationError):
    """Raised when a sync is requested for an unknown project id."""


class SyncInProgressError(DocSyncError):
    """Raised when another sync of the same project holds the advisory lock."""


class ContentError(DocSyncError):
    """Raised when a source file cannot be turned into a document."""


class StoreError(DocSyncError):
    """Raised when the content store fails to read or write."""


class CategoryNotFoundError(DocSyncError):
    """Raised when a category path cannot be resolved and creation is disabled."""
