"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from docsync.exceptions import ConfigurationError


class Settings(BaseSettings):
    """DocSync settings."""

    model_config = SettingsConfigDict(
        env_prefix="DOCSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///data/db/docsync.db"

    # GitHub
    github_token: str = ""
    github_api_url: str = "https://api.github.com"
    request_timeout: float = Field(default=30.0, gt=0)
    user_agent: str = "DocSync/1.0"

    # Documentation layout
    doc_extension: str = ".md"
    default_docs_path: str = "docs"
    default_branch: str = "main"
    docs_url_prefix: str = "/docs"

    # Sync behaviour
    sync_lock_timeout_seconds: int = Field(default=1800, ge=0)
    resolve_forward_links: bool = True

    def validate_runtime(self) -> None:
        """Refuse to run a sync without the settings it cannot work without."""
        violations: list[str] = []
        if not self.github_token.strip():
            violations.append("DOCSYNC_GITHUB_TOKEN must be configured")
        if not self.doc_extension.startswith("."):
            violations.append("DOCSYNC_DOC_EXTENSION must start with '.'")

        if violations:
            joined = "; ".join(violations)
            raise ConfigurationError(f"Invalid configuration: {joined}")
