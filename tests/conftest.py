"""Shared test fixtures for DocSync."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from docsync.config import Settings
from docsync.database import ensure_tables
from docsync.source.base import (
    FileDiff,
    RepositoryInfo,
    SourceNotFoundError,
    SourceTransportError,
    TreeEntry,
)
from docsync.store.sql import SqlContentStore

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

    from docsync.models import Project

TEST_TOKEN = "ghp_test-token-0123456789"
TEST_REPO_URL = "https://github.com/acme/widgets"


class FakeSourceClient:
    """In-memory source client.

    ``files`` maps repository paths (``docs/intro.md``) to their text or
    bytes. ``diffs`` maps ``(base, head)`` pairs to the ``FileDiff`` the
    compare call returns.
    """

    def __init__(
        self,
        files: dict[str, str | bytes] | None = None,
        *,
        sha: str = "sha-1",
        description: str | None = None,
    ) -> None:
        self.files: dict[str, str | bytes] = dict(files or {})
        self.sha = sha
        self.description = description
        self.diffs: dict[tuple[str, str], FileDiff] = {}
        self.failing: set[str] = set()
        self.commit_error: Exception | None = None
        self.tree_error: Exception | None = None
        self.content_requests: list[str] = []

    def _bytes(self, path: str) -> bytes:
        data = self.files[path]
        return data.encode("utf-8") if isinstance(data, str) else data

    async def __aenter__(self) -> FakeSourceClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        return None

    async def latest_commit(self, owner: str, repo: str, branch: str) -> str:
        if self.commit_error is not None:
            raise self.commit_error
        return self.sha

    async def tree(self, owner: str, repo: str, path: str, ref: str) -> dict[str, TreeEntry]:
        if self.tree_error is not None:
            raise self.tree_error
        prefix = f"{path}/" if path else ""
        return {
            name.removeprefix(prefix): TreeEntry(
                blob_path=name, content_hash="", size=len(self._bytes(name))
            )
            for name in self.files
            if name.startswith(prefix) and name.endswith(".md")
        }

    async def content(self, owner: str, repo: str, blob_path: str, ref: str) -> bytes:
        self.content_requests.append(blob_path)
        if blob_path in self.failing:
            raise SourceTransportError("HTTP 502", status_code=502)
        if blob_path not in self.files:
            raise SourceNotFoundError("Not Found")
        return self._bytes(blob_path)

    async def diff(
        self, owner: str, repo: str, base_sha: str, head_sha: str, path: str
    ) -> FileDiff:
        return self.diffs.get((base_sha, head_sha), FileDiff())

    async def repository(self, owner: str, repo: str) -> RepositoryInfo:
        return RepositoryInfo(
            full_name=f"{owner}/{repo}",
            description=self.description,
            default_branch="main",
            private=False,
        )


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test settings with a temporary database."""
    db_path = tmp_path / "test.db"
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        debug=False,
        database_url=f"sqlite+aiosqlite:///{db_path}",
        github_token=TEST_TOKEN,
    )


@pytest.fixture
async def db_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine]:
    """Create a test database engine with the schema in place."""
    engine = create_async_engine(
        test_settings.database_url,
        echo=False,
    )
    await ensure_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(
    db_engine: AsyncEngine,
) -> AsyncGenerator[AsyncSession]:
    """Create a test database session."""
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db_session: AsyncSession) -> SqlContentStore:
    return SqlContentStore(db_session)


@pytest.fixture
async def project(store: SqlContentStore) -> Project:
    """A project named "Acme Docs" syncing ``docs/`` of acme/widgets."""
    return await store.create_project("Acme Docs", TEST_REPO_URL)
