"""Operator entry point: sync projects from the command line or a cron job."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import TYPE_CHECKING

from docsync.config import Settings
from docsync.database import create_engine, ensure_tables
from docsync.exceptions import ConfigurationError, DocSyncError
from docsync.services.sync_service import RepoSync
from docsync.source.github import GitHubClient, parse_repo_url
from docsync.store.sql import SqlContentStore

if TYPE_CHECKING:
    from collections.abc import Sequence

    from docsync.services.sync_service import SyncResult

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    """Configure application logging."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if debug else logging.WARNING)


def _github_client(settings: Settings) -> GitHubClient:
    return GitHubClient(
        settings.github_token,
        base_url=settings.github_api_url,
        timeout=settings.request_timeout,
        user_agent=settings.user_agent,
        extension=settings.doc_extension,
    )


def summarize(result: SyncResult) -> str:
    """One-line summary of a sync result for log output."""
    if result.no_changes:
        return f"project {result.project_id}: no changes detected"
    status = "ok" if result.success else f"failed ({result.error})"
    return (
        f"project {result.project_id}: {status}; "
        f"{len(result.added)} added, {len(result.updated)} updated, "
        f"{len(result.removed)} removed, {len(result.renamed)} renamed, "
        f"{len(result.unchanged)} unchanged"
    )


async def run_sync(
    settings: Settings, project_ids: Sequence[int] = (), force: bool = False
) -> list[SyncResult]:
    """Sync the given projects, or every syncable project when none are given."""
    settings.validate_runtime()
    engine, session_factory = create_engine(settings)
    try:
        await ensure_tables(engine)
        async with session_factory() as session, _github_client(settings) as source:
            store = SqlContentStore(session, url_prefix=settings.docs_url_prefix)
            sync = RepoSync(store, source, settings)
            if not project_ids:
                return await sync.sync_all(force=force)
            results = []
            for project_id in project_ids:
                results.append(await sync.sync(project_id, force=force))
            return results
    finally:
        await engine.dispose()


async def add_project(
    settings: Settings,
    name: str,
    repo_url: str,
    *,
    docs_path: str | None = None,
    branch: str | None = None,
) -> int:
    """Register a project and return its id."""
    parse_repo_url(repo_url)
    engine, session_factory = create_engine(settings)
    try:
        await ensure_tables(engine)
        async with session_factory() as session:
            store = SqlContentStore(session, url_prefix=settings.docs_url_prefix)
            project = await store.create_project(
                name,
                repo_url,
                docs_path=settings.default_docs_path if docs_path is None else docs_path,
                branch=branch or settings.default_branch,
            )
            return project.id
    finally:
        await engine.dispose()


async def check_token(settings: Settings) -> None:
    settings.validate_runtime()
    async with _github_client(settings) as client:
        info = await client.check_token()
    logger.info(
        "Token belongs to %s; scopes: %s; rate limit remaining: %s",
        info.user,
        ", ".join(info.scopes) or "none",
        info.rate_limit_remaining,
    )


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="docsync",
        description="Sync markdown documentation from GitHub into the content store",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)
    sync_parser = subparsers.add_parser("sync", help="Sync one or more projects (default: all)")
    sync_parser.add_argument("project_ids", nargs="*", type=int, help="Project ids to sync")
    sync_parser.add_argument(
        "--force", action="store_true", help="Re-process every file even if unchanged"
    )
    add_parser = subparsers.add_parser("add-project", help="Register a project")
    add_parser.add_argument("name", help="Project name")
    add_parser.add_argument("repo_url", help="GitHub repository URL")
    add_parser.add_argument("--docs-path", help="Documentation directory in the repository")
    add_parser.add_argument("--branch", help="Branch to sync")
    subparsers.add_parser("check-token", help="Show who the configured token belongs to")

    args = parser.parse_args(argv)
    settings = Settings()
    configure_logging(settings.debug or args.debug)

    try:
        if args.command == "add-project":
            project_id = asyncio.run(
                add_project(
                    settings,
                    args.name,
                    args.repo_url,
                    docs_path=args.docs_path,
                    branch=args.branch,
                )
            )
            logger.info("Registered project %r with id %d", args.name, project_id)
            return 0
        if args.command == "check-token":
            asyncio.run(check_token(settings))
            return 0

        results = asyncio.run(run_sync(settings, args.project_ids, force=args.force))
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return 2
    except DocSyncError as exc:
        logger.error("%s", exc)
        return 1

    for result in results:
        logger.info("%s", summarize(result))
    return 0 if all(result.success for result in results) else 1
