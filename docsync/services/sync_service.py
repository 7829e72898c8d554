"""Sync service: change detection, per-file pipeline and project sync state.

A sync is best-effort. A file that fails (missing title, fetch error, store
error) marks the whole result as failed and records its message, but the
remaining files are still processed and nothing already written is rolled
back. Callers must not read ``success=False`` as "nothing changed".
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from docsync.content.markdown import (
    extract_title,
    generate_excerpt,
    is_markdown,
    process_markdown,
    rewrite_links,
    split_front_matter,
    strip_title,
)
from docsync.exceptions import (
    ContentError,
    DocSyncError,
    InvalidRepositoryURLError,
    ProjectNotFoundError,
    StoreError,
    SyncInProgressError,
)
from docsync.models import SyncStatus
from docsync.services.datetime_service import now_utc, seconds_since
from docsync.services.record_service import UpsertAction, UpsertResult, upsert_document
from docsync.services.slug_service import build_subpath
from docsync.source.base import SourceError
from docsync.source.github import parse_repo_url

if TYPE_CHECKING:
    from docsync.config import Settings
    from docsync.models import Project
    from docsync.source.base import SourceClient
    from docsync.store.base import ContentStore

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of one sync invocation for one project."""

    project_id: int
    success: bool = False
    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    renamed: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    categories_created: list[str] = field(default_factory=list)
    old_sha: str | None = None
    new_sha: str | None = None
    error: str | None = None
    no_changes: bool = False

    def record(self, source_file: str, upsert: UpsertResult) -> None:
        """Accumulate one successful upsert."""
        if upsert.action == UpsertAction.CREATED:
            self.added.append(source_file)
        elif upsert.action == UpsertAction.UPDATED:
            self.updated.append(source_file)
        else:
            self.unchanged.append(source_file)
        self.categories_created.extend(upsert.categories_created)

    def fail(self, message: str) -> None:
        """Mark the sync as failed; the most recent message wins."""
        self.success = False
        self.error = message

    @property
    def files_synced(self) -> int:
        return len(self.added) + len(self.updated) + len(self.unchanged)

    @property
    def has_changes(self) -> bool:
        return bool(
            self.added or self.updated or self.removed or self.renamed or self.categories_created
        )

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["files_synced"] = self.files_synced
        return data


@dataclass
class _SyncContext:
    project_id: int
    project_slug: str
    owner: str
    repo: str
    docs_path: str
    sha: str
    force: bool
    # (document_id, source_file, markdown) for documents that received fallback links
    pending_links: list[tuple[int, str, str]] = field(default_factory=list)


def git_blob_sha(data: bytes) -> str:
    """Compute the git blob SHA-1 of *data*, as GitHub reports it in trees."""
    header = f"blob {len(data)}\0".encode()
    return hashlib.sha1(header + data).hexdigest()  # noqa: S324


def _front_matter_excerpt(metadata: dict[str, Any]) -> str:
    for key in ("description", "excerpt"):
        value = metadata.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


class RepoSync:
    """Synchronizes one project's documentation from its source repository."""

    def __init__(self, store: ContentStore, source: SourceClient, settings: Settings) -> None:
        self.store = store
        self.source = source
        self.settings = settings

    async def sync_all(self, force: bool = False) -> list[SyncResult]:
        """Sync every project with a repository URL, one after another.

        A project that cannot be synced yields a failed result; it never
        stops the batch.
        """
        projects = await self.store.list_projects()
        project_ids = [project.id for project in projects if project.repo_url]

        results: list[SyncResult] = []
        for project_id in project_ids:
            try:
                result = await self.sync(project_id, force=force)
            except DocSyncError as exc:
                logger.warning("Skipping project %d: %s", project_id, exc)
                result = SyncResult(project_id=project_id, error=str(exc))
            except Exception:
                # sync() has already logged the traceback and marked the project failed
                result = SyncResult(project_id=project_id, error="Unexpected error")
            results.append(result)
        return results

    async def sync(self, project_id: int, force: bool = False) -> SyncResult:
        """Sync one project.

        Raises ``ProjectNotFoundError`` for an unknown id and
        ``SyncInProgressError`` when another sync holds the project; in both
        cases nothing is written. Every other failure is reported on the
        returned result and persisted as the project's sync error.
        """
        project = await self.store.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(f"Project not found: {project_id}")
        self._check_lock(project)

        result = SyncResult(project_id=project_id, old_sha=project.last_sync_sha or None)
        await self.store.set_sync_status(project_id, SyncStatus.SYNCING, started_at=now_utc())
        logger.info("Syncing project %r (id=%d)", project.name, project_id)

        try:
            await self._run(project, result, force)
        except SourceError as exc:
            logger.warning("Sync of project %d failed: %s", project_id, exc)
            result.fail(f"GitHub API: {exc}")
        except DocSyncError as exc:
            logger.warning("Sync of project %d failed: %s", project_id, exc)
            result.fail(str(exc))
        except Exception:
            logger.exception("Unexpected error while syncing project %d", project_id)
            await self.store.set_sync_status(
                project_id, SyncStatus.FAILED, error="Unexpected error"
            )
            raise

        await self._finish(result)
        return result

    def _check_lock(self, project: Project) -> None:
        if project.sync_status != SyncStatus.SYNCING or project.sync_started_at is None:
            return
        age = seconds_since(project.sync_started_at)
        if age < self.settings.sync_lock_timeout_seconds:
            raise SyncInProgressError(
                f"Project {project.id} is already syncing (started {int(age)}s ago)"
            )
        logger.warning("Taking over stale sync lock on project %d (held %ds)", project.id, age)

    async def _finish(self, result: SyncResult) -> None:
        try:
            if result.success:
                if not result.no_changes and result.new_sha:
                    await self.store.record_sync_success(
                        result.project_id,
                        sha=result.new_sha,
                        synced_at=now_utc(),
                        files_synced=result.files_synced,
                    )
                await self.store.set_sync_status(result.project_id, SyncStatus.SUCCESS)
            else:
                await self.store.set_sync_status(
                    result.project_id, SyncStatus.FAILED, error=result.error or "Unknown error"
                )
        except StoreError as exc:
            logger.error("Failed to persist sync state for project %d: %s", result.project_id, exc)
            result.fail(str(exc))
            return

        logger.info(
            "Project %d sync %s: %d added, %d updated, %d removed, %d renamed, %d unchanged",
            result.project_id,
            "succeeded" if result.success else "failed",
            len(result.added),
            len(result.updated),
            len(result.removed),
            len(result.renamed),
            len(result.unchanged),
        )

    async def _run(self, project: Project, result: SyncResult, force: bool) -> None:
        if not project.repo_url:
            result.fail("No GitHub URL configured")
            return
        try:
            owner, repo = parse_repo_url(project.repo_url)
        except InvalidRepositoryURLError:
            result.fail("Invalid GitHub URL format")
            return

        try:
            new_sha = await self.source.latest_commit(owner, repo, project.branch)
        except SourceError as exc:
            result.fail(f"GitHub API: {exc}")
            return
        if not new_sha:
            result.fail("Failed to fetch latest commit from GitHub")
            return
        result.new_sha = new_sha

        await self._refresh_description(project, owner, repo)

        if result.old_sha == new_sha and not force:
            result.success = True
            result.no_changes = True
            logger.info("Project %d is up to date at %s", project.id, new_sha[:7])
            return

        ctx = _SyncContext(
            project_id=project.id,
            project_slug=project.slug,
            owner=owner,
            repo=repo,
            docs_path=project.docs_path.strip("/"),
            sha=new_sha,
            force=force,
        )
        result.success = True
        if result.old_sha is None or force:
            await self._full_sync(ctx, result)
        else:
            await self._incremental_sync(ctx, result.old_sha, result)

        if self.settings.resolve_forward_links:
            await self._resolve_pending_links(ctx)

    async def _refresh_description(self, project: Project, owner: str, repo: str) -> None:
        try:
            info = await self.source.repository(owner, repo)
        except SourceError as exc:
            logger.warning("Could not refresh description for %s/%s: %s", owner, repo, exc)
            return
        if info.description and info.description != project.description:
            await self.store.update_project_description(project.id, info.description)

    async def _full_sync(self, ctx: _SyncContext, result: SyncResult) -> None:
        files = await self.source.tree(ctx.owner, ctx.repo, ctx.docs_path, ctx.sha)
        if not files:
            result.fail(f"No documentation files found in {ctx.docs_path}/ directory")
            return

        # Paths that failed stay listed so a transient error never deletes a document
        listed = set(files)
        for relative_path in sorted(files):
            await self._sync_file(ctx, relative_path, result)

        for document in await self.store.list_project_documents(ctx.project_id):
            if document.source_file in listed:
                continue
            try:
                deleted = await self.store.delete_document(document.id)
            except StoreError as exc:
                result.fail(str(exc))
                continue
            if deleted:
                logger.debug("Removed orphan %s (id=%d)", document.source_file, document.id)
                result.removed.append(document.source_file)

    async def _incremental_sync(self, ctx: _SyncContext, old_sha: str, result: SyncResult) -> None:
        changes = await self.source.diff(ctx.owner, ctx.repo, old_sha, ctx.sha, ctx.docs_path)
        if changes.is_empty:
            logger.info("No documentation changes between %s and %s", old_sha[:7], ctx.sha[:7])
            return

        for relative_path in [*changes.added, *changes.modified]:
            await self._sync_file(ctx, relative_path, result)

        for relative_path in changes.removed:
            try:
                document = await self.store.find_document(relative_path, ctx.project_id)
                if document is not None and await self.store.delete_document(document.id):
                    result.removed.append(relative_path)
            except StoreError as exc:
                result.fail(str(exc))

        for rename in changes.renamed:
            try:
                document = await self.store.find_document(rename.previous, ctx.project_id)
                if document is None:
                    # Nothing to carry over from the old path
                    await self._sync_file(ctx, rename.new, result)
                    continue
                await self.store.set_document_source_file(document.id, rename.new)
                upsert = await self._process_file(ctx, rename.new, force=True)
            except (ContentError, StoreError, SourceError) as exc:
                logger.warning(
                    "Failed to sync rename %s -> %s: %s", rename.previous, rename.new, exc
                )
                result.fail(str(exc))
                continue
            result.renamed.append(rename.new)
            result.categories_created.extend(upsert.categories_created)

    async def _sync_file(self, ctx: _SyncContext, relative_path: str, result: SyncResult) -> None:
        try:
            upsert = await self._process_file(ctx, relative_path)
        except (ContentError, StoreError, SourceError) as exc:
            logger.warning("Failed to sync %s: %s", relative_path, exc)
            if isinstance(exc, SourceError):
                result.fail(f"Failed to fetch file content: {relative_path} ({exc})")
            else:
                result.fail(str(exc))
            return
        result.record(relative_path, upsert)

    async def _process_file(
        self, ctx: _SyncContext, relative_path: str, force: bool = False
    ) -> UpsertResult:
        """Fetch, transform and upsert one file.

        *force* bypasses the fingerprint check, as a forced sync does; renames
        use it so a moved file picks up its new category.
        """
        blob_path = f"{ctx.docs_path}/{relative_path}" if ctx.docs_path else relative_path
        raw = await self.source.content(ctx.owner, ctx.repo, blob_path, ctx.sha)
        try:
            text = raw.decode("utf-8").removeprefix("\ufeff")
        except UnicodeDecodeError:
            raise ContentError(f"File is not valid UTF-8: {relative_path}") from None

        metadata, markdown = split_front_matter(text)
        title = extract_title(markdown)
        if title is None:
            raise ContentError(f"No H1 header found in: {relative_path}")
        body = strip_title(markdown)
        excerpt = _front_matter_excerpt(metadata) or generate_excerpt(body)

        content = body
        unresolved: list[str] = []
        if is_markdown(body):
            rewritten = await rewrite_links(
                body,
                relative_path,
                lambda path: self._permalink_for(ctx.project_id, path),
                self._fallback_prefix(ctx),
                self.settings.doc_extension,
            )
            content, unresolved = rewritten.text, rewritten.unresolved

        upsert = await upsert_document(
            self.store,
            source_file=relative_path,
            title=title,
            body=content,
            project_id=ctx.project_id,
            filesize=len(raw),
            source_timestamp=git_blob_sha(raw),
            subpath=build_subpath(relative_path),
            excerpt=excerpt,
            force=ctx.force or force,
        )
        if unresolved:
            ctx.pending_links.append((upsert.document_id, relative_path, body))
        logger.debug("%s %s", upsert.action, relative_path)
        return upsert

    def _fallback_prefix(self, ctx: _SyncContext) -> str:
        return f"{self.settings.docs_url_prefix.rstrip('/')}/{ctx.project_slug}"

    async def _permalink_for(self, project_id: int, source_file: str) -> str | None:
        document = await self.store.find_document(source_file, project_id)
        if document is None:
            return None
        return await self.store.document_permalink(document.id)

    async def _resolve_pending_links(self, ctx: _SyncContext) -> None:
        """Re-resolve fallback links once every file of this sync has been stored."""
        fixed = 0
        for document_id, source_file, markdown in ctx.pending_links:
            try:
                document = await self.store.find_document(source_file, ctx.project_id)
                if document is None or document.id != document_id:
                    continue
                body = await process_markdown(
                    markdown,
                    source_file,
                    lambda path: self._permalink_for(ctx.project_id, path),
                    self._fallback_prefix(ctx),
                    self.settings.doc_extension,
                )
                if body != document.body:
                    await self.store.set_document_body(document_id, body)
                    fixed += 1
            except StoreError as exc:
                logger.warning("Could not fix links in %s: %s", source_file, exc)
        if fixed:
            logger.info("Resolved forward links in %d document(s)", fixed)
