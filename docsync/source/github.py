"""GitHub REST API client for reading documentation trees and files."""

from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import Any
from urllib.parse import quote

import httpx

from docsync.exceptions import ConfigurationError, InvalidRepositoryURLError
from docsync.source.base import (
    FileDiff,
    RenamedFile,
    RepositoryInfo,
    SourceNotFoundError,
    SourceTransportError,
    TokenInfo,
    TreeEntry,
)

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"

_REPO_URL_PATTERNS = (
    re.compile(r"github\.com/([^/\s]+)/([^/\s]+?)(?:\.git)?(?:/|$)", re.IGNORECASE),
    re.compile(r"github\.com:([^/\s]+)/([^/\s]+?)(?:\.git)?$", re.IGNORECASE),
)


def parse_repo_url(url: str) -> tuple[str, str]:
    """Parse ``(owner, repo)`` from a GitHub URL.

    Accepts ``https://github.com/owner/repo``, an optional ``.git`` suffix or
    trailing path, and the SSH form ``git@github.com:owner/repo.git``.
    """
    candidate = url.strip()
    for pattern in _REPO_URL_PATTERNS:
        match = pattern.search(candidate)
        if match:
            owner, repo = match.group(1), match.group(2).removesuffix(".git")
            if owner and repo:
                return owner, repo
    raise InvalidRepositoryURLError(f"Invalid GitHub URL format: {url!r}")


def _path_prefix(path: str) -> str:
    return path.strip("/") + "/" if path.strip("/") else ""


def _repo_endpoint(owner: str, repo: str, *parts: str) -> str:
    """Build a percent-encoded ``/repos/{owner}/{repo}/...`` endpoint.

    Slashes inside *parts* are kept as path separators; every other reserved
    character (``#``, ``?``, spaces) is escaped.
    """
    segments = [quote(owner, safe=""), quote(repo, safe=""), *(quote(p, safe="/") for p in parts)]
    return "/repos/" + "/".join(segments)


def _json_object(body: Any, what: str) -> dict[str, Any]:
    if not isinstance(body, dict):
        raise SourceTransportError(f"Malformed {what} response")
    return body


class GitHubClient:
    """Authenticated async client over the GitHub REST API.

    Every call is a live round trip with a fixed timeout. Nothing is cached
    and nothing is retried: callers decide what a failure means.
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = GITHUB_API_URL,
        timeout: float = 30.0,
        user_agent: str = "DocSync/1.0",
        extension: str = ".md",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not token:
            raise ConfigurationError("GitHub token not configured")
        self.extension = extension
        self.client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {token}",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
                "User-Agent": user_agent,
            },
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def _request(
        self, endpoint: str, params: dict[str, str] | None = None
    ) -> tuple[Any, httpx.Headers]:
        """GET *endpoint* and return the decoded JSON body with response headers."""
        try:
            response = await self.client.get(endpoint, params=params)
        except httpx.TimeoutException:
            raise SourceTransportError(f"GitHub request timed out: {endpoint}") from None
        except httpx.HTTPError as exc:
            raise SourceTransportError(f"GitHub request failed: {exc}") from None

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 400:
            message = (
                body.get("message") if isinstance(body, dict) and body.get("message") else None
            ) or f"HTTP {response.status_code}"
            if response.status_code == 404:
                if "x-github-sso" in response.headers:
                    message += " (SAML SSO authorization required for this organization)"
                raise SourceNotFoundError(message)
            raise SourceTransportError(message, status_code=response.status_code)

        if body is None:
            raise SourceTransportError(
                f"GitHub returned non-JSON response (HTTP {response.status_code})",
                status_code=response.status_code,
            )
        return body, response.headers

    def _is_document(self, path: str, prefix: str) -> bool:
        if prefix and not path.startswith(prefix):
            return False
        if not path.endswith(self.extension):
            return False
        # Root-level README is the repository landing page, not documentation
        if not prefix and path == f"README{self.extension}":
            return False
        return True

    async def latest_commit(self, owner: str, repo: str, branch: str = "main") -> str:
        """Get the latest commit SHA for a branch."""
        body, _ = await self._request(_repo_endpoint(owner, repo, "commits", branch))
        sha = body.get("sha") if isinstance(body, dict) else None
        if not sha:
            raise SourceNotFoundError("Commit SHA missing from response")
        return str(sha)

    async def tree(
        self, owner: str, repo: str, path: str = "docs", ref: str = "main"
    ) -> dict[str, TreeEntry]:
        """Get documentation blobs under *path* at *ref*, keyed by path relative to *path*.

        A truncated listing is refused: callers treat every stored document
        missing from the result as deleted.
        """
        body, _ = await self._request(
            _repo_endpoint(owner, repo, "git", "trees", ref), params={"recursive": "1"}
        )
        if not isinstance(body, dict) or not isinstance(body.get("tree"), list):
            raise SourceNotFoundError(f"Tree missing from response for {owner}/{repo}@{ref}")
        if body.get("truncated"):
            logger.warning("Tree listing for %s/%s@%s was truncated by GitHub", owner, repo, ref)
            raise SourceTransportError(f"Tree listing for {owner}/{repo}@{ref} is truncated")

        prefix = _path_prefix(path)
        files: dict[str, TreeEntry] = {}
        for item in body["tree"]:
            item = _json_object(item, "tree")
            if item.get("type") != "blob":
                continue
            item_path = str(item.get("path", ""))
            if not self._is_document(item_path, prefix):
                continue
            files[item_path.removeprefix(prefix)] = TreeEntry(
                blob_path=item_path,
                content_hash=str(item.get("sha", "")),
                size=int(item.get("size") or 0),
            )
        return files

    async def content(self, owner: str, repo: str, blob_path: str, ref: str = "main") -> bytes:
        """Get raw file content at *ref*."""
        body, _ = await self._request(
            _repo_endpoint(owner, repo, "contents", blob_path), params={"ref": ref}
        )
        if not isinstance(body, dict) or body.get("encoding") != "base64" or "content" not in body:
            raise SourceNotFoundError(f"No base64 content returned for {blob_path}")
        try:
            return base64.b64decode(str(body["content"]))
        except (binascii.Error, ValueError):
            raise SourceTransportError(f"Malformed base64 content for {blob_path}") from None

    async def diff(
        self, owner: str, repo: str, base_sha: str, head_sha: str, path: str = "docs"
    ) -> FileDiff:
        """Compare two commits and return changed documentation files."""
        body, _ = await self._request(
            _repo_endpoint(owner, repo, "compare", f"{base_sha}...{head_sha}")
        )
        body = _json_object(body, "compare")
        changed = body.get("files") or []
        if not isinstance(changed, list):
            raise SourceTransportError("Malformed compare response")

        prefix = _path_prefix(path)
        result = FileDiff()
        for entry in changed:
            entry = _json_object(entry, "compare")
            filename = str(entry.get("filename", ""))
            status = entry.get("status")

            if status == "renamed":
                previous = str(entry.get("previous_filename", ""))
                old_in = self._is_document(previous, prefix)
                new_in = self._is_document(filename, prefix)
                if old_in and new_in:
                    result.renamed.append(
                        RenamedFile(
                            previous=previous.removeprefix(prefix),
                            new=filename.removeprefix(prefix),
                        )
                    )
                elif new_in:
                    result.added.append(filename.removeprefix(prefix))
                elif old_in:
                    result.removed.append(previous.removeprefix(prefix))
                continue

            if not self._is_document(filename, prefix):
                continue
            relative = filename.removeprefix(prefix)
            if status == "added" or status == "copied":
                result.added.append(relative)
            elif status in ("modified", "changed"):
                result.modified.append(relative)
            elif status == "removed":
                result.removed.append(relative)
        return result

    async def repository(self, owner: str, repo: str) -> RepositoryInfo:
        """Get repository metadata (description, default branch)."""
        body, _ = await self._request(_repo_endpoint(owner, repo))
        body = _json_object(body, "repository")
        description = body.get("description") or None
        return RepositoryInfo(
            full_name=str(body.get("full_name") or f"{owner}/{repo}"),
            description=str(description) if description else None,
            default_branch=str(body.get("default_branch") or "main"),
            private=bool(body.get("private", False)),
        )

    async def check_token(self) -> TokenInfo:
        """Return diagnostics for the configured token."""
        body, headers = await self._request("/user")
        body = _json_object(body, "user")
        scopes = [s.strip() for s in headers.get("x-oauth-scopes", "").split(",") if s.strip()]
        return TokenInfo(
            user=str(body.get("login") or "unknown"),
            scopes=scopes,
            rate_limit_remaining=headers.get("x-ratelimit-remaining", "unknown"),
        )
