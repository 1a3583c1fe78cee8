"""
GitHub repository access.

Metadata comes from the git trees API (one call lists every blob of a branch
with its SHA); content comes from the contents API as base64. The blob SHA is
the content hash used to detect unchanged files.
"""

from __future__ import annotations

import base64
import binascii
import posixpath
from typing import Any
from urllib.parse import quote

import structlog
from cachetools import TTLCache  # type: ignore[import-untyped]

from cosmos.clients.base import BaseHTTPClient, HTTPClientError
from cosmos.config import Settings
from cosmos.core.errors import RepositoryError, RepositoryFileNotFoundError
from cosmos.domain.models import FileContent, FileMetadata
from cosmos.monitoring.interfaces import RepositoryReader

logger = structlog.get_logger()

GITHUB_API_VERSION = "2022-11-28"


class GitHubClient(BaseHTTPClient):
    """GitHub REST API client for one credential."""

    def __init__(
        self,
        base_url: str = "https://api.github.com",
        token: str | None = None,
        *,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(base_url, timeout=timeout)
        self._token = token

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def get_tree(self, owner: str, repo: str, branch: str) -> dict[str, Any]:
        return await self.get(
            f"/repos/{quote(owner)}/{quote(repo)}/git/trees/{quote(branch, safe='')}",
            params={"recursive": "1"},
        )

    async def get_contents(self, owner: str, repo: str, path: str, ref: str) -> Any:
        return await self.get(
            f"/repos/{quote(owner)}/{quote(repo)}/contents/{quote(path.lstrip('/'))}",
            params={"ref": ref},
        )


class GitHubRepositoryReader(RepositoryReader):
    """
    RepositoryReader backed by the GitHub REST API.

    One client is kept per credential in a bounded cache: at most
    ``cache_size`` clients, each dropped ``cache_ttl`` seconds after it was
    created, least recently used first when the cache is full.
    """

    def __init__(
        self,
        base_url: str = "https://api.github.com",
        token: str | None = None,
        *,
        timeout: float = 30.0,
        cache_size: int = 128,
        cache_ttl: float = 3600,
    ) -> None:
        self._base_url = base_url
        self._default_token = token
        self._timeout = timeout
        self._clients: TTLCache = TTLCache(maxsize=cache_size, ttl=cache_ttl)

    @classmethod
    def from_settings(cls, settings: Settings) -> GitHubRepositoryReader:
        return cls(
            settings.github_api_url,
            settings.github_token,
            timeout=settings.http_timeout,
            cache_size=settings.git_client_cache_size,
            cache_ttl=settings.git_client_cache_ttl,
        )

    def client_for(self, token: str | None = None) -> GitHubClient:
        """Cached client for a credential; anonymous access shares one client."""
        token = token or self._default_token
        key = token or ""
        client = self._clients.get(key)
        if client is None:
            client = GitHubClient(self._base_url, token, timeout=self._timeout)
            self._clients[key] = client
        return client

    @property
    def cached_clients(self) -> int:
        return len(self._clients)

    @staticmethod
    def _translate(exc: HTTPClientError, owner: str, repo: str, branch: str, path: str):
        details = {"owner": owner, "repository": repo, "branch": branch, "path": path}
        if exc.status_code == 404:
            return RepositoryFileNotFoundError(
                f"{path} not found in {owner}/{repo}@{branch}", details
            )
        return RepositoryError(f"GitHub request failed for {owner}/{repo}: {exc}", details)

    async def get_file_metadata(
        self,
        owner: str,
        repo: str,
        branch: str,
        path: str,
        *,
        token: str | None = None,
    ) -> FileMetadata:
        client = self.client_for(token)
        try:
            tree = await client.get_tree(owner, repo, branch)
        except HTTPClientError as e:
            if e.status_code == 404:
                # No tree: the repository or branch is missing or hidden, not the file
                raise RepositoryError(
                    f"repository {owner}/{repo} or branch '{branch}' not found",
                    {"owner": owner, "repository": repo, "branch": branch, "path": path},
                ) from e
            raise self._translate(e, owner, repo, branch, path) from e

        wanted = path.lstrip("/")
        for entry in tree.get("tree") or []:
            if entry.get("path") == wanted and entry.get("type") == "blob":
                return FileMetadata(
                    name=posixpath.basename(wanted),
                    path=wanted,
                    size=int(entry.get("size") or 0),
                    content_hash=entry["sha"],
                    branch=branch,
                    repository=repo,
                    owner=owner,
                )

        if tree.get("truncated"):
            # Large repositories return a partial tree; ask for the file directly
            logger.debug("github_tree_truncated", owner=owner, repository=repo, branch=branch)
            file = await self.get_file_with_content(owner, repo, branch, path, token=token)
            return file.metadata

        raise RepositoryFileNotFoundError(
            f"{wanted} not found in {owner}/{repo}@{branch}",
            {"owner": owner, "repository": repo, "branch": branch, "path": wanted},
        )

    async def get_file_with_content(
        self,
        owner: str,
        repo: str,
        branch: str,
        path: str,
        *,
        token: str | None = None,
    ) -> FileContent:
        client = self.client_for(token)
        try:
            data = await client.get_contents(owner, repo, path, branch)
        except HTTPClientError as e:
            raise self._translate(e, owner, repo, branch, path) from e

        if not isinstance(data, dict) or data.get("type") != "file":
            raise RepositoryFileNotFoundError(
                f"{path} in {owner}/{repo}@{branch} is not a file",
                {"owner": owner, "repository": repo, "branch": branch, "path": path},
            )

        encoding = data.get("encoding")
        if encoding != "base64":
            raise RepositoryError(
                f"unsupported content encoding '{encoding}' for {path}",
                {"owner": owner, "repository": repo, "path": path},
            )
        try:
            content = base64.b64decode(data.get("content") or "")
        except (binascii.Error, ValueError) as e:
            raise RepositoryError(f"corrupt base64 content for {path}: {e}") from e

        metadata = FileMetadata(
            name=data.get("name") or posixpath.basename(path),
            path=data.get("path") or path.lstrip("/"),
            size=int(data.get("size") or len(content)),
            content_hash=data["sha"],
            branch=branch,
            repository=repo,
            owner=owner,
        )
        logger.debug(
            "github_file_fetched",
            owner=owner,
            repository=repo,
            path=metadata.path,
            content_hash=metadata.content_hash,
        )
        return FileContent(metadata=metadata, content=content)
