"""GitHub REST client used by the sync engine.

The client is the only component that talks to the repository host. It reads
manifest files at a ref, pages commit history for a path, resolves archive
download links, streams archives and lists the repositories visible to the
configured token.
"""

from __future__ import annotations

import base64
import binascii
import collections.abc as cabc
import dataclasses
import datetime as dt
import typing as typ
import urllib.parse

import httpx

from bothy.common.time import parse_github_datetime

from .errors import (
    GitHubAPIError,
    GitHubConfigError,
    GitHubResponseShapeError,
    ManifestNotFoundError,
)
from .models import CommitPage, CommitReference, RepositoryRef

if typ.TYPE_CHECKING:
    from bothy.config import BothyConfig

_HTTP_ERROR_STATUS_THRESHOLD = 400
_HTTP_NOT_FOUND = 404
_REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})
PAGE_SIZE = 100


class RepositoryHost(typ.Protocol):
    """Interface the sync engine needs from a repository host."""

    async def fetch_manifest(
        self, repo: RepositoryRef, path: str, *, ref: str | None = None
    ) -> bytes:
        """Return the raw manifest bytes at ``ref`` (default branch if None)."""
        ...

    async def has_manifest(self, repo: RepositoryRef, path: str) -> bool:
        """Return whether ``path`` exists at the default branch tip."""
        ...

    def list_commit_pages(
        self,
        repo: RepositoryRef,
        path: str,
        *,
        since: dt.datetime | None = None,
    ) -> cabc.AsyncIterator[CommitPage]:
        """Yield pages of commits that touched ``path``, newest first."""
        ...

    def stream_archive(
        self, repo: RepositoryRef, ref: str
    ) -> cabc.AsyncIterator[bytes]:
        """Yield the bytes of the tarball archive for ``ref``."""
        ...

    async def list_repositories(self) -> list[RepositoryRef]:
        """Return every repository visible to the credentials in use."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubRestConfig:
    """Configuration for the GitHub REST API client."""

    token: str
    api_url: str = "https://api.github.com"
    timeout_s: float = 5.0
    user_agent: str = "bothy/0.1"

    @classmethod
    def from_config(cls, config: BothyConfig) -> GitHubRestConfig:
        """Build client configuration from the process configuration."""
        if not config.github_token.strip():
            raise GitHubConfigError.missing_token()
        return cls(
            token=config.github_token,
            api_url=config.github_api_url,
            timeout_s=config.github_timeout_s,
        )


def _format_since(since: dt.datetime) -> str:
    if since.tzinfo is None:
        msg = "since must be timezone-aware"
        raise ValueError(msg)
    return since.astimezone(dt.UTC).isoformat().replace("+00:00", "Z")


def _commit_from_item(item: object) -> CommitReference:
    """Convert one entry of the commits listing into a CommitReference."""
    if not isinstance(item, dict):
        raise GitHubResponseShapeError.missing("commits[]")
    sha = item.get("sha")
    commit = item.get("commit")
    if not isinstance(sha, str) or not isinstance(commit, dict):
        raise GitHubResponseShapeError.missing("commits[].sha")
    committer = commit.get("committer")
    date = committer.get("date") if isinstance(committer, dict) else None
    if not isinstance(date, str):
        raise GitHubResponseShapeError.missing("commits[].commit.committer.date")
    return CommitReference(sha=sha, committed_at=parse_github_datetime(date))


def _repository_from_item(item: object) -> RepositoryRef:
    if not isinstance(item, dict):
        raise GitHubResponseShapeError.missing("repositories[]")
    owner = item.get("owner")
    login = owner.get("login") if isinstance(owner, dict) else None
    name = item.get("name")
    if not isinstance(login, str) or not isinstance(name, str):
        raise GitHubResponseShapeError.missing("repositories[].owner.login")
    return RepositoryRef(owner=login, name=name)


def _decode_content(payload: object) -> bytes:
    """Decode the base64 ``content`` of a contents API file response."""
    if not isinstance(payload, dict):
        raise GitHubResponseShapeError.missing("content")
    content = payload.get("content")
    if not isinstance(content, str):
        raise GitHubResponseShapeError.missing("content")
    encoding = payload.get("encoding", "base64")
    if encoding != "base64":
        raise GitHubResponseShapeError.missing("content (base64)")
    try:
        return base64.b64decode(content)
    except (binascii.Error, ValueError) as exc:
        raise GitHubResponseShapeError.missing("content (base64)") from exc


def _next_link(response: httpx.Response) -> str | None:
    """Return the ``rel="next"`` URL from the Link header, if any."""
    link = response.links.get("next")
    if not link:
        return None
    url = link.get("url")
    return url or None


class GitHubRestClient:
    """GitHub REST implementation of :class:`RepositoryHost`."""

    def __init__(
        self,
        config: GitHubRestConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
        download_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with the provided API configuration.

        ``download_client`` fetches archive bytes from the short-lived
        locations GitHub hands out; it carries no credentials.
        """
        if not config.token.strip():
            raise GitHubConfigError.empty_token()

        self._config = config
        self._api_url = config.api_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            follow_redirects=False,
            headers={
                "Authorization": f"Bearer {config.token}",
                "User-Agent": config.user_agent,
                "Accept": "application/vnd.github+json",
            },
        )
        self._owns_download_client = download_client is None
        self._download_client = download_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            follow_redirects=True,
            headers={"User-Agent": config.user_agent},
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()
        if self._owns_download_client:
            await self._download_client.aclose()

    def _repo_url(self, repo: RepositoryRef, *parts: str) -> str:
        quoted = [urllib.parse.quote(part, safe="/") for part in parts]
        return "/".join(
            [
                self._api_url,
                "repos",
                urllib.parse.quote(repo.owner, safe=""),
                urllib.parse.quote(repo.name, safe=""),
                *quoted,
            ]
        )

    async def _get(
        self, url: str, *, params: dict[str, str | int] | None = None
    ) -> httpx.Response:
        try:
            return await self._client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise GitHubAPIError.transport_error(exc) from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise GitHubAPIError.http_error(response.status_code, str(response.url))

    async def fetch_manifest(
        self, repo: RepositoryRef, path: str, *, ref: str | None = None
    ) -> bytes:
        """Return the manifest bytes at ``ref``.

        Raises
        ------
        ManifestNotFoundError
            If the file does not exist at that ref.
        GitHubAPIError
            For any other failed request.

        """
        params: dict[str, str | int] | None = {"ref": ref} if ref else None
        url = self._repo_url(repo, "contents", path)
        response = await self._get(url, params=params)
        if response.status_code == _HTTP_NOT_FOUND:
            raise ManifestNotFoundError(repo.slug, path, ref)
        self._raise_for_status(response)
        return _decode_content(response.json())

    async def has_manifest(self, repo: RepositoryRef, path: str) -> bool:
        """Probe for ``path`` at the default branch tip."""
        try:
            await self.fetch_manifest(repo, path)
        except ManifestNotFoundError:
            return False
        return True

    async def list_commit_pages(
        self,
        repo: RepositoryRef,
        path: str,
        *,
        since: dt.datetime | None = None,
    ) -> typ.AsyncIterator[CommitPage]:
        """Yield commit pages for ``path`` until no ``next`` link remains."""
        params: dict[str, str | int] | None = {"path": path, "per_page": PAGE_SIZE}
        if since is not None:
            params["since"] = _format_since(since)
        url: str | None = self._repo_url(repo, "commits")

        while url is not None:
            response = await self._get(url, params=params)
            self._raise_for_status(response)
            items = response.json()
            if not isinstance(items, list):
                raise GitHubResponseShapeError.missing("commits")
            url = _next_link(response)
            # The next link already carries every query parameter.
            params = None
            yield CommitPage(tuple(_commit_from_item(item) for item in items))

    async def archive_link(self, repo: RepositoryRef, ref: str) -> str:
        """Resolve the short-lived tarball download location for ``ref``."""
        response = await self._get(self._repo_url(repo, "tarball", ref))
        if response.status_code in _REDIRECT_STATUSES:
            location = response.headers.get("location")
            if not location:
                raise GitHubResponseShapeError.missing("Location")
            return location
        self._raise_for_status(response)
        raise GitHubResponseShapeError.missing("Location")

    async def stream_archive(
        self, repo: RepositoryRef, ref: str
    ) -> typ.AsyncIterator[bytes]:
        """Yield the tarball archive bytes for ``ref``."""
        location = await self.archive_link(repo, ref)
        try:
            async with self._download_client.stream("GET", location) as response:
                self._raise_for_status(response)
                async for chunk in response.aiter_bytes():
                    yield chunk
        except httpx.HTTPError as exc:
            raise GitHubAPIError.transport_error(exc) from exc

    async def list_repositories(self) -> list[RepositoryRef]:
        """Return every repository the token can see."""
        repos: list[RepositoryRef] = []
        url: str | None = f"{self._api_url}/user/repos"
        params: dict[str, str | int] | None = {"per_page": PAGE_SIZE}
        while url is not None:
            response = await self._get(url, params=params)
            self._raise_for_status(response)
            items = response.json()
            if not isinstance(items, list):
                raise GitHubResponseShapeError.missing("repositories")
            repos.extend(_repository_from_item(item) for item in items)
            url = _next_link(response)
            params = None
        return repos
