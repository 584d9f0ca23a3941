"""Incremental commit history walking with per-repository watermarks."""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import typing as typ

from bothy.config import WatermarkPolicy

from .models import Failed, SyncOptions
from .observability import SyncEventLogger

if typ.TYPE_CHECKING:
    import datetime as dt

    from bothy.github.client import RepositoryHost
    from bothy.github.models import CommitReference, RepositoryRef
    from bothy.registry.store import RepositoryStore

    from .models import CommitOutcome


@dataclasses.dataclass(frozen=True, slots=True)
class CommitWalk:
    """Commits enumerated for one repository since its watermark."""

    repo: RepositoryRef
    commits: tuple[CommitReference, ...]
    watermark: dt.datetime | None
    newest: dt.datetime | None


def _is_newer(commit: CommitReference, watermark: dt.datetime | None) -> bool:
    return watermark is None or commit.committed_at > watermark


class CommitHistoryWalker:
    """Enumerate manifest commits newer than a repository's watermark.

    The host's ``since`` filter is inclusive, so commits at exactly the
    watermark are dropped here. Under :attr:`WatermarkPolicy.EAGER` the
    watermark advances as soon as each page is enumerated; under
    :attr:`WatermarkPolicy.DEFERRED` it only advances through :meth:`settle`.
    """

    def __init__(
        self,
        host: RepositoryHost,
        repositories: RepositoryStore,
        *,
        options: SyncOptions | None = None,
        event_logger: SyncEventLogger | None = None,
    ) -> None:
        """Bind the walker to a host and the repository watermark store."""
        self._host = host
        self._repositories = repositories
        self._options = options or SyncOptions()
        self._events = event_logger or SyncEventLogger()

    async def walk(self, repo: RepositoryRef) -> CommitWalk:
        """Return every commit on ``repo`` newer than its watermark.

        Raises
        ------
        GitHubAPIError
            If any page of history cannot be fetched. Watermark moves made
            for earlier pages under the eager policy are kept.

        """
        state = await self._repositories.load_or_create(repo)
        self._events.log_repository_started(repo.slug, state.watermark)

        commits: list[CommitReference] = []
        seen: set[str] = set()
        newest: dt.datetime | None = None
        async for page_commits in self._iter_pages(repo, state.watermark):
            for commit in page_commits:
                if commit.sha in seen:
                    continue
                seen.add(commit.sha)
                commits.append(commit)
                if newest is None or commit.committed_at > newest:
                    newest = commit.committed_at

        return CommitWalk(
            repo=repo,
            commits=tuple(commits),
            watermark=state.watermark,
            newest=newest,
        )

    async def _iter_pages(
        self, repo: RepositoryRef, watermark: dt.datetime | None
    ) -> cabc.AsyncIterator[list[CommitReference]]:
        pages = self._host.list_commit_pages(
            repo, self._options.manifest_path, since=watermark
        )
        async for page in pages:
            fresh = [commit for commit in page.commits if _is_newer(commit, watermark)]
            eager = self._options.watermark_policy is WatermarkPolicy.EAGER
            # A page with fresh commits has its newest commit among them.
            if fresh and eager and page.newest is not None:
                await self._advance(repo.slug, page.newest)
            yield fresh

    async def settle(
        self, walk: CommitWalk, outcomes: cabc.Sequence[CommitOutcome]
    ) -> bool:
        """Advance a deferred watermark once a walk's commits are processed.

        Returns True when the watermark moved. Nothing happens under the
        eager policy, when the walk found no commits, or when any commit
        failed.
        """
        if self._options.watermark_policy is not WatermarkPolicy.DEFERRED:
            return False
        if walk.newest is None:
            return False
        if any(isinstance(outcome, Failed) for outcome in outcomes):
            return False
        return await self._advance(walk.repo.slug, walk.newest)

    async def _advance(self, slug: str, candidate: dt.datetime) -> bool:
        moved = await self._repositories.advance_watermark(slug, candidate)
        if moved:
            self._events.log_watermark_advanced(slug, candidate)
        return moved
