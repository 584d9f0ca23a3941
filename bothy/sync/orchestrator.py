"""Coordinate history walks and version extraction across repositories."""

from __future__ import annotations

import asyncio
import typing as typ

from bothy.common.concurrency import bounded_map
from bothy.common.time import utcnow
from bothy.github.models import RepositoryRef

from .models import (
    Failed,
    RepositorySyncResult,
    Skipped,
    SyncOptions,
    SyncRunResult,
)
from .observability import SyncEventLogger

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from bothy.github.client import RepositoryHost
    from bothy.github.models import CommitReference

    from .extractor import VersionExtractor
    from .history import CommitHistoryWalker
    from .models import CommitOutcome


class SyncOrchestrator:
    """Run the history walker and version extractor for many repositories.

    Failures are contained at the narrowest scope: a failed commit is
    counted in its repository's result, a failed repository is recorded in
    the run result, and only failing to enumerate the repositories at all
    fails the run.
    """

    def __init__(
        self,
        host: RepositoryHost,
        walker: CommitHistoryWalker,
        extractor: VersionExtractor,
        *,
        options: SyncOptions | None = None,
        event_logger: SyncEventLogger | None = None,
    ) -> None:
        """Bind the orchestrator to its collaborators."""
        self._host = host
        self._walker = walker
        self._extractor = extractor
        self._options = options or SyncOptions()
        self._events = event_logger or SyncEventLogger()

    @property
    def options(self) -> SyncOptions:
        """Return the options this orchestrator runs with."""
        return self._options

    def is_allowed(self, repo: RepositoryRef) -> bool:
        """Return whether ``repo`` may be synchronised under the allow-list."""
        allow_list = self._options.repositories
        if not allow_list:
            return True
        wanted = repo.slug.lower()
        return any(slug.lower() == wanted for slug in allow_list)

    async def _targets(self) -> list[RepositoryRef]:
        if self._options.repositories:
            return [
                RepositoryRef.from_slug(slug) for slug in self._options.repositories
            ]
        return await self._host.list_repositories()

    async def sync_all(self) -> SyncRunResult:
        """Synchronise every configured repository.

        Raises
        ------
        GitHubAPIError
            If the accessible repositories cannot be listed.

        """
        started_at = utcnow()
        try:
            targets = await self._targets()
        except Exception as exc:
            self._events.log_run_failed(exc, utcnow() - started_at)
            raise
        return await self._run(targets, started_at=started_at, scoped=False)

    async def sync_requested(self, repo: RepositoryRef) -> SyncRunResult:
        """Synchronise a single repository named by an external trigger.

        Repositories outside the allow-list are reported as skipped.
        """
        started_at = utcnow()
        if not self.is_allowed(repo):
            self._events.log_run_started(repositories=1, scoped=True)
            detail = "not in the configured repository allow-list"
            self._events.log_repository_skipped(repo.slug, detail)
            result = SyncRunResult(
                repositories=(
                    RepositorySyncResult.skipped_repository(repo.slug, detail),
                ),
                started_at=started_at,
                finished_at=utcnow(),
            )
            self._events.log_run_completed(result)
            return result
        return await self._run([repo], started_at=started_at, scoped=True)

    async def _run(
        self,
        targets: cabc.Sequence[RepositoryRef],
        *,
        started_at: dt.datetime,
        scoped: bool,
    ) -> SyncRunResult:
        self._events.log_run_started(repositories=len(targets), scoped=scoped)
        results = await bounded_map(
            targets, self._probe_and_sync, limit=self._options.concurrency
        )
        run = SyncRunResult(
            repositories=tuple(results),
            started_at=started_at,
            finished_at=utcnow(),
        )
        self._events.log_run_completed(run)
        return run

    async def _probe_and_sync(self, repo: RepositoryRef) -> RepositorySyncResult:
        started_at = utcnow()
        manifest_path = self._options.manifest_path
        try:
            present = await self._host.has_manifest(repo, manifest_path)
        except Exception as exc:  # noqa: BLE001 - recorded in the run result
            self._events.log_repository_failed(repo.slug, exc, utcnow() - started_at)
            return RepositorySyncResult.failed_repository(repo.slug, exc)
        if not present:
            detail = f"no {manifest_path} at the default branch"
            self._events.log_repository_skipped(repo.slug, detail)
            return RepositorySyncResult.skipped_repository(repo.slug, detail)
        return await self.sync_repository(repo)

    async def sync_repository(self, repo: RepositoryRef) -> RepositorySyncResult:
        """Walk ``repo`` since its watermark and materialise every new version.

        Never raises for repository-level failures; they are captured in the
        returned result.
        """
        started_at = utcnow()
        try:
            walk = await self._walker.walk(repo)
            outcomes = await self._extract_all(repo, walk.commits)
            await self._walker.settle(walk, outcomes)
        except Exception as exc:  # noqa: BLE001 - recorded in the run result
            self._events.log_repository_failed(repo.slug, exc, utcnow() - started_at)
            return RepositorySyncResult.failed_repository(repo.slug, exc)

        result = RepositorySyncResult.from_outcomes(repo.slug, outcomes)
        self._events.log_repository_completed(result, utcnow() - started_at)
        return result

    async def _extract_all(
        self, repo: RepositoryRef, commits: cabc.Sequence[CommitReference]
    ) -> list[CommitOutcome]:
        # Once a host error aborts the repository, commits not yet started
        # are not attempted; those already in flight run to completion.
        aborted = asyncio.Event()

        async def process(commit: CommitReference) -> CommitOutcome | None:
            if aborted.is_set():
                return None
            try:
                outcome = await self._extractor.extract(repo, commit)
            except BaseException:
                aborted.set()
                raise
            self._report(repo, outcome)
            return outcome

        outcomes = await bounded_map(commits, process, limit=self._options.concurrency)
        return [outcome for outcome in outcomes if outcome is not None]

    def _report(self, repo: RepositoryRef, outcome: CommitOutcome) -> None:
        match outcome:
            case Skipped(commit=commit, reason=reason):
                self._events.log_commit_skipped(repo.slug, commit.sha, reason)
            case Failed(commit=commit, error=error):
                self._events.log_commit_failed(repo.slug, commit.sha, error)
            case _:
                pass
