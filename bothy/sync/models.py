"""Outcome and option types for repository synchronisation."""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

from bothy.config import WatermarkPolicy

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from bothy.config import BothyConfig
    from bothy.github.models import CommitReference
    from bothy.registry.models import PackageVersionRecord


@dataclasses.dataclass(frozen=True, slots=True)
class SyncOptions:
    """Knobs shared by the walker, extractor and orchestrator."""

    manifest_path: str = "package.json"
    scope: str | None = None
    repositories: tuple[str, ...] = ()
    concurrency: int = 5
    watermark_policy: WatermarkPolicy = WatermarkPolicy.EAGER

    @classmethod
    def from_config(cls, config: BothyConfig) -> SyncOptions:
        """Project the sync-related fields of the process configuration."""
        return cls(
            manifest_path=config.manifest_path,
            scope=config.scope,
            repositories=config.repositories,
            concurrency=config.concurrency,
            watermark_policy=config.watermark_policy,
        )


class SkipReason(enum.StrEnum):
    """Why a commit did not produce a package version."""

    MANIFEST_MISSING = "manifest_missing"
    MANIFEST_UNPARSEABLE = "manifest_unparseable"
    INVALID_VERSION = "invalid_version"
    INVALID_NAME = "invalid_name"
    SCOPE_MISMATCH = "scope_mismatch"


@dataclasses.dataclass(frozen=True, slots=True)
class Accepted:
    """The commit's manifest was materialised into the package store."""

    commit: CommitReference
    record: PackageVersionRecord
    downloaded: bool


@dataclasses.dataclass(frozen=True, slots=True)
class Skipped:
    """The commit does not describe a publishable package version."""

    commit: CommitReference
    reason: SkipReason


@dataclasses.dataclass(frozen=True, slots=True)
class Failed:
    """Materialising the commit's package version failed."""

    commit: CommitReference
    error: Exception


type CommitOutcome = Accepted | Skipped | Failed


class RepositoryStatus(enum.StrEnum):
    """Outcome of synchronising one repository."""

    SYNCED = "synced"
    PARTIAL = "partial"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclasses.dataclass(frozen=True, slots=True)
class RepositorySyncResult:
    """Summary of one repository within a synchronisation run."""

    repo_slug: str
    status: RepositoryStatus
    commits_seen: int = 0
    accepted: int = 0
    skipped: int = 0
    failed: int = 0
    error: BaseException | None = None
    detail: str | None = None

    @classmethod
    def from_outcomes(
        cls, repo_slug: str, outcomes: cabc.Sequence[CommitOutcome]
    ) -> RepositorySyncResult:
        """Count commit outcomes; any failed commit makes the result partial."""
        accepted = sum(isinstance(outcome, Accepted) for outcome in outcomes)
        skipped = sum(isinstance(outcome, Skipped) for outcome in outcomes)
        failed = sum(isinstance(outcome, Failed) for outcome in outcomes)
        return cls(
            repo_slug=repo_slug,
            status=RepositoryStatus.PARTIAL if failed else RepositoryStatus.SYNCED,
            commits_seen=len(outcomes),
            accepted=accepted,
            skipped=skipped,
            failed=failed,
        )

    @classmethod
    def skipped_repository(cls, repo_slug: str, detail: str) -> RepositorySyncResult:
        """Return a result for a repository that was not walked."""
        return cls(repo_slug=repo_slug, status=RepositoryStatus.SKIPPED, detail=detail)

    @classmethod
    def failed_repository(
        cls, repo_slug: str, error: BaseException
    ) -> RepositorySyncResult:
        """Return a result for a repository whose sync attempt was aborted."""
        return cls(
            repo_slug=repo_slug,
            status=RepositoryStatus.FAILED,
            error=error,
            detail=str(error),
        )


@dataclasses.dataclass(frozen=True, slots=True)
class SyncRunResult:
    """Aggregate of every repository processed by one run."""

    repositories: tuple[RepositorySyncResult, ...]
    started_at: dt.datetime
    finished_at: dt.datetime

    def count(self, status: RepositoryStatus) -> int:
        """Return how many repositories ended with ``status``."""
        return sum(result.status is status for result in self.repositories)

    @property
    def ok(self) -> bool:
        """Return True when no repository failed or partially failed."""
        return not any(
            result.status in {RepositoryStatus.FAILED, RepositoryStatus.PARTIAL}
            for result in self.repositories
        )

    @property
    def duration(self) -> dt.timedelta:
        """Return the wall-clock duration of the run."""
        return self.finished_at - self.started_at
