"""Structured logging and error categorisation for synchronisation runs.

Every event is a single pre-formatted line ``[<event>] key=value ...`` so log
aggregators can parse run, repository and commit level telemetry without a
dedicated metrics pipeline.

Usage
-----
>>> event_logger = SyncEventLogger()
>>> event_logger.log_repository_skipped("acme/widget", "no package.json")

"""

from __future__ import annotations

import enum
import typing as typ

from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)

from bothy.config import ConfigError
from bothy.github.errors import (
    GitHubAPIError,
    GitHubConfigError,
    GitHubResponseShapeError,
    ManifestNotFoundError,
)
from bothy.logging import get_logger, log_error, log_info, log_warning
from bothy.registry.errors import PackageStoreError
from bothy.tarballs.errors import TarballError

if typ.TYPE_CHECKING:
    import datetime as dt

    from .models import RepositorySyncResult, SkipReason, SyncRunResult

logger = get_logger(__name__)

# HTTP status code threshold for server errors (5xx)
_HTTP_SERVER_ERROR_THRESHOLD = 500
_HTTP_RATE_LIMITED = frozenset({403, 429})


class SyncEventType(enum.StrEnum):
    """Structured log event types for synchronisation."""

    RUN_STARTED = "sync.run.started"
    RUN_COMPLETED = "sync.run.completed"
    RUN_FAILED = "sync.run.failed"
    REPOSITORY_STARTED = "sync.repository.started"
    REPOSITORY_SKIPPED = "sync.repository.skipped"
    REPOSITORY_COMPLETED = "sync.repository.completed"
    REPOSITORY_FAILED = "sync.repository.failed"
    COMMIT_SKIPPED = "sync.commit.skipped"
    COMMIT_FAILED = "sync.commit.failed"
    WATERMARK_ADVANCED = "sync.watermark.advanced"


class ErrorCategory(enum.StrEnum):
    """Categories for error classification in alerts."""

    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    SCHEMA_DRIFT = "schema_drift"
    CONFIGURATION = "configuration"
    ARTIFACT = "artifact"
    DATABASE_CONNECTIVITY = "database_connectivity"
    DATA_INTEGRITY = "data_integrity"
    DATABASE_ERROR = "database_error"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (ManifestNotFoundError, ErrorCategory.CLIENT_ERROR),
    (GitHubResponseShapeError, ErrorCategory.SCHEMA_DRIFT),
    (GitHubConfigError, ErrorCategory.CONFIGURATION),
    (ConfigError, ErrorCategory.CONFIGURATION),
    (TarballError, ErrorCategory.ARTIFACT),
    (PackageStoreError, ErrorCategory.DATA_INTEGRITY),
    (OperationalError, ErrorCategory.DATABASE_CONNECTIVITY),
    (InterfaceError, ErrorCategory.DATABASE_CONNECTIVITY),
    (IntegrityError, ErrorCategory.DATA_INTEGRITY),
    (SQLAlchemyError, ErrorCategory.DATABASE_ERROR),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for alerting purposes.

    Server errors, rate limiting and transport failures from GitHub are
    transient; other GitHub HTTP errors are client errors.
    """
    if isinstance(exc, GitHubAPIError):
        status = exc.status_code
        if (
            status is None
            or status >= _HTTP_SERVER_ERROR_THRESHOLD
            or status in _HTTP_RATE_LIMITED
        ):
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


def _iso(value: dt.datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class SyncEventLogger:
    """Emit structured synchronisation events via femtologging.

    Success is logged at INFO, skipped repositories and commits at INFO or
    WARNING, and failures at ERROR with the exception attached.
    """

    def log_run_started(self, *, repositories: int, scoped: bool) -> None:
        """Log the start of a run over ``repositories`` repositories."""
        log_info(
            logger,
            "[%s] repositories=%d scoped=%s",
            SyncEventType.RUN_STARTED,
            repositories,
            scoped,
        )

    def log_run_completed(self, result: SyncRunResult) -> None:
        """Log run completion with per-status repository counts."""
        from .models import RepositoryStatus

        log_info(
            logger,
            "[%s] duration_seconds=%.3f synced=%d partial=%d skipped=%d failed=%d",
            SyncEventType.RUN_COMPLETED,
            result.duration.total_seconds(),
            result.count(RepositoryStatus.SYNCED),
            result.count(RepositoryStatus.PARTIAL),
            result.count(RepositoryStatus.SKIPPED),
            result.count(RepositoryStatus.FAILED),
        )

    def log_run_failed(self, error: BaseException, duration: dt.timedelta) -> None:
        """Log a run that could not enumerate its repositories."""
        log_error(
            logger,
            "[%s] duration_seconds=%.3f error_type=%s error_category=%s "
            "error_message=%s",
            SyncEventType.RUN_FAILED,
            duration.total_seconds(),
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )

    def log_repository_started(
        self, repo_slug: str, watermark: dt.datetime | None
    ) -> None:
        """Log the start of a repository walk."""
        log_info(
            logger,
            "[%s] repo_slug=%s watermark=%s",
            SyncEventType.REPOSITORY_STARTED,
            repo_slug,
            _iso(watermark),
        )

    def log_repository_skipped(self, repo_slug: str, detail: str) -> None:
        """Log a repository that was not walked."""
        log_info(
            logger,
            "[%s] repo_slug=%s detail=%s",
            SyncEventType.REPOSITORY_SKIPPED,
            repo_slug,
            detail,
        )

    def log_repository_completed(
        self, result: RepositorySyncResult, duration: dt.timedelta
    ) -> None:
        """Log a completed repository walk with commit outcome counts."""
        log_info(
            logger,
            "[%s] repo_slug=%s status=%s duration_seconds=%.3f commits_seen=%d "
            "accepted=%d skipped=%d failed=%d",
            SyncEventType.REPOSITORY_COMPLETED,
            result.repo_slug,
            result.status,
            duration.total_seconds(),
            result.commits_seen,
            result.accepted,
            result.skipped,
            result.failed,
        )

    def log_repository_failed(
        self, repo_slug: str, error: BaseException, duration: dt.timedelta
    ) -> None:
        """Log an aborted repository sync attempt with error categorisation."""
        log_error(
            logger,
            "[%s] repo_slug=%s duration_seconds=%.3f error_type=%s "
            "error_category=%s error_message=%s",
            SyncEventType.REPOSITORY_FAILED,
            repo_slug,
            duration.total_seconds(),
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )

    def log_commit_skipped(self, repo_slug: str, sha: str, reason: SkipReason) -> None:
        """Log a commit whose manifest is not a publishable version."""
        log_info(
            logger,
            "[%s] repo_slug=%s sha=%s reason=%s",
            SyncEventType.COMMIT_SKIPPED,
            repo_slug,
            sha,
            reason,
        )

    def log_commit_failed(self, repo_slug: str, sha: str, error: BaseException) -> None:
        """Log a commit whose package version could not be materialised."""
        log_warning(
            logger,
            "[%s] repo_slug=%s sha=%s error_type=%s error_category=%s "
            "error_message=%s",
            SyncEventType.COMMIT_FAILED,
            repo_slug,
            sha,
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )

    def log_watermark_advanced(self, repo_slug: str, watermark: dt.datetime) -> None:
        """Log a forward move of a repository watermark."""
        log_info(
            logger,
            "[%s] repo_slug=%s watermark=%s",
            SyncEventType.WATERMARK_ADVANCED,
            repo_slug,
            watermark.isoformat(),
        )
