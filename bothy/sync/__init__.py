"""Repository synchronisation engine.

The engine walks each repository's manifest history since its watermark,
turns every commit into an :class:`Accepted`, :class:`Skipped` or
:class:`Failed` outcome, and aggregates them into a :class:`SyncRunResult`.

Usage
-----
Trigger a background run from inside the façade::

    from bothy.sync import SyncTrigger

    trigger = SyncTrigger(orchestrator)
    trigger.trigger("acme/widget")

The Dramatiq actor lives in :mod:`bothy.sync.actor` and is imported only by
worker processes, since declaring it requires a configured broker.
"""

from bothy.sync.extractor import VersionExtractor
from bothy.sync.history import CommitHistoryWalker, CommitWalk
from bothy.sync.models import (
    Accepted,
    CommitOutcome,
    Failed,
    RepositoryStatus,
    RepositorySyncResult,
    SkipReason,
    Skipped,
    SyncOptions,
    SyncRunResult,
)
from bothy.sync.observability import (
    ErrorCategory,
    SyncEventLogger,
    SyncEventType,
    categorize_error,
)
from bothy.sync.orchestrator import SyncOrchestrator
from bothy.sync.trigger import SyncTrigger

__all__ = [
    "Accepted",
    "CommitHistoryWalker",
    "CommitOutcome",
    "CommitWalk",
    "ErrorCategory",
    "Failed",
    "RepositoryStatus",
    "RepositorySyncResult",
    "SkipReason",
    "Skipped",
    "SyncEventLogger",
    "SyncEventType",
    "SyncOptions",
    "SyncOrchestrator",
    "SyncRunResult",
    "SyncTrigger",
    "VersionExtractor",
    "categorize_error",
]
