"""Fire-and-forget synchronisation trigger used by the registry façade."""

from __future__ import annotations

import asyncio
import typing as typ

from bothy.github.models import RepositoryRef
from bothy.logging import get_logger, log_exception, log_info

if typ.TYPE_CHECKING:
    from .models import SyncRunResult
    from .orchestrator import SyncOrchestrator

logger = get_logger(__name__)


class SyncTrigger:
    """Schedule synchronisation runs without blocking the caller.

    Runs are not serialised: triggering while a run is in flight starts an
    independent run. The trigger keeps a strong reference to every task
    until it finishes so the event loop cannot collect it mid-run.
    """

    def __init__(self, orchestrator: SyncOrchestrator) -> None:
        """Bind the trigger to the orchestrator it schedules."""
        self._orchestrator = orchestrator
        self._tasks: set[asyncio.Task[SyncRunResult]] = set()

    @property
    def in_flight(self) -> int:
        """Return the number of runs that have not finished yet."""
        return len(self._tasks)

    def trigger(self, repository: str | None = None) -> asyncio.Task[SyncRunResult]:
        """Start a run for every repository, or for one ``owner/name`` slug.

        Must be called from a running event loop.

        Raises
        ------
        ValueError
            If ``repository`` is not a valid ``owner/name`` slug.

        """
        if repository is None:
            coro = self._orchestrator.sync_all()
            name = "bothy-sync-all"
        else:
            repo = RepositoryRef.from_slug(repository)
            coro = self._orchestrator.sync_requested(repo)
            name = f"bothy-sync-{repo.slug}"

        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        log_info(logger, "Triggered synchronisation run %s", name)
        return task

    def _finished(self, task: asyncio.Task[SyncRunResult]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            log_info(logger, "Synchronisation run %s cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            log_exception(
                logger, f"Synchronisation run {task.get_name()} failed", exc
            )

    async def drain(self) -> None:
        """Wait for every in-flight run to finish."""
        while self._tasks:
            await asyncio.gather(*tuple(self._tasks), return_exceptions=True)
