"""Dramatiq actor for out-of-process synchronisation runs.

Usage
-----
Queue a full run, or a run for one repository:

>>> sync_repositories_job.send()
>>> sync_repositories_job.send(repository="acme/widget")

The worker reads its configuration from ``BOTHY_*`` environment variables.
"""

from __future__ import annotations

import asyncio

import dramatiq

from bothy.config import BothyConfig
from bothy.factory import run_sync_once
from bothy.sync._broker import ensure_broker_configured
from bothy.sync.models import RepositoryStatus, SyncRunResult

ensure_broker_configured()


def summarise(result: SyncRunResult) -> dict[str, int]:
    """Return per-status repository counts for a finished run."""
    return {status.value: result.count(status) for status in RepositoryStatus}


@dramatiq.actor
def sync_repositories_job(repository: str | None = None) -> dict[str, int]:
    """Run one synchronisation and return repository counts by status.

    Parameters
    ----------
    repository
        Optional ``owner/name`` slug restricting the run to one repository.

    Raises
    ------
    ConfigError
        If the worker environment lacks required configuration.
    ValueError
        If ``repository`` is not a valid slug.

    """
    config = BothyConfig.from_env()
    result = asyncio.run(run_sync_once(config, repository=repository))
    return summarise(result)
