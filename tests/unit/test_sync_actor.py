"""Unit tests for the Dramatiq synchronisation actor."""

from __future__ import annotations

import datetime as dt
import typing as typ

import dramatiq
import pytest
from dramatiq.brokers.stub import StubBroker

from bothy.config import ConfigError
from bothy.sync import actor as actor_module
from bothy.sync.actor import summarise, sync_repositories_job
from bothy.sync.models import RepositoryStatus, RepositorySyncResult, SyncRunResult

if typ.TYPE_CHECKING:
    from bothy.config import BothyConfig

_START = dt.datetime(2024, 1, 1, tzinfo=dt.UTC)


def _result(*statuses: RepositoryStatus) -> SyncRunResult:
    return SyncRunResult(
        repositories=tuple(
            RepositorySyncResult(repo_slug=f"acme/r{index}", status=status)
            for index, status in enumerate(statuses)
        ),
        started_at=_START,
        finished_at=_START,
    )


def test_summarise_counts_every_status() -> None:
    """Every status appears in the summary, including empty ones."""
    summary = summarise(
        _result(
            RepositoryStatus.SYNCED,
            RepositoryStatus.SYNCED,
            RepositoryStatus.FAILED,
        )
    )

    assert summary == {"synced": 2, "partial": 0, "skipped": 0, "failed": 1}


def test_actor_runs_one_sync(monkeypatch: pytest.MonkeyPatch) -> None:
    """Calling the actor directly runs a sync with environment config."""
    calls: list[tuple[BothyConfig, str | None]] = []

    async def fake_run(
        config: BothyConfig, *, repository: str | None = None
    ) -> SyncRunResult:
        calls.append((config, repository))
        return _result(RepositoryStatus.PARTIAL)

    monkeypatch.setenv("BOTHY_GITHUB_TOKEN", "ghp_worker")
    monkeypatch.setattr(actor_module, "run_sync_once", fake_run)

    summary = sync_repositories_job("acme/widget")

    assert summary["partial"] == 1
    ((config, repository),) = calls
    assert config.github_token == "ghp_worker"
    assert repository == "acme/widget"


def test_actor_requires_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    """A worker without a token fails the job."""
    monkeypatch.delenv("BOTHY_GITHUB_TOKEN", raising=False)

    with pytest.raises(ConfigError):
        sync_repositories_job()


def test_send_enqueues_on_the_configured_broker() -> None:
    """Messages carry the repository keyword to the worker."""
    broker = dramatiq.get_broker()
    if not isinstance(broker, StubBroker):
        pytest.skip("requires the stub broker")
    queue_name = sync_repositories_job.queue_name

    message = sync_repositories_job.send(repository="acme/widget")
    try:
        assert message.kwargs == {"repository": "acme/widget"}
        assert broker.queues[queue_name].qsize() == 1
    finally:
        broker.flush(queue_name)
