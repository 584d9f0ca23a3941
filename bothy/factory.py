"""Assemble the sync engine's dependency graph from configuration.

Every long-lived collaborator (database engine, host client, tarball cache,
stores) is built once here and passed explicitly to the components that use
it. The registry façade, the ``bothy-sync`` CLI and the Dramatiq actor all go
through :func:`build_sync_dependencies`.

Usage
-----
Run one synchronisation in the foreground::

    from bothy.config import BothyConfig
    from bothy.factory import run_sync_once

    result = await run_sync_once(BothyConfig.from_env())

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from bothy.github.client import GitHubRestClient, GitHubRestConfig
from bothy.github.models import RepositoryRef
from bothy.registry.storage import init_registry_storage
from bothy.registry.store import PackageStore, RepositoryStore
from bothy.sync.extractor import VersionExtractor
from bothy.sync.history import CommitHistoryWalker
from bothy.sync.models import SyncOptions
from bothy.sync.observability import SyncEventLogger
from bothy.sync.orchestrator import SyncOrchestrator
from bothy.tarballs.cache import TarballCache

if typ.TYPE_CHECKING:
    from bothy.config import BothyConfig
    from bothy.github.client import RepositoryHost
    from bothy.sync.models import SyncRunResult

__all__ = [
    "SyncDependencies",
    "build_sync_dependencies",
    "create_store_engine",
    "run_sync_once",
]

type SessionFactory = async_sessionmaker[AsyncSession]


@dc.dataclass(slots=True)
class SyncDependencies:
    """Long-lived collaborators shared by the sync engine and the façade.

    Attributes
    ----------
    engine
        Async engine backing both stores.
    host
        Repository host client; closed by :meth:`aclose` only when it was
        built here.
    orchestrator
        Entry point for synchronisation runs.

    """

    config: BothyConfig
    engine: AsyncEngine
    session_factory: SessionFactory
    host: RepositoryHost
    cache: TarballCache
    packages: PackageStore
    repositories: RepositoryStore
    orchestrator: SyncOrchestrator
    owns_host: bool = False

    async def init_storage(self) -> None:
        """Create the package and repository tables if they are missing."""
        await init_registry_storage(self.engine)

    async def aclose(self) -> None:
        """Close the host client (when owned) and dispose of the engine."""
        if self.owns_host and isinstance(self.host, GitHubRestClient):
            await self.host.aclose()
        await self.engine.dispose()


def create_store_engine(database_url: str) -> AsyncEngine:
    """Create an async engine, making the directory of a SQLite file if needed."""
    url = make_url(database_url)
    database = url.database
    if url.get_backend_name() == "sqlite" and database not in {None, "", ":memory:"}:
        Path(typ.cast("str", database)).parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(database_url)


def build_sync_dependencies(
    config: BothyConfig,
    *,
    host: RepositoryHost | None = None,
    engine: AsyncEngine | None = None,
) -> SyncDependencies:
    """Build the dependency graph for ``config``.

    Parameters
    ----------
    config
        Process configuration.
    host
        Optional repository host; a :class:`GitHubRestClient` is created
        from ``config`` when omitted.
    engine
        Optional pre-built engine; one is created from
        ``config.database_url`` when omitted.

    """
    owns_host = host is None
    resolved_host: RepositoryHost = host or GitHubRestClient(
        GitHubRestConfig.from_config(config)
    )
    resolved_engine = engine or create_store_engine(config.database_url)
    session_factory = async_sessionmaker(resolved_engine, expire_on_commit=False)

    options = SyncOptions.from_config(config)
    event_logger = SyncEventLogger()
    cache = TarballCache(config.artifact_root)
    packages = PackageStore(session_factory)
    repositories = RepositoryStore(session_factory)
    walker = CommitHistoryWalker(
        resolved_host, repositories, options=options, event_logger=event_logger
    )
    extractor = VersionExtractor(resolved_host, cache, packages, options=options)
    orchestrator = SyncOrchestrator(
        resolved_host,
        walker,
        extractor,
        options=options,
        event_logger=event_logger,
    )
    return SyncDependencies(
        config=config,
        engine=resolved_engine,
        session_factory=session_factory,
        host=resolved_host,
        cache=cache,
        packages=packages,
        repositories=repositories,
        orchestrator=orchestrator,
        owns_host=owns_host,
    )


async def run_sync_once(
    config: BothyConfig,
    *,
    repository: str | None = None,
    host: RepositoryHost | None = None,
) -> SyncRunResult:
    """Build dependencies, run one synchronisation and release resources.

    Raises
    ------
    ValueError
        If ``repository`` is not a valid ``owner/name`` slug.

    """
    target = RepositoryRef.from_slug(repository) if repository else None
    deps = build_sync_dependencies(config, host=host)
    try:
        await deps.init_storage()
        if target is None:
            return await deps.orchestrator.sync_all()
        return await deps.orchestrator.sync_requested(target)
    finally:
        await deps.aclose()
