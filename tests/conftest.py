"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from bothy.registry import PackageStore, RepositoryStore, init_registry_storage
from bothy.tarballs import TarballCache
from tests.helpers import run_async
from tests.helpers.engine import SyncHarness, build_harness
from tests.helpers.fake_host import FakeRepositoryHost

if typ.TYPE_CHECKING:
    from pathlib import Path


async def _setup_sqlite(tmp_path: Path) -> AsyncEngine:
    """Create a SQLite engine and initialise the registry tables."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'bothy_test.db'}")
    try:
        await init_registry_storage(engine)
    except Exception:
        await engine.dispose()
        raise
    return engine


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> typ.AsyncIterator[AsyncEngine]:
    """Yield an initialised engine backed by a temporary SQLite file."""
    engine = await _setup_sqlite(tmp_path)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def nullpool_engine(tmp_path: Path) -> typ.Iterator[AsyncEngine]:
    """Yield an initialised engine usable from several event loops.

    Synchronous tests that drive coroutines through separate
    ``asyncio.run`` calls cannot share pooled aiosqlite connections.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'bothy_loops.db'}", poolclass=NullPool
    )
    run_async(init_registry_storage(engine))
    try:
        yield engine
    finally:
        run_async(engine.dispose())


@pytest_asyncio.fixture
async def session_factory(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Return a session factory bound to the test engine."""
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def package_store(session_factory: async_sessionmaker[AsyncSession]) -> PackageStore:
    """Return a package store over the test database."""
    return PackageStore(session_factory)


@pytest.fixture
def repository_store(
    session_factory: async_sessionmaker[AsyncSession],
) -> RepositoryStore:
    """Return a repository watermark store over the test database."""
    return RepositoryStore(session_factory)


@pytest.fixture
def tarball_cache(tmp_path: Path) -> TarballCache:
    """Return a tarball cache rooted in a temporary artifact directory."""
    return TarballCache(tmp_path / "public")


@pytest.fixture
def fake_host() -> FakeRepositoryHost:
    """Return an empty in-memory repository host."""
    return FakeRepositoryHost()


@pytest.fixture
def harness(
    fake_host: FakeRepositoryHost,
    package_store: PackageStore,
    repository_store: RepositoryStore,
    tarball_cache: TarballCache,
) -> SyncHarness:
    """Return the sync engine wired with default options."""
    return build_harness(fake_host, package_store, repository_store, tarball_cache)
