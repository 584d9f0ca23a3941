"""Package store and repository watermark store.

Both stores wrap an async SQLAlchemy session factory that is created once at
process start and passed in explicitly.
"""

from __future__ import annotations

import typing as typ

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError

from bothy.common.time import utcnow

from .errors import PackageNotFoundError, PackageStoreError
from .models import PackageVersionRecord, RepositoryState
from .storage import PackageVersion, Repository
from .versions import package_id, version_key

if typ.TYPE_CHECKING:
    import datetime as dt

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from bothy.github.models import RepositoryRef

    type SessionFactory = async_sessionmaker[AsyncSession]

_UPSERT_ATTEMPTS = 2


def _row_from_record(record: PackageVersionRecord) -> PackageVersion:
    return PackageVersion(
        id=record.id,
        name=record.name,
        version=record.version,
        manifest=record.manifest,
        shasum=record.shasum,
        tarball_path=record.tarball_path,
        repository_slug=record.repository_slug,
        commit_sha=record.commit_sha,
        stored_at=utcnow(),
    )


class PackageStore:
    """Durable mapping from package identity to version records."""

    def __init__(self, session_factory: SessionFactory) -> None:
        """Bind the store to a session factory."""
        self._session_factory = session_factory

    async def upsert(self, record: PackageVersionRecord) -> None:
        """Insert ``record``, replacing any record with the same identity.

        The replacement runs in one transaction. A concurrent writer that
        inserts the same identity between our delete and insert surfaces as
        an ``IntegrityError``; the replacement is retried once and the last
        writer wins.

        Raises
        ------
        PackageStoreError
            If the identity keeps conflicting after the retry.

        """
        for attempt in range(1, _UPSERT_ATTEMPTS + 1):
            try:
                await self._replace(record)
            except IntegrityError as exc:
                if attempt == _UPSERT_ATTEMPTS:
                    raise PackageStoreError(
                        record.id, "concurrent write conflict"
                    ) from exc
            else:
                return

    async def _replace(self, record: PackageVersionRecord) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(
                delete(PackageVersion).where(PackageVersion.id == record.id)
            )
            session.add(_row_from_record(record))

    async def find_by_name(self, name: str) -> list[PackageVersionRecord]:
        """Return every stored version of ``name``, lowest version first."""
        async with self._session_factory() as session:
            rows = (
                await session.scalars(
                    select(PackageVersion).where(PackageVersion.name == name)
                )
            ).all()
        records = [PackageVersionRecord.from_row(row) for row in rows]
        return sorted(records, key=lambda record: version_key(record.version))

    async def get(self, name: str, version: str) -> PackageVersionRecord:
        """Return one version of a package.

        Raises
        ------
        PackageNotFoundError
            If that version is not stored.

        """
        async with self._session_factory() as session:
            row = await session.get(PackageVersion, package_id(name, version))
        if row is None:
            raise PackageNotFoundError(name, version)
        return PackageVersionRecord.from_row(row)

    async def list_names(self) -> list[str]:
        """Return the distinct stored package names in alphabetical order."""
        async with self._session_factory() as session:
            names = await session.scalars(
                select(PackageVersion.name).distinct().order_by(PackageVersion.name)
            )
            return list(names)


class RepositoryStore:
    """Per-repository sync state, created lazily on first sync attempt."""

    def __init__(self, session_factory: SessionFactory) -> None:
        """Bind the store to a session factory."""
        self._session_factory = session_factory

    async def get(self, slug: str) -> RepositoryState | None:
        """Return the state for ``slug`` or None if it was never synced."""
        async with self._session_factory() as session:
            row = await session.scalar(
                select(Repository).where(Repository.slug == slug)
            )
            return _state_from_row(row) if row is not None else None

    async def load_or_create(self, repo: RepositoryRef) -> RepositoryState:
        """Return the state for ``repo``, creating an empty record if absent."""
        async with self._session_factory() as session:
            existing = await session.scalar(
                select(Repository).where(Repository.slug == repo.slug)
            )
            if existing is not None:
                return _state_from_row(existing)

            row = Repository(slug=repo.slug, owner=repo.owner, name=repo.name)
            session.add(row)
            try:
                await session.commit()
            except IntegrityError:
                # A concurrent run created the record first.
                await session.rollback()
                existing = await session.scalar(
                    select(Repository).where(Repository.slug == repo.slug)
                )
                if existing is not None:
                    return _state_from_row(existing)
                raise
            await session.refresh(row)
            return _state_from_row(row)

    async def advance_watermark(self, slug: str, candidate: dt.datetime) -> bool:
        """Move the watermark forward to ``candidate``.

        The update is conditional on the stored value being older, so the
        watermark never decreases. Returns True when the watermark moved.
        """
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                update(Repository)
                .where(
                    Repository.slug == slug,
                    or_(
                        Repository.watermark.is_(None),
                        Repository.watermark < candidate,
                    ),
                )
                .values(watermark=candidate, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            return bool(getattr(result, "rowcount", 0))


def _state_from_row(row: Repository) -> RepositoryState:
    return RepositoryState(
        slug=row.slug,
        owner=row.owner,
        name=row.name,
        watermark=row.watermark,
    )
