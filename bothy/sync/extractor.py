"""Turn a single manifest commit into a stored package version."""

from __future__ import annotations

import asyncio
import typing as typ
import weakref

import msgspec

from bothy.github.errors import GitHubResponseShapeError, ManifestNotFoundError
from bothy.registry.models import PackageVersionRecord
from bothy.registry.versions import is_valid_version, package_id

from .models import Accepted, Failed, SkipReason, Skipped, SyncOptions

if typ.TYPE_CHECKING:
    from bothy.github.client import RepositoryHost
    from bothy.github.models import CommitReference, RepositoryRef
    from bothy.registry.store import PackageStore
    from bothy.tarballs.cache import TarballCache

    from .models import CommitOutcome


def _decode_manifest(raw: bytes) -> dict[str, typ.Any] | None:
    try:
        manifest = msgspec.json.decode(raw)
    except msgspec.DecodeError:
        return None
    return manifest if isinstance(manifest, dict) else None


class VersionExtractor:
    """Materialise the package version described by one commit's manifest.

    Manifests that do not describe a publishable version, or that the host
    cannot return inline, yield :class:`Skipped`. Archive and store errors
    yield :class:`Failed`. Host errors while fetching the manifest propagate
    so the caller can abort the repository.
    """

    def __init__(
        self,
        host: RepositoryHost,
        cache: TarballCache,
        store: PackageStore,
        *,
        options: SyncOptions | None = None,
    ) -> None:
        """Bind the extractor to its host, tarball cache and package store."""
        self._host = host
        self._cache = cache
        self._store = store
        self._options = options or SyncOptions()
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _scope_matches(self, name: str) -> bool:
        scope = self._options.scope
        return scope is None or name.startswith(f"@{scope}")

    def _lock_for(self, identity: str) -> asyncio.Lock:
        lock = self._locks.get(identity)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[identity] = lock
        return lock

    async def extract(
        self, repo: RepositoryRef, commit: CommitReference
    ) -> CommitOutcome:
        """Process the manifest at ``commit`` and return its outcome.

        Raises
        ------
        GitHubAPIError
            If the manifest could not be fetched for a reason other than
            the file being absent at that commit.

        """
        try:
            raw = await self._host.fetch_manifest(
                repo, self._options.manifest_path, ref=commit.sha
            )
        except ManifestNotFoundError:
            return Skipped(commit, SkipReason.MANIFEST_MISSING)
        except GitHubResponseShapeError:
            # Oversized files and directories come back without inline content.
            return Skipped(commit, SkipReason.MANIFEST_UNPARSEABLE)

        manifest = _decode_manifest(raw)
        if manifest is None:
            return Skipped(commit, SkipReason.MANIFEST_UNPARSEABLE)

        version = manifest.get("version")
        if not is_valid_version(version):
            return Skipped(commit, SkipReason.INVALID_VERSION)

        name = manifest.get("name")
        if not isinstance(name, str) or not name:
            return Skipped(commit, SkipReason.INVALID_NAME)
        if not self._scope_matches(name):
            return Skipped(commit, SkipReason.SCOPE_MISMATCH)

        # Writers of one identity within this process are serialised; across
        # processes the store's last-writer-wins upsert applies.
        async with self._lock_for(package_id(name, version)):
            try:
                cached = await self._cache.resolve(
                    name,
                    version,
                    lambda: self._host.stream_archive(repo, commit.sha),
                )
                record = PackageVersionRecord(
                    name=name,
                    version=version,
                    manifest=manifest,
                    shasum=cached.shasum,
                    tarball_path=cached.relative_path,
                    repository_slug=repo.slug,
                    commit_sha=commit.sha,
                )
                await self._store.upsert(record)
            except Exception as exc:  # noqa: BLE001 - reported as a Failed outcome
                return Failed(commit, exc)

        return Accepted(commit, record, downloaded=cached.downloaded)
