"""On-disk tarball cache keyed by package name and version.

Tarballs live at ``<artifact root>/tarball/<name>/<version>.tgz``. A file at
that path is always complete: downloads are streamed into a temporary file in
the same directory and renamed into place only once the stream finished
without error. Cached files are never re-downloaded or evicted.
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import contextlib
import dataclasses
import hashlib
import os
import tempfile
from pathlib import Path, PurePosixPath

from bothy.logging import get_logger, log_debug

from .errors import TarballDownloadError, TarballPathError

logger = get_logger(__name__)

TARBALL_DIR = "tarball"
_READ_CHUNK = 1024 * 1024
_FORBIDDEN_SEGMENTS = frozenset({"", ".", ".."})

type ArchiveSource = cabc.Callable[[], cabc.AsyncIterator[bytes]]


@dataclasses.dataclass(frozen=True, slots=True)
class CachedTarball:
    """A verified tarball in the cache."""

    path: Path
    relative_path: str
    shasum: str
    downloaded: bool


def sha1_file(path: Path) -> str:
    """Return the SHA-1 hex digest of the file at ``path``."""
    digest = hashlib.sha1()  # noqa: S324 - npm dist.shasum is SHA-1
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(_READ_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _name_segments(name: str, version: str) -> tuple[str, ...]:
    """Split a package name into path segments, rejecting unsafe names.

    Plain names map to one segment and scoped names (``@scope/pkg``) to two.
    """
    segments = tuple(name.split("/"))
    scoped = len(segments) == 2 and segments[0].startswith("@")  # noqa: PLR2004
    if len(segments) > 1 and not scoped:
        raise TarballPathError(name, version)
    for segment in (*segments, version):
        if segment in _FORBIDDEN_SEGMENTS or "\\" in segment or "/" in segment:
            raise TarballPathError(name, version)
    return segments


class TarballCache:
    """Cache of release archives under an artifact root directory."""

    def __init__(self, artifact_root: Path) -> None:
        """Bind the cache to ``artifact_root``; the directory may not exist yet."""
        self._root = artifact_root.resolve()

    @property
    def root(self) -> Path:
        """Return the absolute artifact root."""
        return self._root

    def relative_path(self, name: str, version: str) -> str:
        """Return ``tarball/<name>/<version>.tgz`` for a package identity."""
        segments = _name_segments(name, version)
        return str(PurePosixPath(TARBALL_DIR, *segments, f"{version}.tgz"))

    def path_for(self, name: str, version: str) -> Path:
        """Return the canonical absolute path for a package identity."""
        return self._root.joinpath(*self.relative_path(name, version).split("/"))

    async def lookup(self, name: str, version: str) -> Path | None:
        """Return the cached file for an identity, or None if not cached."""
        target = self.path_for(name, version)
        exists = await asyncio.to_thread(target.is_file)
        return target if exists else None

    async def resolve(
        self, name: str, version: str, source: ArchiveSource
    ) -> CachedTarball:
        """Return the cached tarball for an identity, downloading on a miss.

        ``source`` is only called on a miss. The SHA-1 checksum is computed
        on every call, including hits, because each served record embeds it.

        Raises
        ------
        TarballPathError
            If the identity cannot map to a path inside the artifact root.
        TarballDownloadError
            If the archive could not be streamed into place.

        """
        relative = self.relative_path(name, version)
        target = self.path_for(name, version)
        downloaded = False
        if not await asyncio.to_thread(target.is_file):
            await self._download(name, version, target, source)
            downloaded = True
        else:
            log_debug(logger, "Tarball cache hit for %s@%s", name, version)

        try:
            shasum = await asyncio.to_thread(sha1_file, target)
        except OSError as exc:
            reason = f"checksum failed: {exc}"
            raise TarballDownloadError(name, version, reason) from exc
        return CachedTarball(
            path=target,
            relative_path=relative,
            shasum=shasum,
            downloaded=downloaded,
        )

    async def _download(
        self, name: str, version: str, target: Path, source: ArchiveSource
    ) -> None:
        try:
            await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=target.parent, prefix=f".{target.name}.", suffix=".part"
            )
        except OSError as exc:
            raise TarballDownloadError(name, version, str(exc)) from exc

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                async for chunk in source():
                    await asyncio.to_thread(handle.write, chunk)
            # Concurrent downloads of one identity race here; rename is
            # atomic, so whichever lands last leaves a complete file.
            await asyncio.to_thread(os.replace, tmp_path, target)
        except Exception as exc:
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            reason = str(exc) or type(exc).__name__
            raise TarballDownloadError(name, version, reason) from exc
        except BaseException:
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            raise

        log_debug(logger, "Cached tarball %s@%s at %s", name, version, target)

