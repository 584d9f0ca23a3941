"""Content-addressed cache of release tarballs."""

from __future__ import annotations

from .cache import ArchiveSource, CachedTarball, TarballCache, sha1_file
from .errors import TarballDownloadError, TarballError, TarballPathError

__all__ = [
    "ArchiveSource",
    "CachedTarball",
    "TarballCache",
    "TarballDownloadError",
    "TarballError",
    "TarballPathError",
    "sha1_file",
]
