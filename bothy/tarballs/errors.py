"""Tarball cache errors."""

from __future__ import annotations


class TarballError(RuntimeError):
    """Base class for tarball cache failures."""


class TarballPathError(TarballError, ValueError):
    """Raised when a package name or version cannot map to a cache path."""

    def __init__(self, name: str, version: str) -> None:
        """Record the rejected identity."""
        self.name = name
        self.version = version
        super().__init__(f"Cannot cache tarball for {name!r} version {version!r}")


class TarballDownloadError(TarballError):
    """Raised when an archive could not be downloaded into the cache."""

    def __init__(self, name: str, version: str, reason: str) -> None:
        """Record the identity being downloaded and why it failed."""
        self.name = name
        self.version = version
        self.reason = reason
        super().__init__(f"Failed to cache {name}@{version}: {reason}")
