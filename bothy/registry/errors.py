"""Errors raised by the package store."""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for package store errors."""


class PackageNotFoundError(RegistryError):
    """Raised when a package, or one version of it, is not stored."""

    def __init__(self, name: str, version: str | None = None) -> None:
        """Initialise with the missing package name and optional version."""
        self.name = name
        self.version = version
        label = name if version is None else f"{name}@{version}"
        super().__init__(f"Package not found: {label}")


class PackageStoreError(RegistryError):
    """Raised when the store cannot complete a write."""

    def __init__(self, package_id: str, reason: str) -> None:
        """Initialise with the record identity and failure reason."""
        self.package_id = package_id
        self.reason = reason
        super().__init__(f"Failed to store {package_id}: {reason}")
