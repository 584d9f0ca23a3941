"""Package store for mirrored npm package versions.

The store is the source of truth the registry façade reads from. A record is
only written once its tarball is cached with a verified checksum, so readers
never observe a record pointing at a missing artefact.

Usage
-----
Store and query versions::

    from bothy.registry import PackageStore

    store = PackageStore(session_factory)
    await store.upsert(record)
    versions = await store.find_by_name("@acme/widget")

"""

from bothy.registry.errors import (
    PackageNotFoundError,
    PackageStoreError,
    RegistryError,
)
from bothy.registry.models import PackageVersionRecord, RepositoryState
from bothy.registry.packument import build_packument, version_document
from bothy.registry.storage import init_registry_storage
from bothy.registry.store import PackageStore, RepositoryStore
from bothy.registry.versions import is_valid_version, package_id, version_key

__all__ = [
    "PackageNotFoundError",
    "PackageStore",
    "PackageStoreError",
    "PackageVersionRecord",
    "RegistryError",
    "RepositoryState",
    "RepositoryStore",
    "build_packument",
    "init_registry_storage",
    "is_valid_version",
    "package_id",
    "version_document",
    "version_key",
]
