"""Data transfer objects for the package store."""

from __future__ import annotations

import copy
import dataclasses
import typing as typ

from .versions import package_id

if typ.TYPE_CHECKING:
    import datetime as dt

    from .storage import PackageVersion


@dataclasses.dataclass(frozen=True, slots=True)
class PackageVersionRecord:
    """An immutable, fully materialised package version.

    ``tarball_path`` is relative to the artifact root and always names a
    complete file once the record exists in the store.
    """

    name: str
    version: str
    manifest: dict[str, typ.Any]
    shasum: str
    tarball_path: str
    repository_slug: str | None = None
    commit_sha: str | None = None

    @property
    def id(self) -> str:
        """Return the composite identity ``name#vversion``."""
        return package_id(self.name, self.version)

    def to_document(self) -> dict[str, typ.Any]:
        """Return the registry document served for this version.

        The manifest fields pass through unmodified, then the registry
        fields are layered on top.
        """
        document = copy.deepcopy(self.manifest)
        document["_shasum"] = self.shasum
        document["dist"] = {"shasum": self.shasum, "tarball": self.tarball_path}
        document["id"] = self.id
        document["dist-tags"] = {"latest": self.version}
        return document

    @classmethod
    def from_row(cls, row: PackageVersion) -> PackageVersionRecord:
        """Build a record from its ORM row."""
        return cls(
            name=row.name,
            version=row.version,
            manifest=dict(row.manifest),
            shasum=row.shasum,
            tarball_path=row.tarball_path,
            repository_slug=row.repository_slug,
            commit_sha=row.commit_sha,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class RepositoryState:
    """Sync cursor for one repository."""

    slug: str
    owner: str
    name: str
    watermark: dt.datetime | None = None
