"""Assemble npm registry documents from stored package versions."""

from __future__ import annotations

import copy
import typing as typ

from .errors import PackageNotFoundError
from .versions import version_key

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import PackageVersionRecord


def version_document(
    record: PackageVersionRecord, *, tarball_base: str
) -> dict[str, typ.Any]:
    """Return the served document for one version with an absolute tarball URL."""
    document = record.to_document()
    document["dist"]["tarball"] = f"{tarball_base.rstrip('/')}/{record.tarball_path}"
    return document


def build_packument(
    name: str,
    records: cabc.Sequence[PackageVersionRecord],
    *,
    tarball_base: str,
) -> dict[str, typ.Any]:
    """Return the package document npm fetches for ``name``.

    The top level mirrors the highest version's document and ``versions``
    maps every stored version to its own document.

    Raises
    ------
    PackageNotFoundError
        If ``records`` is empty.

    """
    if not records:
        raise PackageNotFoundError(name)

    ordered = sorted(records, key=lambda record: version_key(record.version))
    versions = {
        record.version: version_document(record, tarball_base=tarball_base)
        for record in ordered
    }
    packument = copy.deepcopy(versions[ordered[-1].version])
    packument["versions"] = versions
    return packument
