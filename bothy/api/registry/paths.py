"""Parse npm registry request paths.

npm requests scoped packages either as ``/@scope/name`` or with the slash
percent-encoded (``/@scope%2fname``); both arrive here already decoded.

>>> parse_registry_path("/@acme/widget/1.0.0")
VersionPath(name='@acme/widget', version='1.0.0')
>>> parse_registry_path("/tarball/widget/2.0.0.tgz")
TarballPath(name='widget', version='2.0.0')

"""

from __future__ import annotations

import dataclasses

from bothy.tarballs.cache import TARBALL_DIR

_TARBALL_SUFFIX = ".tgz"


@dataclasses.dataclass(frozen=True, slots=True)
class PackumentPath:
    """``GET /<name>``."""

    name: str


@dataclasses.dataclass(frozen=True, slots=True)
class VersionPath:
    """``GET /<name>/<version>``; ``version`` may also be a dist-tag."""

    name: str
    version: str


@dataclasses.dataclass(frozen=True, slots=True)
class TarballPath:
    """``GET /tarball/<name>/<version>.tgz``."""

    name: str
    version: str


type RegistryPath = PackumentPath | VersionPath | TarballPath


def _split_name(segments: list[str]) -> tuple[str, list[str]] | None:
    """Take a package name off the front of ``segments``."""
    if not segments or not segments[0]:
        return None
    if segments[0].startswith("@"):
        if len(segments) < 2 or not segments[1]:  # noqa: PLR2004
            return None
        return f"{segments[0]}/{segments[1]}", segments[2:]
    return segments[0], segments[1:]


def _parse_tarball(segments: list[str]) -> TarballPath | None:
    if not segments or not segments[-1].endswith(_TARBALL_SUFFIX):
        return None
    *name_segments, filename = segments
    version = filename.removesuffix(_TARBALL_SUFFIX)
    split = _split_name(name_segments)
    if split is None or split[1] or not version:
        return None
    return TarballPath(name=split[0], version=version)


def parse_registry_path(path: str) -> RegistryPath | None:
    """Classify a decoded request path, or return None if it names nothing."""
    segments = path.strip("/").split("/")
    if segments[0] == TARBALL_DIR:
        return _parse_tarball(segments[1:])

    split = _split_name(segments)
    if split is None:
        return None
    name, rest = split
    match rest:
        case []:
            return PackumentPath(name=name)
        case [version] if version:
            return VersionPath(name=name, version=version)
        case _:
            return None
