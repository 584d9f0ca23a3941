"""Falcon sink serving mirrored packages from the store and tarball cache.

Registry paths contain package names with an optional ``@scope/`` prefix, so
they cannot be expressed as Falcon URI templates. A single sink parses the
path and dispatches to the packument, version or tarball handler.
"""

from __future__ import annotations

import asyncio
import typing as typ

import falcon

from bothy.registry.errors import PackageNotFoundError
from bothy.registry.packument import build_packument, version_document
from bothy.tarballs.errors import TarballPathError

from .paths import PackumentPath, TarballPath, VersionPath, parse_registry_path

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from falcon.asgi import Request, Response

    from bothy.registry.store import PackageStore
    from bothy.tarballs.cache import TarballCache

__all__ = ["RegistrySink"]

_CHUNK_SIZE = 64 * 1024
_LATEST_TAG = "latest"
_READ_METHODS = frozenset({"GET", "HEAD"})


async def _iter_file(path: Path) -> cabc.AsyncIterator[bytes]:
    handle = await asyncio.to_thread(path.open, "rb")
    try:
        while chunk := await asyncio.to_thread(handle.read, _CHUNK_SIZE):
            yield chunk
    finally:
        await asyncio.to_thread(handle.close)


class RegistrySink:
    """Answer npm registry reads for mirrored packages.

    Anything not mirrored raises :class:`PackageNotFoundError`, which the
    app maps to a 404 naming the upstream registry.
    """

    def __init__(self, packages: PackageStore, cache: TarballCache) -> None:
        """Bind the sink to the package store and tarball cache."""
        self._packages = packages
        self._cache = cache

    async def handle(self, req: Request, resp: Response, **_kwargs: object) -> None:
        """Dispatch a registry request by its parsed path."""
        if req.method not in _READ_METHODS:
            raise falcon.HTTPMethodNotAllowed(sorted(_READ_METHODS))

        match parse_registry_path(req.path):
            case PackumentPath(name=name):
                await self._packument(req, resp, name)
            case VersionPath(name=name, version=version):
                await self._version(req, resp, name, version)
            case TarballPath(name=name, version=version):
                await self._tarball(resp, name, version)
            case _:
                raise PackageNotFoundError(req.path.lstrip("/"))

    async def _packument(self, req: Request, resp: Response, name: str) -> None:
        records = await self._packages.find_by_name(name)
        resp.media = build_packument(name, records, tarball_base=req.prefix)

    async def _version(
        self, req: Request, resp: Response, name: str, version: str
    ) -> None:
        if version == _LATEST_TAG:
            records = await self._packages.find_by_name(name)
            if not records:
                raise PackageNotFoundError(name)
            record = records[-1]
        else:
            record = await self._packages.get(name, version)
        resp.media = version_document(record, tarball_base=req.prefix)

    async def _tarball(self, resp: Response, name: str, version: str) -> None:
        try:
            path = await self._cache.lookup(name, version)
        except TarballPathError as exc:
            raise PackageNotFoundError(name, version) from exc
        if path is None:
            raise PackageNotFoundError(name, version)

        stat = await asyncio.to_thread(path.stat)
        resp.content_type = "application/octet-stream"
        resp.content_length = stat.st_size
        resp.stream = _iter_file(path)
