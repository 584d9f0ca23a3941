"""Falcon middleware tying the sync engine to the ASGI lifespan.

On startup the registry tables are created and an initial full
synchronisation is triggered in the background, so the façade starts serving
already mirrored data immediately. On shutdown in-flight runs are drained
before the host client and database engine are released.

Usage
-----
Register the middleware when creating the Falcon app::

    lifecycle = SyncLifecycle(dependencies, trigger)
    app = falcon.asgi.App(middleware=[lifecycle])

"""

from __future__ import annotations

import typing as typ

from bothy.logging import get_logger, log_error, log_info

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from bothy.factory import SyncDependencies
    from bothy.sync.trigger import SyncTrigger

__all__ = ["SyncLifecycle"]

logger = get_logger(__name__)


class SyncLifecycle:
    """Falcon middleware managing sync engine start-up and shutdown.

    Parameters
    ----------
    dependencies
        The sync engine's dependency graph.
    trigger
        Trigger used for the initial run and drained on shutdown.
    sync_on_startup
        Whether to trigger a full run once storage is initialised.

    """

    def __init__(
        self,
        dependencies: SyncDependencies,
        trigger: SyncTrigger,
        *,
        sync_on_startup: bool = True,
    ) -> None:
        """Initialize the middleware with the engine's dependencies."""
        self._dependencies = dependencies
        self._trigger = trigger
        self._sync_on_startup = sync_on_startup
        self._upstream = dependencies.config.upstream_registry

    async def process_startup(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Create tables and trigger the initial synchronisation."""
        await self._dependencies.init_storage()
        if self._sync_on_startup:
            self._trigger.trigger()
        log_info(
            logger,
            "Registry façade started (initial_sync=%s)",
            self._sync_on_startup,
        )

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Drain in-flight runs, then release clients and the engine."""
        try:
            await self._trigger.drain()
        finally:
            try:
                await self._dependencies.aclose()
            except Exception:
                log_error(logger, "Failed to release sync resources", exc_info=True)
                raise

    async def process_request(self, req: Request, _resp: Response) -> None:
        """Expose the upstream registry to error handlers."""
        req.context.upstream_registry = self._upstream
