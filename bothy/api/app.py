"""Application factory for the Bothy registry façade.

Usage
-----
Create a health-only app (no sync engine)::

    app = create_app()

Create the full registry app::

    from bothy.api.app import AppDependencies, create_app
    from bothy.factory import build_sync_dependencies

    deps = AppDependencies(sync=build_sync_dependencies(config))
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from bothy.api.errors import (
    InvalidInputError,
    handle_invalid_input,
    handle_package_not_found,
)
from bothy.api.health.resources import HealthResource, ReadyResource
from bothy.registry.errors import PackageNotFoundError

if typ.TYPE_CHECKING:
    from bothy.factory import SyncDependencies
    from bothy.sync.trigger import SyncTrigger

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    sync
        The sync engine's dependency graph. When ``None`` only the health
        endpoints are registered.
    trigger
        Optional pre-built trigger; one is created around
        ``sync.orchestrator`` when omitted.
    sync_on_startup
        Whether ASGI startup triggers an initial full synchronisation.

    """

    sync: SyncDependencies | None = None
    trigger: SyncTrigger | None = None
    sync_on_startup: bool = True


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    With sync dependencies the app serves packuments, version documents and
    tarballs, accepts reload and webhook triggers, and manages the engine's
    lifecycle. Otherwise only ``/health`` and ``/ready`` are registered.
    """
    deps = dependencies or AppDependencies()
    middleware: list[object] = []
    trigger: SyncTrigger | None = None

    if deps.sync is not None:
        from bothy.api.middleware import SyncLifecycle
        from bothy.sync.trigger import SyncTrigger

        trigger = deps.trigger or SyncTrigger(deps.sync.orchestrator)
        middleware.append(
            SyncLifecycle(deps.sync, trigger, sync_on_startup=deps.sync_on_startup)
        )

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(trigger))

    if deps.sync is not None and trigger is not None:
        from bothy.api.registry.resources import RegistrySink
        from bothy.api.sync.resources import GitHubWebhookResource, ReloadResource

        app.add_route("/-/reload", ReloadResource(trigger))
        app.add_route("/-/github", GitHubWebhookResource(trigger))
        sink = RegistrySink(deps.sync.packages, deps.sync.cache)
        app.add_sink(sink.handle, prefix="/")

    app.add_error_handler(PackageNotFoundError, handle_package_not_found)
    app.add_error_handler(InvalidInputError, handle_invalid_input)

    return app
