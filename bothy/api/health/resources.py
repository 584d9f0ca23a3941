"""Health probe resources for liveness and readiness checks.

Usage
-----
Register health endpoints on the Falcon app::

    from bothy.api.health.resources import HealthResource, ReadyResource

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(trigger))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from bothy.sync.trigger import SyncTrigger

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """Liveness probe resource returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe resource.

    The façade serves already synchronised data while runs are in flight,
    so readiness does not wait for synchronisation; the number of running
    synchronisations is reported for operators.
    """

    def __init__(self, trigger: SyncTrigger | None = None) -> None:
        """Optionally bind the probe to the sync trigger it reports on."""
        self._trigger = trigger

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests."""
        media: dict[str, object] = {"status": "ready"}
        if self._trigger is not None:
            media["syncs_in_flight"] = self._trigger.in_flight
        resp.media = media
        resp.status = HTTPStatus.OK
