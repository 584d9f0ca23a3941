"""Reload and GitHub webhook resources.

Both endpoints are fire-and-forget: they schedule a synchronisation run on
the shared :class:`SyncTrigger` and answer ``204 No Content`` immediately.
"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

import msgspec

from bothy.api.errors import InvalidInputError
from bothy.common.slug import repo_slug

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from bothy.sync.trigger import SyncTrigger

__all__ = ["GitHubWebhookResource", "ReloadResource"]

_ACCEPTED_EVENTS = frozenset({"push", "ping"})


class _WebhookOwner(msgspec.Struct):
    login: str


class _WebhookRepository(msgspec.Struct):
    name: str
    owner: _WebhookOwner


class WebhookPayload(msgspec.Struct):
    """The part of a GitHub webhook delivery the façade reads."""

    repository: _WebhookRepository


def _schedule(trigger: SyncTrigger, repository: str | None) -> None:
    try:
        trigger.trigger(repository)
    except ValueError as exc:
        raise InvalidInputError(str(exc), field="repository") from exc


class ReloadResource:
    """``POST /-/reload[?repository=owner/name]``."""

    def __init__(self, trigger: SyncTrigger) -> None:
        """Bind the resource to the sync trigger."""
        self._trigger = trigger

    async def on_post(self, req: Request, resp: Response) -> None:
        """Trigger a full run, or a run for the repository named in the query."""
        repository = req.get_param("repository")
        _schedule(self._trigger, repository or None)
        resp.status = HTTPStatus.NO_CONTENT


class GitHubWebhookResource:
    """``POST /-/github``: synchronise the repository a push was made to."""

    def __init__(self, trigger: SyncTrigger) -> None:
        """Bind the resource to the sync trigger."""
        self._trigger = trigger

    async def on_post(self, req: Request, resp: Response) -> None:
        """Validate the delivery and trigger its repository.

        Raises
        ------
        InvalidInputError
            If the event type is not accepted or the payload does not name
            a repository.

        """
        event = req.get_header("X-GitHub-Event")
        if event not in _ACCEPTED_EVENTS:
            msg = "only push and ping events are accepted"
            raise InvalidInputError(msg, field="X-GitHub-Event")

        body = await req.stream.read()
        try:
            payload = msgspec.json.decode(body, type=WebhookPayload)
        except msgspec.ValidationError as exc:
            raise InvalidInputError(str(exc), field="repository") from exc
        except msgspec.DecodeError as exc:
            raise InvalidInputError("invalid JSON payload") from exc

        repository = payload.repository
        _schedule(self._trigger, repo_slug(repository.owner.login, repository.name))
        resp.status = HTTPStatus.NO_CONTENT
