"""Domain exceptions and Falcon error handlers for the registry façade.

Usage
-----
Register error handlers on the Falcon app::

    from bothy.api.errors import (
        InvalidInputError,
        handle_invalid_input,
        handle_package_not_found,
    )
    from bothy.registry.errors import PackageNotFoundError

    app.add_error_handler(PackageNotFoundError, handle_package_not_found)
    app.add_error_handler(InvalidInputError, handle_invalid_input)

"""

from __future__ import annotations

import typing as typ

import falcon

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from bothy.registry.errors import PackageNotFoundError

__all__ = [
    "InvalidInputError",
    "handle_invalid_input",
    "handle_package_not_found",
]


class InvalidInputError(Exception):
    """Raised for client validation errors that should map to HTTP 400.

    Attributes
    ----------
    reason
        Human-readable description of the validation failure.
    field
        Optional name of the input that failed validation.

    """

    def __init__(self, reason: str, *, field: str | None = None) -> None:
        """Initialize with a validation reason and optional field name."""
        self.reason = reason
        self.field = field
        message = f"{field}: {reason}" if field is not None else reason
        super().__init__(message)


async def handle_package_not_found(
    req: Request,
    resp: Response,
    ex: PackageNotFoundError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``PackageNotFoundError`` to an HTTP 404 JSON response.

    The body names the upstream registry so an operator's reverse proxy, or
    the npm client's own fallback, knows where to look next.
    """
    resp.status = falcon.HTTP_404
    media: dict[str, str] = {"error": str(ex)}
    upstream = getattr(req.context, "upstream_registry", None)
    if upstream:
        media["upstream"] = upstream
    resp.media = media


async def handle_invalid_input(
    _req: Request,
    resp: Response,
    ex: InvalidInputError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidInputError`` to an HTTP 400 JSON response."""
    resp.status = falcon.HTTP_400
    media: dict[str, str] = {
        "title": "Invalid input",
        "description": ex.reason,
    }
    if ex.field is not None:
        media["field"] = ex.field
    resp.media = media
