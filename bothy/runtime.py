"""Bothy runtime entrypoint.

This module provides the ASGI application factory served by Granian. It
reads :class:`~bothy.config.BothyConfig` from the environment, builds the sync
engine's dependencies and hands them to :func:`bothy.api.app.create_app`.

Configuration is driven by environment variables:

- ``BOTHY_HOST``: Bind address (default ``0.0.0.0``)
- ``BOTHY_PORT``: Listen port (default ``3000``)
- ``BOTHY_LOG_LEVEL``: Log level (default ``INFO``)
- ``BOTHY_*``: sync engine settings, see :mod:`bothy.config`

Run the service directly with ``python -m bothy.runtime``.
"""

from __future__ import annotations

import os
import typing as typ

from bothy.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

__all__ = ["create_app", "main"]

logger = get_logger(__name__)

# TCP port number range limits
_MIN_PORT = 1
_MAX_PORT = 65535


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        log_error(
            logger,
            "Invalid BOTHY_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def create_app() -> falcon.asgi.App:
    """Create the registry façade from environment configuration.

    Raises
    ------
    ConfigError
        If required configuration such as ``BOTHY_GITHUB_TOKEN`` is missing;
        this is fatal at start-up.

    """
    from bothy.api.app import AppDependencies
    from bothy.api.app import create_app as _create_api_app
    from bothy.config import BothyConfig
    from bothy.factory import build_sync_dependencies

    config = BothyConfig.from_env()
    return _create_api_app(AppDependencies(sync=build_sync_dependencies(config)))


def main() -> None:
    """Start the Bothy registry façade using Granian."""
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("BOTHY_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port = _parse_port(os.environ.get("BOTHY_PORT", "3000"))
    log_level_str = os.environ.get("BOTHY_LOG_LEVEL", "INFO")

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid BOTHY_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    from bothy.config import BothyConfig, ConfigError

    # Fail before Granian spawns workers that would each hit the same error.
    try:
        BothyConfig.from_env()
    except ConfigError as exc:
        log_error(logger, "Invalid configuration: %s", exc)
        raise SystemExit(1) from exc

    log_info(
        logger,
        "Starting Bothy registry on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "bothy.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
