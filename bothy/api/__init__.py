"""Bothy HTTP API layer.

A thin Falcon ASGI façade over the package store and tarball cache, plus
endpoints that trigger synchronisation runs.

Usage
-----
Create and run the application::

    from bothy.api import create_app

    app = create_app()              # health-only mode
    app = create_app(dependencies)  # full registry mode
"""

from bothy.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
