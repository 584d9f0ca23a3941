"""Shared test utilities."""

from __future__ import annotations

import asyncio
import typing as typ


def run_async[T](coro: typ.Coroutine[typ.Any, typ.Any, T]) -> T:
    """Run a coroutine to completion from synchronous test code."""
    return asyncio.run(coro)
