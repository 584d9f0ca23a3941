"""Bounded fan-out over asynchronous work items."""

from __future__ import annotations

import asyncio
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc


async def bounded_map[T, R](
    items: cabc.Iterable[T],
    fn: cabc.Callable[[T], cabc.Awaitable[R]],
    *,
    limit: int,
) -> list[R]:
    """Apply ``fn`` to every item with at most ``limit`` calls in flight.

    Results are returned in input order. ``fn`` is expected to capture its
    own failures; an exception escaping ``fn`` is re-raised once every other
    call has settled so no sibling is abandoned half way through.
    """
    if limit < 1:
        msg = f"limit must be positive, got {limit}"
        raise ValueError(msg)

    semaphore = asyncio.Semaphore(limit)

    async def bounded(item: T) -> R:
        async with semaphore:
            return await fn(item)

    gathered = await asyncio.gather(
        *(bounded(item) for item in items), return_exceptions=True
    )

    results: list[R] = []
    for outcome in gathered:
        if isinstance(outcome, BaseException):
            raise outcome
        results.append(outcome)
    return results
