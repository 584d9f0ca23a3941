"""Unit tests for bounded asynchronous fan-out."""

from __future__ import annotations

import asyncio

import pytest

from bothy.common.concurrency import bounded_map


@pytest.mark.asyncio
async def test_results_keep_input_order() -> None:
    """Results line up with inputs even when later items finish first."""

    async def delayed(value: int) -> int:
        await asyncio.sleep(0.001 * (5 - value))
        return value * 10

    assert await bounded_map(range(5), delayed, limit=5) == [0, 10, 20, 30, 40]


@pytest.mark.asyncio
async def test_in_flight_calls_never_exceed_limit() -> None:
    """At most ``limit`` calls run at the same time."""
    in_flight = 0
    peak = 0

    async def track(_: int) -> None:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.001)
        in_flight -= 1

    await bounded_map(range(20), track, limit=3)

    assert peak == 3


@pytest.mark.asyncio
async def test_failure_is_raised_after_siblings_settle() -> None:
    """An escaping exception does not abandon the other calls."""
    finished: list[int] = []

    async def maybe_fail(value: int) -> int:
        if value == 0:
            msg = "boom"
            raise RuntimeError(msg)
        await asyncio.sleep(0.001)
        finished.append(value)
        return value

    with pytest.raises(RuntimeError, match="boom"):
        await bounded_map(range(4), maybe_fail, limit=2)

    assert sorted(finished) == [1, 2, 3]


@pytest.mark.asyncio
async def test_empty_input_returns_empty_list() -> None:
    """No items means no calls."""

    async def never(_: int) -> int:
        raise AssertionError

    assert await bounded_map([], never, limit=1) == []


@pytest.mark.asyncio
async def test_limit_must_be_positive() -> None:
    """A zero limit would deadlock, so it is rejected."""

    async def identity(value: int) -> int:
        return value

    with pytest.raises(ValueError, match="limit must be positive"):
        await bounded_map([1], identity, limit=0)
