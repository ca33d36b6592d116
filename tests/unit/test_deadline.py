"""
Unit tests for the bounded-wait gather helper.
"""

import asyncio

import pytest

from editionscout.catalog.deadline import Straggler, gather_within_deadline

pytestmark = pytest.mark.asyncio


async def _value(value, delay=0.0):
    await asyncio.sleep(delay)
    return value


async def _fail(message):
    raise RuntimeError(message)


class TestGatherWithinDeadline:
    """Tests for gather_within_deadline."""

    async def test_all_finish(self):
        results = await gather_within_deadline([_value(1), _value(2), _value(3)], timeout=1.0)
        assert results == [1, 2, 3]

    async def test_empty(self):
        assert await gather_within_deadline([], timeout=1.0) == []

    async def test_exceptions_are_returned(self):
        results = await gather_within_deadline([_value("ok"), _fail("boom")], timeout=1.0)

        assert results[0] == "ok"
        assert isinstance(results[1], RuntimeError)
        assert str(results[1]) == "boom"

    async def test_stragglers_marked_by_position(self):
        """Slow work is reported as a straggler without delaying the rest."""
        loop = asyncio.get_running_loop()
        started = loop.time()

        results = await gather_within_deadline(
            [_value("fast"), _value("slow", delay=5.0), _value("also fast")],
            timeout=0.1,
        )

        assert loop.time() - started < 2.0
        assert results[0] == "fast"
        assert results[1] == Straggler(index=1)
        assert results[2] == "also fast"

    async def test_no_timeout_waits_for_all(self):
        results = await gather_within_deadline([_value("a", delay=0.05)], timeout=None)
        assert results == ["a"]
