"""
Bounded-wait concurrency helper.

Races a batch of awaitables against one wall-clock deadline and collects
whatever finished in time.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Iterable, Optional


@dataclass(frozen=True)
class Straggler:
    """Placeholder for an operation that missed the deadline."""

    index: int


async def gather_within_deadline(
    awaitables: Iterable[Awaitable[Any]],
    timeout: Optional[float],
) -> list[Any]:
    """
    Run awaitables concurrently and wait at most `timeout` seconds.

    Results are aligned with the input. A slot holds the awaitable's
    result, the exception it raised, or a Straggler when it did not
    finish in time. Stragglers are abandoned: they keep running in the
    background and their late results are discarded.

    Args:
        awaitables: Coroutines or futures to run.
        timeout: Overall budget in seconds (None waits for all).

    Returns:
        List of results, exceptions or Straggler markers.
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    if not tasks:
        return []

    done, pending = await asyncio.wait(tasks, timeout=timeout)

    for task in pending:
        # Retrieve the eventual outcome so abandoned failures are not reported as unhandled
        task.add_done_callback(_discard_result)

    results: list[Any] = []
    for index, task in enumerate(tasks):
        if task in done and task.cancelled():
            results.append(asyncio.CancelledError())
        elif task in done:
            exc = task.exception()
            results.append(exc if exc is not None else task.result())
        else:
            results.append(Straggler(index=index))
    return results


def _discard_result(task: "asyncio.Future[Any]") -> None:
    if not task.cancelled():
        task.exception()
