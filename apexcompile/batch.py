"""Bounded batch scheduler for async work.

Items are split into consecutive batches of at most `concurrency`. The
tasks of one batch run concurrently on the event loop; the next batch
starts only after every task of the current batch has settled.

Failure policy is fail-fast at batch granularity: if any task of a batch
fails, no further batch is started. The failing batch's remaining tasks
are allowed to settle first, then the first failure (in item order) is
re-raised, so the caller's cleanup never runs while work is in flight.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Iterator, Sequence
from typing import Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_CONCURRENCY = 10


def batched(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most `size` items."""
    if size < 1:
        raise ValueError(f"Batch size must be at least 1, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


async def run_in_batches(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[R]],
    concurrency: int = DEFAULT_CONCURRENCY,
    on_settled: Optional[Callable[[int, int], None]] = None,
) -> list[R]:
    """
    Run `worker` over `items` with at most `concurrency` tasks in flight.

    Args:
        items: Work items, processed in batch order
        worker: Coroutine function applied to each item
        concurrency: Maximum tasks per batch
        on_settled: Called as on_settled(done, total) after each task succeeds

    Returns:
        Worker results in item order

    Raises:
        ValueError: If concurrency < 1
        Exception: The first failure of the first batch that had one
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be at least 1, got {concurrency}")

    items = list(items)
    total = len(items)
    done = 0
    results: list[R] = []

    async def _run(item: T) -> R:
        nonlocal done
        result = await worker(item)
        done += 1
        if on_settled is not None:
            on_settled(done, total)
        return result

    for batch_number, batch in enumerate(batched(items, concurrency), start=1):
        logger.debug(f"Starting batch {batch_number} ({len(batch)} items)")

        outcomes = await asyncio.gather(*(_run(item) for item in batch), return_exceptions=True)

        failures = [o for o in outcomes if isinstance(o, BaseException)]
        if failures:
            logger.debug(
                f"Batch {batch_number} failed: {len(failures)} of {len(batch)} tasks",
                extra={"event": "batch_failed", "metadata": {"batch": batch_number, "failures": len(failures)}},
            )
            raise failures[0]

        results.extend(outcomes)

    return results
