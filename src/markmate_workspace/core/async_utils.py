"""Async utilities for running blocking file and git work off the event loop."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")
R = TypeVar("R")
logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        content = await run_sync(path.read_text, encoding="utf-8")
    """
    return await asyncio.to_thread(func, *args, **kwargs)


@dataclass
class BatchOutcome(Generic[T, R]):
    """Results of a batched fan-out.

    ``results`` holds ``(item, result)`` pairs for items that succeeded, in
    input order; ``failures`` holds ``(item, exception)`` pairs.
    """

    results: list[tuple[T, R]] = field(default_factory=list)
    failures: list[tuple[T, BaseException]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results) + len(self.failures)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    def values(self) -> list[R]:
        """Return the successful results without their items."""
        return [value for _, value in self.results]


async def process_in_batches(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[R]],
    batch_size: int = DEFAULT_BATCH_SIZE,
    label: str = "batch",
) -> BatchOutcome[T, R]:
    """Run ``worker`` over ``items`` in fixed-size concurrent batches.

    Each batch is awaited in full before the next one starts, bounding the
    number of concurrent file or git operations to ``batch_size``.  A failure
    of one item is logged and recorded; the remaining items still run.

    Args:
        items: Items to process, in order.
        worker: Coroutine function applied to each item.
        batch_size: Maximum concurrent workers per batch (>= 1).
        label: Operation name used in log messages.

    Returns:
        ``BatchOutcome`` with per-item results and failures.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    pending = list(items)
    outcome: BatchOutcome[T, R] = BatchOutcome()

    for start in range(0, len(pending), batch_size):
        batch = pending[start : start + batch_size]
        results = await asyncio.gather(
            *(worker(item) for item in batch), return_exceptions=True
        )
        for item, result in zip(batch, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.warning("%s failed for %s: %s", label, item, result)
                outcome.failures.append((item, result))
            else:
                outcome.results.append((item, result))

    if outcome.failures:
        logger.warning(
            "%s finished with %d of %d failures",
            label,
            outcome.failed_count,
            outcome.total,
        )
    return outcome
