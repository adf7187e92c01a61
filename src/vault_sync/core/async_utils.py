"""Async utilities for running blocking file I/O and bounded transfer fan-out."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Sequence, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Used by the folder-backed collaborators to wrap blocking filesystem
    calls.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def run_sequential(
    factories: Sequence[Callable[[], Awaitable[T]]],
) -> list[T]:
    """Await each coroutine factory in order, one at a time.

    At most one call is in flight at any moment.  The first exception
    propagates and the remaining factories are never started.

    Args:
        factories: Zero-argument callables returning awaitables.

    Returns:
        List of results in input order.
    """
    results: list[T] = []
    for factory in factories:
        results.append(await factory())
    return results


async def run_bounded(
    factories: Sequence[Callable[[], Awaitable[T]]],
    max_parallel: int,
) -> list[T]:
    """Run coroutine factories with at most *max_parallel* in flight.

    ``max_parallel == 1`` is exactly ``run_sequential``.  Otherwise a
    semaphore bounds the fan-out.  Returns results in input order.
    The first exception propagates once every unfinished task has been
    cancelled and has finished unwinding; calls that already completed
    stay applied.

    Args:
        factories: Zero-argument callables returning awaitables.
        max_parallel: Upper bound on concurrently running calls (>= 1).

    Returns:
        List of results in the same order as *factories*.
    """
    if max_parallel < 1:
        raise ValueError(
            f"max_parallel must be >= 1, got {max_parallel}"
        )
    if max_parallel == 1:
        return await run_sequential(factories)

    semaphore = asyncio.Semaphore(max_parallel)
    logger.debug(
        "Running %d calls with max_parallel=%d",
        len(factories),
        max_parallel,
    )

    async def _guarded(factory: Callable[[], Awaitable[T]]) -> T:
        async with semaphore:
            return await factory()

    tasks = [asyncio.ensure_future(_guarded(f)) for f in factories]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
