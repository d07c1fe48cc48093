"""
Async stream operators for the live pipeline.

combine_latest is a last-value cache fed by a fan-in queue: one pump task
per source forwards values into the queue, and the consuming generator owns
the cache and re-emits a snapshot whenever any source updates. poll turns a
one-shot query into a periodic stream for sources that cannot push.
"""

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, Dict, Hashable, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

_VALUE = "value"
_DONE = "done"
_ERROR = "error"


async def poll(
    fetch: Callable[[], Awaitable[T]], interval_seconds: float
) -> AsyncIterator[T]:
    """
    Yield fetch() immediately and then every interval_seconds until cancelled.

    Args:
        fetch: Zero-argument coroutine function performing one query
        interval_seconds: Delay between the end of one fetch and the next
    """
    while True:
        yield await fetch()
        await asyncio.sleep(interval_seconds)


async def combine_latest(
    sources: Dict[K, AsyncIterator[T]],
) -> AsyncIterator[Dict[K, T]]:
    """
    Combine several async streams, emitting the latest value of each.

    The first snapshot is emitted once every source has produced a value;
    after that every update from any source produces a new snapshot. A
    source that finishes keeps contributing its last value. The combined
    stream ends when all sources have finished, and an exception raised by
    any source is re-raised here. Closing the combined stream cancels and
    closes every source.

    Args:
        sources: Streams keyed by the name their values appear under

    Yields:
        Dict mapping each key to its most recent value
    """
    if not sources:
        return

    queue: asyncio.Queue = asyncio.Queue()

    async def pump(key: K, source: AsyncIterator[T]) -> None:
        try:
            async for value in source:
                queue.put_nowait((key, _VALUE, value))
            queue.put_nowait((key, _DONE, None))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            queue.put_nowait((key, _ERROR, e))
        finally:
            aclose = getattr(source, "aclose", None)
            if aclose is not None:
                await aclose()

    tasks = [asyncio.create_task(pump(k, s)) for k, s in sources.items()]
    latest: Dict[K, T] = {}
    running = len(tasks)

    try:
        while running:
            key, kind, value = await queue.get()
            if kind == _DONE:
                running -= 1
                logger.debug(f"[STREAMS] Source {key} finished")
                continue
            if kind == _ERROR:
                logger.error(f"[STREAMS] Source {key} failed: {value}")
                raise value
            latest[key] = value
            if len(latest) == len(sources):
                yield dict(latest)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
