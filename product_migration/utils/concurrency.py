"""
Bounded fan-out for blocking SDK calls.

The vendor SDKs are synchronous. Calls are pushed to worker threads and a
semaphore caps how many are in flight at once, so gathering thousands of
per-row coroutines never opens thousands of connections.
"""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


class ConcurrencyLimiter:
    """
    Runs blocking callables in threads, at most ``limit`` at a time.

    Usage:
        limiter = ConcurrencyLimiter(8)
        items = await limiter.run(table.scan)
    """

    def __init__(self, limit: int = 16):
        """
        Initialize limiter.

        Args:
            limit: Maximum number of concurrent calls
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self._semaphore: asyncio.Semaphore | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def semaphore(self) -> asyncio.Semaphore:
        # One semaphore per event loop; each pipeline run starts a new loop
        loop = asyncio.get_running_loop()
        if self._semaphore is None or self._loop is not loop:
            self._semaphore = asyncio.Semaphore(self.limit)
            self._loop = loop
        return self._semaphore

    async def run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Call ``func(*args, **kwargs)`` in a worker thread once a slot is free.

        Returns:
            Whatever ``func`` returns; exceptions propagate unchanged
        """
        async with self.semaphore:
            return await asyncio.to_thread(func, *args, **kwargs)
