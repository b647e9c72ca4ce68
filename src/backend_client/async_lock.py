"""FIFO mutual exclusion for asyncio code.

The lock is handed directly from the releasing holder to the oldest waiter,
so waiters acquire it in the order they asked for it and the lock is never
observed free while someone is queued.

Example:
    >>> lock = AsyncLock()
    >>> async with lock:
    ...     await reload_config()
"""

import asyncio
import logging
from collections import deque
from typing import Deque, Optional

logger = logging.getLogger(__name__)

# Seconds a caller waits in acquire() before giving up, when no timeout is passed
DEFAULT_ACQUIRE_TIMEOUT: Optional[float] = None


class AsyncLock:
    """Binary semaphore with FIFO hand-off between waiters."""

    def __init__(self, timeout: Optional[float] = DEFAULT_ACQUIRE_TIMEOUT):
        self._timeout = timeout
        self._held = False
        self._waiters: Deque[asyncio.Future] = deque()

    @property
    def locked(self) -> bool:
        return self._held

    @property
    def waiting(self) -> int:
        return sum(1 for fut in self._waiters if not fut.done())

    async def acquire(self, timeout: Optional[float] = None) -> bool:
        """Wait until the lock is held by the caller.

        Args:
            timeout: Seconds to wait; defaults to the lock's own timeout,
                     None waits forever

        Returns:
            True once the lock is held, False if the timeout expired first
        """
        if not self._held and not self._waiters:
            self._held = True
            return True

        timeout = self._timeout if timeout is None else timeout
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            await asyncio.wait({fut}, timeout=timeout)
        except asyncio.CancelledError:
            self._abandon(fut)
            raise

        if fut.done():
            return True

        self._abandon(fut)
        logger.warning(f"Timed out after {timeout}s waiting for lock")
        return False

    def _abandon(self, fut: asyncio.Future) -> None:
        if fut.done() and not fut.cancelled():
            # Lock was already handed over; pass it on
            self.release()
            return
        fut.cancel()
        try:
            self._waiters.remove(fut)
        except ValueError:
            pass

    def release(self) -> None:
        """Release the lock, handing it to the next waiter if there is one.

        Releasing a lock that is not held is logged and ignored.
        """
        if not self._held:
            logger.warning("release() called on an AsyncLock that is not held")
            return

        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                fut.set_result(True)
                return
        self._held = False

    async def __aenter__(self) -> "AsyncLock":
        if not await self.acquire():
            raise TimeoutError("Timed out waiting for lock")
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()
