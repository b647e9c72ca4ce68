"""Unit tests for backend_client.async_lock module."""

import asyncio

import pytest

from src.backend_client.async_lock import AsyncLock


class TestAcquireRelease:
    """Test cases for basic acquire/release."""

    @pytest.mark.asyncio
    async def test_acquire_free_lock(self):
        lock = AsyncLock()

        assert await lock.acquire() is True
        assert lock.locked

    @pytest.mark.asyncio
    async def test_release_frees_lock(self):
        lock = AsyncLock()
        await lock.acquire()

        lock.release()

        assert not lock.locked

    def test_release_of_free_lock_is_ignored(self, caplog):
        """A redundant release is logged and leaves the lock free."""
        lock = AsyncLock()

        lock.release()

        assert not lock.locked
        assert "not held" in caplog.text

    @pytest.mark.asyncio
    async def test_context_manager(self):
        lock = AsyncLock()

        async with lock:
            assert lock.locked
        assert not lock.locked

    @pytest.mark.asyncio
    async def test_context_manager_releases_on_error(self):
        lock = AsyncLock()

        with pytest.raises(RuntimeError):
            async with lock:
                raise RuntimeError("boom")

        assert not lock.locked


class TestFifoHandOff:
    """Test cases for waiter ordering."""

    @pytest.mark.asyncio
    async def test_waiters_acquire_in_request_order(self):
        """Waiters get the lock in the order they asked for it."""
        lock = AsyncLock()
        order = []
        await lock.acquire()

        async def worker(name):
            await lock.acquire()
            order.append(name)
            lock.release()

        tasks = [asyncio.create_task(worker(n)) for n in ("a", "b", "c")]
        await asyncio.sleep(0)
        assert lock.waiting == 3

        lock.release()
        await asyncio.gather(*tasks)

        assert order == ["a", "b", "c"]
        assert not lock.locked

    @pytest.mark.asyncio
    async def test_lock_stays_held_during_hand_off(self):
        """The lock is never observed free while someone is queued."""
        lock = AsyncLock()
        await lock.acquire()
        task = asyncio.create_task(lock.acquire())
        await asyncio.sleep(0)

        lock.release()

        assert lock.locked
        assert await task is True
        assert lock.locked

    @pytest.mark.asyncio
    async def test_new_caller_cannot_jump_the_queue(self):
        lock = AsyncLock()
        order = []
        await lock.acquire()

        async def worker(name):
            async with lock:
                order.append(name)

        first = asyncio.create_task(worker("queued"))
        await asyncio.sleep(0)
        lock.release()
        second = asyncio.create_task(worker("late"))
        await asyncio.gather(first, second)

        assert order == ["queued", "late"]

    @pytest.mark.asyncio
    async def test_at_most_one_holder(self):
        lock = AsyncLock()
        holders = 0
        peak = 0

        async def worker():
            nonlocal holders, peak
            async with lock:
                holders += 1
                peak = max(peak, holders)
                await asyncio.sleep(0)
                holders -= 1

        await asyncio.gather(*(worker() for _ in range(10)))

        assert peak == 1


class TestTimeout:
    """Test cases for acquire timeouts."""

    @pytest.mark.asyncio
    async def test_acquire_times_out(self, caplog):
        lock = AsyncLock()
        await lock.acquire()

        assert await lock.acquire(timeout=0.01) is False
        assert lock.waiting == 0
        assert "Timed out" in caplog.text

    @pytest.mark.asyncio
    async def test_default_timeout_from_constructor(self):
        lock = AsyncLock(timeout=0.01)
        await lock.acquire()

        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_context_manager_raises_on_timeout(self):
        lock = AsyncLock(timeout=0.01)
        await lock.acquire()

        with pytest.raises(TimeoutError):
            async with lock:
                pass

    @pytest.mark.asyncio
    async def test_timed_out_waiter_does_not_block_others(self):
        lock = AsyncLock()
        await lock.acquire()
        await lock.acquire(timeout=0.01)
        task = asyncio.create_task(lock.acquire())
        await asyncio.sleep(0)

        lock.release()

        assert await task is True

    @pytest.mark.asyncio
    async def test_cancelled_waiter_is_removed(self):
        lock = AsyncLock()
        await lock.acquire()
        task = asyncio.create_task(lock.acquire())
        await asyncio.sleep(0)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert lock.waiting == 0
        lock.release()
        assert not lock.locked
