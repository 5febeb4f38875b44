import asyncio
import weakref
from contextlib import asynccontextmanager

from shared.config import settings
from shared.errors import TransientIO


class OrderLockRegistry:
    """
    One asyncio.Lock per order id.

    Transitions, handshake steps and log appends for the same order run one
    at a time inside this process; different orders never wait on each other.
    Locks disappear once nobody holds or waits on them.
    """

    def __init__(self):
        self._locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()

    def lock_for(self, order_id: int) -> asyncio.Lock:
        lock = self._locks.get(order_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[order_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, order_id: int, timeout: float | None = None):
        lock = self.lock_for(order_id)
        timeout = settings.ORDER_LOCK_TIMEOUT_SECONDS if timeout is None else timeout
        try:
            await asyncio.wait_for(lock.acquire(), timeout)
        except asyncio.TimeoutError:
            raise TransientIO(f"Order {order_id} is busy, retry shortly")
        try:
            yield
        finally:
            lock.release()


order_locks = OrderLockRegistry()
