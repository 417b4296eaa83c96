"""Bounded worker pool for CPU-bound hashing.

Learn: Argon2 is slow by construction, so hashing and validating run on a
fixed set of worker threads instead of the event loop. The pool holds a
fixed number of capacity slots (running + queued units). When all slots
are taken, run() fails immediately with PoolSaturatedError instead of
growing a queue.

Each unit is awaited with a timeout. A timed-out unit can't be killed
(it's a thread), so its slot is only released when the thread actually
finishes; the capacity bound therefore always reflects real work.
"""

import asyncio
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

import structlog

logger = structlog.get_logger()

T = TypeVar("T")


class DispatchError(Exception):
    """Work could not be dispatched to, or completed on, the pool."""


class PoolSaturatedError(DispatchError):
    pass


class PoolClosedError(DispatchError):
    pass


class WorkTimeoutError(DispatchError):
    pass


class HashWorkerPool:
    """Fixed-size thread pool with a bounded number of pending units."""

    def __init__(
        self,
        max_workers: int = 4,
        max_pending: int = 32,
        timeout: float = 10.0,
    ):
        if max_pending < max_workers:
            max_pending = max_workers
        self.max_workers = max_workers
        self.max_pending = max_pending
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="authkeep-hash"
        )
        # Released from executor threads, so a threading (not asyncio) primitive.
        self._slots = threading.BoundedSemaphore(max_pending)
        self._in_flight = 0
        self._lock = threading.Lock()
        self._closed = False

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def closed(self) -> bool:
        return self._closed

    async def run(self, fn: Callable[..., T], *args: Any) -> T:
        """Run fn(*args) on a worker thread and await its result.

        Exceptions raised by fn propagate unchanged. Pool-level failures
        raise a DispatchError subclass.
        """
        if self._closed:
            raise PoolClosedError("hash worker pool is shut down")
        if not self._slots.acquire(blocking=False):
            logger.warning(
                "hash_pool.saturated",
                max_pending=self.max_pending,
                in_flight=self._in_flight,
            )
            raise PoolSaturatedError("hash worker pool is saturated")

        with self._lock:
            self._in_flight += 1
        try:
            future = self._executor.submit(fn, *args)
        except RuntimeError as e:
            self._release(None)
            raise PoolClosedError("hash worker pool is shut down") from e
        future.add_done_callback(self._release)

        try:
            return await asyncio.wait_for(asyncio.wrap_future(future), self.timeout)
        except asyncio.TimeoutError:
            logger.warning("hash_pool.timeout", timeout=self.timeout)
            raise WorkTimeoutError(
                f"hashing did not complete within {self.timeout}s"
            ) from None

    def _release(self, _future: Optional[Future]) -> None:
        with self._lock:
            self._in_flight -= 1
        self._slots.release()

    def shutdown(self, wait: bool = True) -> None:
        self._closed = True
        self._executor.shutdown(wait=wait, cancel_futures=True)
