"""Background event loop that owns the shared browser pool.

Flask handles requests on plain threads. Every browser or model call is
submitted to one long-lived asyncio loop running in a daemon thread, so
all sessions share a single browser while each request waits for its
own coroutine.
"""

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Awaitable, Callable, Optional, TypeVar

from scraper.browser import BrowserPool

from .config import RUNNER_TIMEOUT_S

__all__ = ["AsyncRunner"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AsyncRunner:
    """Runs coroutines on a private loop thread started on first use.

    Usage:
        runner = AsyncRunner()
        result = runner.run(lambda pool: search_products(pool, "PS5"))
        runner.shutdown()
    """

    def __init__(
        self,
        pool_factory: Callable[[], Any] = BrowserPool,
        timeout: float = RUNNER_TIMEOUT_S,
    ):
        self.timeout = timeout
        self._pool_factory = pool_factory
        self._pool: Any = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _ensure_started(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                self._loop = asyncio.new_event_loop()
                self._pool = self._pool_factory()
                self._thread = threading.Thread(
                    target=self._run_loop,
                    args=(self._loop,),
                    name="price-check-loop",
                    daemon=True,
                )
                self._thread.start()
                logger.info("Started background event loop")
            return self._loop

    def _run_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        loop.run_forever()

    def run(
        self,
        job: Callable[[Any], Awaitable[T]],
        timeout: Optional[float] = None,
    ) -> T:
        """Run ``job(pool)`` on the loop and wait for its result.

        Raises:
            concurrent.futures.TimeoutError: the job did not finish in
                time. It is cancelled before the error propagates.
        """
        loop = self._ensure_started()
        pool = self._pool

        async def _call() -> T:
            return await job(pool)

        future = asyncio.run_coroutine_threadsafe(_call(), loop)
        try:
            return future.result(timeout if timeout is not None else self.timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            raise

    def shutdown(self) -> None:
        """Close the browser pool and stop the loop. Safe to call twice."""
        with self._lock:
            loop, thread, pool = self._loop, self._thread, self._pool
            self._loop = self._thread = self._pool = None

        if loop is None:
            return

        if pool is not None:
            try:
                asyncio.run_coroutine_threadsafe(pool.close(), loop).result(self.timeout)
            except Exception as e:
                logger.warning(f"Error closing browser pool: {e}")

        loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join(timeout=5)
        loop.close()
        logger.info("Stopped background event loop")
