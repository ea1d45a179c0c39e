from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Poller(Generic[T]):
    """Re-runs ``fetch`` every ``interval`` seconds.

    Each tick supersedes the previous one: a read still waiting for a worker
    is cancelled, and a read still running when a newer tick starts has its
    result dropped. Slow reads therefore never stack up behind each other.
    """

    def __init__(
        self,
        fetch: Callable[[], T],
        on_result: Callable[[T], None],
        *,
        interval: float,
        max_ticks: Optional[int] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
        workers: int = 2,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._fetch = fetch
        self._on_result = on_result
        self._on_error = on_error
        self._interval = float(interval)
        self._max_ticks = max_ticks
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="poller")
        self._lock = threading.RLock()
        # Held across check-and-deliver so a superseded result never lands after a newer one.
        self._deliver_lock = threading.RLock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._generation = 0
        self._inflight: Optional[Future] = None
        self.latest: Optional[T] = None
        self.superseded = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self) -> Future:
        """Start one read now, superseding any read still in flight."""
        with self._lock:
            self._generation += 1
            generation = self._generation
            previous = self._inflight
            if previous is not None and not previous.done():
                previous.cancel()
                self.superseded += 1
            future = self._executor.submit(self._fetch)
            self._inflight = future
            future.add_done_callback(lambda f: self._deliver(generation, f))
            return future

    def _deliver(self, generation: int, future: Future) -> None:
        if future.cancelled():
            return
        with self._deliver_lock:
            with self._lock:
                if generation != self._generation:
                    logger.debug("dropping result of superseded tick %d", generation)
                    return
            exc = future.exception()
            if exc is not None:
                logger.warning("poll tick %d failed: %s", generation, exc)
                if self._on_error:
                    self._on_error(exc)
                return
            result = future.result()
            self.latest = result
            self._on_result(result)

    def _run(self) -> None:
        ticks = 0
        while not self._stop.is_set():
            self.tick()
            ticks += 1
            if self._max_ticks is not None and ticks >= self._max_ticks:
                break
            if self._stop.wait(self._interval):
                break

    def start(self) -> "Poller[T]":
        with self._lock:
            if self.running:
                return self
            self._stop.clear()
            self._thread = threading.Thread(target=self._run, name="poller-timer", daemon=True)
            self._thread.start()
        return self

    def stop(self, *, wait: bool = False) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        with self._lock:
            if self._inflight is not None:
                self._inflight.cancel()
        self._executor.shutdown(wait=wait, cancel_futures=True)

    def __enter__(self) -> "Poller[T]":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.stop()
