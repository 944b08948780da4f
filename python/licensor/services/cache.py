"""Read-through TTL cache with single-flight loading.

Each worker process owns its own instances; nothing is shared across
processes. Two instances exist per worker: providers by name (long TTL)
and decrypted licenses by composite key (short TTL).

Semantics:
- A miss calls the supplied loader. Concurrent misses on the same key
  wait for the one in-flight load and all receive its result.
- Loader exceptions propagate to every waiter and are never stored, so
  the next lookup retries.
- Entries older than ``ttl`` are misses on read and are removed by the
  background sweeper every ``sweep_interval`` seconds.
"""

import time
from collections.abc import Callable
from concurrent.futures import Future
from threading import Event, Lock, Thread
from typing import Any

from licensor.logging import get_logger

logger = get_logger(__name__)


class Cache:
    """Thread-safe keyed cache with TTL expiry and single-flight loads."""

    def __init__(
        self,
        name: str,
        ttl: float,
        sweep_interval: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.ttl = ttl
        self.sweep_interval = sweep_interval or ttl
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        self._inflight: dict[str, Future] = {}
        self._lock = Lock()
        self._stop = Event()
        self._sweeper: Thread | None = None

    def get(self, key: str, loader: Callable[[], Any]) -> Any:
        """Return the cached value for ``key``, loading it on a miss.

        Args:
            key: Cache key.
            loader: Zero-argument callable producing the value.

        Returns:
            The cached or freshly loaded value.

        Raises:
            Whatever ``loader`` raises, for the leader and every waiter.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                value, stored_at = entry
                if self._clock() - stored_at < self.ttl:
                    return value
                del self._entries[key]

            future = self._inflight.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._inflight[key] = future

        if not leader:
            return future.result()

        try:
            value = loader()
        except BaseException as exc:
            with self._lock:
                if self._inflight.get(key) is future:
                    del self._inflight[key]
            future.set_exception(exc)
            raise

        with self._lock:
            # An invalidate() during the load drops the result.
            if self._inflight.get(key) is future:
                del self._inflight[key]
                self._entries[key] = (value, self._clock())
        future.set_result(value)
        return value

    def invalidate(self, key: str) -> None:
        """Forget ``key``, including any load currently in flight."""
        with self._lock:
            self._entries.pop(key, None)
            self._inflight.pop(key, None)

    def clear(self) -> None:
        """Clear all cache entries."""
        with self._lock:
            self._entries.clear()
            self._inflight.clear()

    def sweep(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        with self._lock:
            expired = [k for k, (_, at) in self._entries.items() if now - at >= self.ttl]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("cache_swept", cache=self.name, removed=len(expired))
        return len(expired)

    def start(self) -> None:
        """Start the background sweeper thread (idempotent)."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()
        self._sweeper = Thread(
            target=self._run_sweeper, name=f"cache-sweeper-{self.name}", daemon=True
        )
        self._sweeper.start()

    def stop(self) -> None:
        """Stop the sweeper thread and wait for it to exit."""
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None

    def _run_sweeper(self) -> None:
        while not self._stop.wait(self.sweep_interval):
            try:
                self.sweep()
            except Exception:
                logger.exception("cache_sweep_failed", cache=self.name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
