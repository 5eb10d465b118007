"""
Module: loading.cache

Purpose:
    Read-through corpus cache with a time-to-live. Expired snapshots keep
    being served while a single background refresh runs; the new snapshot
    is swapped in atomically when it completes.

Key Classes:
    - CorpusCache: get() / refresh() / invalidate() over a CorpusSource

Dependencies:
    - threading (std): Guards the snapshot and in-flight refresh
    - concurrent.futures (std): Single-worker refresh executor

Used By:
    - detection.service.QuestionDetectionService
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from threading import Lock
from typing import Callable, Optional

from gcse_markscheme.core.models import CorpusSnapshot

from .loader import CorpusSource

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600.0


class CorpusCache:
    """
    TTL cache around a corpus source (stale-while-revalidate, single-flight).

    - The first ``get()`` blocks until the corpus is loaded; a failing
      first load raises.
    - After the TTL expires, ``get()`` returns the stale snapshot
      immediately and starts one background refresh.
    - At most one refresh is in flight. Concurrent ``refresh()`` calls
      join it instead of reading the corpus again.
    - A failed background refresh is logged and the stale snapshot stays.

    Example:
        >>> cache = CorpusCache(JsonlCorpusSource(Path("corpus")), ttl_seconds=3600)
        >>> snapshot = cache.get()
        >>> cache.invalidate()   # next get() serves stale + refreshes
    """

    def __init__(
        self,
        source: CorpusSource,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize an empty cache.

        Args:
            source: Where snapshots are loaded from
            ttl_seconds: Age after which a snapshot is refreshed
            clock: Monotonic time source (injectable for tests)
        """
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive: {ttl_seconds}")
        self._source = source
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = Lock()
        self._snapshot: Optional[CorpusSnapshot] = None
        self._expires_at = 0.0
        self._refresh_future: Optional[Future] = None
        self._executor: Optional[ThreadPoolExecutor] = None

    # ─────────────────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────────────────

    def get(self) -> CorpusSnapshot:
        """
        Return the current snapshot, loading or refreshing as needed.

        Raises:
            Exception: Whatever the source raised, only when no snapshot
                has ever been loaded
        """
        with self._lock:
            snapshot = self._snapshot
            if snapshot is not None:
                if self._clock() >= self._expires_at and self._refresh_future is None:
                    logger.info("Corpus cache expired; serving stale snapshot while refreshing")
                    self._start_refresh_locked()
                else:
                    logger.debug("Corpus cache HIT")
                return snapshot
            logger.debug("Corpus cache MISS (initial load)")
            future = self._refresh_future or self._start_refresh_locked()
        return future.result()

    def refresh(self) -> CorpusSnapshot:
        """
        Load a fresh snapshot now, joining any refresh already in flight.

        Raises:
            Exception: Whatever the source raised
        """
        with self._lock:
            future = self._refresh_future or self._start_refresh_locked()
        return future.result()

    def invalidate(self) -> None:
        """Mark the current snapshot expired; the next get() triggers a refresh."""
        with self._lock:
            self._expires_at = float("-inf")
        logger.debug("Corpus cache invalidated")

    @property
    def refresh_in_flight(self) -> bool:
        with self._lock:
            return self._refresh_future is not None

    def close(self) -> None:
        """Shut down the refresh worker (waits for an in-flight refresh)."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    # ─────────────────────────────────────────────────────────────────────────
    # Internals
    # ─────────────────────────────────────────────────────────────────────────

    def _start_refresh_locked(self) -> Future:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="corpus-refresh")
        future = self._executor.submit(self._do_refresh)
        self._refresh_future = future
        return future

    def _do_refresh(self) -> CorpusSnapshot:
        start = time.perf_counter()
        try:
            snapshot = self._source.load()
        except Exception as e:
            with self._lock:
                has_stale = self._snapshot is not None
                self._refresh_future = None
            if has_stale:
                logger.error(f"Corpus refresh failed, keeping stale snapshot: {e}")
            else:
                logger.error(f"Initial corpus load failed: {e}")
            raise

        with self._lock:
            self._snapshot = snapshot
            self._expires_at = self._clock() + self._ttl
            self._refresh_future = None
        elapsed = time.perf_counter() - start
        logger.info(f"Corpus snapshot swapped in: {snapshot!r} ({elapsed:.2f}s)")
        return snapshot

    def __repr__(self) -> str:
        return f"CorpusCache({self._source!r}, ttl={self._ttl}s)"
