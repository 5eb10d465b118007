"""
Unit Tests for CorpusCache

Tests for TTL expiry, stale-while-revalidate and single-flight refresh,
using a manual clock and a corpus source that can be held mid-load.
"""

import threading
import time

import pytest

from conftest import PAPER_1H, PAPER_2H
from gcse_markscheme.loading import CorpusCache, build_snapshot


class GatedSource:
    """Corpus source whose load() blocks until the gate is open."""

    def __init__(self):
        self.gate = threading.Event()
        self.gate.set()
        self.started = threading.Event()
        self.papers = [PAPER_1H]
        self.fail = False
        self.load_count = 0

    def load(self):
        self.load_count += 1
        self.started.set()
        self.gate.wait(timeout=5)
        if self.fail:
            raise RuntimeError("corpus unavailable")
        return build_snapshot(self.papers, [])


def _wait_until(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


@pytest.fixture
def source():
    return GatedSource()


@pytest.fixture
def cache(source, fake_clock):
    cache = CorpusCache(source, ttl_seconds=60, clock=fake_clock)
    yield cache
    source.gate.set()
    cache.close()


class TestCorpusCache:
    """Tests for CorpusCache."""

    def test_init_when_ttl_not_positive_then_raises_error(self, source):
        """The TTL must be positive."""
        with pytest.raises(ValueError, match="ttl_seconds"):
            CorpusCache(source, ttl_seconds=0)

    def test_get_when_fresh_then_loads_once(self, cache, source):
        """Repeated gets within the TTL reuse the snapshot."""
        first = cache.get()
        second = cache.get()
        assert first is second
        assert source.load_count == 1

    def test_get_when_expired_then_serves_stale_and_refreshes_once(self, cache, source, fake_clock):
        """Expired snapshots are served while a single refresh runs."""
        first = cache.get()
        source.gate.clear()
        source.started.clear()
        source.papers = [PAPER_1H, PAPER_2H]
        fake_clock.advance(61)

        assert cache.get() is first
        assert source.started.wait(timeout=5)
        assert cache.refresh_in_flight
        assert cache.get() is first
        assert cache.get() is first
        assert source.load_count == 2

        source.gate.set()
        assert _wait_until(lambda: not cache.refresh_in_flight)
        assert len(cache.get().papers) == 2
        assert source.load_count == 2

    def test_refresh_when_called_then_returns_new_snapshot(self, cache, source):
        """refresh() loads a fresh snapshot and swaps it in."""
        cache.get()
        source.papers = [PAPER_1H, PAPER_2H]
        fresh = cache.refresh()
        assert len(fresh.papers) == 2
        assert cache.get() is fresh

    def test_invalidate_when_called_then_next_get_refreshes(self, cache, source):
        """invalidate() expires the snapshot immediately."""
        first = cache.get()
        source.papers = [PAPER_1H, PAPER_2H]
        cache.invalidate()

        assert cache.get() is first
        assert _wait_until(lambda: not cache.refresh_in_flight)
        assert len(cache.get().papers) == 2

    def test_get_when_initial_load_fails_then_raises(self, cache, source):
        """Without any snapshot, a failed load propagates."""
        source.fail = True
        with pytest.raises(RuntimeError, match="corpus unavailable"):
            cache.get()
        assert not cache.refresh_in_flight

    def test_get_when_background_refresh_fails_then_keeps_stale(self, cache, source, fake_clock):
        """A failed refresh leaves the stale snapshot in place."""
        first = cache.get()
        source.fail = True
        fake_clock.advance(61)

        assert cache.get() is first
        assert _wait_until(lambda: not cache.refresh_in_flight)
        assert cache.get() is first
