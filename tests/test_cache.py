"""
Render cache: deadlines, lazy eviction, replacement and the optional cap.
"""

from __future__ import annotations

import threading

from autoindex.cache import CacheRecord, RenderCache


def test_record_is_served_until_its_deadline(clock) -> None:
    cache = RenderCache(ttl_ms=1000, clock=clock)
    cache.put(cache.make_record("/docs", "<html>", False))

    clock.advance(0.999)
    record = cache.get("/docs")
    assert record is not None
    assert record.payload == "<html>"
    assert record.expires_at == 1001.0


def test_expired_record_is_evicted_on_access(clock) -> None:
    cache = RenderCache(ttl_ms=1000, clock=clock)
    cache.put(cache.make_record("/docs", "<html>", False))

    clock.advance(1.0)
    assert "/docs" in cache
    assert cache.get("/docs") is None
    assert "/docs" not in cache
    assert len(cache) == 0


def test_put_replaces_existing_record(clock) -> None:
    cache = RenderCache(ttl_ms=1000, clock=clock)
    cache.put(cache.make_record("/docs", "old", False))
    clock.advance(0.5)
    cache.put(cache.make_record("/docs", ["new"], True))

    record = cache.get("/docs")
    assert record == CacheRecord("/docs", ["new"], True, 1001.5)
    assert len(cache) == 1


def test_purge_expired_sweeps_everything_stale(clock) -> None:
    cache = RenderCache(ttl_ms=1000, clock=clock)
    cache.put(cache.make_record("/a", "a", False))
    clock.advance(0.6)
    cache.put(cache.make_record("/b", "b", False))
    clock.advance(0.6)

    assert cache.purge_expired() == 1
    assert "/a" not in cache
    assert "/b" in cache


def test_max_entries_evicts_oldest(clock) -> None:
    cache = RenderCache(ttl_ms=1000, max_entries=2, clock=clock)
    for key in ("/a", "/b", "/c"):
        cache.put(cache.make_record(key, key, False))

    assert "/a" not in cache
    assert cache.get("/b") is not None
    assert cache.get("/c") is not None


def test_stats_count_hits_and_misses(clock) -> None:
    cache = RenderCache(ttl_ms=1000, clock=clock)
    cache.get("/a")
    cache.put(cache.make_record("/a", "a", False))
    cache.get("/a")

    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_ratio"] == 0.5
    assert stats["ttl_ms"] == 1000

    cache.clear()
    assert len(cache) == 0


def test_concurrent_writers_leave_one_record_per_key(clock) -> None:
    cache = RenderCache(ttl_ms=1000, clock=clock)

    def writer(n: int) -> None:
        for i in range(200):
            cache.put(cache.make_record(f"/dir{i % 5}", f"{n}-{i}", False))
            cache.get(f"/dir{(i + 1) % 5}")

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(cache) == 5
    for i in range(5):
        record = cache.get(f"/dir{i}")
        assert record is not None
        assert record.key == f"/dir{i}"
