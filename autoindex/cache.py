#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Render Cache Module for Autoindex
---------------------------------
Keeps fully rendered directory listings per normalized request path until
their deadline passes.
"""

import time
import logging
import threading
from collections import OrderedDict, namedtuple

CacheRecord = namedtuple('CacheRecord', ['key', 'payload', 'is_json', 'expires_at'])


class RenderCache:
    """
    Cache for rendered directory listings.

    A record is served while ``clock() < expires_at``. Expired records are
    removed when they are looked up; ``purge_expired`` sweeps all of them.
    Writing a key replaces the previous record entirely.
    """

    def __init__(self, ttl_ms=300000, max_entries=None, clock=time.time):
        """
        Initialize the render cache.

        Args:
            ttl_ms: Lifetime of a record in milliseconds
            max_entries: Maximum number of records, None for no limit
            clock: Callable returning the current time in seconds
        """
        self.ttl = ttl_ms / 1000.0
        self.max_entries = max_entries
        self.clock = clock
        self.cache = OrderedDict()
        self.lock = threading.Lock()
        self.logger = logging.getLogger('RenderCache')
        self.hits = 0
        self.misses = 0
        self.total_requests = 0

    def __len__(self):
        return len(self.cache)

    def __contains__(self, key):
        return key in self.cache

    def get(self, key):
        """
        Get a listing from the cache.

        Args:
            key: Normalized request path

        Returns:
            CacheRecord or None if absent or expired
        """
        with self.lock:
            self.total_requests += 1
            record = self.cache.get(key)

            if record is not None:
                if self.clock() < record.expires_at:
                    self.hits += 1
                    self.logger.debug(f"Cache hit: {key}")
                    return record

                self.logger.debug(f"Cache expired: {key}")
                del self.cache[key]

            self.misses += 1
            self.logger.debug(f"Cache miss: {key}")
            return None

    def make_record(self, key, payload, is_json):
        """Build a record whose deadline starts now."""
        return CacheRecord(key, payload, is_json, self.clock() + self.ttl)

    def put(self, record):
        """
        Store a record, replacing any previous one for the same key.

        Args:
            record: CacheRecord to store
        """
        with self.lock:
            self.cache.pop(record.key, None)
            if self.max_entries is not None and self.max_entries > 0:
                while len(self.cache) >= self.max_entries:
                    evicted, _ = self.cache.popitem(last=False)
                    self.logger.debug(f"Evicted from cache: {evicted}")
            self.cache[record.key] = record
        self.logger.debug(f"Added to cache: {record.key}")

    def purge_expired(self):
        """
        Remove every expired record.

        Returns:
            int: Number of records removed
        """
        with self.lock:
            now = self.clock()
            expired = [key for key, record in self.cache.items() if now >= record.expires_at]
            for key in expired:
                del self.cache[key]
        if expired:
            self.logger.debug(f"Purged {len(expired)} expired listings")
        return len(expired)

    def clear(self):
        """Clear the cache."""
        with self.lock:
            self.cache.clear()
        self.logger.info("Render cache cleared")

    def stats(self):
        """
        Return cache statistics.

        Returns:
            dict: Cache statistics
        """
        with self.lock:
            hit_ratio = self.hits / self.total_requests if self.total_requests > 0 else 0
            return {
                'size': len(self.cache),
                'max_entries': self.max_entries,
                'ttl_ms': int(self.ttl * 1000),
                'hits': self.hits,
                'misses': self.misses,
                'total_requests': self.total_requests,
                'hit_ratio': hit_ratio
            }
