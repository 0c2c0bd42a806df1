"""
In-memory trail caches.

Overpass results are cached per exact bbox for 10 minutes, with a single
permit so only one Overpass fetch is in flight at a time. DOC results are
one global snapshot of the whole catalog kept for 12 hours and filtered by
bbox on every read.

Entries are replaced whole under a lock and never mutated, so a reader
always sees a complete entry.
"""
import time
import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from dogtrails.geometry import filter_by_bbox

logger = logging.getLogger(__name__)

OVERPASS_CACHE_TTL = 600  # 10 minutes
DOC_CACHE_TTL = 60 * 60 * 12  # 12 hours


@dataclass(frozen=True)
class CacheEntry:
    fetched_at: float
    scope_key: Optional[Any]
    trails: Tuple


class _EntrySlot:
    """Holds one CacheEntry; swaps are atomic with respect to readers."""

    def __init__(self, ttl, clock):
        self.ttl = ttl
        self.clock = clock
        self._entry = None
        self._lock = threading.Lock()

    def read(self):
        with self._lock:
            return self._entry

    def write(self, scope_key, trails):
        entry = CacheEntry(self.clock(), scope_key, tuple(trails))
        with self._lock:
            self._entry = entry
        return entry

    def is_fresh(self, entry):
        return entry is not None and self.clock() - entry.fetched_at < self.ttl

    def clear(self):
        with self._lock:
            self._entry = None


class OverpassCache:
    """Bbox-keyed cache with a single in-flight fetch.

    A caller that can't get the permit right away is served whatever entry
    exists, even for another bbox or past its TTL. Only a cold cache waits.
    """

    def __init__(self, ttl=OVERPASS_CACHE_TTL, clock=time.monotonic):
        self._slot = _EntrySlot(ttl, clock)
        self._permit = threading.Semaphore(1)

    def _hit(self, entry, bbox):
        return self._slot.is_fresh(entry) and entry.scope_key == bbox

    def get(self, bbox, fetch):
        """Cached trails for `bbox`, calling `fetch(bbox)` on a miss."""
        entry = self._slot.read()
        if self._hit(entry, bbox):
            return list(entry.trails)

        if not self._permit.acquire(blocking=False):
            entry = self._slot.read()
            if entry is not None:
                logger.debug('Overpass request in flight, serving cached data')
                return list(entry.trails)
            self._permit.acquire()

        try:
            # another holder may have just refreshed this bbox
            entry = self._slot.read()
            if self._hit(entry, bbox):
                return list(entry.trails)
            trails = fetch(bbox)
            self._slot.write(bbox, trails)
            return list(trails)
        finally:
            self._permit.release()

    def clear(self):
        self._slot.clear()


class DocCache:
    """Global DOC catalog snapshot, filtered by bbox on read."""

    def __init__(self, ttl=DOC_CACHE_TTL, clock=time.monotonic):
        self._slot = _EntrySlot(ttl, clock)
        self._refresh_lock = threading.Lock()

    def get(self, bbox, fetch_all):
        """Trails intersecting `bbox`; `fetch_all()` reloads the whole catalog on a miss."""
        entry = self._slot.read()
        if not self._slot.is_fresh(entry):
            with self._refresh_lock:
                entry = self._slot.read()
                if not self._slot.is_fresh(entry):
                    entry = self._slot.write(None, fetch_all())

        trails = filter_by_bbox(entry.trails, bbox)
        logger.info(f'DOC filtered by bounding box gives {len(trails)} tracks')
        return trails

    def clear(self):
        self._slot.clear()
