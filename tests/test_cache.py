import threading

import pytest

from dogtrails.cache import DocCache, OverpassCache
from dogtrails.errors import TransportError
from dogtrails.models import Bbox

from conftest import make_trail

BBOX = Bbox(-43.60, 172.50, -43.45, 172.77)
OTHER = Bbox(-41.35, 174.70, -41.20, 174.90)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class CountingFetch:
    def __init__(self, trails=None):
        self.calls = []
        self.trails = trails if trails is not None else [make_trail('osm-1')]

    def __call__(self, *args):
        self.calls.append(args)
        return list(self.trails)


class TestOverpassCache:
    def setup_method(self):
        self.clock = FakeClock()
        self.cache = OverpassCache(clock=self.clock)

    def test_hit_within_ttl_fetches_once(self):
        fetch = CountingFetch()
        first = self.cache.get(BBOX, fetch)
        second = self.cache.get(Bbox(-43.60, 172.50, -43.45, 172.77), fetch)
        assert len(fetch.calls) == 1
        assert first == second == fetch.trails

    def test_expired_entry_is_refetched(self):
        fetch = CountingFetch()
        self.cache.get(BBOX, fetch)
        self.clock.now += 599
        self.cache.get(BBOX, fetch)
        assert len(fetch.calls) == 1
        self.clock.now += 2
        self.cache.get(BBOX, fetch)
        assert len(fetch.calls) == 2

    def test_different_bbox_is_a_miss(self):
        fetch = CountingFetch()
        self.cache.get(BBOX, fetch)
        self.cache.get(OTHER, fetch)
        assert fetch.calls == [(BBOX,), (OTHER,)]

    def test_callers_get_a_copy(self):
        fetch = CountingFetch()
        self.cache.get(BBOX, fetch).append('junk')
        assert self.cache.get(BBOX, fetch) == fetch.trails

    def test_failed_fetch_releases_permit(self):
        def boom(bbox):
            raise TransportError('down')

        with pytest.raises(TransportError):
            self.cache.get(BBOX, boom)
        fetch = CountingFetch()
        assert self.cache.get(BBOX, fetch) == fetch.trails

    def test_in_flight_fetch_serves_existing_entry(self):
        cached = [make_trail('osm-cached')]
        self.cache.get(BBOX, CountingFetch(cached))

        started, release = threading.Event(), threading.Event()

        def slow_fetch(bbox):
            started.set()
            release.wait(5)
            return [make_trail('osm-fresh')]

        worker = threading.Thread(target=self.cache.get, args=(OTHER, slow_fetch))
        worker.start()
        assert started.wait(5)

        other_fetch = CountingFetch()
        served = self.cache.get(Bbox(0.0, 0.0, 1.0, 1.0), other_fetch)
        release.set()
        worker.join(5)

        assert served == cached
        assert other_fetch.calls == []
        assert [t.id for t in self.cache.get(OTHER, other_fetch)] == ['osm-fresh']
        assert other_fetch.calls == []

    def test_cold_cache_waits_then_rechecks(self):
        started, release = threading.Event(), threading.Event()
        calls = []

        def slow_fetch(bbox):
            calls.append(bbox)
            started.set()
            release.wait(5)
            return [make_trail('osm-1')]

        results = []
        first = threading.Thread(target=lambda: results.append(self.cache.get(BBOX, slow_fetch)))
        first.start()
        assert started.wait(5)
        second = threading.Thread(target=lambda: results.append(self.cache.get(BBOX, slow_fetch)))
        second.start()
        release.set()
        first.join(5)
        second.join(5)

        assert calls == [BBOX]
        assert len(results) == 2
        assert results[0] == results[1]

    def test_clear(self):
        fetch = CountingFetch()
        self.cache.get(BBOX, fetch)
        self.cache.clear()
        self.cache.get(BBOX, fetch)
        assert len(fetch.calls) == 2


class TestDocCache:
    def setup_method(self):
        self.clock = FakeClock()
        self.cache = DocCache(clock=self.clock)
        self.chch = make_trail('doc-chch', lat=-43.5, lon=172.6)
        self.wgtn = make_trail('doc-wgtn', lat=-41.3, lon=174.8)
        self.fetch = CountingFetch([self.chch, self.wgtn])

    def test_global_snapshot_filtered_per_bbox(self):
        assert self.cache.get(BBOX, self.fetch) == [self.chch]
        assert self.cache.get(OTHER, self.fetch) == [self.wgtn]
        assert len(self.fetch.calls) == 1

    def test_twelve_hour_ttl(self):
        self.cache.get(BBOX, self.fetch)
        self.clock.now += 12 * 60 * 60 - 1
        self.cache.get(BBOX, self.fetch)
        assert len(self.fetch.calls) == 1
        self.clock.now += 2
        self.cache.get(BBOX, self.fetch)
        assert len(self.fetch.calls) == 2

    def test_failed_refresh_propagates(self):
        def boom():
            raise TransportError('down')

        with pytest.raises(TransportError):
            self.cache.get(BBOX, boom)
        assert self.cache.get(BBOX, self.fetch) == [self.chch]
