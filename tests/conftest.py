import pytest

from dogtrails.models import Bbox, Difficulty, DogPolicy, Provider, Trail


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=''):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Stands in for requests.Session; routes calls by URL to queued responses."""

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls = []

    def _next(self, url):
        queue = self.responses[url]
        item = queue.pop(0) if isinstance(queue, list) else queue
        if isinstance(item, Exception):
            raise item
        return item

    def post(self, url, data=None, timeout=None):
        self.calls.append(('POST', url))
        return self._next(url)

    def get(self, url, headers=None, timeout=None):
        self.calls.append(('GET', url))
        return self._next(url)


def make_trail(id='t1', distance_km=5.0, difficulty=Difficulty.EASY,
               dog_policy=DogPolicy.ALLOWED, elevation_gain_m=None,
               lat=-43.5, lon=172.6, provider=Provider.DOC):
    return Trail(
        id=id,
        name=id.title(),
        provider=provider,
        location='Canterbury',
        distance_km=distance_km,
        elevation_gain_m=elevation_gain_m,
        difficulty=difficulty,
        dog_policy=dog_policy,
        map_url='https://www.doc.govt.nz',
        lat=lat,
        lon=lon,
        line_bbox=Bbox.point(lat, lon),
    )


@pytest.fixture
def sample_trails():
    return [
        make_trail('t1', 5.0, Difficulty.EASY, DogPolicy.ALLOWED, 120.0),
        make_trail('t2', 12.0, Difficulty.HARD, DogPolicy.NOT_ALLOWED, 520.0),
    ]
