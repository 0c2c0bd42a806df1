import time
import logging

import requests

from dogtrails.errors import TrailError, TransportError, StatusError, ParseError, RateLimited
from dogtrails.geometry import polyline_km, line_bbox
from dogtrails.models import Bbox, Difficulty, DogPolicy, Provider, Trail
from dogtrails.normalize import (
    DOGS_UNKNOWN, as_float, difficulty_from_distance, difficulty_from_text,
    lookup_distance_km, lookup_number, lookup_string,
)

logger = logging.getLogger(__name__)

OVERPASS_SERVERS = [
    'https://overpass-api.de/api/interpreter',
    'https://overpass.kumi.systems/api/interpreter',
    'https://overpass.nchc.org.tw/api/interpreter',
]

MAX_ATTEMPTS = 3
REQUEST_TIMEOUT = 30

TRAIL_QUERY = (
    '[out:json][timeout:25];('
    'way[highway=path][dog]({bbox});'
    'way[highway=footway][dog]({bbox});'
    'way[route=hiking][dog]({bbox});'
    ');out tags geom;'
)


def build_query(bbox):
    return TRAIL_QUERY.format(bbox=f'{bbox.min_lat},{bbox.min_lon},{bbox.max_lat},{bbox.max_lon}')


class OverpassMapper:
    """Maps Overpass `way` elements onto Trail records."""

    ALIASES = {
        'name': ['name'],
        'surface': ['surface'],
        'location': ['addr:city', 'is_in'],
        'distance': ['distance', 'length'],
        'elevation': ['ele'],
        'difficulty': ['difficulty'],
        'dog': ['dog', 'dogs'],
    }

    SAC_SCALE = {
        'hiking': Difficulty.EASY,
        'mountain_hiking': Difficulty.MODERATE,
        'demanding_mountain_hiking': Difficulty.HARD,
        'alpine_hiking': Difficulty.HARD,
    }

    DOG_TAGS = {
        'yes': (DogPolicy.ALLOWED, None),
        'designated': (DogPolicy.ALLOWED, None),
        'unleashed': (DogPolicy.ALLOWED, None),
        'leashed': (DogPolicy.PARTIAL, 'Dogs must be leashed or have restrictions.'),
        'on_leash': (DogPolicy.PARTIAL, 'Dogs must be leashed or have restrictions.'),
        'conditional': (DogPolicy.PARTIAL, 'Dogs must be leashed or have restrictions.'),
        'no': (DogPolicy.NOT_ALLOWED, None),
    }

    def map(self, element):
        """Trail for a way element, or None if unusable or dogs are banned."""
        if not isinstance(element, dict) or element.get('type') != 'way':
            return None
        osm_id = element.get('id')
        tags = element.get('tags')
        if osm_id is None or not isinstance(tags, dict):
            return None
        name = lookup_string(tags, self.ALIASES['name'])
        if not name:
            return None

        dog_policy, dog_notes = self._dog_policy(tags)
        if dog_policy == DogPolicy.NOT_ALLOWED:
            return None

        line = self._line(element.get('geometry'))
        if len(line) >= 2:
            distance_km = polyline_km(line)
        else:
            distance_km = lookup_distance_km(tags, self.ALIASES['distance']) or 0.0

        lat, lon = self._point(element.get('center'), line)

        return Trail(
            id=f'osm-{osm_id}',
            name=name,
            provider=Provider.OSM,
            location=lookup_string(tags, self.ALIASES['location']) or 'Unknown',
            distance_km=distance_km,
            elevation_gain_m=lookup_number(tags, self.ALIASES['elevation']),
            difficulty=self._difficulty(tags, distance_km),
            dog_policy=dog_policy,
            dog_notes=dog_notes,
            surface=lookup_string(tags, self.ALIASES['surface']) or 'Unknown',
            map_url=f'https://www.openstreetmap.org/way/{osm_id}',
            lat=lat,
            lon=lon,
            line=line,
            line_bbox=line_bbox(line) or Bbox.point(lat, lon),
        )

    def _dog_policy(self, tags):
        value = lookup_string(tags, self.ALIASES['dog'])
        if not value:
            return DogPolicy.UNKNOWN, DOGS_UNKNOWN
        return self.DOG_TAGS.get(value.lower(), (DogPolicy.UNKNOWN, DOGS_UNKNOWN))

    def _difficulty(self, tags, distance_km):
        scale = lookup_string(tags, ['sac_scale'])
        if scale:
            return self.SAC_SCALE.get(scale.lower(), Difficulty.MODERATE)
        return (difficulty_from_text(lookup_string(tags, self.ALIASES['difficulty']))
                or difficulty_from_distance(distance_km))

    @staticmethod
    def _line(geometry):
        if not isinstance(geometry, list):
            return ()
        points = []
        for pt in geometry:
            if not isinstance(pt, dict):
                continue
            lat, lon = as_float(pt.get('lat')), as_float(pt.get('lon'))
            if lat is not None and lon is not None:
                points.append((lat, lon))
        return tuple(points)

    @staticmethod
    def _point(center, line):
        if isinstance(center, dict):
            lat, lon = as_float(center.get('lat')), as_float(center.get('lon'))
            if lat is not None and lon is not None:
                return lat, lon
        if line:
            return (sum(p[0] for p in line) / len(line),
                    sum(p[1] for p in line) / len(line))
        return 0.0, 0.0


_mapper = OverpassMapper()


def parse_overpass_trails(data):
    """Trails from an Overpass JSON response; unusable elements are skipped."""
    elements = data.get('elements') if isinstance(data, dict) else None
    if not isinstance(elements, list):
        raise ParseError('overpass response has no elements list')
    trails = []
    for el in elements:
        trail = _mapper.map(el)
        if trail is not None:
            trails.append(trail)
    return trails


def fetch_overpass_trails(session, server, bbox):
    """Query one Overpass server, backing off on 429 (2s, 4s, 8s)."""
    query = build_query(bbox)
    for attempt in range(1, MAX_ATTEMPTS + 1):
        try:
            r = session.post(server, data={'data': query}, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            raise TransportError(f'overpass request to {server} failed: {e}') from e

        if r.status_code == 429:
            delay = 2 ** attempt
            logger.warning(f'Overpass 429 from {server}, retrying in {delay}s '
                           f'(attempt {attempt}/{MAX_ATTEMPTS})')
            time.sleep(delay)
            continue

        if not 200 <= r.status_code < 300:
            raise StatusError('overpass', r.status_code, r.text)

        try:
            data = r.json()
        except ValueError as e:
            raise ParseError(f'overpass response parse failed: {e}') from e
        return parse_overpass_trails(data)

    raise RateLimited(f'Rate limited by {server} after {MAX_ATTEMPTS} attempts')


def fetch_overpass_with_fallback(session, servers, bbox):
    """Try each server in order; the first success wins, else the last error is raised."""
    last_err = None
    for server in servers:
        try:
            trails = fetch_overpass_trails(session, server, bbox)
            logger.info(f'Overpass {server} returned {len(trails)} trails')
            return trails
        except TrailError as e:
            logger.warning(f'Overpass request failed for {server}: {e}')
            last_err = e
            continue

    raise last_err or TrailError('no overpass endpoints configured')
