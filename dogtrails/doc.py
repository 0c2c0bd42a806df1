"""
NZ Department of Conservation tracks API.

The list endpoint returns loosely-typed summaries; each track then needs a
detail call to fill in geometry, dog rules and grades. Field names drift
between records, so every semantic field is resolved through an alias list.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace

import requests

from dogtrails.errors import TransportError, StatusError, ParseError
from dogtrails.geometry import line_bbox
from dogtrails.models import Bbox, DogPolicy, Provider, Trail
from dogtrails.normalize import (
    as_float, difficulty_from_distance, difficulty_from_text, lookup_bool,
    lookup_distance_km, lookup_number, lookup_string, resolve_dog_policy,
)

logger = logging.getLogger(__name__)

DOC_TRACKS_URL = 'https://api.doc.govt.nz/v1/tracks?coordinates=wgs84'
DOC_DETAIL_URL = 'https://api.doc.govt.nz/v1/tracks/{track_id}/detail?coordinates=wgs84'
DETAIL_CONCURRENCY = 5
REQUEST_TIMEOUT = 30


class DocMapper:
    """Maps DOC track summaries (and detail payloads) onto Trail records."""

    ALIASES = {
        'id': ['assetId'],
        'name': ['name', 'trackName', 'title'],
        'location': ['locationString', 'locationArray', 'location', 'region',
                     'district', 'place', 'area'],
        'surface': ['surface', 'trackSurface', 'terrain'],
        'distance': ['distance', 'distanceKm', 'length', 'trackLength'],
        'elevation': ['elevationGain', 'totalAscent', 'ascent'],
        'difficulty': ['difficulty', 'grade', 'trackGrade', 'walkTrackCategory'],
        'map_url': ['staticLink', 'url', 'webUrl', 'docUrl', 'link'],
        'dogs_allowed': ['dogsAllowed', 'dogAllowed'],
        'dogs_on_lead': ['dogsAllowedOnLead', 'dogsOnLead'],
        'dogs_not_allowed': ['dogsNotAllowed', 'noDogs'],
        'dog_text': ['dogsAllowed', 'dogPolicy', 'dogs', 'dogAccess'],
        'lat': ['latitude', 'lat', 'y'],
        'lon': ['longitude', 'lon', 'lng', 'x'],
    }

    POINT_CONTAINERS = ('location', 'centroid', 'position')

    def map(self, summary):
        if not isinstance(summary, dict):
            return None
        name = self._string(summary, 'name')
        if not name:
            return None

        distance_km = lookup_distance_km(summary, self.ALIASES['distance']) or 0.0
        difficulty = (difficulty_from_text(self._string(summary, 'difficulty'))
                      or difficulty_from_distance(distance_km))
        dog_policy, dog_notes = self.dog_policy(summary)
        lat, lon = self.point(summary) or (0.0, 0.0)
        line = self.line(summary)
        asset_id = extract_doc_id(summary)

        return Trail(
            id=f'doc-{asset_id}' if asset_id else 'doc-' + name.lower().replace(' ', '-'),
            name=name,
            provider=Provider.DOC,
            location=self._string(summary, 'location') or 'New Zealand',
            distance_km=distance_km,
            elevation_gain_m=lookup_number(summary, self.ALIASES['elevation']),
            difficulty=difficulty,
            dog_policy=dog_policy,
            dog_notes=dog_notes,
            surface=self._string(summary, 'surface') or 'Unknown',
            map_url=self._string(summary, 'map_url') or 'https://www.doc.govt.nz',
            lat=lat,
            lon=lon,
            line=line,
            line_bbox=line_bbox(line) or Bbox.point(lat, lon),
        )

    def enrich(self, trail, detail):
        """New Trail with detail values layered over the summary record."""
        if not isinstance(detail, dict):
            return trail
        changes = {}

        for field, alias in (('name', 'name'), ('location', 'location'),
                             ('surface', 'surface'), ('map_url', 'map_url')):
            value = self._string(detail, alias)
            if value:
                changes[field] = value

        km = lookup_distance_km(detail, self.ALIASES['distance'])
        if km is not None and (trail.distance_km == 0.0 or km > 0.0):
            changes['distance_km'] = km

        elevation = lookup_number(detail, self.ALIASES['elevation'])
        if elevation is not None:
            changes['elevation_gain_m'] = elevation

        difficulty = difficulty_from_text(self._string(detail, 'difficulty'))
        if difficulty:
            changes['difficulty'] = difficulty

        dog_policy, dog_notes = self.dog_policy(detail)
        if dog_policy != DogPolicy.UNKNOWN:
            changes['dog_policy'] = dog_policy
            changes['dog_notes'] = dog_notes

        lat, lon = trail.lat, trail.lon
        point = self.point(detail)
        if point and lat == 0.0 and lon == 0.0:
            lat, lon = point
            changes['lat'], changes['lon'] = lat, lon

        detail_line = self.line(detail)
        if detail_line:
            if not trail.line:
                changes['line'] = detail_line
            changes['line_bbox'] = line_bbox(detail_line)
        elif not trail.line:
            changes['line_bbox'] = Bbox.point(lat, lon)

        return replace(trail, **changes)

    def dog_policy(self, value):
        return resolve_dog_policy(
            allowed=lookup_bool(value, self.ALIASES['dogs_allowed']),
            on_lead=lookup_bool(value, self.ALIASES['dogs_on_lead']),
            not_allowed=lookup_bool(value, self.ALIASES['dogs_not_allowed']),
            text=self._dog_text(value),
        )

    def _dog_text(self, value):
        # yes/no strings are flags, not free text
        for key in self.ALIASES['dog_text']:
            text = lookup_string(value, [key])
            if text and lookup_bool(value, [key]) is None:
                return text
        return None

    def point(self, value):
        """(lat, lon) from explicit keys, a [lon, lat] coordinates pair, or a nested container."""
        if not isinstance(value, dict):
            return None
        lat = lookup_number(value, self.ALIASES['lat'])
        lon = lookup_number(value, self.ALIASES['lon'])
        if lat is not None and lon is not None:
            return lat, lon

        coords = value.get('coordinates')
        if isinstance(coords, list) and len(coords) >= 2 and _is_pair(coords):
            return as_float(coords[1]), as_float(coords[0])

        for key in self.POINT_CONTAINERS:
            found = self.point(value.get(key))
            if found:
                return found
        return None

    @staticmethod
    def line(value):
        """`line` segments of [lon, lat] pairs flattened to ((lat, lon), ...)."""
        segments = value.get('line') if isinstance(value, dict) else None
        if not isinstance(segments, list):
            return ()
        coords = []
        for segment in segments:
            if not isinstance(segment, list):
                continue
            # tolerate a flat [[lon, lat], ...] line as well as segments
            points = [segment] if _is_pair(segment) else segment
            for pair in points:
                if isinstance(pair, list) and _is_pair(pair):
                    coords.append((as_float(pair[1]), as_float(pair[0])))
        return tuple(coords)

    def _string(self, value, field):
        return lookup_string(value, self.ALIASES[field])


def _is_pair(value):
    return len(value) >= 2 and all(as_float(v) is not None for v in value[:2])


def extract_doc_items(payload):
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get('tracks'), list):
        return payload['tracks']
    return []


def extract_doc_id(item):
    asset_id = item.get('assetId') if isinstance(item, dict) else None
    if asset_id is None or asset_id == '':
        return None
    return str(asset_id)


def _doc_get(session, url, api_key, what):
    try:
        r = session.get(url, headers={'x-api-key': api_key}, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise TransportError(f'DOC {what} request failed: {e}') from e
    if not 200 <= r.status_code < 300:
        raise StatusError(f'DOC {what}', r.status_code, r.text)
    try:
        return r.json()
    except ValueError as e:
        raise ParseError(f'DOC {what} response parse failed: {e}') from e


def fetch_doc_summaries(session, api_key):
    """Raw track summaries from the DOC list endpoint."""
    payload = _doc_get(session, DOC_TRACKS_URL, api_key, 'tracks')
    if not isinstance(payload, (list, dict)):
        raise ParseError('DOC tracks response is neither a list nor an object')
    items = extract_doc_items(payload)
    logger.info(f'DOC API returned {len(items)} tracks total')
    return items


def fetch_doc_detail(session, api_key, track_id):
    return _doc_get(session, DOC_DETAIL_URL.format(track_id=track_id), api_key, 'detail')


_mapper = DocMapper()


def _unique_id(trail_id, used_ids):
    """Name-slug ids of asset-less tracks get -2, -3, ... on collision."""
    candidate, n = trail_id, 1
    while candidate in used_ids:
        n += 1
        candidate = f'{trail_id}-{n}'
    used_ids.add(candidate)
    return candidate


def fetch_doc_tracks_all(session, api_key):
    """Whole DOC catalog with per-track detail, at most DETAIL_CONCURRENCY lookups in flight.

    A track whose detail call or enrichment fails is dropped; the rest of the
    batch carries on. Result order follows completion order.
    """
    trails = []
    pending = []
    summaries = fetch_doc_summaries(session, api_key)
    used_ids = {f'doc-{i}' for i in map(extract_doc_id, summaries) if i is not None}
    for item in summaries:
        trail = _mapper.map(item)
        if trail is None:
            continue
        track_id = extract_doc_id(item)
        if track_id is None:
            trails.append(replace(trail, id=_unique_id(trail.id, used_ids)))
        else:
            pending.append((track_id, trail))

    with ThreadPoolExecutor(max_workers=DETAIL_CONCURRENCY) as pool:
        futures = {
            pool.submit(fetch_doc_detail, session, api_key, track_id): (track_id, trail)
            for track_id, trail in pending
        }
        for fut in as_completed(futures):
            track_id, trail = futures[fut]
            try:
                trails.append(_mapper.enrich(trail, fut.result()))
            except Exception as e:
                logger.warning(f'DOC detail for {track_id} failed, dropping track: {e}')

    logger.info(f'DOC: {len(trails)} trails after detail enrichment')
    return trails
