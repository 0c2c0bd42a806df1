from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class Provider(Enum):
    OSM = 'OpenStreetMap'
    DOC = 'DOC'


class Difficulty(Enum):
    EASY = 'easy'
    MODERATE = 'moderate'
    HARD = 'hard'


class DogPolicy(Enum):
    ALLOWED = 'allowed'
    PARTIAL = 'partial'
    NOT_ALLOWED = 'not_allowed'
    UNKNOWN = 'unknown'


class DogFilter(Enum):
    ALLOWED_ONLY = 'allowed_only'
    ALLOWED_OR_PARTIAL = 'allowed_or_partial'
    ANY = 'any'


class Effort(Enum):
    EASY = 'easy'
    STEADY = 'steady'
    HARD = 'hard'


class Length(Enum):
    SHORT = 'short'
    MEDIUM = 'medium'
    LONG = 'long'


@dataclass(frozen=True)
class Bbox:
    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float

    @classmethod
    def point(cls, lat, lon):
        """Degenerate box for trails with no line geometry."""
        return cls(lat, lon, lat, lon)

    @classmethod
    def from_query(cls, query):
        """Box from the query corners, or None if any corner is missing."""
        corners = (query.min_lat, query.min_lon, query.max_lat, query.max_lon)
        if any(c is None for c in corners):
            return None
        return cls(*corners)


# Christchurch, NZ
DEFAULT_BBOX = Bbox(-43.60, 172.50, -43.45, 172.77)


@dataclass(frozen=True)
class Trail:
    id: str
    name: str
    provider: Provider
    location: str
    distance_km: float
    difficulty: Difficulty
    dog_policy: DogPolicy
    map_url: str
    lat: float
    lon: float
    line_bbox: Bbox
    elevation_gain_m: Optional[float] = None
    dog_notes: Optional[str] = None
    surface: str = 'Unknown'
    line: Tuple[Tuple[float, float], ...] = ()

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'provider': self.provider.value,
            'location': self.location,
            'distance_km': self.distance_km,
            'elevation_gain_m': self.elevation_gain_m,
            'difficulty': self.difficulty.value,
            'dog_policy': self.dog_policy.value,
            'dog_notes': self.dog_notes,
            'surface': self.surface,
            'map_url': self.map_url,
            'lat': self.lat,
            'lon': self.lon,
            'line': [[lat, lon] for lat, lon in self.line],
        }


def _enum_arg(enum_cls, value):
    if value is None or value == '':
        return None
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        raise ValueError(f'Invalid {enum_cls.__name__.lower()}: {value!r}')


def _float_arg(name, value):
    if value is None or value == '':
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f'Invalid {name}: {value!r}')


@dataclass(frozen=True)
class TrailQuery:
    min_km: Optional[float] = None
    max_km: Optional[float] = None
    difficulty: Optional[Difficulty] = None
    dog: Optional[DogFilter] = None
    effort: Optional[Effort] = None
    length: Optional[Length] = None
    min_lat: Optional[float] = None
    min_lon: Optional[float] = None
    max_lat: Optional[float] = None
    max_lon: Optional[float] = None

    @classmethod
    def from_args(cls, args):
        """Build a query from string request parameters. Raises ValueError on bad input."""
        floats = {
            name: _float_arg(name, args.get(name))
            for name in ('min_km', 'max_km', 'min_lat', 'min_lon', 'max_lat', 'max_lon')
        }
        return cls(
            difficulty=_enum_arg(Difficulty, args.get('difficulty')),
            dog=_enum_arg(DogFilter, args.get('dog')),
            effort=_enum_arg(Effort, args.get('effort')),
            length=_enum_arg(Length, args.get('length')),
            **floats,
        )

    def bbox(self):
        return Bbox.from_query(self) or DEFAULT_BBOX


@dataclass(frozen=True)
class ProviderInfo:
    name: str
    api_status: str
    notes: str
    website: str

    def to_dict(self):
        return {
            'name': self.name,
            'api_status': self.api_status,
            'notes': self.notes,
            'website': self.website,
        }


PROVIDERS = [
    ProviderInfo(
        name='NZ Department of Conservation (DOC)',
        api_status='Public API (key required)',
        notes='Set DOC_API_KEY to enable DOC track data.',
        website='https://www.doc.govt.nz',
    ),
    ProviderInfo(
        name='OpenStreetMap Overpass',
        api_status='Public API',
        notes='Uses public OSM data with dog access tags when present.',
        website='https://overpass-api.de',
    ),
]
