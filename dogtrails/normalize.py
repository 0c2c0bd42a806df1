"""
Shared field resolution for provider payloads.

Both provider mappers describe their payloads with alias tables
(semantic field -> ordered list of source keys) and resolve them through
the lookups here, so unit inference, difficulty and dog-policy rules live
in one place.
"""
import math
import re

from dogtrails.models import Difficulty, DogPolicy

NUMBER_RE = re.compile(r'-?\d+(?:\.\d+)?')

DOGS_NOT_PERMITTED = 'Dogs are not permitted.'
DOGS_ON_LEAD = 'Dogs must be on a lead.'
DOGS_UNKNOWN = 'No dog access information available.'

TRUE_WORDS = ('yes', 'true')
FALSE_WORDS = ('no', 'false')


def lookup_string(raw, keys):
    """First non-empty string among `keys`. String arrays are joined with ', '."""
    if not isinstance(raw, dict):
        return None
    for key in keys:
        value = raw.get(key)
        if isinstance(value, str):
            if value.strip():
                return value.strip()
        elif isinstance(value, list):
            parts = [v.strip() for v in value if isinstance(v, str) and v.strip()]
            if parts:
                return ', '.join(parts)
    return None


def as_float(value):
    """Finite float for a JSON number, else None. Bools are not numbers."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def parse_number(text):
    m = NUMBER_RE.search(text)
    return as_float(float(m.group())) if m else None


def _lookup_number_with_text(raw, keys):
    if not isinstance(raw, dict):
        return None, None
    for key in keys:
        value = raw.get(key)
        number = as_float(value)
        if number is not None:
            return number, None
        if isinstance(value, str):
            parsed = parse_number(value)
            if parsed is not None:
                return parsed, value
    return None, None


def lookup_number(raw, keys):
    """First numeric value among `keys`, parsing numbers out of strings."""
    return _lookup_number_with_text(raw, keys)[0]


def lookup_bool(raw, keys):
    """First boolean among `keys`; accepts yes/true/no/false strings."""
    if not isinstance(raw, dict):
        return None
    for key in keys:
        value = raw.get(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lower = value.strip().lower()
            if lower in TRUE_WORDS:
                return True
            if lower in FALSE_WORDS:
                return False
    return None


def to_km(value, text=None):
    """Normalize a distance to km.

    Meters when the source text mentions "m" but not "km", or when a value
    with no unit hint is strictly greater than 1000.
    """
    if text is not None:
        lower = text.lower()
        if 'km' in lower:
            return value
        if 'm' in lower:
            return value / 1000
    if value > 1000:
        return value / 1000
    return value


def lookup_distance_km(raw, keys):
    value, text = _lookup_number_with_text(raw, keys)
    if value is None:
        return None
    return max(0.0, to_km(value, text))


def difficulty_from_text(text):
    if not text:
        return None
    lower = text.lower()
    if 'easy' in lower:
        return Difficulty.EASY
    if 'moderate' in lower or 'intermediate' in lower:
        return Difficulty.MODERATE
    if 'hard' in lower or 'advanced' in lower or 'expert' in lower:
        return Difficulty.HARD
    return None


def difficulty_from_distance(distance_km):
    if distance_km <= 6.0:
        return Difficulty.EASY
    if distance_km <= 14.0:
        return Difficulty.MODERATE
    return Difficulty.HARD


def classify_dog_text(text):
    lower = text.lower()
    if 'no' in lower and 'dog' in lower:
        return DogPolicy.NOT_ALLOWED, text
    if 'lead' in lower or 'leash' in lower or 'controlled' in lower:
        return DogPolicy.PARTIAL, text
    return DogPolicy.ALLOWED, text


def resolve_dog_policy(allowed=None, on_lead=None, not_allowed=None, text=None):
    """Returns (DogPolicy, notes). First matching signal wins."""
    if not_allowed is True or allowed is False:
        return DogPolicy.NOT_ALLOWED, DOGS_NOT_PERMITTED
    if allowed is True:
        if on_lead is True:
            return DogPolicy.PARTIAL, DOGS_ON_LEAD
        return DogPolicy.ALLOWED, None
    if text:
        return classify_dog_text(text)
    return DogPolicy.UNKNOWN, DOGS_UNKNOWN
