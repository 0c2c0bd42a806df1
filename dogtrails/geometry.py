from math import radians, sin, cos, sqrt, atan2

from dogtrails.models import Bbox


def haversine_km(lat1, lon1, lat2, lon2):
    """Quick haversine distance in km."""
    rlat1, rlon1, rlat2, rlon2 = radians(lat1), radians(lon1), radians(lat2), radians(lon2)
    dlat, dlon = rlat2 - rlat1, rlon2 - rlon1
    a = sin(dlat/2)**2 + cos(rlat1)*cos(rlat2)*sin(dlon/2)**2
    return 6371 * 2 * atan2(sqrt(a), sqrt(1-a))


def polyline_km(points):
    """Summed great-circle length of a [(lat, lon), ...] line."""
    total = 0.0
    for (lat1, lon1), (lat2, lon2) in zip(points, points[1:]):
        total += haversine_km(lat1, lon1, lat2, lon2)
    return total


def line_bbox(points):
    """Bounding box of a [(lat, lon), ...] line, or None when empty."""
    if not points:
        return None
    lats = [p[0] for p in points]
    lons = [p[1] for p in points]
    return Bbox(min(lats), min(lons), max(lats), max(lons))


def bbox_intersects(a, b):
    return (a.min_lat <= b.max_lat and a.max_lat >= b.min_lat
            and a.min_lon <= b.max_lon and a.max_lon >= b.min_lon)


def filter_by_bbox(trails, view):
    """Trails whose line bbox intersects the view."""
    return [t for t in trails if bbox_intersects(view, t.line_bbox)]
