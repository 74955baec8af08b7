from dataclasses import dataclass
from math import radians, degrees, sin, cos, sqrt, atan2, fmod, pi
from typing import Optional, Sequence, Tuple

import numpy as np

from ..model.route_geometry import Coordinate

EARTH_RADIUS_METERS = 6371000.0


@dataclass(frozen=True)
class Projection:
    """Closest point of a polyline to a position, in a local planar frame."""
    distance: float
    edge_index: int
    t: float
    point: Tuple[float, float]
    traversed: float
    total_length: float

    @property
    def fraction(self) -> float:
        if self.total_length <= 0:
            return 0.0
        return max(0.0, min(1.0, self.traversed / self.total_length))

    @property
    def remaining(self) -> float:
        return max(0.0, self.total_length - self.traversed)


def haversine(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """Calculate the great-circle distance (in meters) between two points."""
    lon1, lat1, lon2, lat2 = map(radians, [lon1, lat1, lon2, lat2])
    dlon = lon2 - lon1
    dlat = lat2 - lat1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def distance_between(a: Coordinate, b: Coordinate) -> float:
    return haversine(a.longitude, a.latitude, b.longitude, b.latitude)


def heading_degrees(start: Coordinate, end: Coordinate) -> float:
    """Initial bearing from start to end, 0..360 clockwise from north."""
    phi1 = radians(start.latitude)
    phi2 = radians(end.latitude)
    dlon = radians(end.longitude - start.longitude)
    y = sin(dlon) * cos(phi2)
    x = cos(phi1) * sin(phi2) - sin(phi1) * cos(phi2) * cos(dlon)
    bearing = fmod(degrees(atan2(y, x)) + 360.0, 360.0)
    return 0.0 if bearing != bearing else bearing


def turn_radians(incoming_heading: float, outgoing_heading: float) -> float:
    """Absolute turn angle between two headings, 0 (straight) .. pi (hairpin)."""
    delta = abs(outgoing_heading - incoming_heading) % 360.0
    if delta > 180.0:
        delta = 360.0 - delta
    return delta * pi / 180.0


def to_array(coordinates: Sequence[Coordinate]) -> np.ndarray:
    """(N, 2) array of (lat, lon) degrees."""
    if not coordinates:
        return np.empty((0, 2), dtype=float)
    return np.array([(c.latitude, c.longitude) for c in coordinates], dtype=float)


def to_plane(latlon: np.ndarray, ref_latitude: float) -> np.ndarray:
    """Equirectangular projection around ref_latitude, in meters."""
    scale = cos(radians(ref_latitude))
    rad = np.radians(latlon)
    x = EARTH_RADIUS_METERS * rad[..., 1] * scale
    y = EARTH_RADIUS_METERS * rad[..., 0]
    return np.stack([x, y], axis=-1)


def from_plane(point: Tuple[float, float], ref_latitude: float) -> Coordinate:
    scale = cos(radians(ref_latitude))
    x, y = point
    lat = degrees(y / EARTH_RADIUS_METERS)
    lon = degrees(x / (EARTH_RADIUS_METERS * scale)) if scale > 0 else 0.0
    return Coordinate(latitude=lat, longitude=lon)


def project_onto_polyline(points: np.ndarray, position: np.ndarray) -> Optional[Projection]:
    """
    Projects a planar position onto every edge of a planar polyline and keeps the closest.

    Args:
        points: (N, 2) polyline vertices in meters
        position: (2,) position in the same frame

    Returns:
        The closest projection, or None if the polyline has fewer than 2 points.
        Ties resolve to the earliest edge.
    """
    if len(points) < 2:
        return None

    a = points[:-1]
    v = points[1:] - a
    w = position - a

    c = np.einsum("ij,ij->i", w, v)
    b = np.einsum("ij,ij->i", v, v)

    t = np.zeros_like(c)
    np.divide(c, b, out=t, where=b > 0)
    t = np.clip(t, 0.0, 1.0)

    point_proy = a + t[:, None] * v
    dists = np.linalg.norm(position - point_proy, axis=1)

    best = int(np.argmin(dists))
    edge_lengths = np.sqrt(b)
    traversed = float(edge_lengths[:best].sum() + edge_lengths[best] * t[best])

    return Projection(
        distance=float(dists[best]),
        edge_index=best,
        t=float(t[best]),
        point=(float(point_proy[best][0]), float(point_proy[best][1])),
        traversed=traversed,
        total_length=float(edge_lengths.sum()),
    )


def distance_to_polyline(latlon: np.ndarray, coordinate: Coordinate) -> float:
    """Meters from coordinate to the polyline; inf for degenerate polylines."""
    if len(latlon) < 2:
        return float("inf")
    ref = coordinate.latitude
    planar = to_plane(latlon, ref)
    position = to_plane(np.array([coordinate.latitude, coordinate.longitude]), ref)
    projection = project_onto_polyline(planar, position)
    return projection.distance if projection else float("inf")


def subsample(latlon: np.ndarray, max_vertices: int) -> np.ndarray:
    """Uniformly subsample to at most max_vertices, always keeping first and last points."""
    n = len(latlon)
    if n <= max_vertices or max_vertices < 2:
        return latlon
    indices = np.unique(np.linspace(0, n - 1, num=max_vertices).round().astype(int))
    return latlon[indices]


def polyline_length(coordinates: Sequence[Coordinate]) -> float:
    """Sum of great-circle edge lengths (meters)."""
    total = 0.0
    for a, b in zip(coordinates, coordinates[1:]):
        total += distance_between(a, b)
    return total
