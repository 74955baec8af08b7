from datetime import datetime, timedelta, timezone
from math import degrees
from typing import Optional, Sequence

import pytest

from ridemetrics.model.position_sample import PositionSample
from ridemetrics.model.route_geometry import Coordinate, RouteGeometry, Step
from ridemetrics.utils.geometry import EARTH_RADIUS_METERS

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0.0, days: float = 0.0):
        self.now = self.now + timedelta(seconds=seconds, days=days)


def at(east_meters: float, north_meters: float = 0.0) -> Coordinate:
    """Point on a local grid anchored at (0, 0); exact along the equator"""
    return Coordinate(latitude=degrees(north_meters / EARTH_RADIUS_METERS),
                      longitude=degrees(east_meters / EARTH_RADIUS_METERS))


def straight_route(lengths: Sequence[float], instructions: Optional[Sequence[str]] = None,
                   seconds_per_meter: float = 0.25) -> RouteGeometry:
    """Consecutive steps heading due east along the equator"""
    steps = []
    start = 0.0
    for index, length in enumerate(lengths):
        text = instructions[index] if instructions else ""
        steps.append(Step(polyline=(at(start), at(start + length)), distance=length,
                          expected_travel_time=length * seconds_per_meter, instructions=text))
        start += length
    return RouteGeometry(steps=tuple(steps))


def sample_at(east_meters: float, north_meters: float = 0.0, timestamp: datetime = T0, **kwargs) -> PositionSample:
    return PositionSample(coordinate=at(east_meters, north_meters), timestamp=timestamp, **kwargs)


@pytest.fixture
def clock():
    return FakeClock()
