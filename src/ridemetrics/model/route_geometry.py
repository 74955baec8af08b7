import hashlib
from dataclasses import dataclass, field
from functools import cached_property
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Step:
    """One leg of a route with its own polyline and instruction"""
    polyline: Tuple[Coordinate, ...]
    distance: float = 0.0
    expected_travel_time: float = 0.0
    instructions: str = ""

    @property
    def is_matchable(self) -> bool:
        return len(self.polyline) >= 2

    @property
    def has_instructions(self) -> bool:
        return bool(self.instructions.strip())

    @cached_property
    def length_meters(self) -> float:
        """Reported distance, or the polyline length when the provider left it at 0"""
        if self.distance > 0:
            return self.distance
        if not self.is_matchable:
            return 0.0
        from ..utils.geometry import polyline_length
        return polyline_length(self.polyline)


@dataclass(frozen=True)
class RouteGeometry:
    """Immutable ordered sequence of steps as handed over by the directions provider"""
    steps: Tuple[Step, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.steps

    @property
    def distance(self) -> float:
        return sum(step.length_meters for step in self.steps)

    @property
    def expected_travel_time(self) -> float:
        return sum(step.expected_travel_time for step in self.steps)

    @property
    def origin(self) -> Optional[Coordinate]:
        for step in self.steps:
            if step.polyline:
                return step.polyline[0]
        return None

    @property
    def destination(self) -> Optional[Coordinate]:
        for step in reversed(self.steps):
            if step.polyline:
                return step.polyline[-1]
        return None

    def coordinates(self) -> List[Coordinate]:
        """Flattened polyline of every step, consecutive duplicates removed"""
        coords: List[Coordinate] = []
        for step in self.steps:
            for point in step.polyline:
                if coords and coords[-1] == point:
                    continue
                coords.append(point)
        return coords

    @cached_property
    def fingerprint(self) -> str:
        """
        Stable identifier of the physical route.

        Derived from a rounded summary (step count, step endpoints, rounded step lengths)
        so that a refetch of the same route yields the same value even when the provider
        returns slightly different floating point noise.
        """
        parts = [str(len(self.steps))]
        for step in self.steps:
            if step.polyline:
                first, last = step.polyline[0], step.polyline[-1]
                parts.append(f"{first.latitude:.5f},{first.longitude:.5f}")
                parts.append(f"{last.latitude:.5f},{last.longitude:.5f}")
            else:
                parts.append("-")
            parts.append(f"{round(step.length_meters)}")
        digest = hashlib.sha1("|".join(parts).encode("utf-8")).hexdigest()
        return digest[:16]
