from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Optional

from .route_geometry import Coordinate


@dataclass(frozen=True)
class PositionSample:
    """Single observation from the location/motion collaborator"""
    coordinate: Coordinate
    timestamp: datetime
    horizontal_accuracy: float = 5.0
    speed: float = -1.0  # m/s, negative = unavailable
    course: float = -1.0  # degrees, negative = unavailable
    roughness_rms: float = 0.0

    def __post_init__(self):
        if self.roughness_rms < 0:
            object.__setattr__(self, "roughness_rms", 0.0)

    @property
    def speed_mps(self) -> Optional[float]:
        if self.speed is None or self.speed < 0 or self.speed != self.speed:
            return None
        return self.speed

    @property
    def speed_kmh(self) -> Optional[float]:
        mps = self.speed_mps
        return None if mps is None else mps * 3.6


class AlignmentQuality(IntEnum):
    POOR = 0
    FAIR = 1
    GOOD = 2
    EXCELLENT = 3

    @classmethod
    def from_confidence(cls, confidence: float) -> "AlignmentQuality":
        if confidence >= 0.85:
            return cls.EXCELLENT
        if confidence >= 0.60:
            return cls.GOOD
        if confidence >= 0.35:
            return cls.FAIR
        return cls.POOR


@dataclass(frozen=True)
class MatchResult:
    """
    Sample snapped onto a route step.

    ``progress_in_step`` is the fraction of the whole step polyline travelled at the
    snapped point, so multi-edge steps progress smoothly; for a single-edge step it is
    the edge parameter t. ``distance_to_next_maneuver`` is the step length left.
    """
    step_index: int
    progress_in_step: float
    distance_to_next_maneuver: float
    snapped_coordinate: Coordinate
    confidence: float
    quality: AlignmentQuality
    speed_kmh: Optional[float]
    timestamp: datetime

    def __post_init__(self):
        object.__setattr__(self, "step_index", max(0, self.step_index))
        object.__setattr__(self, "progress_in_step", max(0.0, min(1.0, self.progress_in_step)))
        object.__setattr__(self, "distance_to_next_maneuver", max(0.0, self.distance_to_next_maneuver))
        object.__setattr__(self, "confidence", max(0.0, min(1.0, self.confidence)))
        if self.speed_kmh is not None:
            object.__setattr__(self, "speed_kmh", max(0.0, self.speed_kmh))
