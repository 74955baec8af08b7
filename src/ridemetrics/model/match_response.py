from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from .location_request import LocationRequest
from .position_sample import AlignmentQuality, MatchResult


class MatchResponse(BaseModel):
    route_fingerprint: str
    step_index: int
    progress_in_step: float
    distance_to_next_maneuver: float
    snapped_location: LocationRequest
    confidence: float
    quality: str
    speed_kmh: Optional[float]
    timestamp: datetime

    @classmethod
    def from_domain(cls, fingerprint: str, result: MatchResult) -> "MatchResponse":
        return cls(
            route_fingerprint=fingerprint,
            step_index=result.step_index,
            progress_in_step=result.progress_in_step,
            distance_to_next_maneuver=result.distance_to_next_maneuver,
            snapped_location=LocationRequest.from_domain(result.snapped_coordinate),
            confidence=result.confidence,
            quality=AlignmentQuality(result.quality).name.lower(),
            speed_kmh=result.speed_kmh,
            timestamp=result.timestamp,
        )
