from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .location_request import LocationRequest
from .position_sample import PositionSample
from .route_request import RouteRequest


class SampleRequest(BaseModel):
    location: LocationRequest
    timestamp: Optional[datetime] = None  # defaults to the server clock
    horizontal_accuracy: float = 5.0
    speed: float = -1.0  # m/s, negative = unknown
    course: float = -1.0
    roughness_rms: float = Field(default=0.0, ge=0.0)

    def to_domain(self, now: datetime) -> PositionSample:
        return PositionSample(
            coordinate=self.location.to_domain(),
            timestamp=self.timestamp or now,
            horizontal_accuracy=self.horizontal_accuracy,
            speed=self.speed,
            course=self.course,
            roughness_rms=self.roughness_rms,
        )


class MatchRequest(BaseModel):
    route: RouteRequest
    sample: SampleRequest
