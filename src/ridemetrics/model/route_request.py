from typing import List

from pydantic import BaseModel, Field

from .location_request import LocationRequest
from .route_geometry import RouteGeometry, Step


class StepRequest(BaseModel):
    polyline: List[LocationRequest]
    distance: float = Field(default=0.0, ge=0.0)  # meters, 0 = derive from polyline
    expected_travel_time: float = Field(default=0.0, ge=0.0)  # seconds
    instructions: str = ""

    def to_domain(self) -> Step:
        return Step(
            polyline=tuple(point.to_domain() for point in self.polyline),
            distance=self.distance,
            expected_travel_time=self.expected_travel_time,
            instructions=self.instructions,
        )


class RouteRequest(BaseModel):
    steps: List[StepRequest]

    def to_domain(self) -> RouteGeometry:
        return RouteGeometry(steps=tuple(step.to_domain() for step in self.steps))
