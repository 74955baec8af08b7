from typing import List

from pydantic import BaseModel, Field

from .ride_mode import RideMode, SkillLevel
from .route_options import RouteCandidate
from .route_request import RouteRequest
from .score import Palette
from ..service.route_scorer import slope_penalty_for_grade
from ..utils.formatting import UnitSystem


class CandidateRequest(BaseModel):
    id: str
    route: RouteRequest
    max_grade_percent: float = 0.0  # steepest absolute grade along the route

    def to_domain(self) -> RouteCandidate:
        return RouteCandidate(
            id=self.id,
            route=self.route.to_domain(),
            slope_penalty=slope_penalty_for_grade(self.max_grade_percent),
        )


class RouteOptionsRequest(BaseModel):
    candidates: List[CandidateRequest] = Field(default_factory=list)
    mode: RideMode = RideMode.SMOOTHEST
    skill: SkillLevel = SkillLevel.INTERMEDIATE
    units: UnitSystem = UnitSystem.METRIC
    palette: Palette = Palette.STANDARD
