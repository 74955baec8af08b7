from dataclasses import dataclass
from typing import List

from pydantic import BaseModel

from .route_geometry import RouteGeometry


@dataclass(frozen=True)
class RouteCandidate:
    """Alternative route offered by the directions collaborator"""
    id: str
    route: RouteGeometry
    slope_penalty: float = 0.0


class StepPaint(BaseModel):
    step_index: int
    color: str


class Presentation(BaseModel):
    id: str
    title: str
    subtitle: str
    distance_text: str
    eta_text: str
    score: float
    score_label: str
    tint_color: str
    step_paints: List[StepPaint]
