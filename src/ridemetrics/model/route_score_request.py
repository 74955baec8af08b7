from typing import Optional

from pydantic import BaseModel, Field

from .ride_mode import RideMode, SkillLevel
from .score import Palette


class StepContextRequest(BaseModel):
    has_protected_lane: bool = False
    has_painted_lane: bool = False
    surface_rough: bool = False
    hazard_count: int = Field(default=0, ge=0)
    turn_radians: float = Field(default=0.0, ge=0.0)


class RouteScoreRequest(BaseModel):
    roughness_rms: float = Field(ge=0.0)
    slope_penalty: float = Field(default=0.0, ge=0.0, le=1.0)
    mode: RideMode = RideMode.SMOOTHEST
    skill: SkillLevel = SkillLevel.INTERMEDIATE
    palette: Palette = Palette.STANDARD
    step_context: Optional[StepContextRequest] = None  # present = step-level score
