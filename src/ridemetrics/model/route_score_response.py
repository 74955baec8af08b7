from pydantic import BaseModel


class ScoreBreakdownResponse(BaseModel):
    roughness_factor: float
    slope_factor: float
    lane_factor: float
    turn_factor: float
    hazard_factor: float
    mode_bias: float
    skill_multiplier: float
    final_score: float


class RouteScoreResponse(BaseModel):
    score: float
    letter: str
    label: str
    color: str
    breakdown: ScoreBreakdownResponse
