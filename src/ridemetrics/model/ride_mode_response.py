from typing import Optional

from pydantic import BaseModel

from .ride_mode import RideMode


class RideModeResponse(BaseModel):
    mode: RideMode
    label: str
    bias: float
    suggested_accuracy_meters: float  # GPS accuracy the client should request in this mode
    smoothness_weight: float
    max_grade_percent: Optional[float]

    @classmethod
    def from_domain(cls, mode: RideMode) -> "RideModeResponse":
        return cls(
            mode=mode,
            label=mode.label,
            bias=mode.bias,
            suggested_accuracy_meters=mode.suggested_accuracy_meters,
            smoothness_weight=mode.tuning.smoothness_weight,
            max_grade_percent=mode.tuning.max_grade_percent,
        )
