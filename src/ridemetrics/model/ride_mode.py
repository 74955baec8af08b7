from dataclasses import dataclass
from enum import Enum
from typing import Optional


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class RouteTuning:
    """Per-mode weighting consumed by the scorer"""
    smoothness_weight: float
    max_grade_percent: Optional[float]

    def __post_init__(self):
        object.__setattr__(self, "smoothness_weight", _clamp01(self.smoothness_weight))


class RideMode(str, Enum):
    SMOOTHEST = "smoothest"
    CHILL_FEW_CROSSINGS = "chill_few_crossings"
    FAST_MILD_ROUGHNESS = "fast_mild_roughness"
    TRICK_SPOT_CRAWL = "trick_spot_crawl"
    NIGHT_SAFE = "night_safe"

    @property
    def bias(self) -> float:
        """Small additive bias applied to composite scores"""
        return _BIAS[self]

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def suggested_accuracy_meters(self) -> float:
        return _SUGGESTED_ACCURACY[self]

    @property
    def tuning(self) -> RouteTuning:
        return _TUNING[self]


class SkillLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def multiplier(self) -> float:
        return _SKILL_MULTIPLIER[self]


_BIAS = {
    RideMode.SMOOTHEST: 0.10,
    RideMode.CHILL_FEW_CROSSINGS: 0.05,
    RideMode.FAST_MILD_ROUGHNESS: -0.05,
    RideMode.TRICK_SPOT_CRAWL: -0.10,
    RideMode.NIGHT_SAFE: 0.08,
}

_LABELS = {
    RideMode.SMOOTHEST: "Smoothest",
    RideMode.CHILL_FEW_CROSSINGS: "Chill",
    RideMode.FAST_MILD_ROUGHNESS: "Fast",
    RideMode.TRICK_SPOT_CRAWL: "Trick Crawl",
    RideMode.NIGHT_SAFE: "Night Safe",
}

_SUGGESTED_ACCURACY = {
    RideMode.SMOOTHEST: 12.0,
    RideMode.CHILL_FEW_CROSSINGS: 15.0,
    RideMode.FAST_MILD_ROUGHNESS: 10.0,
    RideMode.TRICK_SPOT_CRAWL: 15.0,
    RideMode.NIGHT_SAFE: 12.0,
}

_SKILL_MULTIPLIER = {
    SkillLevel.BEGINNER: 0.90,
    SkillLevel.INTERMEDIATE: 1.00,
    SkillLevel.ADVANCED: 1.08,
}

_TUNING = {
    RideMode.SMOOTHEST: RouteTuning(smoothness_weight=1.00, max_grade_percent=5.0),
    RideMode.CHILL_FEW_CROSSINGS: RouteTuning(smoothness_weight=0.85, max_grade_percent=6.0),
    RideMode.FAST_MILD_ROUGHNESS: RouteTuning(smoothness_weight=0.55, max_grade_percent=8.0),
    RideMode.TRICK_SPOT_CRAWL: RouteTuning(smoothness_weight=0.40, max_grade_percent=7.0),
    RideMode.NIGHT_SAFE: RouteTuning(smoothness_weight=0.90, max_grade_percent=5.0),
}
