from dataclasses import dataclass
from enum import Enum
from math import pi
from typing import Tuple


@dataclass(frozen=True)
class StepTags:
    """Attribution tags for a route step (lanes, surface, hazards)"""
    has_protected_lane: bool = False
    has_painted_lane: bool = False
    surface_rough: bool = False
    hazard_count: int = 0


@dataclass(frozen=True)
class StepContext:
    """Per-step context fed to step-level scoring"""
    has_protected_lane: bool = False
    has_painted_lane: bool = False
    surface_rough: bool = False
    hazard_count: int = 0
    turn_radians: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "hazard_count", max(0, int(self.hazard_count)))
        object.__setattr__(self, "turn_radians", max(0.0, float(self.turn_radians)))

    @classmethod
    def from_tags(cls, tags: StepTags, turn_radians: float = 0.0) -> "StepContext":
        return cls(
            has_protected_lane=tags.has_protected_lane,
            has_painted_lane=tags.has_painted_lane,
            surface_rough=tags.surface_rough,
            hazard_count=tags.hazard_count,
            turn_radians=turn_radians,
        )

    @property
    def lane_bonus(self) -> float:
        if self.has_protected_lane:
            return 1.0
        if self.has_painted_lane:
            return 0.5
        return 0.0

    @property
    def turn_penalty(self) -> float:
        return min(1.0, self.turn_radians / pi)

    @property
    def hazard_penalty(self) -> float:
        # 0, 0.5, 0.67, 0.75, ...
        return 1.0 - 1.0 / (1.0 + self.hazard_count)


@dataclass(frozen=True)
class ScoreBreakdown:
    """Decomposed scoring factors, for diagnostics only"""
    roughness_factor: float
    slope_factor: float
    lane_factor: float
    turn_factor: float
    hazard_factor: float
    mode_bias: float
    skill_multiplier: float
    final_score: float


class Palette(str, Enum):
    STANDARD = "standard"          # red -> yellow -> green
    HEATMAP = "heatmap"            # blue -> green -> red
    HIGH_CONTRAST = "high_contrast"


class GradeTier(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    POOR = "poor"


@dataclass(frozen=True)
class Color:
    red: float
    green: float
    blue: float

    @property
    def rgb(self) -> Tuple[float, float, float]:
        return self.red, self.green, self.blue

    @property
    def hex(self) -> str:
        return "#" + "".join(f"{round(max(0.0, min(1.0, c)) * 255):02x}" for c in self.rgb)


@dataclass(frozen=True)
class Grade:
    score: float
    tier: GradeTier
    letter: str
    label: str
    color: Color
