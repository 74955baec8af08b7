import logging
from typing import List, Sequence, Tuple

from ..model.ride_mode import RideMode, SkillLevel
from ..model.score import Color, Grade, GradeTier, Palette, ScoreBreakdown, StepContext

logger = logging.getLogger(__name__)

ROUGHNESS_MAX = 3.5  # ~3.5 RMS = very rough asphalt

_GRADES = (
    (0.85, GradeTier.EXCELLENT, "A", "Butter Smooth"),
    (0.60, GradeTier.GOOD, "B", "Chill"),
    (0.0, GradeTier.POOR, "C", "Sketchy"),
)


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def smoothstep(edge0: float, edge1: float, x: float) -> float:
    """Hermite interpolation between two edges"""
    t = clamp01((x - edge0) / max(1e-6, edge1 - edge0))
    return t * t * (3 - 2 * t)


def slope_penalty_for_grade(max_abs_grade_percent: float) -> float:
    """Normalize the steepest grade of a route into a 0..1 penalty (3% free, 12% fully penalized)"""
    return clamp01((abs(max_abs_grade_percent) - 3.0) / (12.0 - 3.0))


class RouteScorer:
    """
    Deterministic route and step scorer.

    Scores are normalized to 0..1 and are pure functions of their inputs, so the same
    instance can be shared by the planner, the live session and the HTTP layer.
    """

    def __init__(self, skill: SkillLevel = SkillLevel.INTERMEDIATE):
        self.skill = skill

    def route_score(self, roughness_rms: float, slope_penalty: float,
                    mode: RideMode) -> Tuple[float, ScoreBreakdown]:
        """
        Route-level composite score.

        Args:
            roughness_rms: aggregated roughness (RMS)
            slope_penalty: 0..1 normalized slope penalty
            mode: ride mode providing tuning and bias

        Returns:
            (score 0..1, breakdown)
        """
        tuning = mode.tuning

        rough_factor = clamp01(1.0 - roughness_rms / ROUGHNESS_MAX)
        slope_factor = clamp01(1.0 - clamp01(slope_penalty))

        weight = tuning.smoothness_weight
        score = rough_factor * weight + slope_factor * (1.0 - weight)

        if tuning.max_grade_percent is not None:
            score *= self._cap_soft_wall(slope_penalty)

        score = clamp01(score + mode.bias)
        # may exceed 1.0 for advanced riders until the final clamp
        score *= self.skill.multiplier
        final = clamp01(score)

        logger.debug(f"Route score r={roughness_rms} slope={slope_penalty} mode={mode.value} -> {final}")

        return final, ScoreBreakdown(
            roughness_factor=rough_factor,
            slope_factor=slope_factor,
            lane_factor=1.0,
            turn_factor=1.0,
            hazard_factor=1.0,
            mode_bias=mode.bias,
            skill_multiplier=self.skill.multiplier,
            final_score=final,
        )

    def step_score(self, roughness_rms: float, slope_penalty: float, mode: RideMode,
                   context: StepContext) -> Tuple[float, ScoreBreakdown]:
        """Route-level score adjusted by lanes, the upcoming turn and hazards"""
        base, route_breakdown = self.route_score(roughness_rms, slope_penalty, mode)

        lane_factor = 1.0 + 0.10 * context.lane_bonus
        turn_factor = clamp01(1.0 - 0.35 * context.turn_penalty)
        hazard_factor = clamp01(1.0 - 0.40 * context.hazard_penalty)

        final = clamp01(base * lane_factor * turn_factor * hazard_factor)

        logger.debug(f"Step score -> {final} (lane {lane_factor}, turn {turn_factor}, hazard {hazard_factor})")

        return final, ScoreBreakdown(
            roughness_factor=route_breakdown.roughness_factor,
            slope_factor=route_breakdown.slope_factor,
            lane_factor=lane_factor,
            turn_factor=turn_factor,
            hazard_factor=hazard_factor,
            mode_bias=route_breakdown.mode_bias,
            skill_multiplier=route_breakdown.skill_multiplier,
            final_score=final,
        )

    def grade(self, score: float, palette: Palette = Palette.STANDARD) -> Grade:
        s = clamp01(score)
        for threshold, tier, letter, label in _GRADES:
            if s >= threshold:
                return Grade(score=s, tier=tier, letter=letter, label=label, color=self.color(s, palette))
        raise AssertionError("unreachable")

    def color(self, score: float, palette: Palette = Palette.STANDARD) -> Color:
        s = clamp01(score)

        if palette is Palette.STANDARD:
            # two-piece lerp with a slight gamma for smoother mid-tones
            if s < 0.5:
                t = (s / 0.5) ** 0.9
                return Color(1.0, 0.25 + 0.75 * t, 0.20)
            t = ((s - 0.5) / 0.5) ** 0.9
            return Color(1.0 - 0.8 * t, 1.0, 0.20)

        if palette is Palette.HEATMAP:
            if s < 0.5:
                t = s / 0.5
                return Color(0.0, t, 1.0 - t)
            t = (s - 0.5) / 0.5
            return Color(t, 1.0 - t, 0.0)

        if s >= 0.85:
            return Color(0.00, 0.85, 0.30)
        if s >= 0.60:
            return Color(0.95, 0.70, 0.10)
        return Color(0.88, 0.20, 0.18)

    def colors(self, step_scores: Sequence[float], palette: Palette = Palette.STANDARD) -> List[Color]:
        return [self.color(score, palette) for score in step_scores]

    @staticmethod
    def _cap_soft_wall(slope_penalty: float) -> float:
        # bend the top 40% of the penalty range down, up to -25% at the top
        return 1.0 - 0.25 * smoothstep(0.60, 1.00, clamp01(slope_penalty))
