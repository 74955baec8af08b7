import logging
from typing import Dict, List, Optional, Sequence, Tuple

from ..model.ride_mode import RideMode
from ..model.route_options import Presentation, RouteCandidate, StepPaint
from ..model.score import Palette
from ..utils.formatting import UnitSystem, format_distance, format_eta, option_letter
from .route_scorer import RouteScorer

logger = logging.getLogger(__name__)

# no live roughness exists at planning time
PLANNING_ROUGHNESS_RMS = 0.0


class RouteOptionsReducer:
    """Ranks candidate routes and turns them into display-ready presentations"""

    def __init__(self, scorer: RouteScorer, units: UnitSystem = UnitSystem.METRIC,
                 palette: Palette = Palette.STANDARD):
        self.scorer = scorer
        self.units = units
        self.palette = palette

    def evaluate(self, candidates: Sequence[RouteCandidate], mode: RideMode) -> Dict[str, Presentation]:
        if not candidates:
            return {}

        scored: List[Tuple[RouteCandidate, float]] = [
            (candidate, self._score(candidate, mode)) for candidate in candidates
        ]

        fastest_id = min(scored, key=lambda item: item[0].route.expected_travel_time)[0].id
        best_score_id = max(scored, key=lambda item: item[1])[0].id

        logger.debug(f"Evaluated {len(scored)} candidates: fastest={fastest_id} best={best_score_id}")

        out: Dict[str, Presentation] = {}
        option_index = 0
        for candidate, score in scored:
            title = self._title(candidate.id, fastest_id, best_score_id)
            if title is None:
                title = f"Option {option_letter(option_index)}"
                option_index += 1
            out[candidate.id] = self._present(candidate, score, title)

        return out

    def _score(self, candidate: RouteCandidate, mode: RideMode) -> float:
        score, _ = self.scorer.route_score(PLANNING_ROUGHNESS_RMS, candidate.slope_penalty, mode)
        return score

    @staticmethod
    def _title(candidate_id: str, fastest_id: str, best_score_id: str) -> Optional[str]:
        if candidate_id == fastest_id and candidate_id == best_score_id:
            return "Best Route"
        if candidate_id == fastest_id:
            return "Fastest"
        if candidate_id == best_score_id:
            return "Best Surface"
        return None

    def _present(self, candidate: RouteCandidate, score: float, title: str) -> Presentation:
        route = candidate.route
        grade = self.scorer.grade(score, self.palette)
        tint = grade.color.hex

        distance_text = format_distance(route.distance, self.units)
        eta_text = format_eta(route.expected_travel_time)

        # uniform paint hint, not step-level scoring
        paints = [StepPaint(step_index=index, color=tint) for index in range(len(route.steps))]

        return Presentation(
            id=candidate.id,
            title=title,
            subtitle=f"{distance_text} • {eta_text} • {grade.label}",
            distance_text=distance_text,
            eta_text=eta_text,
            score=score,
            score_label=grade.label,
            tint_color=tint,
            step_paints=paints,
        )
