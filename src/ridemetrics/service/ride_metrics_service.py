import logging
from typing import Dict, List, Optional, Tuple

import folium

from ..libs.maps import create_match_map, create_options_map
from ..model.position_sample import MatchResult, PositionSample
from ..model.ride_mode import RideMode, SkillLevel
from ..model.route_geometry import RouteGeometry
from ..model.route_options import Presentation, RouteCandidate
from ..model.score import Grade, Palette, ScoreBreakdown, StepContext
from ..model.segment_record import SegmentRecord, StepId
from ..utils.formatting import UnitSystem
from ..utils.clock import Clock, utc_now
from .map_matcher import MapMatcher
from .route_options import RouteOptionsReducer
from .route_scorer import RouteScorer
from .segment_store import SegmentStore

logger = logging.getLogger(__name__)


class RideMetricsService:
    """Stateless planning/matching operations plus access to the shared segment store"""

    def __init__(self, segment_store: SegmentStore, matcher: Optional[MapMatcher] = None, clock: Clock = utc_now):
        self.segment_store = segment_store
        self.matcher = matcher or MapMatcher()
        self.clock = clock

    def route_options(self, candidates: List[RouteCandidate], mode: RideMode,
                      skill: SkillLevel = SkillLevel.INTERMEDIATE, units: UnitSystem = UnitSystem.METRIC,
                      palette: Palette = Palette.STANDARD) -> Dict[str, Presentation]:
        logger.info(f"Evaluating {len(candidates)} route candidates for mode {mode.value}")
        reducer = RouteOptionsReducer(RouteScorer(skill), units=units, palette=palette)
        return reducer.evaluate(candidates, mode)

    def route_options_map(self, candidates: List[RouteCandidate], mode: RideMode,
                          skill: SkillLevel = SkillLevel.INTERMEDIATE, units: UnitSystem = UnitSystem.METRIC,
                          palette: Palette = Palette.STANDARD) -> Optional[folium.Map]:
        presentations = self.route_options(candidates, mode, skill, units, palette)
        if not presentations:
            return None
        return create_options_map(candidates, presentations)

    def score(self, roughness_rms: float, slope_penalty: float, mode: RideMode,
              skill: SkillLevel = SkillLevel.INTERMEDIATE, palette: Palette = Palette.STANDARD,
              context: Optional[StepContext] = None) -> Tuple[Grade, ScoreBreakdown]:
        scorer = RouteScorer(skill)
        if context is None:
            score, breakdown = scorer.route_score(roughness_rms, slope_penalty, mode)
        else:
            score, breakdown = scorer.step_score(roughness_rms, slope_penalty, mode, context)
        return scorer.grade(score, palette), breakdown

    def match(self, route: RouteGeometry, sample: PositionSample) -> Optional[MatchResult]:
        result = self.matcher.match(route, sample)
        if result is None:
            logger.info(f"Sample could not be matched onto route {route.fingerprint}")
        return result

    def match_map(self, route: RouteGeometry, sample: PositionSample) -> Optional[folium.Map]:
        result = self.match(route, sample)
        if result is None:
            return None
        return create_match_map(route, sample, result)

    def get_segment(self, step_id: StepId) -> Optional[SegmentRecord]:
        return self.segment_store.read(step_id)

    def put_segment(self, step_id: StepId, roughness: float, quality: Optional[float] = None) -> SegmentRecord:
        if quality is None:
            return self.segment_store.update_roughness(step_id, roughness)
        return self.segment_store.write(step_id, quality, roughness)

    def clear_segments(self) -> int:
        count = len(self.segment_store)
        self.segment_store.clear()
        return count
