import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from ..model.position_sample import MatchResult, PositionSample
from ..model.ride_mode import RideMode
from ..model.route_geometry import Coordinate, RouteGeometry
from ..model.score import ScoreBreakdown, StepContext, StepTags
from ..model.segment_record import StepId
from ..model.turn_cue import TurnCue
from ..utils.geometry import heading_degrees, turn_radians
from .drift_detector import DriftDecision, DriftDetector
from .map_matcher import MapMatcher
from .ride_recorder import RideRecorder
from .route_scorer import RouteScorer
from .segment_store import SegmentStore
from .turn_cue_engine import TurnCueEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavigationUpdate:
    """Everything one sample produced"""
    match: Optional[MatchResult]
    cue: Optional[TurnCue]
    drift: Optional[DriftDecision]


class NavigationSession:
    """
    One live ride: owns the stateful components and feeds every sample through them.

    Samples must be ingested from a single thread, in order.
    """

    def __init__(self, store: SegmentStore, matcher: Optional[MapMatcher] = None,
                 scorer: Optional[RouteScorer] = None, drift: Optional[DriftDetector] = None,
                 cues: Optional[TurnCueEngine] = None, recorder: Optional[RideRecorder] = None,
                 mode: RideMode = RideMode.SMOOTHEST,
                 on_reroute_needed: Optional[Callable[[Coordinate], None]] = None):
        self.store = store
        self.matcher = matcher or MapMatcher()
        self.scorer = scorer or RouteScorer()
        self.drift = drift or DriftDetector()
        self.cues = cues or TurnCueEngine()
        self.recorder = recorder or RideRecorder(self.matcher, store)
        self.mode = mode
        self.on_reroute_needed = on_reroute_needed
        self.route: Optional[RouteGeometry] = None
        self.reroute_requests: List[Coordinate] = []

    def set_route(self, route: RouteGeometry) -> Optional[TurnCue]:
        """Start navigating a route; returns the start cue"""
        self.route = route
        self.reroute_requests.clear()
        self.drift.start_monitoring(route, self._request_reroute)
        self.recorder.stop()
        self.recorder.start(route)
        logger.info(f"Navigation started on route {route.fingerprint} ({len(route.steps)} steps)")
        return self.cues.set_route(route)

    def reroute(self, route: RouteGeometry) -> Optional[TurnCue]:
        """Swap in a replacement route mid-ride; drift cooldown carries over"""
        if self.route is None:
            return self.set_route(route)
        self.route = route
        self.drift.update_route(route)
        self.recorder.set_route(route)
        logger.info(f"Rerouted onto {route.fingerprint}")
        return self.cues.set_route(route)

    def stop(self):
        self.drift.stop_monitoring()
        self.cues.set_route(None)
        self.cues.reset()
        self.recorder.stop()
        self.route = None
        logger.info("Navigation stopped")

    def ingest(self, sample: PositionSample) -> NavigationUpdate:
        if self.route is None:
            return NavigationUpdate(match=None, cue=None, drift=None)

        match = self.matcher.match(self.route, sample)
        if match is not None:
            cue = self.cues.ingest(sample, match.step_index, match.progress_in_step)
        else:
            cue = self.cues.ingest(sample)
        self.recorder.ingest(sample, match)
        decision = self.drift.evaluate(sample)

        return NavigationUpdate(match=match, cue=cue, drift=decision)

    def step_score(self, step_index: int, mode: Optional[RideMode] = None, slope_penalty: float = 0.0,
                   tags: StepTags = StepTags()) -> Tuple[float, ScoreBreakdown]:
        """Score a step of the active route from its stored roughness and the turn at its end"""
        if self.route is None or not 0 <= step_index < len(self.route.steps):
            raise IndexError(f"No step {step_index} on the active route")

        record = self.store.read(StepId.for_route(self.route, step_index))
        roughness = record.roughness if record else 0.0
        context = StepContext.from_tags(tags, turn_radians=self._turn_after(step_index))
        return self.scorer.step_score(roughness, slope_penalty, mode or self.mode, context)

    def _turn_after(self, step_index: int) -> float:
        steps = self.route.steps
        if step_index + 1 >= len(steps):
            return 0.0
        current, following = steps[step_index].polyline, steps[step_index + 1].polyline
        if len(current) < 2 or len(following) < 2:
            return 0.0
        incoming = heading_degrees(current[-2], current[-1])
        outgoing = heading_degrees(following[0], following[1])
        return turn_radians(incoming, outgoing)

    def _request_reroute(self, coordinate: Coordinate):
        self.reroute_requests.append(coordinate)
        if self.on_reroute_needed is not None:
            self.on_reroute_needed(coordinate)
