import logging
import re
from datetime import datetime
from typing import Callable, List, Optional, Tuple

import numpy as np

from ..model.navigation_config import CueConfig
from ..model.position_sample import PositionSample
from ..model.route_geometry import Coordinate, RouteGeometry, Step
from ..model.turn_cue import CueKind, CueTier, TurnCue
from ..utils.formatting import UnitSystem, format_distance
from ..utils.geometry import distance_between, project_onto_polyline, to_array, to_plane
from ..utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)

CueListener = Callable[[TurnCue], None]

_ICONS = {
    CueKind.START: "start",
    CueKind.CONTINUE: "straight",
    CueKind.TURN_LEFT: "turn-left",
    CueKind.TURN_RIGHT: "turn-right",
    CueKind.SLIGHT_LEFT: "slight-left",
    CueKind.SLIGHT_RIGHT: "slight-right",
    CueKind.U_TURN: "u-turn",
    CueKind.ROUNDABOUT: "roundabout",
    CueKind.MERGE: "merge",
    CueKind.EXIT: "exit",
    CueKind.ARRIVE: "arrive",
    CueKind.CUSTOM: "straight",
}

_VERBS = {
    CueKind.START: "Start",
    CueKind.CONTINUE: "Continue",
    CueKind.TURN_LEFT: "Turn left",
    CueKind.TURN_RIGHT: "Turn right",
    CueKind.SLIGHT_LEFT: "Bear left",
    CueKind.SLIGHT_RIGHT: "Bear right",
    CueKind.U_TURN: "Make a U-turn",
    CueKind.MERGE: "Merge",
    CueKind.EXIT: "Exit",
    CueKind.ARRIVE: "Arrive",
}

# first match wins: "slight right" before "right", "roundabout" before "exit"
_KEYWORDS = (
    (("roundabout",), CueKind.ROUNDABOUT),
    (("u-turn", "u turn"), CueKind.U_TURN),
    (("merge",), CueKind.MERGE),
    (("exit",), CueKind.EXIT),
    (("slight right",), CueKind.SLIGHT_RIGHT),
    (("slight left",), CueKind.SLIGHT_LEFT),
    (("right",), CueKind.TURN_RIGHT),
    (("left",), CueKind.TURN_LEFT),
    (("arrive",), CueKind.ARRIVE),
    (("continue",), CueKind.CONTINUE),
)

_NUMBER = re.compile(r"\d+")


def parse_maneuver(instructions: str) -> Tuple[CueKind, Optional[int]]:
    """Heuristic maneuver kind (and roundabout exit number) from free-text directions"""
    text = instructions.lower()
    if not text.strip():
        return CueKind.CONTINUE, None
    for keywords, kind in _KEYWORDS:
        if any(keyword in text for keyword in keywords):
            if kind is CueKind.ROUNDABOUT:
                found = _NUMBER.search(text)
                return kind, int(found.group()) if found else None
            return kind, None
    return CueKind.CUSTOM, None


def verb_for(kind: CueKind, roundabout_exit: Optional[int] = None) -> str:
    if kind is CueKind.ROUNDABOUT:
        if roundabout_exit is not None:
            return f"At roundabout, take exit {roundabout_exit}"
        return "At roundabout, continue"
    return _VERBS.get(kind, "Continue")


class TurnCueEngine:
    """
    Speed-aware turn cue engine with tiered announcements and jitter suppression.

    Single-owner session object: feed it the samples of one ride, in order. Cues are
    returned from ``ingest``/``set_route`` and also pushed to registered listeners
    (voice, haptics, HUD).
    """

    def __init__(self, config: CueConfig = CueConfig(), clock: Clock = utc_now,
                 units: UnitSystem = UnitSystem.METRIC):
        self.config = config
        self.clock = clock
        self.units = units
        self.route: Optional[RouteGeometry] = None
        self.latest_cue: Optional[TurnCue] = None
        self._listeners: List[CueListener] = []
        self._reset_memory()

    @property
    def steps(self) -> Tuple[Step, ...]:
        return self.route.steps if self.route else ()

    def add_listener(self, listener: CueListener):
        self._listeners.append(listener)

    def set_route(self, route: Optional[RouteGeometry]) -> Optional[TurnCue]:
        """Select a new route; cue memory resets and a start cue is emitted"""
        self.route = route
        self._reset_memory()
        if not self.steps:
            return None

        first = self.steps[0]
        start_cue = TurnCue(
            step_index=0,
            kind=CueKind.START,
            tier=CueTier.FAR,
            instruction=first.instructions.strip() or verb_for(CueKind.START),
            distance_meters=first.length_meters,
            icon=_ICONS[CueKind.START],
            should_speak=True,
            should_haptic=True,
            timestamp=self.clock(),
        )
        self._commit(start_cue)
        return start_cue

    def reset(self):
        self._reset_memory()
        self.latest_cue = None

    def ingest(self, sample: PositionSample, step_index: Optional[int] = None,
               progress_in_step: Optional[float] = None) -> Optional[TurnCue]:
        """
        Feed one live sample.

        Args:
            sample: latest position sample
            step_index: current step from the map matcher, if known
            progress_in_step: 0..1 progress from the map matcher, if known

        Returns:
            The cue emitted for this sample, or None.
        """
        route = self.route
        if route is None or route.distance < self.config.min_route_meters:
            return None

        now = self.clock()
        if self._within_arrival_radius(sample.coordinate):
            if self._arrival_announced:
                return None
            self._in_radius_samples += 1
            if self._in_radius_samples >= self.config.arrival_confirm_samples:
                return self._emit_arrival(now)
        else:
            self._in_radius_samples = 0

        if step_index is not None and not 0 <= step_index < len(self.steps):
            step_index = None

        target = self.next_maneuver_index(step_index)
        if target is None:
            return None

        distance = self.distance_to_maneuver(sample.coordinate, step_index, progress_in_step, target)
        tier = self.classify(distance, sample.speed_mps)
        if tier is None:
            return None

        if self._suppressed(target, tier, now):
            return None

        step = self.steps[target]
        kind, roundabout_exit = parse_maneuver(step.instructions)
        cue = TurnCue(
            step_index=target,
            kind=kind,
            tier=tier,
            instruction=self._instruction_text(step, kind, roundabout_exit, distance),
            distance_meters=max(0.0, distance),
            icon=_ICONS[kind],
            should_speak=tier != CueTier.FAR,
            should_haptic=tier >= CueTier.NEAR,
            timestamp=now,
            roundabout_exit=roundabout_exit,
        )
        self._commit(cue)
        return cue

    def next_maneuver_index(self, current: Optional[int]) -> Optional[int]:
        steps = self.steps
        if not steps:
            return None
        if current is None:
            for index, step in enumerate(steps):
                if step.has_instructions:
                    return index
            return 0
        if current >= len(steps) - 1:
            # last step: the maneuver is the destination itself
            return current
        for index in range(current + 1, len(steps)):
            if steps[index].has_instructions:
                return index
        return min(current + 1, len(steps) - 1)

    def distance_to_maneuver(self, coordinate: Coordinate, current: Optional[int],
                             progress_in_step: Optional[float], target: int) -> float:
        """Remaining meters to the start of the target step (or to the end of the final step)"""
        steps = self.steps
        if current is None:
            start = steps[target].polyline[0] if steps[target].polyline else self.route.origin
            return distance_between(coordinate, start) if start else 0.0

        remaining = self._remaining_in_step(steps[current], coordinate, progress_in_step)
        for step in steps[current + 1:target]:
            remaining += step.length_meters
        return max(0.0, remaining)

    def lookahead_meters(self, speed_mps: Optional[float]) -> float:
        cfg = self.config
        if speed_mps is None or speed_mps <= 0 or speed_mps != speed_mps:
            return cfg.default_lookahead_meters
        return max(cfg.min_lookahead_meters, min(cfg.max_lookahead_meters, speed_mps * cfg.lookahead_seconds))

    def classify(self, distance: float, speed_mps: Optional[float]) -> Optional[CueTier]:
        cfg = self.config
        far = max(cfg.min_far_meters, min(cfg.default_lookahead_meters, self.lookahead_meters(speed_mps)))
        near = max(cfg.min_near_meters, far * cfg.near_band_fraction)
        now = max(cfg.min_now_meters, far * cfg.now_band_fraction)

        if distance <= now:
            return CueTier.NOW
        if distance <= near:
            return CueTier.NEAR
        if distance <= far:
            return CueTier.FAR
        return None

    def _remaining_in_step(self, step: Step, coordinate: Coordinate, progress: Optional[float]) -> float:
        if progress is not None:
            return max(0.0, step.length_meters * (1.0 - max(0.0, min(1.0, progress))))
        if not step.is_matchable:
            return 0.0
        ref = coordinate.latitude
        projection = project_onto_polyline(
            to_plane(to_array(step.polyline), ref),
            to_plane(np.array([coordinate.latitude, coordinate.longitude]), ref),
        )
        return projection.remaining if projection else step.length_meters

    def _within_arrival_radius(self, coordinate: Coordinate) -> bool:
        destination = self.route.destination if self.route else None
        if destination is None:
            return False
        return distance_between(coordinate, destination) <= self.config.arrived_meters

    def _emit_arrival(self, now: datetime) -> TurnCue:
        cue = TurnCue(
            step_index=max(0, len(self.steps) - 1),
            kind=CueKind.ARRIVE,
            tier=CueTier.ARRIVED,
            instruction="Arrived",
            distance_meters=0.0,
            icon=_ICONS[CueKind.ARRIVE],
            should_speak=True,
            should_haptic=True,
            timestamp=now,
        )
        self._arrival_announced = True
        self._commit(cue)
        return cue

    def _suppressed(self, step_index: int, tier: CueTier, now: datetime) -> bool:
        last = self._last_cue
        if last is None:
            return False
        if (now - last.timestamp).total_seconds() < self.config.min_seconds_between_cues:
            return True
        if last.kind is CueKind.START or self.config.allow_repeat_at_same_tier:
            return False
        return last.step_index == step_index and last.tier == tier

    def _instruction_text(self, step: Step, kind: CueKind, roundabout_exit: Optional[int],
                          distance: float) -> str:
        body = step.instructions.strip() or verb_for(kind, roundabout_exit)
        lead = format_distance(distance, self.units)
        return f"{lead} • {body}" if lead else body

    def _commit(self, cue: TurnCue):
        self.latest_cue = cue
        self._last_cue = cue
        logger.debug(f"Cue {cue.id}: {cue.instruction}")
        for listener in self._listeners:
            try:
                listener(cue)
            except Exception:
                logger.exception("Cue listener failed")

    def _reset_memory(self):
        self._last_cue: Optional[TurnCue] = None
        self._arrival_announced = False
        self._in_radius_samples = 0
