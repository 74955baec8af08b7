import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

import numpy as np

from ..model.navigation_config import DriftConfig
from ..model.position_sample import PositionSample
from ..model.route_geometry import Coordinate, RouteGeometry
from ..utils.clock import Clock, utc_now
from ..utils.geometry import distance_to_polyline, subsample, to_array

logger = logging.getLogger(__name__)

RerouteCallback = Callable[[Coordinate], None]


class DriftState(str, Enum):
    IDLE = "idle"
    MONITORING = "monitoring"


@dataclass(frozen=True)
class DriftDecision:
    """Outcome of evaluating one sample against the route corridor"""
    distance: float
    threshold: float
    is_off_route: bool
    reroute_triggered: bool


class DriftDetector:
    """
    Off-route detector for a single navigation session.

    Not thread-safe: feed samples from one logical stream, in arrival order.
    """

    def __init__(self, config: DriftConfig = DriftConfig(), clock: Clock = utc_now):
        self.config = config
        self.clock = clock
        self._reset()

    def _reset(self):
        self.route: Optional[RouteGeometry] = None
        self.on_off_route: Optional[RerouteCallback] = None
        self.last_reroute_at: Optional[datetime] = None
        self.is_off_route = False
        self.last_distance: Optional[float] = None
        self._points = np.empty((0, 2), dtype=float)

    @property
    def state(self) -> DriftState:
        return DriftState.MONITORING if self.route is not None else DriftState.IDLE

    def start_monitoring(self, route: RouteGeometry, on_off_route: RerouteCallback):
        self.stop_monitoring()
        self.route = route
        self.on_off_route = on_off_route
        self._cache_polyline(route)
        logger.info(f"Drift monitoring started ({len(self._points)} vertices)")

    def update_route(self, route: RouteGeometry):
        """Swap the route; cooldown and off-route state are kept and self-correct on the next sample"""
        if self.route is None:
            logger.warning("update_route called while idle; ignoring")
            return
        self.route = route
        self._cache_polyline(route)
        logger.info(f"Drift route updated ({len(self._points)} vertices)")

    def stop_monitoring(self):
        if self.route is not None:
            logger.info("Drift monitoring stopped")
        self._reset()

    def threshold_for(self, sample: PositionSample) -> float:
        cfg = self.config
        cushion = min(cfg.max_accuracy_cushion_meters,
                      max(0.0, sample.horizontal_accuracy) * cfg.accuracy_cushion_fraction)
        threshold = cfg.base_threshold_meters + cushion

        speed_kmh = sample.speed_kmh
        if speed_kmh is not None and speed_kmh >= cfg.fast_speed_kmh:
            threshold -= cfg.fast_speed_tightening_meters

        return max(cfg.min_threshold_meters, threshold)

    def distance_to_route(self, coordinate: Coordinate) -> float:
        return distance_to_polyline(self._points, coordinate)

    def evaluate(self, sample: PositionSample) -> Optional[DriftDecision]:
        if self.route is None:
            return None

        accuracy = sample.horizontal_accuracy
        # NaN fails both bounds
        if not 0 <= accuracy <= self.config.max_accuracy_meters:
            logger.debug(f"Skipping sample with horizontal accuracy {accuracy}m")
            return None

        distance = self.distance_to_route(sample.coordinate)
        if distance == float("inf"):
            logger.debug("Route polyline is degenerate; skipping drift evaluation")
            return None

        self.last_distance = distance
        threshold = self.threshold_for(sample)

        if distance <= threshold:
            if self.is_off_route:
                logger.info(f"Back on route ({distance:.1f}m <= {threshold:.1f}m)")
            self.is_off_route = False
            return DriftDecision(distance=distance, threshold=threshold, is_off_route=False,
                                 reroute_triggered=False)

        self.is_off_route = True
        now = self.clock()
        if not self._cooldown_elapsed(now):
            logger.debug(f"Off route ({distance:.1f}m > {threshold:.1f}m), reroute in cooldown")
            return DriftDecision(distance=distance, threshold=threshold, is_off_route=True,
                                 reroute_triggered=False)

        self.last_reroute_at = now
        logger.info(f"Off route ({distance:.1f}m > {threshold:.1f}m); requesting reroute")
        if self.on_off_route is not None:
            try:
                self.on_off_route(sample.coordinate)
            except Exception:
                logger.exception("Reroute callback failed")

        return DriftDecision(distance=distance, threshold=threshold, is_off_route=True,
                             reroute_triggered=True)

    def _cooldown_elapsed(self, now: datetime) -> bool:
        if self.last_reroute_at is None:
            return True
        return (now - self.last_reroute_at).total_seconds() >= self.config.reroute_cooldown_seconds

    def _cache_polyline(self, route: RouteGeometry):
        points = to_array(route.coordinates())
        capped = subsample(points, self.config.max_polyline_vertices)
        if len(capped) < len(points):
            logger.debug(f"Subsampled route polyline from {len(points)} to {len(capped)} vertices")
        self._points = capped
