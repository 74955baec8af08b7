import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..model.navigation_config import RecorderConfig
from ..model.position_sample import MatchResult, PositionSample
from ..model.route_geometry import RouteGeometry
from ..model.segment_record import StepId
from ..utils.geometry import distance_between
from .map_matcher import MapMatcher
from .segment_store import SegmentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RideTelemetry:
    """HUD numbers for the ride in progress"""
    speed_kmh: float = 0.0
    distance_meters: float = 0.0
    elapsed_seconds: float = 0.0
    coast_ratio: float = 0.0
    last_rms: float = 0.0
    samples: int = 0


class RideRecorder:
    """
    Records a ride: smoothed speed, distance, coasting share, and the roughness of
    every matched step, which is written into the segment store.
    """

    def __init__(self, matcher: MapMatcher, store: SegmentStore, config: RecorderConfig = RecorderConfig()):
        self.matcher = matcher
        self.store = store
        self.config = config
        self.route: Optional[RouteGeometry] = None
        self.is_recording = False
        self._reset_telemetry()

    @property
    def telemetry(self) -> RideTelemetry:
        return RideTelemetry(
            speed_kmh=self._speed_ema * 3.6,
            distance_meters=self._distance,
            elapsed_seconds=self._elapsed(),
            coast_ratio=self._coast_samples / self._samples if self._samples else 0.0,
            last_rms=self._last_rms,
            samples=self._samples,
        )

    def start(self, route: Optional[RouteGeometry]):
        if self.is_recording:
            logger.debug("Ride already recording; ignoring start")
            return
        self.route = route
        self.is_recording = True
        self._reset_telemetry()
        logger.info("Ride recording started")

    def set_route(self, route: Optional[RouteGeometry]):
        self.route = route

    def stop(self) -> RideTelemetry:
        summary = self.telemetry
        if self.is_recording:
            logger.info(f"Ride recording stopped: {summary.distance_meters:.0f}m in {summary.elapsed_seconds:.0f}s")
        self.is_recording = False
        self.route = None
        return summary

    def ingest(self, sample: PositionSample, match: Optional[MatchResult] = None) -> Optional[MatchResult]:
        """
        Feed one sample; returns the match used for the segment write, if any.

        A precomputed match can be passed to avoid matching the same sample twice.
        """
        if not self.is_recording:
            return None

        self._update_motion(sample)

        if self.route is None:
            return None
        if match is None:
            match = self.matcher.match(self.route, sample)
        if match is None:
            return None

        step_id = StepId.for_route(self.route, match.step_index)
        self.store.update_roughness(step_id, sample.roughness_rms)
        return match

    def _update_motion(self, sample: PositionSample):
        cfg = self.config
        speed = sample.speed_mps
        if speed is not None:
            if speed < cfg.min_valid_speed_mps:
                speed = 0.0
            if self._samples == 0:
                self._speed_ema = speed
            else:
                self._speed_ema = cfg.speed_ema_alpha * speed + (1 - cfg.speed_ema_alpha) * self._speed_ema

        if self._last_sample is not None:
            self._distance += distance_between(self._last_sample.coordinate, sample.coordinate)
        if self._started_at is None:
            self._started_at = sample.timestamp
        self._last_sample = sample

        self._last_rms = sample.roughness_rms
        self._samples += 1
        if sample.roughness_rms < cfg.coast_roughness_threshold:
            self._coast_samples += 1

    def _elapsed(self) -> float:
        if self._started_at is None or self._last_sample is None:
            return 0.0
        return max(0.0, (self._last_sample.timestamp - self._started_at).total_seconds())

    def _reset_telemetry(self):
        self._speed_ema = 0.0
        self._distance = 0.0
        self._last_rms = 0.0
        self._samples = 0
        self._coast_samples = 0
        self._started_at: Optional[datetime] = None
        self._last_sample: Optional[PositionSample] = None
