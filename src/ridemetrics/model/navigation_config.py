from dataclasses import dataclass


@dataclass(frozen=True)
class DriftConfig:
    """Thresholds for off-route detection"""
    base_threshold_meters: float = 40.0
    max_accuracy_meters: float = 65.0
    accuracy_cushion_fraction: float = 0.25
    max_accuracy_cushion_meters: float = 15.0
    fast_speed_kmh: float = 18.0
    fast_speed_tightening_meters: float = 8.0
    min_threshold_meters: float = 10.0
    reroute_cooldown_seconds: float = 25.0
    max_polyline_vertices: int = 5000


@dataclass(frozen=True)
class CueConfig:
    """Tiering and anti-spam settings for turn cues"""
    min_route_meters: float = 20.0
    arrived_meters: float = 18.0
    arrival_confirm_samples: int = 2
    min_seconds_between_cues: float = 4.0
    allow_repeat_at_same_tier: bool = False
    default_lookahead_meters: float = 240.0
    lookahead_seconds: float = 10.0
    min_lookahead_meters: float = 80.0
    max_lookahead_meters: float = 320.0
    min_far_meters: float = 60.0
    min_near_meters: float = 25.0
    min_now_meters: float = 10.0
    near_band_fraction: float = 0.35
    now_band_fraction: float = 0.10


@dataclass(frozen=True)
class SegmentStoreConfig:
    """Freshness decay policy"""
    grace_days: float = 7.0
    decay_per_day: float = 0.1
    default_quality: float = 0.5


@dataclass(frozen=True)
class RecorderConfig:
    """Ride telemetry smoothing"""
    speed_ema_alpha: float = 0.25
    min_valid_speed_mps: float = 0.3
    coast_roughness_threshold: float = 0.020
