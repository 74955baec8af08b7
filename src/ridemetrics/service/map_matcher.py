import logging
from typing import Optional

import numpy as np

from ..model.position_sample import AlignmentQuality, MatchResult, PositionSample
from ..model.route_geometry import RouteGeometry
from ..utils.geometry import from_plane, project_onto_polyline, to_array, to_plane

logger = logging.getLogger(__name__)

# samples further than this from every step are treated as zero confidence
SEARCH_RADIUS_METERS = 50.0


class MapMatcher:
    """
    Stateless map matcher: snaps a position sample onto the closest step of a route.

    Every step polyline is projected in a planar frame centred on the sample latitude,
    the closest edge of each step is kept, and the step with the globally smallest
    distance wins. Safe to share between threads.
    """

    def __init__(self, search_radius: float = SEARCH_RADIUS_METERS):
        self.search_radius = search_radius

    def match(self, route: RouteGeometry, sample: PositionSample) -> Optional[MatchResult]:
        if route.is_empty:
            return None

        ref_latitude = sample.coordinate.latitude
        position = to_plane(np.array([sample.coordinate.latitude, sample.coordinate.longitude]), ref_latitude)

        best_index = None
        best_projection = None
        for step_index, step in enumerate(route.steps):
            if not step.is_matchable:
                continue
            planar = to_plane(to_array(step.polyline), ref_latitude)
            projection = project_onto_polyline(planar, position)
            if projection is None:
                continue
            if best_projection is None or projection.distance < best_projection.distance:
                best_index = step_index
                best_projection = projection

        if best_projection is None:
            logger.debug("No matchable step on route")
            return None

        confidence = self.confidence_for(best_projection.distance)
        step = route.steps[best_index]
        progress = best_projection.fraction
        remaining = max(0.0, step.length_meters * (1.0 - progress))

        return MatchResult(
            step_index=best_index,
            progress_in_step=progress,
            distance_to_next_maneuver=remaining,
            snapped_coordinate=from_plane(best_projection.point, ref_latitude),
            confidence=confidence,
            quality=AlignmentQuality.from_confidence(confidence),
            speed_kmh=sample.speed_kmh,
            timestamp=sample.timestamp,
        )

    def nearest_step_index(self, route: RouteGeometry, sample: PositionSample) -> Optional[int]:
        result = self.match(route, sample)
        return result.step_index if result else None

    def confidence_for(self, distance: float) -> float:
        """Linear fall-off: 1.0 on the polyline, 0.0 at or beyond the search radius"""
        if self.search_radius <= 0:
            return 0.0
        return max(0.0, min(1.0, 1.0 - distance / self.search_radius))
