from typing import Dict, Sequence

import folium

from ..model.position_sample import MatchResult, PositionSample
from ..model.route_geometry import Coordinate, RouteGeometry
from ..model.route_options import Presentation, RouteCandidate
from ..utils.geometry import distance_between


def _center(coordinates: Sequence[Coordinate]):
    lat = sum(c.latitude for c in coordinates) / len(coordinates)
    lon = sum(c.longitude for c in coordinates) / len(coordinates)
    return [lat, lon]


def create_options_map(candidates: Sequence[RouteCandidate], presentations: Dict[str, Presentation]) -> folium.Map:
    """
    Creates a Folium map with every candidate route painted in its grade color
    :param candidates: Route candidates as evaluated
    :param presentations: Presentation per candidate id
    """
    all_points = [c for candidate in candidates for c in candidate.route.coordinates()]
    mapa = folium.Map(location=_center(all_points) if all_points else [0.0, 0.0], zoom_start=15)

    for candidate in candidates:
        presentation = presentations.get(candidate.id)
        if presentation is None:
            continue
        paints = {paint.step_index: paint.color for paint in presentation.step_paints}
        group = folium.FeatureGroup(name=presentation.title)

        for index, step in enumerate(candidate.route.steps):
            if not step.is_matchable:
                continue
            folium.PolyLine(
                locations=[(c.latitude, c.longitude) for c in step.polyline],
                color=paints.get(index, presentation.tint_color),
                weight=5,
                opacity=0.8,
                tooltip=f"{presentation.title}: {presentation.subtitle}"
            ).add_to(group)

        group.add_to(mapa)

    folium.LayerControl().add_to(mapa)
    return mapa


def create_match_map(route: RouteGeometry, sample: PositionSample, result: MatchResult) -> folium.Map:
    """
    Creates a Folium map comparing a raw sample with its snapped position
    :param route: Route the sample was matched onto
    :param sample: Raw position sample
    :param result: Match result for the sample
    """
    raw = (sample.coordinate.latitude, sample.coordinate.longitude)
    snapped = (result.snapped_coordinate.latitude, result.snapped_coordinate.longitude)

    mapa = folium.Map(location=[(raw[0] + snapped[0]) / 2, (raw[1] + snapped[1]) / 2], zoom_start=17)

    folium.PolyLine(
        locations=[(c.latitude, c.longitude) for c in route.coordinates()],
        color='blue',
        weight=3,
        opacity=0.7,
        tooltip="Route"
    ).add_to(mapa)

    step = route.steps[result.step_index]
    if step.is_matchable:
        folium.PolyLine(
            locations=[(c.latitude, c.longitude) for c in step.polyline],
            color='purple',
            weight=5,
            opacity=0.9,
            tooltip=f"Matched step {result.step_index}"
        ).add_to(mapa)

    folium.Marker(
        location=raw,
        popup=f"GPS sample (±{sample.horizontal_accuracy:.0f} m)",
        icon=folium.Icon(color='red', icon='exclamation-triangle')
    ).add_to(mapa)

    folium.Marker(
        location=snapped,
        popup=f"Snapped ({result.confidence:.2f} confidence)",
        icon=folium.Icon(color='green', icon='check-circle')
    ).add_to(mapa)

    folium.PolyLine(
        locations=[raw, snapped],
        color='orange',
        weight=2,
        dash_array='5, 10',
        tooltip=f"Distance: {distance_between(sample.coordinate, result.snapped_coordinate):.1f} m"
    ).add_to(mapa)

    return mapa
