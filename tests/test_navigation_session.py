from math import pi

import pytest

from ridemetrics.model.navigation_config import DriftConfig
from ridemetrics.model.ride_mode import RideMode
from ridemetrics.model.route_geometry import RouteGeometry, Step
from ridemetrics.model.score import StepTags
from ridemetrics.model.segment_record import StepId
from ridemetrics.model.turn_cue import CueKind, CueTier
from ridemetrics.service.drift_detector import DriftDetector
from ridemetrics.service.map_matcher import MapMatcher
from ridemetrics.service.navigation_session import NavigationSession
from ridemetrics.service.ride_recorder import RideRecorder
from ridemetrics.service.segment_store import SegmentStore
from ridemetrics.service.turn_cue_engine import TurnCueEngine

from conftest import at, sample_at, straight_route


@pytest.fixture
def store(clock):
    store = SegmentStore(clock=clock)
    yield store
    store.close()


@pytest.fixture
def session(store, clock):
    return NavigationSession(store, drift=DriftDetector(clock=clock), cues=TurnCueEngine(clock=clock))


def ride(session, clock, east, north=0.0, seconds=5.0, **kwargs):
    clock.advance(seconds=seconds)
    return session.ingest(sample_at(east, north, timestamp=clock(), **kwargs))


def test_recorder_writes_roughness_of_matched_step(store, clock):
    route = straight_route([100, 100])
    recorder = RideRecorder(MapMatcher(), store)
    recorder.start(route)

    match = recorder.ingest(sample_at(150, timestamp=clock(), roughness_rms=0.42))

    assert match.step_index == 1
    record = store.read(StepId.for_route(route, 1))
    assert record.roughness == 0.42
    assert record.quality == 0.5


def test_recorder_telemetry(store, clock):
    recorder = RideRecorder(MapMatcher(), store)
    recorder.start(None)

    recorder.ingest(sample_at(0, timestamp=clock(), speed=4.0, roughness_rms=0.01))
    clock.advance(seconds=10)
    recorder.ingest(sample_at(40, timestamp=clock(), speed=0.2, roughness_rms=0.5))

    telemetry = recorder.telemetry
    assert telemetry.distance_meters == pytest.approx(40.0, abs=1e-3)
    assert telemetry.elapsed_seconds == 10.0
    # 0.2 m/s reads as standing still: 0.75 * 4.0
    assert telemetry.speed_kmh == pytest.approx(3.0 * 3.6)
    assert telemetry.coast_ratio == 0.5
    assert telemetry.samples == 2
    assert len(store) == 0

    summary = recorder.stop()
    assert summary.distance_meters == telemetry.distance_meters
    assert recorder.ingest(sample_at(50, timestamp=clock())) is None


def test_session_ride_to_arrival(session, clock):
    start = session.set_route(straight_route([100, 100], ["Head east", "Turn left onto Pier Rd"]))
    assert start.kind is CueKind.START

    update = ride(session, clock, 20)
    assert update.match.step_index == 0
    assert update.cue.kind is CueKind.TURN_LEFT
    assert update.cue.tier is CueTier.NEAR
    assert not update.drift.is_off_route

    update = ride(session, clock, 95)
    assert update.cue.tier is CueTier.NOW

    ride(session, clock, 185)
    update = ride(session, clock, 195)
    assert update.cue.tier is CueTier.ARRIVED
    assert session.recorder.telemetry.samples == 4


def test_session_requests_reroute_when_off_route(store, clock):
    requested = []
    session = NavigationSession(store, drift=DriftDetector(DriftConfig(), clock=clock),
                                cues=TurnCueEngine(clock=clock), on_reroute_needed=requested.append)
    session.set_route(straight_route([200]))

    update = ride(session, clock, 100, 80)

    assert update.drift.reroute_triggered
    assert requested == session.reroute_requests
    assert len(requested) == 1


def test_reroute_keeps_drift_cooldown(session, clock):
    session.set_route(straight_route([200]))
    ride(session, clock, 100, 80)

    cue = session.reroute(straight_route([100, 100], ["Head north", "Turn right"]))
    update = ride(session, clock, 100, 80)

    assert cue.kind is CueKind.START
    assert update.drift.is_off_route
    assert not update.drift.reroute_triggered


def test_stop(session, clock):
    session.set_route(straight_route([200]))
    session.stop()

    update = ride(session, clock, 10)
    assert update.match is None and update.cue is None and update.drift is None
    assert not session.recorder.is_recording


def test_step_score_uses_stored_roughness(session, store):
    route = RouteGeometry(steps=(
        Step(polyline=(at(0), at(100))),
        Step(polyline=(at(100), at(100, 100))),
    ))
    session.set_route(route)

    smooth, _ = session.step_score(1, RideMode.SMOOTHEST)
    store.update_roughness(StepId.for_route(route, 1), 1.75)
    rough, _ = session.step_score(1, RideMode.SMOOTHEST)
    assert rough < smooth

    # 90 degree left at the end of step 0
    _, breakdown = session.step_score(0, RideMode.SMOOTHEST, tags=StepTags(has_protected_lane=True))
    assert breakdown.turn_factor == pytest.approx(1 - 0.35 * (pi / 2) / pi, abs=1e-6)
    assert breakdown.lane_factor == pytest.approx(1.10)

    with pytest.raises(IndexError):
        session.step_score(5)
