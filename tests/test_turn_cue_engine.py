import pytest

from ridemetrics.model.navigation_config import CueConfig
from ridemetrics.model.turn_cue import CueKind, CueTier
from ridemetrics.service.turn_cue_engine import TurnCueEngine, parse_maneuver, verb_for

from conftest import sample_at, straight_route


@pytest.fixture
def engine(clock):
    return TurnCueEngine(clock=clock)


def feed(engine, clock, east, seconds=5.0, **kwargs):
    clock.advance(seconds=seconds)
    return engine.ingest(sample_at(east, timestamp=clock()), **kwargs)


def test_start_cue(engine):
    cue = engine.set_route(straight_route([100, 100], ["Head east on Ocean Ave", "Turn left"]))

    assert cue.kind is CueKind.START
    assert cue.tier is CueTier.FAR
    assert cue.step_index == 0
    assert cue.instruction == "Head east on Ocean Ave"
    assert engine.latest_cue == cue


def test_no_route_no_cues(engine, clock):
    assert engine.set_route(None) is None
    assert feed(engine, clock, 10) is None


def test_tier_sequence_on_approach(engine, clock):
    engine.set_route(straight_route([100]))

    tiers = [
        feed(engine, clock, 10, step_index=0, progress_in_step=0.10).tier,
        feed(engine, clock, 50, step_index=0, progress_in_step=0.50).tier,
        feed(engine, clock, 85, step_index=0, progress_in_step=0.85).tier,
        feed(engine, clock, 98, step_index=0, progress_in_step=0.98).tier,
    ]

    assert tiers == [CueTier.FAR, CueTier.NEAR, CueTier.NOW, CueTier.ARRIVED]
    assert engine.latest_cue.kind is CueKind.ARRIVE
    # arrival is announced once
    assert feed(engine, clock, 99, step_index=0, progress_in_step=0.99) is None


def test_tier_sequence_without_matcher_progress(engine, clock):
    engine.set_route(straight_route([100]))

    tiers = [feed(engine, clock, east, step_index=0).tier for east in (10, 50, 85, 98)]

    assert tiers == [CueTier.FAR, CueTier.NEAR, CueTier.NOW, CueTier.ARRIVED]


def test_cues_are_rate_limited(engine, clock):
    engine.set_route(straight_route([100]))

    assert feed(engine, clock, 10, seconds=3.9, step_index=0) is None
    assert feed(engine, clock, 12, seconds=0.1, step_index=0).tier is CueTier.FAR


def test_same_step_and_tier_is_not_repeated(engine, clock):
    engine.set_route(straight_route([100]))

    assert feed(engine, clock, 10, step_index=0).tier is CueTier.FAR
    assert feed(engine, clock, 12, step_index=0) is None


def test_repeat_at_same_tier_can_be_allowed(clock):
    engine = TurnCueEngine(CueConfig(allow_repeat_at_same_tier=True), clock=clock)
    engine.set_route(straight_route([100]))

    assert feed(engine, clock, 10, step_index=0).tier is CueTier.FAR
    assert feed(engine, clock, 12, step_index=0).tier is CueTier.FAR


def test_skips_steps_without_instructions(engine, clock):
    engine.set_route(straight_route([100, 100, 100], ["Head east", "", "Turn left onto Main St"]))

    cue = feed(engine, clock, 50, step_index=0, progress_in_step=0.5)

    assert cue.step_index == 2
    assert cue.kind is CueKind.TURN_LEFT
    assert cue.icon == "turn-left"
    assert cue.distance_meters == pytest.approx(150.0)
    assert cue.instruction == "150 m • Turn left onto Main St"
    assert not cue.should_speak
    assert not cue.should_haptic


def test_slow_riders_get_a_shorter_lookahead(engine, clock):
    engine.set_route(straight_route([100, 100, 100], ["Head east", "", "Turn left"]))

    clock.advance(seconds=5)
    slow = sample_at(50, timestamp=clock(), speed=2.0)
    assert engine.ingest(slow, step_index=0, progress_in_step=0.5) is None


def test_lookahead_and_bands(engine):
    assert engine.lookahead_meters(None) == 240.0
    assert engine.lookahead_meters(2.0) == 80.0
    assert engine.lookahead_meters(12.0) == 120.0
    assert engine.lookahead_meters(50.0) == 320.0

    assert engine.classify(200, None) is CueTier.FAR
    assert engine.classify(83, None) is CueTier.NEAR
    assert engine.classify(23, None) is CueTier.NOW
    assert engine.classify(241, None) is None
    assert engine.classify(80, 1.0) is CueTier.FAR
    assert engine.classify(81, 1.0) is None


def test_near_and_now_cues_speak(engine, clock):
    engine.set_route(straight_route([200, 100], ["Head east", "Turn right"]))

    near = feed(engine, clock, 130, step_index=0, progress_in_step=0.65)
    now = feed(engine, clock, 185, step_index=0, progress_in_step=0.925)

    assert near.tier is CueTier.NEAR and near.should_speak and near.should_haptic
    assert now.tier is CueTier.NOW and now.should_speak and now.should_haptic


def test_unknown_position_targets_first_instruction(engine, clock):
    engine.set_route(straight_route([100, 100], ["", "Turn right"]))

    cue = feed(engine, clock, 60)

    assert cue.step_index == 1
    assert cue.kind is CueKind.TURN_RIGHT
    assert cue.distance_meters == pytest.approx(40.0, abs=1e-3)


def test_short_routes_get_no_cues(engine, clock):
    engine.set_route(straight_route([15], ["Turn left"]))
    assert feed(engine, clock, 5, step_index=0) is None


def test_listeners_receive_cues(engine, clock):
    received = []
    engine.add_listener(received.append)
    engine.set_route(straight_route([100]))
    feed(engine, clock, 10, step_index=0)

    assert [cue.kind for cue in received] == [CueKind.START, CueKind.CONTINUE]


def test_failing_listener_does_not_break_ingest(engine, clock):
    def explode(_):
        raise RuntimeError("boom")

    engine.add_listener(explode)
    engine.set_route(straight_route([100]))
    assert feed(engine, clock, 10, step_index=0) is not None


def test_new_route_resets_memory(engine, clock):
    route = straight_route([100])
    engine.set_route(route)
    for east in (90, 98):
        feed(engine, clock, east, step_index=0)
    assert engine.latest_cue.tier is CueTier.ARRIVED

    engine.set_route(route)
    assert feed(engine, clock, 10, step_index=0).tier is CueTier.FAR


@pytest.mark.parametrize("text, kind, exit_number", [
    ("Turn left onto Main St", CueKind.TURN_LEFT, None),
    ("Turn right", CueKind.TURN_RIGHT, None),
    ("Slight right toward the park", CueKind.SLIGHT_RIGHT, None),
    ("Keep slight left", CueKind.SLIGHT_LEFT, None),
    ("Make a U-turn", CueKind.U_TURN, None),
    ("Make a u turn at the light", CueKind.U_TURN, None),
    ("At the roundabout, take the 2nd exit", CueKind.ROUNDABOUT, 2),
    ("Enter the roundabout", CueKind.ROUNDABOUT, None),
    ("Merge onto the bike path", CueKind.MERGE, None),
    ("Take the exit", CueKind.EXIT, None),
    ("Arrive at the skatepark", CueKind.ARRIVE, None),
    ("Continue straight", CueKind.CONTINUE, None),
    ("", CueKind.CONTINUE, None),
    ("Walk your board through the plaza", CueKind.CUSTOM, None),
])
def test_parse_maneuver(text, kind, exit_number):
    assert parse_maneuver(text) == (kind, exit_number)


def test_roundabout_verbs():
    assert verb_for(CueKind.ROUNDABOUT, 3) == "At roundabout, take exit 3"
    assert verb_for(CueKind.ROUNDABOUT) == "At roundabout, continue"
    assert verb_for(CueKind.SLIGHT_LEFT) == "Bear left"
