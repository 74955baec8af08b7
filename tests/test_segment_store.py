import json
import threading
import logging

import pytest

from ridemetrics.error.segment_store_error import SegmentPersistenceError, SegmentStoreError
from ridemetrics.model.segment_record import StepId
from ridemetrics.service.segment_store import FileSegmentBackend, MemorySegmentBackend, SegmentStore

STEP = StepId("abc123", 4)


class FailingBackend:
    def load(self):
        return None

    def save(self, data):
        raise SegmentPersistenceError("disk full")


@pytest.fixture
def store(clock):
    store = SegmentStore(clock=clock)
    yield store
    store.close()


def test_write_then_read(store, clock):
    store.write(STEP, 0.8, 0.4)
    record = store.read(STEP)

    assert record.quality == 0.8
    assert record.roughness == 0.4
    assert record.freshness == 1.0
    assert record.last_updated == clock()
    assert len(store) == 1


def test_unknown_step(store):
    assert store.read(STEP) is None
    assert store.adjust_freshness(STEP, 0.5) is None


def test_write_clamps_values(store):
    record = store.write(STEP, 1.7, -2.0)
    assert (record.quality, record.roughness) == (1.0, 0.0)


def test_update_roughness_defaults_quality(store):
    record = store.update_roughness(STEP, 0.9)
    assert record.quality == 0.5
    assert record.roughness == 0.9


def test_update_roughness_keeps_quality(store):
    store.write(STEP, 0.8, 0.1)
    record = store.update_roughness(STEP, 0.3)

    assert record.quality == 0.8
    assert record.roughness == 0.3


def test_string_keys_are_accepted(store):
    store.write("abc123:4", 0.6, 0.2)
    assert store.read(STEP).quality == 0.6
    with pytest.raises(ValueError):
        store.read("not-a-step-id")


def test_no_decay_within_grace_period(store, clock):
    store.write(STEP, 0.8, 0.4)
    clock.advance(days=7)

    assert store.apply_decay() == 0
    assert store.read(STEP).freshness == 1.0


def test_decay_after_ten_days(store, clock):
    store.write(STEP, 0.8, 0.4)
    clock.advance(days=10)

    assert store.apply_decay() == 1
    assert store.read(STEP).freshness == pytest.approx(0.7)


def test_decay_is_idempotent(store, clock):
    store.write(STEP, 0.8, 0.4)
    clock.advance(days=10)
    store.apply_decay()
    store.read(STEP)

    assert store.apply_decay() == 0
    assert store.read(STEP).freshness == pytest.approx(0.7)


def test_decay_floors_at_zero(store, clock):
    store.write(STEP, 0.8, 0.4)
    clock.advance(days=40)

    assert store.read(STEP).freshness == 0.0


def test_adjust_freshness_restarts_decay(store, clock):
    store.write(STEP, 0.8, 0.4)
    clock.advance(days=9)
    record = store.adjust_freshness(STEP, 0.6)
    assert record.freshness == 0.6

    clock.advance(days=9)
    assert store.read(STEP).freshness == pytest.approx(0.4)


def test_clear(store):
    store.write(STEP, 0.8, 0.4)
    store.write(StepId("abc123", 5), 0.8, 0.4)
    store.clear()

    assert len(store) == 0
    assert store.read(STEP) is None


def test_persists_across_instances(tmp_path, clock):
    path = tmp_path / "segments.json"
    first = SegmentStore(FileSegmentBackend(path), clock=clock)
    first.write(STEP, 0.8, 0.4)
    assert first.flush(timeout=5)
    first.close()

    second = SegmentStore(FileSegmentBackend(path), clock=clock)
    try:
        record = second.read(STEP)
        assert record.quality == 0.8
        assert record.roughness == 0.4
        assert record.last_updated == clock()
    finally:
        second.close()


def test_decay_is_applied_on_load(tmp_path, clock):
    path = tmp_path / "segments.json"
    first = SegmentStore(FileSegmentBackend(path), clock=clock)
    first.write(STEP, 0.8, 0.4)
    first.close()

    clock.advance(days=10)
    second = SegmentStore(FileSegmentBackend(path), clock=clock)
    second.close()

    saved = json.loads(path.read_text())
    assert saved["segments"][STEP.key]["freshness"] == pytest.approx(0.7)


def test_saves_are_full_snapshots(clock):
    backend = MemorySegmentBackend()
    store = SegmentStore(backend, clock=clock)
    store.write(STEP, 0.8, 0.4)
    store.write(StepId("abc123", 5), 0.3, 1.2)
    store.close()

    saved = json.loads(backend.data)
    assert saved["version"] == 1
    assert set(saved["segments"]) == {"abc123:4", "abc123:5"}
    assert 1 <= backend.saves <= 2


def test_persistence_failure_keeps_memory(clock, caplog):
    store = SegmentStore(FailingBackend(), clock=clock)
    store.write(STEP, 0.8, 0.4)

    assert store.flush(timeout=5) is False
    assert isinstance(store.last_error, SegmentPersistenceError)
    assert store.read(STEP).quality == 0.8
    assert "save failed" in caplog.text
    store.close()


def test_corrupt_snapshot_starts_empty(tmp_path, clock):
    path = tmp_path / "segments.json"
    path.write_text("{not json")

    store = SegmentStore(FileSegmentBackend(path), clock=clock)
    try:
        assert len(store) == 0
        assert isinstance(store.last_error, SegmentPersistenceError)
    finally:
        store.close()


def test_closed_store_rejects_writes(clock):
    store = SegmentStore(clock=clock)
    store.close()

    with pytest.raises(SegmentStoreError):
        store.write(STEP, 0.8, 0.4)


def test_export_ndjson(store, tmp_path):
    store.write(STEP, 0.8, 0.4)
    store.write(StepId("abc123", 5), 0.3, 1.2)

    out = tmp_path / "export" / "segments.ndjson"
    assert store.export_ndjson(out) == 2

    rows = [json.loads(line) for line in out.read_text().splitlines()]
    assert [row["step_id"] for row in rows] == ["abc123:4", "abc123:5"]
    assert rows[1]["roughness"] == 1.2


def test_concurrent_writers(store):
    def writer(offset):
        for i in range(50):
            store.write(StepId("route", offset * 50 + i), 0.5, 0.1)

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(store) == 200
    assert store.flush(timeout=10)


def test_step_id_parse():
    assert StepId.parse("abc123:4") == STEP
    assert str(STEP) == "abc123:4"
    for bad in ("abc123", ":4", "abc123:x", "abc123:-1"):
        with pytest.raises(ValueError):
            StepId.parse(bad)


class BrokenBackend:
    def load(self):
        return None

    def save(self, data):
        raise RuntimeError("driver exploded")


class StalledBackend(MemorySegmentBackend):
    def __init__(self):
        super().__init__()
        self.release = threading.Event()

    def save(self, data):
        self.release.wait(timeout=10)
        super().save(data)


class InterleavingClock:
    """Runs a hook once, the next time the time is read"""

    def __init__(self, clock):
        self.clock = clock
        self.hook = None

    def __call__(self):
        hook, self.hook = self.hook, None
        if hook is not None:
            hook()
        return self.clock()


def test_update_roughness_does_not_lose_a_concurrent_write(clock):
    interleaving = InterleavingClock(clock)
    store = SegmentStore(clock=interleaving)
    try:
        store.write(STEP, 0.2, 0.1)
        interleaving.hook = lambda: store.write(STEP, 0.9, 0.1)

        record = store.update_roughness(STEP, 0.5)

        assert record.quality == 0.9
        assert store.read(STEP).quality == 0.9
        assert store.read(STEP).roughness == 0.5
    finally:
        store.close()


def test_unexpected_backend_errors_are_logged(clock, caplog):
    store = SegmentStore(BrokenBackend(), clock=clock)
    with caplog.at_level(logging.ERROR):
        store.write(STEP, 0.8, 0.4)
        assert store.flush(timeout=5) is False

    assert isinstance(store.last_error, SegmentPersistenceError)
    assert isinstance(store.last_error.cause, RuntimeError)
    assert "Segment store save failed" in caplog.text
    assert store.read(STEP).quality == 0.8
    store.close()


def test_saves_coalesce_while_the_disk_is_stalled(clock):
    backend = StalledBackend()
    store = SegmentStore(backend, clock=clock)
    try:
        for i in range(300):
            store.update_roughness(StepId("route", i), 0.1)

        # one save in flight, at most one more queued behind it
        assert store._executor._work_queue.qsize() <= 1

        backend.release.set()
        assert store.flush(timeout=10)
        assert backend.saves <= 2
        assert len(json.loads(backend.data)["segments"]) == 300
    finally:
        backend.release.set()
        store.close()
