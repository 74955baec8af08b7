import json
import logging
import os
import tempfile
import threading
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from pydantic import ValidationError

from ..error.segment_store_error import SegmentPersistenceError, SegmentStoreError
from ..model.navigation_config import SegmentStoreConfig
from ..model.segment_record import SegmentRecord, SegmentSnapshot, StepId
from ..utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0


class SegmentBackend(Protocol):
    """Durable home of the serialized snapshot"""

    def load(self) -> Optional[bytes]:
        ...

    def save(self, data: bytes) -> None:
        ...


class FileSegmentBackend:
    """Single JSON file, replaced atomically on every save"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[bytes]:
        if not self.path.exists():
            return None
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise SegmentPersistenceError(f"Could not read {self.path}", e) from e

    def save(self, data: bytes) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            raise SegmentPersistenceError(f"Could not write {self.path}", e) from e


class MemorySegmentBackend:
    """Keeps the last snapshot in memory; for tests and ephemeral sessions"""

    def __init__(self, data: Optional[bytes] = None):
        self.data = data
        self.saves = 0

    def load(self) -> Optional[bytes]:
        return self.data

    def save(self, data: bytes) -> None:
        self.data = data
        self.saves += 1


StepKey = Union[StepId, str]


class SegmentStore:
    """
    Persistent per-step quality memory with freshness decay.

    The in-memory map is authoritative. Mutations mark the store dirty and queue at most
    one save on a single background worker; the worker serializes whatever is current
    when it runs, so bursts of writes coalesce into one snapshot. Persistence failures
    are logged and kept in ``last_error``.
    """

    def __init__(self, backend: Optional[SegmentBackend] = None, clock: Clock = utc_now,
                 config: SegmentStoreConfig = SegmentStoreConfig()):
        self.backend = backend if backend is not None else MemorySegmentBackend()
        self.clock = clock
        self.config = config
        self.last_error: Optional[Exception] = None

        self._lock = threading.Lock()
        self._records: Dict[str, SegmentRecord] = {}
        self._dirty = False
        self._save_queued = False
        self._generation = 0
        self._closed = False
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="segment-store")

        self._load()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def write(self, step_id: StepKey, quality: float, roughness: float) -> SegmentRecord:
        """Upsert a fresh observation for a step"""
        key = self._key(step_id)
        now = self.clock()
        with self._lock:
            self._ensure_open()
            record = self._put_locked(key, quality, roughness, now)
        logger.debug(f"Segment {key} written (quality={record.quality:.2f}, roughness={record.roughness:.3f})")
        return record

    def read(self, step_id: StepKey) -> Optional[SegmentRecord]:
        key = self._key(step_id)
        now = self.clock()
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            decayed = self._decayed(record, now)
            if decayed is not record:
                self._records[key] = decayed
                self._schedule_save()
            return decayed

    def update_roughness(self, step_id: StepKey, roughness: float) -> SegmentRecord:
        """New roughness observation; quality is kept (default when the step is unknown)"""
        key = self._key(step_id)
        now = self.clock()
        with self._lock:
            self._ensure_open()
            existing = self._records.get(key)
            quality = existing.quality if existing else self.config.default_quality
            return self._put_locked(key, quality, roughness, now)

    def adjust_freshness(self, step_id: StepKey, freshness: float) -> Optional[SegmentRecord]:
        """Set freshness explicitly; the decay clock restarts from now"""
        key = self._key(step_id)
        value = _clamp01(freshness)
        now = self.clock()
        with self._lock:
            self._ensure_open()
            record = self._records.get(key)
            if record is None:
                return None
            updated = record.model_copy(update={
                "freshness": value,
                "freshness_anchor": value,
                "last_updated": now,
            })
            self._records[key] = updated
            self._schedule_save()
        return updated

    def clear(self):
        with self._lock:
            self._ensure_open()
            count = len(self._records)
            self._records.clear()
            self._schedule_save()
        logger.info(f"Segment store cleared ({count} records)")

    def apply_decay(self) -> int:
        """Sweep every record; returns how many changed"""
        now = self.clock()
        with self._lock:
            changed = self._decay_all(now)
            if changed:
                self._schedule_save()
        if changed:
            logger.info(f"Decay sweep updated {changed} segments")
        return changed

    def snapshot(self) -> Dict[str, SegmentRecord]:
        with self._lock:
            return dict(self._records)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every scheduled save has run.

        Returns:
            True if the store is durable (no pending or failed save), False on timeout or
            when the last save failed.
        """
        if self._closed:
            return not self._dirty
        try:
            self._executor.submit(lambda: None).result(timeout=timeout)
        except FutureTimeoutError:
            logger.warning(f"Segment store flush timed out after {timeout}s")
            return False
        with self._lock:
            return not self._dirty

    def close(self):
        if self._closed:
            return
        self.flush()
        self._closed = True
        self._executor.shutdown(wait=True)

    def export_ndjson(self, path: Union[str, Path]) -> int:
        """Write one JSON object per segment (step_id plus record fields); returns the row count"""
        rows = self.snapshot()
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            for key, record in sorted(rows.items()):
                row = {"step_id": key, **record.model_dump(mode="json")}
                f.write(json.dumps(row) + "\n")
        logger.info(f"Exported {len(rows)} segments to {path}")
        return len(rows)

    def _load(self):
        try:
            data = self.backend.load()
        except SegmentPersistenceError as e:
            logger.error(f"Could not load segment store: {e}")
            self.last_error = e
            return
        if not data:
            logger.info("Segment store starting empty")
            return

        try:
            snapshot = SegmentSnapshot.model_validate_json(data)
        except ValidationError as e:
            logger.error(f"Segment store snapshot is corrupt, starting empty: {e}")
            self.last_error = SegmentPersistenceError("Corrupt segment snapshot", e)
            return

        now = self.clock()
        with self._lock:
            self._records = dict(snapshot.segments)
            changed = self._decay_all(now)
            if changed:
                self._schedule_save()
        logger.info(f"Segment store loaded {len(snapshot.segments)} records ({changed} decayed)")

    def _decay_all(self, now: datetime) -> int:
        changed = 0
        for key, record in list(self._records.items()):
            decayed = self._decayed(record, now)
            if decayed is not record:
                self._records[key] = decayed
                changed += 1
        return changed

    def _decayed(self, record: SegmentRecord, now: datetime) -> SegmentRecord:
        days = (now - record.last_updated).total_seconds() / SECONDS_PER_DAY
        overdue = max(0.0, days - self.config.grace_days)
        freshness = max(0.0, record.freshness_anchor - self.config.decay_per_day * overdue)
        if freshness == record.freshness:
            return record
        return record.model_copy(update={"freshness": freshness})

    def _put_locked(self, key: str, quality: float, roughness: float, now: datetime) -> SegmentRecord:
        # caller holds the lock
        record = SegmentRecord(
            quality=_clamp01(quality),
            roughness=max(0.0, roughness),
            last_updated=now,
            freshness=1.0,
            freshness_anchor=1.0,
        )
        self._records[key] = record
        self._schedule_save()
        return record

    def _schedule_save(self) -> Optional[Future]:
        # caller holds the lock; a queued save picks up this change when it runs
        self._dirty = True
        self._generation += 1
        if self._closed or self._save_queued:
            return None
        self._save_queued = True
        return self._executor.submit(self._persist)

    def _persist(self):
        with self._lock:
            self._save_queued = False
            generation = self._generation
            payload = SegmentSnapshot(segments=dict(self._records)).model_dump_json().encode("utf-8")

        try:
            self.backend.save(payload)
        except SegmentPersistenceError as e:
            logger.error(f"Segment store save failed: {e}")
            self.last_error = e
            return
        except Exception as e:
            logger.exception("Segment store save failed")
            self.last_error = SegmentPersistenceError("Segment store save failed", e)
            return

        with self._lock:
            if generation == self._generation:
                self._dirty = False
            self.last_error = None

    def _ensure_open(self):
        if self._closed:
            raise SegmentStoreError("Segment store is closed")

    @staticmethod
    def _key(step_id: StepKey) -> str:
        if isinstance(step_id, StepId):
            return step_id.key
        return StepId.parse(step_id).key


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))
