from datetime import datetime

from pydantic import BaseModel

from .segment_record import SegmentRecord


class SegmentResponse(BaseModel):
    step_id: str
    quality: float
    roughness: float
    freshness: float
    last_updated: datetime

    @classmethod
    def from_record(cls, step_id: str, record: SegmentRecord) -> "SegmentResponse":
        return cls(
            step_id=step_id,
            quality=record.quality,
            roughness=record.roughness,
            freshness=record.freshness,
            last_updated=record.last_updated,
        )
