from dataclasses import dataclass
from datetime import datetime
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field

from .route_geometry import RouteGeometry


@dataclass(frozen=True)
class StepId:
    """Route fingerprint + step index, stable across refetches of the same route"""
    route_fingerprint: str
    step_index: int

    @property
    def key(self) -> str:
        return f"{self.route_fingerprint}:{self.step_index}"

    @classmethod
    def for_route(cls, route: RouteGeometry, step_index: int) -> "StepId":
        return cls(route_fingerprint=route.fingerprint, step_index=step_index)

    @classmethod
    def parse(cls, key: str) -> "StepId":
        fingerprint, sep, index = key.rpartition(":")
        if not sep or not fingerprint:
            raise ValueError(f"Invalid step id: {key!r}")
        try:
            step_index = int(index)
        except ValueError:
            raise ValueError(f"Invalid step index in step id: {key!r}") from None
        if step_index < 0:
            raise ValueError(f"Negative step index in step id: {key!r}")
        return cls(route_fingerprint=fingerprint, step_index=step_index)

    def __str__(self) -> str:
        return self.key


class SegmentRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    quality: float = Field(ge=0.0, le=1.0)
    roughness: float = Field(ge=0.0)
    last_updated: datetime
    freshness: float = Field(default=1.0, ge=0.0, le=1.0)
    # freshness at the last write/adjust; decay is always recomputed from it
    freshness_anchor: float = Field(default=1.0, ge=0.0, le=1.0)


class SegmentSnapshot(BaseModel):
    """On-disk layout of the segment store"""
    version: int = 1
    segments: Dict[str, SegmentRecord] = Field(default_factory=dict)
