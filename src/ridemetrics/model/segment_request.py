from typing import Optional

from pydantic import BaseModel, Field


class SegmentRequest(BaseModel):
    quality: Optional[float] = Field(default=None, ge=0.0, le=1.0)  # None = keep the stored quality
    roughness: float = Field(ge=0.0)
