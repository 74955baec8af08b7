import logging

from fastapi import APIRouter, HTTPException, Depends, Path

from .dependencies import get_service
from ..model.segment_record import StepId
from ..model.segment_request import SegmentRequest
from ..model.segment_response import SegmentResponse

router = APIRouter()

logger = logging.getLogger(__name__)

STEP_ID_DESCRIPTION = "Step id as '<route fingerprint>:<step index>'"


def _parse_step_id(step_id: str) -> StepId:
    try:
        return StepId.parse(step_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/api/segments/{step_id}", response_model=SegmentResponse)
async def get_segment(step_id: str = Path(..., description=STEP_ID_DESCRIPTION), service=Depends(get_service)):
    """
    Stored quality and freshness of a route step
    """
    try:
        parsed = _parse_step_id(step_id)
        record = service.get_segment(parsed)
        if record is None:
            raise HTTPException(status_code=404, detail=f"No segment stored for {parsed.key}")

        return SegmentResponse.from_record(parsed.key, record)

    except HTTPException as http_exc:
        raise http_exc

    except Exception as e:
        logger.error(f"Error reading segment {step_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Segment read failed: {str(e)}")


@router.put("/api/segments/{step_id}", response_model=SegmentResponse)
async def put_segment(request: SegmentRequest, step_id: str = Path(..., description=STEP_ID_DESCRIPTION),
                      service=Depends(get_service)):
    """
    Record a roughness observation (and optionally a quality) for a route step
    """
    try:
        parsed = _parse_step_id(step_id)
        logger.info(f"Writing segment {parsed.key}")
        record = service.put_segment(parsed, request.roughness, request.quality)

        return SegmentResponse.from_record(parsed.key, record)

    except HTTPException as http_exc:
        raise http_exc

    except Exception as e:
        logger.error(f"Error writing segment {step_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Segment write failed: {str(e)}")


@router.delete("/api/segments")
async def clear_segments(service=Depends(get_service)):
    """
    Forget every stored segment
    """
    try:
        removed = service.clear_segments()
        return {"removed": removed}

    except Exception as e:
        logger.error(f"Error clearing segments: {e}")
        raise HTTPException(status_code=500, detail=f"Segment clear failed: {str(e)}")
