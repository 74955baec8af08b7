import logging

from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import HTMLResponse

from .dependencies import get_service
from ..model.match_request import MatchRequest
from ..model.match_response import MatchResponse

router = APIRouter()

logger = logging.getLogger(__name__)


@router.post("/api/match", response_model=MatchResponse)
async def match_sample(request: MatchRequest, service=Depends(get_service)):
    """
    Snap a position sample onto the closest step of a route
    """
    try:
        route = request.route.to_domain()
        sample = request.sample.to_domain(service.clock())

        result = service.match(route, sample)
        if result is None:
            raise HTTPException(status_code=422, detail="Route has no step that can be matched")

        return MatchResponse.from_domain(route.fingerprint, result)

    except HTTPException as http_exc:
        raise http_exc

    except Exception as e:
        logger.error(f"Error in map matching: {e}")
        raise HTTPException(status_code=500, detail=f"Map matching failed: {str(e)}")


@router.post("/api/match/map", response_class=HTMLResponse)
async def match_sample_map(request: MatchRequest, service=Depends(get_service)):
    """
    Render the raw sample, its snapped position and the matched step
    """
    try:
        route = request.route.to_domain()
        sample = request.sample.to_domain(service.clock())

        mapa = service.match_map(route, sample)
        if mapa is None:
            raise HTTPException(status_code=422, detail="Route has no step that can be matched")

        return HTMLResponse(content=mapa.get_root().render())

    except HTTPException as http_exc:
        raise http_exc

    except Exception as e:
        logger.error(f"Error rendering match map: {e}")
        raise HTTPException(status_code=500, detail=f"Match map failed: {str(e)}")
