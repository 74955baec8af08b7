import logging
from dataclasses import asdict
from typing import Dict, List

from fastapi import APIRouter, HTTPException, Depends
from fastapi.responses import HTMLResponse

from .dependencies import get_service
from ..model.ride_mode import RideMode
from ..model.ride_mode_response import RideModeResponse
from ..model.route_options import Presentation
from ..model.route_options_request import RouteOptionsRequest
from ..model.route_score_request import RouteScoreRequest
from ..model.route_score_response import RouteScoreResponse, ScoreBreakdownResponse
from ..model.score import StepContext

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("/")
async def root():
    """Health check endpoint"""
    return {"message": "Ride Metrics API is running"}


@router.get("/api/modes", response_model=List[RideModeResponse])
async def ride_modes():
    """
    Ride modes with their labels, scoring weights and suggested GPS accuracy
    """
    return [RideModeResponse.from_domain(mode) for mode in RideMode]


@router.post("/api/routes/options", response_model=Dict[str, Presentation])
async def route_options(request: RouteOptionsRequest, service=Depends(get_service)):
    """
    Rank candidate routes and return a presentation per candidate id
    """
    try:
        ids = [candidate.id for candidate in request.candidates]
        if len(set(ids)) != len(ids):
            raise HTTPException(status_code=400, detail="Candidate ids must be unique")

        candidates = [candidate.to_domain() for candidate in request.candidates]
        return service.route_options(candidates, request.mode, request.skill, request.units, request.palette)

    except HTTPException as http_exc:
        raise http_exc

    except Exception as e:
        logger.error(f"Error evaluating route options: {e}")
        raise HTTPException(status_code=500, detail=f"Route options failed: {str(e)}")


@router.post("/api/routes/options/map", response_class=HTMLResponse)
async def route_options_map(request: RouteOptionsRequest, service=Depends(get_service)):
    """
    Render candidate routes on a map, painted by grade
    """
    try:
        candidates = [candidate.to_domain() for candidate in request.candidates]
        mapa = service.route_options_map(candidates, request.mode, request.skill, request.units, request.palette)
        if mapa is None:
            raise HTTPException(status_code=422, detail="At least one route candidate is required")

        return HTMLResponse(content=mapa.get_root().render())

    except HTTPException as http_exc:
        raise http_exc

    except Exception as e:
        logger.error(f"Error rendering route options map: {e}")
        raise HTTPException(status_code=500, detail=f"Route options map failed: {str(e)}")


@router.post("/api/routes/score", response_model=RouteScoreResponse)
async def score_route(request: RouteScoreRequest, service=Depends(get_service)):
    """
    Score a route (or a single step when a step context is given)
    """
    try:
        context = StepContext(**request.step_context.model_dump()) if request.step_context else None
        grade, breakdown = service.score(request.roughness_rms, request.slope_penalty, request.mode,
                                         request.skill, request.palette, context)

        return RouteScoreResponse(
            score=grade.score,
            letter=grade.letter,
            label=grade.label,
            color=grade.color.hex,
            breakdown=ScoreBreakdownResponse(**asdict(breakdown))
        )

    except HTTPException as http_exc:
        raise http_exc

    except Exception as e:
        logger.error(f"Error scoring route: {e}")
        raise HTTPException(status_code=500, detail=f"Route scoring failed: {str(e)}")
