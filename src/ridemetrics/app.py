import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .controller.match_controller import router as match_router
from .controller.planning_controller import router as planning_router
from .controller.segment_controller import router as segment_router
from .service.ride_metrics_service import RideMetricsService
from .service.segment_store import FileSegmentBackend, SegmentStore

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(name)s - %(message)s")
logger = logging.getLogger(__name__)


def create_app(segment_store: Optional[SegmentStore] = None) -> FastAPI:
    """Build the API around a segment store (an in-memory one when none is given)"""
    store = segment_store if segment_store is not None else SegmentStore()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        logger.info("Flushing segment store")
        store.close()

    app = FastAPI(title="Ride Metrics API", description="Route scoring, map matching and segment quality",
                  version="1.0.0", lifespan=lifespan)
    app.state.ride_metrics_service = RideMetricsService(store)
    app.include_router(planning_router)
    app.include_router(match_router)
    app.include_router(segment_router)

    return app


def _store_from_env() -> SegmentStore:
    path = os.environ.get("RIDEMETRICS_SEGMENT_STORE")
    if not path:
        logger.warning("RIDEMETRICS_SEGMENT_STORE not set; segments are kept in memory only")
        return SegmentStore()
    return SegmentStore(FileSegmentBackend(path))


app = create_app(_store_from_env())

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
