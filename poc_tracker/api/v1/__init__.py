"""
API v1 - REST endpoints for completion dates and POC.

- Completion date endpoints (conflict check, commit, effective date, listing)
- POC endpoints (upsert, batch upsert, report, filter options)
- Redistribution listing
- Sales recognition dates
- Health check
"""
from fastapi import APIRouter, Depends

from poc_tracker.engine import CompletionEngine
from .completion_dates import router as completion_dates_router
from .poc import router as poc_router
from .redistributions import router as redistributions_router
from .sales_recognition import router as sales_recognition_router
from .deps import get_engine

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(completion_dates_router, prefix="/completion-dates", tags=["Completion Dates"])
api_router.include_router(poc_router, prefix="/poc", tags=["POC"])
api_router.include_router(redistributions_router, prefix="/redistributions", tags=["Redistributions"])
api_router.include_router(sales_recognition_router, prefix="/sales-recognition", tags=["Sales Recognition"])


@api_router.get("/health", tags=["Health"], summary="Storage status")
def health(engine: CompletionEngine = Depends(get_engine)):
    connected = engine.storage.ping()
    return {
        "status": "ok" if connected else "degraded",
        "database": "connected" if connected else "unavailable",
    }
