"""
POC API Endpoints - manual entry, batch upload and reports.

Implements:
- POST /api/v1/poc - Upsert one POC value
- POST /api/v1/poc/batch - Upsert many POC values (row errors collected)
- GET /api/v1/poc/report - POC rows for a key up to the cutoff
- GET /api/v1/poc/options - Projects, phase codes and years for filters
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from poc_tracker.domain.entities import POCEntry, ProjectPhaseKey
from poc_tracker.domain.exceptions import DomainError
from poc_tracker.engine import CompletionEngine
from .deps import get_engine, http_error

router = APIRouter()


# =============================================================================
# Pydantic Models
# =============================================================================

class POCValueIn(BaseModel):
    """One POC value for a project/phase period."""
    company_code: str = Field(..., min_length=1, max_length=10)
    project: str = Field(..., min_length=1, max_length=50)
    phase_code: str = Field("", max_length=20)
    year: int
    month: int
    value: float

    def to_entry(self, row_number: Optional[int] = None) -> POCEntry:
        return POCEntry(
            ProjectPhaseKey(self.company_code, self.project, self.phase_code),
            self.year,
            self.month,
            self.value,
            row_number=row_number,
        )


class POCUpsertRequest(POCValueIn):
    cutoff_date: Optional[date] = Field(None, description="Defaults to the previous month end")
    actor: Optional[str] = Field(None, max_length=100)


class POCBatchRequest(BaseModel):
    entries: List[POCValueIn] = Field(..., min_length=1)
    cutoff_date: Optional[date] = None
    actor: Optional[str] = Field(None, max_length=100)


# =============================================================================
# Endpoints
# =============================================================================

@router.post("", summary="Insert or update one POC value")
def upsert_poc(
    request: POCUpsertRequest,
    engine: CompletionEngine = Depends(get_engine),
):
    """
    Write one POC value.

    Validates:
    - Period and value range
    - Project/phase is allowed
    - A completion date exists and 100% is not after it
    """
    try:
        state = engine.upsert_poc(
            ProjectPhaseKey(request.company_code, request.project, request.phase_code),
            request.year,
            request.month,
            request.value,
            cutoff_date=request.cutoff_date,
            actor=request.actor,
        )
    except DomainError as e:
        raise http_error(e)
    return state.to_dict()


@router.post("/batch", status_code=status.HTTP_200_OK, summary="Upsert a batch of POC values")
def upsert_poc_batch(
    request: POCBatchRequest,
    engine: CompletionEngine = Depends(get_engine),
):
    entries = [e.to_entry(row_number=i) for i, e in enumerate(request.entries, start=1)]
    try:
        result = engine.upsert_poc_batch(entries, request.cutoff_date, request.actor)
    except DomainError as e:
        raise http_error(e)
    return result.to_dict()


@router.get("/report", summary="POC report for a project/phase")
def get_report(
    company_code: str = Query(...),
    project: str = Query(...),
    phase_code: str = Query(""),
    cutoff_date: Optional[date] = Query(None),
    year: Optional[int] = Query(None),
    include_inactive: bool = Query(False),
    engine: CompletionEngine = Depends(get_engine),
):
    key = ProjectPhaseKey(company_code, project, phase_code)
    try:
        report = engine.get_report(key, cutoff_date, year, include_inactive)
    except DomainError as e:
        raise http_error(e)
    return report.to_dict()


@router.get("/options", summary="Filter options for a company")
def get_options(
    company_code: Optional[str] = Query(None),
    engine: CompletionEngine = Depends(get_engine),
):
    try:
        return engine.get_options(company_code)
    except DomainError as e:
        raise http_error(e)
