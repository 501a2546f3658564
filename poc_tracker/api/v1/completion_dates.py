"""
Completion Date API Endpoints - conflict check, commit and ledger views.

Implements:
- POST /api/v1/completion-dates/conflicts - Dry-run conflict detection
- POST /api/v1/completion-dates - Commit dates with confirmed conflicts
- GET /api/v1/completion-dates/effective - Effective date for one key
- GET /api/v1/completion-dates - Ledger listing
"""
from datetime import date
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from poc_tracker.domain.entities import (
    CompletionEntry,
    ConflictDescriptor,
    ConflictingRecord,
    ProjectPhaseKey,
)
from poc_tracker.domain.exceptions import DomainError
from poc_tracker.engine import CompletionEngine
from poc_tracker.models import RecordType
from .deps import get_engine, http_error

router = APIRouter()


# =============================================================================
# Pydantic Models
# =============================================================================

class CompletionEntryIn(BaseModel):
    """A proposed completion date."""
    company_code: str = Field(..., min_length=1, max_length=10)
    project: str = Field(..., min_length=1, max_length=50)
    phase_code: str = Field("", max_length=20, description="Empty for projects without phases")
    completion_type: Literal["A", "P"] = "A"
    completion_date: date

    def to_entry(self, row_number: Optional[int] = None) -> CompletionEntry:
        return CompletionEntry(
            ProjectPhaseKey(self.company_code, self.project, self.phase_code),
            RecordType(self.completion_type),
            self.completion_date,
            row_number=row_number,
        )


class ConflictingRecordIn(BaseModel):
    year: int
    month: int = Field(..., ge=1, le=12)
    value: float
    type: str = "A"


class ConflictDescriptorIn(CompletionEntryIn):
    """A conflict descriptor as returned by the conflicts endpoint, echoed back to confirm it."""
    description: str = ""
    conflicting_records: List[ConflictingRecordIn] = Field(default_factory=list)

    def to_descriptor(self) -> ConflictDescriptor:
        entry = self.to_entry()
        return ConflictDescriptor(
            key=entry.key,
            completion_type=entry.completion_type,
            completion_date=entry.completion_date,
            description=self.description,
            conflicting_records=[
                ConflictingRecord(r.year, r.month, r.value, r.type)
                for r in self.conflicting_records
            ],
        )


class CheckConflictsRequest(BaseModel):
    entries: List[CompletionEntryIn] = Field(..., min_length=1)


class CommitRequest(BaseModel):
    entries: List[CompletionEntryIn] = Field(..., min_length=1)
    confirmed_conflicts: List[ConflictDescriptorIn] = Field(default_factory=list)
    actor: Optional[str] = Field(None, max_length=100)


def _entries(entries: List[CompletionEntryIn]) -> List[CompletionEntry]:
    return [e.to_entry(row_number=i) for i, e in enumerate(entries, start=1)]


# =============================================================================
# Endpoints
# =============================================================================

@router.post(
    "/conflicts",
    summary="Check completion date conflicts",
    description="Dry run: lists the POC data each proposed date would deactivate.",
)
def check_conflicts(
    request: CheckConflictsRequest,
    engine: CompletionEngine = Depends(get_engine),
):
    try:
        conflicts = engine.check_conflicts(_entries(request.entries))
    except DomainError as e:
        raise http_error(e)
    return {
        "has_conflicts": bool(conflicts),
        "conflicts": [c.to_dict() for c in conflicts],
    }


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Commit completion dates",
    description="Appends the dates, deactivating confirmed conflicting POC data.",
)
def commit_completion_dates(
    request: CommitRequest,
    engine: CompletionEngine = Depends(get_engine),
):
    try:
        result = engine.resolve_and_commit(
            _entries(request.entries),
            [c.to_descriptor() for c in request.confirmed_conflicts],
            actor=request.actor,
        )
    except DomainError as e:
        raise http_error(e)
    return result.to_dict()


@router.get("/effective", summary="Effective completion date for a project/phase")
def get_effective_completion_date(
    company_code: str = Query(...),
    project: str = Query(...),
    phase_code: str = Query(""),
    engine: CompletionEngine = Depends(get_engine),
):
    key = ProjectPhaseKey(company_code, project, phase_code)
    try:
        effective = engine.get_effective_completion_date(key)
    except DomainError as e:
        raise http_error(e)
    if effective is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "NOT_FOUND", "message": f"No completion date recorded for {key.label}"},
        )
    return {**key.to_dict(), **effective.to_dict()}


@router.get("", summary="List completion dates")
def list_completion_dates(
    company_code: Optional[str] = Query(None),
    project: Optional[str] = Query(None),
    phase_code: Optional[str] = Query(None),
    completion_type: Optional[Literal["A", "P"]] = Query(None),
    year: Optional[int] = Query(None),
    cutoff_date: Optional[date] = Query(None, description="Only dates on or before this"),
    engine: CompletionEngine = Depends(get_engine),
):
    try:
        rows = engine.list_completion_dates(
            company_code, project, phase_code, completion_type, year, cutoff_date
        )
    except DomainError as e:
        raise http_error(e)
    return {"completion_dates": rows, "total": len(rows)}
