"""
Sales Recognition API Endpoints.

Implements:
- POST /api/v1/sales-recognition - Upsert recognition dates by account number
- GET /api/v1/sales-recognition - List recognition dates
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from poc_tracker.domain.entities import SalesRecognitionEntry
from poc_tracker.domain.exceptions import DomainError
from poc_tracker.engine import CompletionEngine
from .deps import get_engine, http_error

router = APIRouter()


class SalesRecognitionIn(BaseModel):
    account_no: str = Field(..., description="Account number, at most 30 characters")
    recognition_date: date


class SalesRecognitionRequest(BaseModel):
    entries: List[SalesRecognitionIn] = Field(..., min_length=1)
    cutoff_date: Optional[date] = None


@router.post("", summary="Record sales recognition dates")
def record_sales_recognition(
    request: SalesRecognitionRequest,
    engine: CompletionEngine = Depends(get_engine),
):
    entries = [
        SalesRecognitionEntry(e.account_no, e.recognition_date, row_number=i)
        for i, e in enumerate(request.entries, start=1)
    ]
    try:
        result = engine.record_sales_recognition(entries, request.cutoff_date)
    except DomainError as e:
        raise http_error(e)
    return result.to_dict()


@router.get("", summary="List sales recognition dates")
def list_sales_recognition(
    cutoff_date: Optional[date] = Query(None),
    engine: CompletionEngine = Depends(get_engine),
):
    try:
        rows = engine.list_sales_recognition(cutoff_date)
    except DomainError as e:
        raise http_error(e)
    return {"sales_recognition": rows, "total": len(rows)}
