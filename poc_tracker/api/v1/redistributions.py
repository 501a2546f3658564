"""
Redistribution API Endpoints.

Implements:
- GET /api/v1/redistributions - Pending redistributions awaiting manual POC entry

Resolution is an administrative action available from the CLI only.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from poc_tracker.domain.exceptions import DomainError
from poc_tracker.engine import CompletionEngine
from .deps import get_engine, http_error

router = APIRouter()


@router.get("", summary="List pending redistributions")
def list_redistributions(
    company_code: Optional[str] = Query(None),
    engine: CompletionEngine = Depends(get_engine),
):
    try:
        pending = engine.list_redistributions(company_code)
    except DomainError as e:
        raise http_error(e)
    return {
        "redistributions": [p.to_dict() for p in pending],
        "total": len(pending),
    }
