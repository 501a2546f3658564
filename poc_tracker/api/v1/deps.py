"""
Shared API dependencies and error mapping.
"""
from fastapi import HTTPException, Request, status

from poc_tracker.domain.exceptions import ConflictError, DomainError
from poc_tracker.engine import CompletionEngine

ERROR_STATUS = {
    "VALIDATION_ERROR": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "REFERENCE_ERROR": status.HTTP_404_NOT_FOUND,
    "REDISTRIBUTION_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "PRECONDITION_ERROR": status.HTTP_400_BAD_REQUEST,
    "CONFLICT_ERROR": status.HTTP_409_CONFLICT,
    "CONCURRENCY_ERROR": status.HTTP_409_CONFLICT,
    "IMMUTABLE_RECORD": status.HTTP_409_CONFLICT,
    "STORAGE_ERROR": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_engine(request: Request) -> CompletionEngine:
    """The engine the application was started with."""
    return request.app.state.engine


def http_error(error: DomainError) -> HTTPException:
    """Translate a domain error into an HTTPException with a structured detail."""
    detail = {"code": error.code, "message": error.message}
    if isinstance(error, ConflictError):
        detail["conflicts"] = [c.to_dict() for c in error.conflicts]
    return HTTPException(
        status_code=ERROR_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=detail,
    )
