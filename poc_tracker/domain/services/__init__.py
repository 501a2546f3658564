"""
Domain Services - Business logic for completion dates and POC.
"""

from .period_classifier import (
    classify,
    is_month_end,
    month_end,
    period_of,
    previous_month_end,
    validate_completion_date,
)
from .completion_ledger_service import CompletionLedgerService, resolve_effective
from .conflict_detection_service import ConflictDetectionService, KeyExists, conflict_signature
from .redistribution_service import RedistributionService
from .soft_delete_service import SoftDeleteService, ROW_LEVEL_ERRORS
from .poc_upsert_service import POCUpsertService
from .reporting_service import ReportingService
from .sales_recognition_service import SalesRecognitionService

__all__ = [
    'classify',
    'is_month_end',
    'month_end',
    'period_of',
    'previous_month_end',
    'validate_completion_date',
    'CompletionLedgerService',
    'resolve_effective',
    'ConflictDetectionService',
    'conflict_signature',
    'KeyExists',
    'RedistributionService',
    'SoftDeleteService',
    'ROW_LEVEL_ERRORS',
    'POCUpsertService',
    'ReportingService',
    'SalesRecognitionService',
]
