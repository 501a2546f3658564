"""
Domain Entities - Keys, inbound entries and operation results.
"""

from .project_phase_key import ProjectPhaseKey, EMPTY_PHASE_LABEL
from .entries import POCEntry, CompletionEntry, SalesRecognitionEntry
from .results import (
    ValidationResult,
    EffectiveCompletionDate,
    ConflictingRecord,
    ConflictDescriptor,
    RowError,
    BatchResult,
    KeyBreakdown,
    CommitResult,
    POCRecordState,
    RedistributionInfo,
    POCReport,
    RedistributionPendingReport,
)

__all__ = [
    'ProjectPhaseKey', 'EMPTY_PHASE_LABEL',
    'POCEntry', 'CompletionEntry', 'SalesRecognitionEntry',
    'ValidationResult', 'EffectiveCompletionDate',
    'ConflictingRecord', 'ConflictDescriptor',
    'RowError', 'BatchResult', 'KeyBreakdown', 'CommitResult',
    'POCRecordState', 'RedistributionInfo',
    'POCReport', 'RedistributionPendingReport',
]
