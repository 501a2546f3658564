"""
Repository implementations for data access layer.
"""
from .base_repository import BaseRepository, phase_filter, period_after, period_on_or_before
from .poc_record_repository import POCRecordRepository, FULL_COMPLETION
from .completion_date_repository import CompletionDateRepository
from .redistribution_repository import RedistributionRepository
from .project_phase_repository import ProjectPhaseRepository
from .sales_recognition_repository import SalesRecognitionRepository

__all__ = [
    'BaseRepository',
    'phase_filter',
    'period_after',
    'period_on_or_before',
    'POCRecordRepository',
    'FULL_COMPLETION',
    'CompletionDateRepository',
    'RedistributionRepository',
    'ProjectPhaseRepository',
    'SalesRecognitionRepository',
]
