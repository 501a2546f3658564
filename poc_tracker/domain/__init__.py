"""
Domain Layer - Core entities and services for completion dates and POC.

This module contains:
- entities/: Keys, inbound entries and result objects
- services/: Classifier, ledger, conflict detection, soft delete, redistribution, upsert
- events/: ORM listeners enforcing append-only and terminal soft delete
"""

from .entities import (
    ProjectPhaseKey,
    POCEntry,
    CompletionEntry,
    SalesRecognitionEntry,
    ConflictDescriptor,
    CommitResult,
    BatchResult,
)

__all__ = [
    'ProjectPhaseKey',
    'POCEntry', 'CompletionEntry', 'SalesRecognitionEntry',
    'ConflictDescriptor', 'CommitResult', 'BatchResult',
]
