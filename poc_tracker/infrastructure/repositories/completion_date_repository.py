"""
Completion Date Repository - Append-only ledger of completion dates.

There is deliberately no update or delete method: a changed completion
date is a new row, and the effective date per type is the row with the
latest created_at (ties broken by the highest id).
"""
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy import extract
from sqlalchemy.orm import Session

from poc_tracker.models import CompletionDateRecord, RecordType, utcnow
from poc_tracker.domain.entities import ProjectPhaseKey
from .base_repository import BaseRepository


class CompletionDateRepository(BaseRepository[CompletionDateRecord]):
    """Repository for completion date assertions."""

    def __init__(self, session: Session):
        super().__init__(session, CompletionDateRecord)

    def append(
        self,
        key: ProjectPhaseKey,
        completion_type: RecordType,
        completion_date: date,
        actor: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> CompletionDateRecord:
        """
        Insert a new immutable completion date row.

        Args:
            key: Project/phase key
            completion_type: Actual or Projected
            completion_date: Month-end completion date
            actor: Who asserted the date
            notes: Optional free text

        Returns:
            The new row (flush to obtain its id)
        """
        record = CompletionDateRecord(
            company_code=key.company_code,
            project=key.project,
            phase_code=key.phase_code,
            type=RecordType(completion_type).value,
            completion_date=completion_date,
            notes=notes,
            created_at=utcnow(),
            created_by=actor,
        )
        self.add(record)
        return record

    def latest(self, key: ProjectPhaseKey, completion_type: RecordType) -> Optional[CompletionDateRecord]:
        """Most recently created row of one type for a key."""
        return self.key_query(key).filter(
            CompletionDateRecord.type == RecordType(completion_type).value
        ).order_by(
            CompletionDateRecord.created_at.desc(),
            CompletionDateRecord.id.desc(),
        ).first()

    def latest_by_type(self, key: ProjectPhaseKey) -> Dict[RecordType, date]:
        """
        Effective date per type for a key.

        Returns:
            Mapping of RecordType to completion date, for types present
        """
        result = {}
        for completion_type in RecordType:
            row = self.latest(key, completion_type)
            if row is not None:
                result[completion_type] = row.completion_date
        return result

    def search(
        self,
        company_code: Optional[str] = None,
        project: Optional[str] = None,
        phase_code: Optional[str] = None,
        completion_type: Optional[RecordType] = None,
        year: Optional[int] = None,
        up_to: Optional[date] = None,
    ) -> List[CompletionDateRecord]:
        """Ledger listing with optional filters, ordered like the report view."""
        query = self.session.query(CompletionDateRecord)
        if company_code:
            query = query.filter(CompletionDateRecord.company_code == company_code)
        if project:
            query = query.filter(CompletionDateRecord.project == project)
        if phase_code:
            query = query.filter(CompletionDateRecord.phase_code == phase_code)
        if completion_type:
            query = query.filter(CompletionDateRecord.type == RecordType(completion_type).value)
        if year:
            query = query.filter(extract('year', CompletionDateRecord.completion_date) == year)
        if up_to:
            query = query.filter(CompletionDateRecord.completion_date <= up_to)
        return query.order_by(
            CompletionDateRecord.project,
            CompletionDateRecord.phase_code,
            CompletionDateRecord.completion_date.desc(),
        ).all()
