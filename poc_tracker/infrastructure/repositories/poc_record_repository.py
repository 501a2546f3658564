"""
POC Record Repository - Data access for monthly POC values.

Implements repository pattern for POC rows with:
- Write by natural key (one active row per period)
- Soft deletion with audit metadata
- Period-range queries used by conflict detection and redistribution
"""
from typing import Dict, Iterable, List, Optional

from sqlalchemy import distinct
from sqlalchemy.orm import Session

from poc_tracker.models import POCRecord, RecordType, utcnow
from poc_tracker.domain.entities import ProjectPhaseKey
from .base_repository import BaseRepository, period_after, period_on_or_before

FULL_COMPLETION = 100


class POCRecordRepository(BaseRepository[POCRecord]):
    """
    Repository for POC per month rows.

    Rows are never deleted; deactivate() sets active = False together with
    the deletion timestamp, actor and reason.
    """

    def __init__(self, session: Session):
        super().__init__(session, POCRecord)

    def active_query(self, key: ProjectPhaseKey):
        return self.key_query(key).filter(POCRecord.active.is_(True))

    def find_active(self, key: ProjectPhaseKey, year: int, month: int) -> Optional[POCRecord]:
        """
        Get the active record for one period.

        Args:
            key: Project/phase key
            year: Period year
            month: Period month

        Returns:
            The active POC record if any, None otherwise
        """
        return self.active_query(key).filter(
            POCRecord.year == year,
            POCRecord.month == month,
        ).first()

    def find_active_after(
        self,
        key: ProjectPhaseKey,
        period: tuple,
        lock: bool = False,
    ) -> List[POCRecord]:
        """
        Active records in periods strictly later than `period`.

        Args:
            key: Project/phase key
            period: (year, month) boundary, exclusive
            lock: Lock the rows (SELECT ... FOR UPDATE) where supported

        Returns:
            Records ordered by year, month
        """
        query = self.active_query(key).filter(period_after(POCRecord, period))
        if lock:
            query = query.with_for_update()
        return query.order_by(POCRecord.year, POCRecord.month).all()

    def find_active_between(
        self,
        key: ProjectPhaseKey,
        after_period: tuple,
        up_to_period: tuple,
    ) -> List[POCRecord]:
        """Active records with after_period < (year, month) <= up_to_period."""
        return self.active_query(key).filter(
            period_after(POCRecord, after_period),
            period_on_or_before(POCRecord, up_to_period),
        ).order_by(POCRecord.year, POCRecord.month).all()

    def get_rows(
        self,
        key: ProjectPhaseKey,
        up_to_period: Optional[tuple] = None,
        year: Optional[int] = None,
        include_inactive: bool = False,
    ) -> List[POCRecord]:
        """
        Rows for reporting, newest year first.

        Args:
            key: Project/phase key
            up_to_period: Only periods on or before this (year, month)
            year: Only this calendar year
            include_inactive: Include deactivated rows (audit view)
        """
        query = self.key_query(key)
        if not include_inactive:
            query = query.filter(POCRecord.active.is_(True))
        if up_to_period:
            query = query.filter(period_on_or_before(POCRecord, up_to_period))
        if year:
            query = query.filter(POCRecord.year == year)
        return query.order_by(POCRecord.year.desc(), POCRecord.month).all()

    def create(
        self,
        key: ProjectPhaseKey,
        year: int,
        month: int,
        value: float,
        record_type: RecordType,
        actor: Optional[str] = None,
    ) -> POCRecord:
        """
        Insert a new active POC row.

        Callers must check find_active() first; the partial unique index
        rejects a second active row for the same period.
        """
        now = utcnow()
        record = POCRecord(
            company_code=key.company_code,
            project=key.project,
            phase_code=key.phase_code,
            year=year,
            month=month,
            value=value,
            type=RecordType(record_type).value,
            active=True,
            created_at=now,
            created_by=actor,
            updated_at=now,
            updated_by=actor,
        )
        self.add(record)
        return record

    def update_value(
        self,
        record: POCRecord,
        value: float,
        record_type: RecordType,
        actor: Optional[str] = None,
    ) -> POCRecord:
        """Update value, type and modification metadata in place."""
        record.value = value
        record.type = RecordType(record_type).value
        record.updated_at = utcnow()
        record.updated_by = actor
        return record

    def deactivate(
        self,
        records: Iterable[POCRecord],
        actor: Optional[str],
        reason: str,
    ) -> int:
        """
        Soft-delete records.

        Args:
            records: Active records to deactivate
            actor: Who is deactivating them
            reason: Human readable deletion reason

        Returns:
            Number of records deactivated
        """
        now = utcnow()
        count = 0
        for record in records:
            if not record.active:
                continue
            record.active = False
            record.deleted_at = now
            record.deleted_by = actor
            record.deletion_reason = reason
            count += 1
        return count

    def get_options(self, company_code: Optional[str] = None) -> Dict[str, list]:
        """Distinct projects, phase codes and years (for filter dropdowns)."""
        def distinct_values(column, descending=False):
            query = self.session.query(distinct(column))
            if company_code:
                query = query.filter(POCRecord.company_code == company_code)
            query = query.order_by(column.desc() if descending else column)
            return [row[0] for row in query.all()]

        return {
            'projects': distinct_values(POCRecord.project),
            'phase_codes': distinct_values(POCRecord.phase_code),
            'years': distinct_values(POCRecord.year, descending=True),
        }

    def get_keys(
        self,
        company_code: str,
        project: Optional[str] = None,
        phase_code: Optional[str] = None,
    ) -> List[ProjectPhaseKey]:
        """Distinct keys that have any POC rows for a company."""
        query = self.session.query(
            POCRecord.company_code, POCRecord.project, POCRecord.phase_code
        ).filter(POCRecord.company_code == company_code)
        if project:
            query = query.filter(POCRecord.project == project)
        if phase_code is not None:
            query = query.filter(POCRecord.phase_code == phase_code)
        rows = query.distinct().order_by(POCRecord.project, POCRecord.phase_code).all()
        return [ProjectPhaseKey(c, p, ph) for c, p, ph in rows]
