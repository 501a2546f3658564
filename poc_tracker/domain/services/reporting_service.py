"""
Reporting Service - Read-side views over POC rows and the completion ledger.

Reports never show POC for a key while a redistribution is pending; the
caller gets a RedistributionPendingReport naming the orphaned mass instead.
"""
import logging
from datetime import date
from typing import Dict, List, Optional, Union

from sqlalchemy.orm import Session

from poc_tracker.models import POCRecord, RecordType
from poc_tracker.domain.entities import (
    POCReport,
    ProjectPhaseKey,
    RedistributionInfo,
    RedistributionPendingReport,
)
from poc_tracker.infrastructure.repositories import (
    CompletionDateRepository,
    POCRecordRepository,
    ProjectPhaseRepository,
    RedistributionRepository,
)
from .period_classifier import period_of

logger = logging.getLogger(__name__)

KeyReport = Union[POCReport, RedistributionPendingReport]


def poc_row(record: POCRecord) -> dict:
    return {
        'id': record.id,
        'year': record.year,
        'month': record.month,
        'value': record.value,
        'type': record.type,
        'active': record.active,
        'created_at': record.created_at.isoformat() if record.created_at else None,
        'created_by': record.created_by,
        'updated_at': record.updated_at.isoformat() if record.updated_at else None,
        'updated_by': record.updated_by,
        'deleted_at': record.deleted_at.isoformat() if record.deleted_at else None,
        'deletion_reason': record.deletion_reason,
    }


class ReportingService:
    """Builds per-key and per-company POC reports."""

    def __init__(self, session: Session):
        self.session = session
        self.poc_repo = POCRecordRepository(session)
        self.ledger_repo = CompletionDateRepository(session)
        self.redistribution_repo = RedistributionRepository(session)
        self.key_repo = ProjectPhaseRepository(session)

    def get_key_report(
        self,
        key: ProjectPhaseKey,
        cutoff_date: date,
        year: Optional[int] = None,
        include_inactive: bool = False,
    ) -> KeyReport:
        """
        POC rows for a key with periods on or before the cutoff.

        Returns:
            RedistributionPendingReport if the key has an unresolved
            redistribution, POCReport otherwise
        """
        description = self.key_repo.get_description(key)
        pending = self.redistribution_repo.get_pending_for_key(key)
        if pending:
            logger.info(f"Report for {key} withheld: {len(pending)} redistribution(s) pending")
            return RedistributionPendingReport(
                key=key,
                cutoff_date=cutoff_date,
                pending=[RedistributionInfo.from_record(p) for p in pending],
                description=description,
            )

        rows = self.poc_repo.get_rows(
            key,
            up_to_period=period_of(cutoff_date),
            year=year,
            include_inactive=include_inactive,
        )
        return POCReport(
            key=key,
            cutoff_date=cutoff_date,
            description=description,
            rows=[poc_row(r) for r in rows],
        )

    def get_company_report(
        self,
        company_code: str,
        cutoff_date: date,
        project: Optional[str] = None,
        phase_code: Optional[str] = None,
        year: Optional[int] = None,
    ) -> List[KeyReport]:
        """One report per key with POC data for the company."""
        keys = self.poc_repo.get_keys(company_code, project, phase_code)
        return [self.get_key_report(key, cutoff_date, year) for key in keys]

    def get_options(self, company_code: Optional[str] = None) -> Dict[str, list]:
        return self.poc_repo.get_options(company_code)

    def list_completion_dates(
        self,
        company_code: Optional[str] = None,
        project: Optional[str] = None,
        phase_code: Optional[str] = None,
        completion_type: Optional[RecordType] = None,
        year: Optional[int] = None,
        cutoff_date: Optional[date] = None,
    ) -> List[dict]:
        """Ledger rows with descriptions, newest completion date first per key."""
        rows = self.ledger_repo.search(
            company_code, project, phase_code, completion_type, year, cutoff_date
        )
        return [
            {
                'id': r.id,
                **ProjectPhaseKey.of(r).to_dict(),
                'description': self.key_repo.get_description(ProjectPhaseKey.of(r)),
                'completion_type': r.type,
                'completion_date': r.completion_date.isoformat(),
                'created_at': r.created_at.isoformat() if r.created_at else None,
                'created_by': r.created_by,
            }
            for r in rows
        ]
