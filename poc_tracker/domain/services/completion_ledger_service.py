"""
Completion Ledger Service - Effective completion dates over the append-only ledger.

The effective date for a key is chosen per type as the latest assertion;
when both an Actual and a Projected date exist, the Actual one bounds
where 100% POC may be recorded.
"""
import logging
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from poc_tracker.models import CompletionDateRecord, RecordType
from poc_tracker.domain.entities import ProjectPhaseKey, EffectiveCompletionDate
from poc_tracker.infrastructure.audit import AuditEvent, COMPLETION_DATE_APPENDED
from poc_tracker.infrastructure.repositories import CompletionDateRepository

logger = logging.getLogger(__name__)


def resolve_effective(latest: Dict[RecordType, date]) -> Optional[EffectiveCompletionDate]:
    """Pick the effective date from the latest date per type (Actual wins)."""
    for completion_type in (RecordType.ACTUAL, RecordType.PROJECTED):
        if completion_type in latest:
            return EffectiveCompletionDate(completion_type, latest[completion_type])
    return None


class CompletionLedgerService:
    """Reads and appends completion date assertions within one session."""

    def __init__(self, session: Session):
        self.session = session
        self.repo = CompletionDateRepository(session)
        self.events: List[AuditEvent] = []

    def latest_by_type(self, key: ProjectPhaseKey) -> Dict[RecordType, date]:
        return self.repo.latest_by_type(key)

    def get_effective(self, key: ProjectPhaseKey) -> Optional[EffectiveCompletionDate]:
        """
        Effective completion date for a key.

        Returns:
            The latest Actual date if any, else the latest Projected date,
            else None
        """
        return resolve_effective(self.latest_by_type(key))

    def effective_with(
        self,
        key: ProjectPhaseKey,
        completion_type: RecordType,
        completion_date: date,
        latest: Optional[Dict[RecordType, date]] = None,
    ) -> EffectiveCompletionDate:
        """Effective date as if (type, date) were appended now."""
        latest = dict(latest if latest is not None else self.latest_by_type(key))
        latest[RecordType(completion_type)] = completion_date
        return resolve_effective(latest)

    def append(
        self,
        key: ProjectPhaseKey,
        completion_type: RecordType,
        completion_date: date,
        actor: Optional[str] = None,
    ) -> CompletionDateRecord:
        """
        Append a new completion date row and flush it.

        Never modifies existing rows.
        """
        record = self.repo.append(key, completion_type, completion_date, actor)
        self.repo.flush()

        logger.info(
            f"Completion date {completion_date.isoformat()} ({RecordType(completion_type).label}) "
            f"recorded for {key}"
        )
        self.events.append(AuditEvent(COMPLETION_DATE_APPENDED, {
            **key.to_dict(),
            'record_id': record.id,
            'completion_type': RecordType(completion_type).value,
            'completion_date': completion_date.isoformat(),
            'actor': actor,
        }))
        return record
