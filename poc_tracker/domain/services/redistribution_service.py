"""
Redistribution Service - Tracks POC mass orphaned by earlier completion dates.

When a commit moves a key's effective completion date earlier, the active
non-zero POC values in periods after the new date and up to the old one no
longer have a defined destination. Their sum is recorded as a
pending_manual_entry redistribution; until someone resolves it, reporting
for the key returns a "redistribution pending" result instead of rows.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from poc_tracker.models import PendingRedistribution
from poc_tracker.domain.entities import (
    EffectiveCompletionDate,
    ProjectPhaseKey,
    RedistributionInfo,
)
from poc_tracker.infrastructure.audit import (
    AuditEvent,
    REDISTRIBUTION_CREATED,
    REDISTRIBUTION_RESOLVED,
)
from poc_tracker.infrastructure.repositories import (
    POCRecordRepository,
    RedistributionRepository,
)

logger = logging.getLogger(__name__)


def moved_earlier(
    previous: Optional[EffectiveCompletionDate],
    new: Optional[EffectiveCompletionDate],
) -> bool:
    return (
        previous is not None
        and new is not None
        and new.completion_date < previous.completion_date
    )


class RedistributionService:
    """Measures, records and resolves orphaned POC mass."""

    def __init__(self, session: Session):
        self.session = session
        self.repo = RedistributionRepository(session)
        self.poc_repo = POCRecordRepository(session)
        self.events: List[AuditEvent] = []

    def measure_orphaned(
        self,
        key: ProjectPhaseKey,
        previous: Optional[EffectiveCompletionDate],
        new: Optional[EffectiveCompletionDate],
    ) -> float:
        """
        Sum of active non-zero values with new < (year, month) <= previous.

        Must be called before conflicting records are deactivated.
        """
        if not moved_earlier(previous, new):
            return 0.0
        records = self.poc_repo.find_active_between(key, new.period, previous.period)
        return float(sum(r.value for r in records if r.value))

    def record(
        self,
        key: ProjectPhaseKey,
        previous: Optional[EffectiveCompletionDate],
        new: Optional[EffectiveCompletionDate],
        orphaned_total: float,
        actor: Optional[str] = None,
    ) -> Optional[PendingRedistribution]:
        """Create a pending redistribution if the date moved earlier and mass was orphaned."""
        if not moved_earlier(previous, new) or orphaned_total <= 0:
            return None

        entry = self.repo.create(
            key,
            orphaned_total=orphaned_total,
            new_completion_date=new.completion_date,
            old_completion_date=previous.completion_date,
            actor=actor,
        )
        self.repo.flush()

        logger.warning(
            f"Completion date for {key} moved from {previous.completion_date.isoformat()} "
            f"to {new.completion_date.isoformat()}; {orphaned_total:g}% POC awaits manual redistribution"
        )
        self.events.append(AuditEvent(REDISTRIBUTION_CREATED, {
            **key.to_dict(),
            'redistribution_id': entry.id,
            'orphaned_total': orphaned_total,
            'new_completion_date': new.completion_date.isoformat(),
            'old_completion_date': previous.completion_date.isoformat(),
            'actor': actor,
        }))
        return entry

    def get_pending(self, key: ProjectPhaseKey) -> List[RedistributionInfo]:
        return [RedistributionInfo.from_record(r) for r in self.repo.get_pending_for_key(key)]

    def list_pending(self, company_code: Optional[str] = None) -> List[RedistributionInfo]:
        return [RedistributionInfo.from_record(r) for r in self.repo.search(company_code)]

    def resolve(self, redistribution_id: int, actor: Optional[str] = None) -> RedistributionInfo:
        """
        Mark a redistribution resolved after POC was re-entered by hand.

        Raises:
            RedistributionNotFoundError: If no pending entry has this id
        """
        record = self.repo.resolve(redistribution_id, actor)
        self.repo.flush()
        info = RedistributionInfo.from_record(record)

        logger.info(f"Redistribution {redistribution_id} for {info.key} resolved by {actor}")
        self.events.append(AuditEvent(REDISTRIBUTION_RESOLVED, {
            **info.key.to_dict(),
            'redistribution_id': redistribution_id,
            'actor': actor,
        }))
        return info
