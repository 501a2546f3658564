"""
Redistribution Repository - Data access for pending redistributions.
"""
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from poc_tracker.models import PendingRedistribution, RedistributionStatus, utcnow
from poc_tracker.domain.entities import ProjectPhaseKey
from poc_tracker.domain.exceptions import RedistributionNotFoundError
from .base_repository import BaseRepository


class RedistributionRepository(BaseRepository[PendingRedistribution]):
    """Repository for POC mass orphaned by earlier completion dates."""

    def __init__(self, session: Session):
        super().__init__(session, PendingRedistribution)

    def create(
        self,
        key: ProjectPhaseKey,
        orphaned_total: float,
        new_completion_date: date,
        old_completion_date: date,
        actor: Optional[str] = None,
    ) -> PendingRedistribution:
        """Record a new pending_manual_entry redistribution."""
        record = PendingRedistribution(
            company_code=key.company_code,
            project=key.project,
            phase_code=key.phase_code,
            orphaned_total=orphaned_total,
            new_completion_date=new_completion_date,
            old_completion_date=old_completion_date,
            status=RedistributionStatus.PENDING_MANUAL_ENTRY.value,
            created_at=utcnow(),
            created_by=actor,
        )
        self.add(record)
        return record

    def get_pending_for_key(self, key: ProjectPhaseKey) -> List[PendingRedistribution]:
        """Unresolved entries for a key, oldest first."""
        return self.key_query(key).filter(
            PendingRedistribution.status == RedistributionStatus.PENDING_MANUAL_ENTRY.value
        ).order_by(PendingRedistribution.created_at, PendingRedistribution.id).all()

    def search(
        self,
        company_code: Optional[str] = None,
        status: Optional[str] = RedistributionStatus.PENDING_MANUAL_ENTRY.value,
    ) -> List[PendingRedistribution]:
        query = self.session.query(PendingRedistribution)
        if company_code:
            query = query.filter(PendingRedistribution.company_code == company_code)
        if status:
            query = query.filter(PendingRedistribution.status == status)
        return query.order_by(
            PendingRedistribution.project,
            PendingRedistribution.phase_code,
            PendingRedistribution.created_at,
        ).all()

    def resolve(self, redistribution_id: int, actor: Optional[str] = None) -> PendingRedistribution:
        """
        Mark an entry resolved.

        Raises:
            RedistributionNotFoundError: If no pending entry has this id
        """
        record = self.get_by_id(redistribution_id)
        if not record or record.status != RedistributionStatus.PENDING_MANUAL_ENTRY.value:
            raise RedistributionNotFoundError(redistribution_id)
        record.status = RedistributionStatus.RESOLVED.value
        record.resolved_at = utcnow()
        record.resolved_by = actor
        return record
