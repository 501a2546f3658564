"""
Soft-Delete Service - Commits completion dates and retires invalidated POC data.

For every confirmed entry, inside the caller's transaction:
1. Re-detect conflicts on live data (rows locked where supported)
2. Compare them with the confirmed descriptor; any difference aborts
3. Measure POC mass orphaned by an earlier effective date
4. Deactivate the conflicting POC records
5. Append the completion date to the ledger
6. Record a pending redistribution if mass was orphaned

Deactivation is terminal: rows keep their values with active = False plus
deletion timestamp, actor and reason.
"""
import logging
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from poc_tracker.models import CompletionDateRecord
from poc_tracker.domain.entities import (
    CommitResult,
    CompletionEntry,
    ConflictDescriptor,
)
from poc_tracker.domain.exceptions import (
    PreconditionError,
    ReferenceValidationError,
    StaleConflictError,
    UnconfirmedConflictError,
    ValidationError,
)
from poc_tracker.infrastructure.audit import AuditEvent, POC_RECORD_DEACTIVATED
from .conflict_detection_service import (
    ConflictDetectionService,
    KeyExists,
    conflict_signature,
)
from .redistribution_service import RedistributionService

logger = logging.getLogger(__name__)

# Errors that reject one row of a batch instead of the whole batch
ROW_LEVEL_ERRORS = (ValidationError, ReferenceValidationError, PreconditionError)


class SoftDeleteService:
    """
    Executes confirmed completion date changes.

    Args:
        session: SQLAlchemy session bound to the caller's transaction
        key_exists: Allow-list check passed through to conflict detection
    """

    def __init__(self, session: Session, key_exists: Optional[KeyExists] = None):
        self.session = session
        self.detector = ConflictDetectionService(session, key_exists)
        self.ledger = self.detector.ledger
        self.poc_repo = self.detector.poc_repo
        self.redistribution = RedistributionService(session)
        self._events: List[AuditEvent] = []

    @property
    def events(self) -> List[AuditEvent]:
        """Audit events raised so far, to be emitted once the transaction commits."""
        return self._events + self.ledger.events + self.redistribution.events

    def _claim_confirmation(
        self,
        entry: CompletionEntry,
        live: Optional[ConflictDescriptor],
        unclaimed: Optional[List[ConflictDescriptor]],
    ) -> None:
        """Match a live conflict with the oldest unclaimed confirmation for the entry."""
        if live is None:
            return
        label = entry.key.label
        if not unclaimed:
            raise UnconfirmedConflictError(label, [live])
        confirmed = unclaimed.pop(0)
        if conflict_signature(live) != conflict_signature(confirmed):
            raise StaleConflictError(label, [live])

    def commit_entry(
        self,
        entry: CompletionEntry,
        unclaimed: Optional[List[ConflictDescriptor]] = None,
        actor: Optional[str] = None,
        result: Optional[CommitResult] = None,
    ) -> CompletionDateRecord:
        """
        Commit one validated completion date entry.

        Args:
            entry: Completion date to append
            unclaimed: Confirmed descriptors with this entry's identity not yet
                matched; one is consumed only if the entry has a live conflict
            actor: Who is committing
            result: CommitResult to update with counts

        Returns:
            The appended ledger row

        Raises:
            UnconfirmedConflictError: Live conflicts exist and none were confirmed
            StaleConflictError: Live conflicts differ from the confirmed set
        """
        key = entry.key
        previous = self.ledger.get_effective(key)
        new_effective, records, live = self.detector.live_conflicts(entry, lock=True)
        self._claim_confirmation(entry, live, unclaimed)

        orphaned_total = self.redistribution.measure_orphaned(key, previous, new_effective)

        reason = (
            f"Completion date updated to {entry.completion_date.isoformat()} "
            f"({entry.completion_type.label}) for {key.label}"
        )
        deactivated = self.poc_repo.deactivate(records, actor, reason)
        for record in records:
            self._events.append(AuditEvent(POC_RECORD_DEACTIVATED, {
                **key.to_dict(),
                'record_id': record.id,
                'year': record.year,
                'month': record.month,
                'value': record.value,
                'reason': reason,
                'actor': actor,
            }))
        if deactivated:
            logger.info(f"Deactivated {deactivated} POC record(s) for {key}: {reason}")

        ledger_row = self.ledger.append(key, entry.completion_type, entry.completion_date, actor)
        pending = self.redistribution.record(key, previous, new_effective, orphaned_total, actor)

        if result is not None:
            result.succeeded_count += 1
            result.inserted_count += 1
            result.deactivated_count += deactivated
            result.record_ids.append(ledger_row.id)
            breakdown = result.breakdown_for(key)
            breakdown.inserted += 1
            breakdown.deactivated += deactivated
            breakdown.completion_type = new_effective.completion_type
            if pending is not None:
                breakdown.redistribution_id = pending.id

        return ledger_row

    def resolve_and_commit(
        self,
        entries: Iterable[CompletionEntry],
        confirmed_conflicts: Iterable[ConflictDescriptor] = (),
        actor: Optional[str] = None,
        today: Optional[date] = None,
    ) -> CommitResult:
        """
        Commit a batch of completion dates.

        Rows failing validation are collected as row errors; a conflict
        error aborts the batch and the caller's transaction rolls back.

        Args:
            entries: Completion dates in processing order
            confirmed_conflicts: Descriptors previously returned by check_conflicts
            actor: Who is committing
            today: Reference date for the Actual/Projected rule

        Returns:
            CommitResult with counts, per-key breakdown and row errors
        """
        today = today or date.today()
        confirmed: Dict[tuple, List[ConflictDescriptor]] = defaultdict(list)
        for descriptor in confirmed_conflicts:
            confirmed[descriptor.identity].append(descriptor)
        result = CommitResult()

        for entry in entries:
            result.processed_count += 1
            try:
                self.detector.validate_entry(entry, today)
            except ROW_LEVEL_ERRORS as e:
                result.add_error(entry.row_number, e.code, e.message)
                continue
            self.commit_entry(entry, confirmed[entry.identity], actor, result)

        # A confirmed conflict no entry ran into has vanished from live data
        for leftovers in confirmed.values():
            for descriptor in leftovers:
                if descriptor.conflicting_records:
                    raise StaleConflictError(descriptor.key.label, [])

        logger.info(
            f"Completion date commit: {result.succeeded_count}/{result.processed_count} "
            f"inserted, {result.deactivated_count} POC record(s) deactivated, "
            f"{result.error_count} error(s)"
        )
        return result
