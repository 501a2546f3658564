"""
Conflict Detection Service - Finds POC data a new completion date would invalidate.

A proposed completion date conflicts with a key's POC data when, under the
effective date it would produce, an active 100% record lies in a later
period. The descriptor then lists every active record after that date:
exactly the set the soft-delete executor will deactivate.

check_conflicts() is a dry run. It never writes; later entries in a batch
see the simulated effect of earlier ones so the reported set matches what
a commit of the same batch would do.
"""
import logging
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy.orm import Session

from poc_tracker.models import POCRecord, RecordType
from poc_tracker.domain.entities import (
    CompletionEntry,
    ConflictDescriptor,
    ConflictingRecord,
    EffectiveCompletionDate,
    ProjectPhaseKey,
)
from poc_tracker.domain.exceptions import (
    CompletionDateRuleError,
    DomainError,
    NotMonthEndError,
    ProjectPhaseNotFoundError,
)
from poc_tracker.infrastructure.repositories import (
    FULL_COMPLETION,
    POCRecordRepository,
    ProjectPhaseRepository,
)
from .completion_ledger_service import CompletionLedgerService
from .period_classifier import is_month_end, validate_completion_date

logger = logging.getLogger(__name__)

KeyExists = Callable[[str, str, str], bool]


def conflict_signature(descriptor: Optional[ConflictDescriptor]) -> Set[tuple]:
    """Comparable identity of a conflict's record set."""
    if descriptor is None:
        return set()
    return {(r.year, r.month, float(r.value)) for r in descriptor.conflicting_records}


class ConflictDetectionService:
    """
    Detects conflicts between proposed completion dates and active POC data.

    Args:
        session: SQLAlchemy session
        key_exists: Allow-list check; defaults to the project_phase_validation table
    """

    def __init__(self, session: Session, key_exists: Optional[KeyExists] = None):
        self.session = session
        self.ledger = CompletionLedgerService(session)
        self.poc_repo = POCRecordRepository(session)
        self.key_repo = ProjectPhaseRepository(session)
        self.key_exists = key_exists or self.key_repo.key_exists

    # =========================================================================
    # Entry Validation
    # =========================================================================

    def validate_entry(self, entry: CompletionEntry, today: date) -> None:
        """
        Row-level checks for a completion date entry.

        Raises:
            ProjectPhaseNotFoundError: Key not on the allow-list
            NotMonthEndError: Date is not the last day of its month
            CompletionDateRuleError: Actual in the future / Projected not in the future
        """
        key = entry.key
        if not self.key_exists(key.company_code, key.project, key.phase_code):
            raise ProjectPhaseNotFoundError(key.company_code, key.project, key.phase_code)
        if not is_month_end(entry.completion_date):
            raise NotMonthEndError(entry.completion_date.isoformat())
        result = validate_completion_date(entry.completion_date, entry.completion_type, today)
        if not result.is_valid:
            raise CompletionDateRuleError(result.reason)

    def is_valid_entry(self, entry: CompletionEntry, today: date) -> bool:
        try:
            self.validate_entry(entry, today)
        except DomainError:
            return False
        return True

    # =========================================================================
    # Detection
    # =========================================================================

    def _describe(
        self,
        entry: CompletionEntry,
        records: List[POCRecord],
    ) -> Optional[ConflictDescriptor]:
        """Descriptor for the records, or None if none of them is at 100%."""
        if not any(r.value == FULL_COMPLETION for r in records):
            return None
        return ConflictDescriptor(
            key=entry.key,
            completion_type=entry.completion_type,
            completion_date=entry.completion_date,
            description=self.key_repo.describe(entry.key),
            conflicting_records=[
                ConflictingRecord(year=r.year, month=r.month, value=r.value, type=r.type)
                for r in records
            ],
        )

    def live_conflicts(
        self,
        entry: CompletionEntry,
        lock: bool = False,
    ) -> Tuple[EffectiveCompletionDate, List[POCRecord], Optional[ConflictDescriptor]]:
        """
        Conflicts for one entry against the session's current state.

        Args:
            entry: Proposed completion date
            lock: Lock the candidate rows (used inside the commit transaction)

        Returns:
            (effective date after the entry, active records after it, descriptor or None)
        """
        new_effective = self.ledger.effective_with(
            entry.key, entry.completion_type, entry.completion_date
        )
        records = self.poc_repo.find_active_after(entry.key, new_effective.period, lock=lock)
        descriptor = self._describe(entry, records)
        return new_effective, (records if descriptor else []), descriptor

    def check_conflicts(
        self,
        entries: Iterable[CompletionEntry],
        today: Optional[date] = None,
    ) -> List[ConflictDescriptor]:
        """
        Dry-run conflict detection for a batch of proposed completion dates.

        Entries failing row-level validation are skipped; a commit would
        reject them too. Nothing is written.

        Args:
            entries: Proposed completion dates, in processing order
            today: Reference date for the Actual/Projected rule

        Returns:
            One descriptor per entry that would deactivate POC data
        """
        today = today or date.today()
        simulated_latest: Dict[ProjectPhaseKey, Dict[RecordType, date]] = {}
        simulated_deactivated: Dict[ProjectPhaseKey, Set[int]] = {}
        conflicts: List[ConflictDescriptor] = []

        for entry in entries:
            if not self.is_valid_entry(entry, today):
                continue

            key = entry.key
            if key not in simulated_latest:
                simulated_latest[key] = self.ledger.latest_by_type(key)
            latest = simulated_latest[key]

            new_effective = self.ledger.effective_with(
                key, entry.completion_type, entry.completion_date, latest
            )
            latest[entry.completion_type] = entry.completion_date

            already_gone = simulated_deactivated.setdefault(key, set())
            records = [
                r for r in self.poc_repo.find_active_after(key, new_effective.period)
                if r.id not in already_gone
            ]

            descriptor = self._describe(entry, records)
            if descriptor:
                already_gone.update(r.id for r in records)
                conflicts.append(descriptor)

        if conflicts:
            logger.info(
                f"Found {len(conflicts)} completion date conflict(s) affecting "
                f"{sum(c.poc_count for c in conflicts)} POC record(s)"
            )
        return conflicts
