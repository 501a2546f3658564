"""
Completion Engine - the public surface of the POC tracker.

Every mutating operation runs in one StoragePort transaction and emits its
audit events only after that transaction has committed. Read operations use
a read-only session. Callers (API, CLI) never touch sessions or services
directly.

Usage:
    storage = StoragePort("sqlite:///./poc_tracker.db").open()
    engine = CompletionEngine(storage)

    conflicts = engine.check_conflicts(entries)
    result = engine.resolve_and_commit(entries, conflicts, actor="jdoe")
"""
import logging
from datetime import date
from typing import Iterable, List, Optional, Union

from poc_tracker.config import POCConfig, get_config
from poc_tracker.models import RecordType
from poc_tracker.domain.entities import (
    BatchResult,
    CommitResult,
    CompletionEntry,
    ConflictDescriptor,
    EffectiveCompletionDate,
    POCEntry,
    POCRecordState,
    ProjectPhaseKey,
    RedistributionInfo,
    SalesRecognitionEntry,
    ValidationResult,
)
from poc_tracker.domain.services import (
    ConflictDetectionService,
    CompletionLedgerService,
    POCUpsertService,
    KeyExists,
    RedistributionService,
    ReportingService,
    SalesRecognitionService,
    SoftDeleteService,
    classify,
    is_month_end,
    previous_month_end,
    validate_completion_date,
)
from poc_tracker.domain.services.reporting_service import KeyReport
from poc_tracker.infrastructure.audit import AuditLog
from poc_tracker.infrastructure.repositories import ProjectPhaseRepository
from poc_tracker.infrastructure.storage import StoragePort

logger = logging.getLogger(__name__)


class CompletionEngine:
    """
    Completion date and POC consistency engine.

    Args:
        storage: Opened StoragePort
        key_exists: Allow-list check (company, project, phase) -> bool;
            defaults to the project_phase_validation table
        audit: Audit sink (defaults to an AuditLog built from config)
        config: Configuration (defaults to get_config())
        today: Fixed reference date; None means date.today() at call time
    """

    def __init__(
        self,
        storage: StoragePort,
        key_exists: Optional[KeyExists] = None,
        audit: Optional[AuditLog] = None,
        config: Optional[POCConfig] = None,
        today: Optional[date] = None,
    ):
        self.storage = storage
        self.config = config or get_config()
        self._key_exists = key_exists
        self.audit = audit or AuditLog(
            self.config.audit_logger_name, self.config.audit_keep_events
        )
        self._today = today

    def today(self) -> date:
        return self._today or date.today()

    def default_cutoff(self) -> date:
        """Last day of the previous month."""
        return previous_month_end(self.today())

    # =========================================================================
    # Pure rules
    # =========================================================================

    @staticmethod
    def classify(year: int, month: int, cutoff_date: date) -> RecordType:
        return classify(year, month, cutoff_date)

    @staticmethod
    def is_month_end(value: date) -> bool:
        return is_month_end(value)

    def validate_completion_date(
        self,
        completion_date: date,
        completion_type: Union[RecordType, str],
        today: Optional[date] = None,
    ) -> ValidationResult:
        return validate_completion_date(completion_date, completion_type, today or self.today())

    def key_exists(self, company_code: str, project: str, phase_code: str = "") -> bool:
        """True if the key is on the allow-list."""
        if self._key_exists is not None:
            return self._key_exists(company_code, project, phase_code)
        with self.storage.read_session() as session:
            return ProjectPhaseRepository(session).key_exists(company_code, project, phase_code)

    # =========================================================================
    # Completion Ledger
    # =========================================================================

    def append_completion_date(
        self,
        key: ProjectPhaseKey,
        completion_type: Union[RecordType, str],
        completion_date: date,
        actor: Optional[str] = None,
    ) -> int:
        """
        Append one completion date.

        Refuses (UnconfirmedConflictError) when the date would invalidate
        POC data; use check_conflicts + resolve_and_commit for that.

        Returns:
            Id of the new ledger row
        """
        entry = CompletionEntry(key, completion_type, completion_date)
        with self.storage.transaction() as session:
            executor = SoftDeleteService(session, self._key_exists)
            executor.detector.validate_entry(entry, self.today())
            record = executor.commit_entry(entry, None, actor)
            record_id = record.id
            events = executor.events
        self.audit.emit_all(events)
        return record_id

    def get_effective_completion_date(self, key: ProjectPhaseKey) -> Optional[EffectiveCompletionDate]:
        with self.storage.read_session() as session:
            return CompletionLedgerService(session).get_effective(key)

    def list_completion_dates(
        self,
        company_code: Optional[str] = None,
        project: Optional[str] = None,
        phase_code: Optional[str] = None,
        completion_type: Optional[Union[RecordType, str]] = None,
        year: Optional[int] = None,
        cutoff_date: Optional[date] = None,
    ) -> List[dict]:
        with self.storage.read_session() as session:
            return ReportingService(session).list_completion_dates(
                company_code,
                project,
                phase_code,
                RecordType(completion_type) if completion_type else None,
                year,
                cutoff_date,
            )

    # =========================================================================
    # Conflicts
    # =========================================================================

    def check_conflicts(self, entries: Iterable[CompletionEntry]) -> List[ConflictDescriptor]:
        """Dry run: which POC data would each entry invalidate? Writes nothing."""
        with self.storage.read_session() as session:
            return ConflictDetectionService(session, self._key_exists).check_conflicts(
                list(entries), self.today()
            )

    def resolve_and_commit(
        self,
        entries: Iterable[CompletionEntry],
        confirmed_conflicts: Iterable[ConflictDescriptor] = (),
        actor: Optional[str] = None,
    ) -> CommitResult:
        """
        Commit completion dates, deactivating confirmed conflicting POC data.

        All or nothing: a conflict mismatch or storage failure rolls back
        every entry of the batch.

        Raises:
            UnconfirmedConflictError: A live conflict was not confirmed
            StaleConflictError: A live conflict differs from its confirmation
            ConcurrencyError: A concurrent write got in the way
            StorageError: The store failed
        """
        with self.storage.transaction() as session:
            executor = SoftDeleteService(session, self._key_exists)
            result = executor.resolve_and_commit(
                list(entries), list(confirmed_conflicts), actor, self.today()
            )
            events = executor.events
        self.audit.emit_all(events)
        return result

    # =========================================================================
    # POC
    # =========================================================================

    def upsert_poc(
        self,
        key: ProjectPhaseKey,
        year: int,
        month: int,
        value: float,
        cutoff_date: Optional[date] = None,
        actor: Optional[str] = None,
    ) -> POCRecordState:
        """Write one POC value; raises the typed error on rejection."""
        entry = POCEntry(key, year, month, value)
        with self.storage.transaction() as session:
            service = POCUpsertService(session, self._key_exists, self.config)
            state = service.upsert(entry, cutoff_date or self.default_cutoff(), actor)
            events = service.events
        self.audit.emit_all(events)
        return state

    def upsert_poc_batch(
        self,
        entries: Iterable[POCEntry],
        cutoff_date: Optional[date] = None,
        actor: Optional[str] = None,
    ) -> BatchResult:
        """Write a batch of POC values; invalid rows are reported, not raised."""
        with self.storage.transaction() as session:
            service = POCUpsertService(session, self._key_exists, self.config)
            result = service.upsert_batch(list(entries), cutoff_date or self.default_cutoff(), actor)
            events = service.events
        self.audit.emit_all(events)
        return result

    # =========================================================================
    # Reporting
    # =========================================================================

    def get_report(
        self,
        key: ProjectPhaseKey,
        cutoff_date: Optional[date] = None,
        year: Optional[int] = None,
        include_inactive: bool = False,
    ) -> KeyReport:
        with self.storage.read_session() as session:
            return ReportingService(session).get_key_report(
                key, cutoff_date or self.default_cutoff(), year, include_inactive
            )

    def get_company_report(
        self,
        company_code: str,
        cutoff_date: Optional[date] = None,
        project: Optional[str] = None,
        phase_code: Optional[str] = None,
        year: Optional[int] = None,
    ) -> List[KeyReport]:
        with self.storage.read_session() as session:
            return ReportingService(session).get_company_report(
                company_code, cutoff_date or self.default_cutoff(), project, phase_code, year
            )

    def get_options(self, company_code: Optional[str] = None) -> dict:
        with self.storage.read_session() as session:
            return ReportingService(session).get_options(company_code)

    # =========================================================================
    # Redistribution
    # =========================================================================

    def list_redistributions(self, company_code: Optional[str] = None) -> List[RedistributionInfo]:
        with self.storage.read_session() as session:
            return RedistributionService(session).list_pending(company_code)

    def resolve_redistribution(self, redistribution_id: int, actor: Optional[str] = None) -> RedistributionInfo:
        """Mark a pending redistribution resolved (administrative action)."""
        with self.storage.transaction() as session:
            service = RedistributionService(session)
            info = service.resolve(redistribution_id, actor)
            events = service.events
        self.audit.emit_all(events)
        return info

    # =========================================================================
    # Sales Recognition
    # =========================================================================

    def record_sales_recognition(
        self,
        entries: Iterable[SalesRecognitionEntry],
        cutoff_date: Optional[date] = None,
    ) -> BatchResult:
        with self.storage.transaction() as session:
            return SalesRecognitionService(session).record_batch(
                list(entries), cutoff_date or self.default_cutoff()
            )

    def list_sales_recognition(self, cutoff_date: Optional[date] = None) -> List[dict]:
        with self.storage.read_session() as session:
            return SalesRecognitionService(session).list_dates(cutoff_date)
