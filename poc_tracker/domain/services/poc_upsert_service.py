"""
POC Upsert Service - Writes monthly POC values by natural key.

Each write:
1. Validates period and value range
2. Checks the key against the allow-list
3. Requires an effective completion date for the key
4. Refuses 100% POC after the effective completion date
5. Classifies the period as Actual/Projected against the cutoff
6. Updates the active row for the period in place, or inserts one

Re-uploading the same file is idempotent: every write lands on the single
active row for its period.
"""
import logging
import math
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from poc_tracker.config import POCConfig, get_config
from poc_tracker.models import RecordType
from poc_tracker.domain.entities import BatchResult, POCEntry, POCRecordState
from poc_tracker.domain.exceptions import (
    CompletionDateExceededError,
    MissingCompletionDateError,
    POCValueOutOfRangeError,
    ProjectPhaseNotFoundError,
    ValidationError,
)
from poc_tracker.infrastructure.audit import AuditEvent, POC_UPSERTED
from poc_tracker.infrastructure.repositories import (
    FULL_COMPLETION,
    POCRecordRepository,
    ProjectPhaseRepository,
)
from .completion_ledger_service import CompletionLedgerService
from .conflict_detection_service import KeyExists
from .period_classifier import classify
from .soft_delete_service import ROW_LEVEL_ERRORS

logger = logging.getLogger(__name__)


class POCUpsertService:
    """
    Validated, classified POC writes.

    Args:
        session: SQLAlchemy session bound to the caller's transaction
        key_exists: Allow-list check; defaults to the project_phase_validation table
        config: Configuration (value range, minimum year)
    """

    def __init__(
        self,
        session: Session,
        key_exists: Optional[KeyExists] = None,
        config: Optional[POCConfig] = None,
    ):
        self.session = session
        self.config = config or get_config()
        self.repo = POCRecordRepository(session)
        self.key_repo = ProjectPhaseRepository(session)
        self.ledger = CompletionLedgerService(session)
        self.key_exists = key_exists or self.key_repo.key_exists
        self.events: List[AuditEvent] = []

    def validate(self, entry: POCEntry) -> None:
        """
        Check period and value before anything is read or written.

        Raises:
            ValidationError: Year below the configured minimum or month outside 1-12
            POCValueOutOfRangeError: Value missing, not a number or out of range
        """
        if entry.year is None or entry.year < self.config.min_year:
            raise ValidationError("year", f"Year must be {self.config.min_year} or later")
        if entry.month is None or not 1 <= entry.month <= 12:
            raise ValidationError("month", f"Month {entry.month} must be between 1 and 12")

        value = entry.value
        if value is None or isinstance(value, bool):
            raise POCValueOutOfRangeError(value, self.config.min_value, self.config.max_value)
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise POCValueOutOfRangeError(value, self.config.min_value, self.config.max_value)
        if math.isnan(value) or not self.config.min_value <= value <= self.config.max_value:
            raise POCValueOutOfRangeError(value, self.config.min_value, self.config.max_value)

    def upsert(
        self,
        entry: POCEntry,
        cutoff_date: date,
        actor: Optional[str] = None,
    ) -> POCRecordState:
        """
        Write one POC value.

        Args:
            entry: Key, period and value
            cutoff_date: Reporting boundary used to classify the period
            actor: Who is writing

        Returns:
            Snapshot of the written row

        Raises:
            ValidationError: Invalid period or value
            ProjectPhaseNotFoundError: Key not on the allow-list
            MissingCompletionDateError: No completion date recorded for the key
            CompletionDateExceededError: 100% after the effective completion date
        """
        self.validate(entry)
        key = entry.key
        value = float(entry.value)

        if not self.key_exists(key.company_code, key.project, key.phase_code):
            raise ProjectPhaseNotFoundError(key.company_code, key.project, key.phase_code)

        effective = self.ledger.get_effective(key)
        if effective is None:
            raise MissingCompletionDateError(key.label)
        if value == FULL_COMPLETION and entry.period > effective.period:
            raise CompletionDateExceededError(
                key.label, entry.year, entry.month, effective.completion_date
            )

        record_type = classify(entry.year, entry.month, cutoff_date)
        record = self.repo.find_active(key, entry.year, entry.month)
        created = record is None
        if created:
            record = self.repo.create(key, entry.year, entry.month, value, record_type, actor)
        else:
            self.repo.update_value(record, value, record_type, actor)
        self.repo.flush()

        state = POCRecordState.from_record(record, created)
        logger.debug(
            f"{'Inserted' if created else 'Updated'} POC {entry.year}-{entry.month:02d} "
            f"= {value:g} ({record_type.label}) for {key}"
        )
        self.events.append(AuditEvent(POC_UPSERTED, {
            **state.to_dict(),
            'actor': actor,
        }))
        return state

    def upsert_batch(
        self,
        entries: Iterable[POCEntry],
        cutoff_date: date,
        actor: Optional[str] = None,
    ) -> BatchResult:
        """
        Write a batch of POC values in input order.

        Invalid rows are collected as row errors and skipped; later rows
        still see the writes of earlier accepted rows.
        """
        result = BatchResult()
        for entry in entries:
            result.processed_count += 1
            try:
                state = self.upsert(entry, cutoff_date, actor)
            except ROW_LEVEL_ERRORS as e:
                result.add_error(entry.row_number, e.code, e.message)
                continue

            result.succeeded_count += 1
            if state.created:
                result.inserted_count += 1
            else:
                result.updated_count += 1
            if state.type is RecordType.ACTUAL:
                result.actual_count += 1
            else:
                result.projected_count += 1

        logger.info(
            f"POC upload: {result.succeeded_count}/{result.processed_count} rows "
            f"({result.inserted_count} inserted, {result.updated_count} updated, "
            f"{result.actual_count} actual, {result.projected_count} projected), "
            f"{result.error_count} error(s)"
        )
        return result
