"""
Sales Recognition Service - Month-end recognition dates per account number.
"""
import logging
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from poc_tracker.domain.entities import BatchResult, SalesRecognitionEntry
from poc_tracker.domain.exceptions import NotMonthEndError, ValidationError
from poc_tracker.infrastructure.repositories import SalesRecognitionRepository
from .period_classifier import is_month_end

logger = logging.getLogger(__name__)

ACCOUNT_NO_MAX_LENGTH = 30


class SalesRecognitionService:
    """Validates and stores sales recognition dates."""

    def __init__(self, session: Session):
        self.session = session
        self.repo = SalesRecognitionRepository(session)

    def validate(self, entry: SalesRecognitionEntry, cutoff_date: Optional[date] = None) -> str:
        """
        Check one entry and return its normalised account number.

        Raises:
            ValidationError: Missing/too long account number or date after the cutoff
            NotMonthEndError: Recognition date is not a month-end date
        """
        account_no = (entry.account_no or "").strip()
        if not account_no:
            raise ValidationError("account_no", "Account number is required")
        if len(account_no) > ACCOUNT_NO_MAX_LENGTH:
            raise ValidationError(
                "account_no",
                f"Account number exceeds {ACCOUNT_NO_MAX_LENGTH} characters"
            )
        if entry.recognition_date is None:
            raise ValidationError("recognition_date", "Recognition date is required")
        if not is_month_end(entry.recognition_date):
            raise NotMonthEndError(entry.recognition_date.isoformat())
        if cutoff_date and entry.recognition_date > cutoff_date:
            raise ValidationError(
                "recognition_date",
                f"Recognition date {entry.recognition_date.isoformat()} is after "
                f"the cutoff {cutoff_date.isoformat()}"
            )
        return account_no

    def record_batch(
        self,
        entries: Iterable[SalesRecognitionEntry],
        cutoff_date: Optional[date] = None,
    ) -> BatchResult:
        """Upsert recognition dates by account number, collecting row errors."""
        result = BatchResult()
        for entry in entries:
            result.processed_count += 1
            try:
                account_no = self.validate(entry, cutoff_date)
            except ValidationError as e:
                result.add_error(entry.row_number, e.code, e.message)
                continue

            _, created = self.repo.upsert(account_no, entry.recognition_date)
            self.repo.flush()
            result.succeeded_count += 1
            if created:
                result.inserted_count += 1
            else:
                result.updated_count += 1

        logger.info(
            f"Sales recognition upload: {result.inserted_count} inserted, "
            f"{result.updated_count} updated, {result.error_count} error(s)"
        )
        return result

    def list_dates(self, up_to: Optional[date] = None) -> List[dict]:
        return [
            {
                'account_no': r.account_no,
                'recognition_date': r.recognition_date.isoformat(),
            }
            for r in self.repo.list_all(up_to)
        ]
