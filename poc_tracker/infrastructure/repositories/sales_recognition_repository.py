"""
Sales Recognition Repository - Recognition dates keyed by account number.
"""
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from poc_tracker.models import SalesRecognition, utcnow
from .base_repository import BaseRepository


class SalesRecognitionRepository(BaseRepository[SalesRecognition]):
    """One recognition date per account number."""

    def __init__(self, session: Session):
        super().__init__(session, SalesRecognition)

    def get_by_account(self, account_no: str) -> Optional[SalesRecognition]:
        return self.session.query(SalesRecognition).filter(
            SalesRecognition.account_no == account_no
        ).first()

    def upsert(self, account_no: str, recognition_date: date) -> tuple:
        """
        Insert or update the recognition date for an account.

        Returns:
            (row, created)
        """
        record = self.get_by_account(account_no)
        if record is None:
            record = SalesRecognition(account_no=account_no, recognition_date=recognition_date)
            self.add(record)
            return record, True
        record.recognition_date = recognition_date
        record.updated_at = utcnow()
        return record, False

    def list_all(self, up_to: Optional[date] = None) -> List[SalesRecognition]:
        query = self.session.query(SalesRecognition)
        if up_to:
            query = query.filter(SalesRecognition.recognition_date <= up_to)
        return query.order_by(SalesRecognition.account_no).all()
