"""
Project Phase Repository - Read-only access to the project/phase allow-list.
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from poc_tracker.models import ProjectPhaseValidation
from poc_tracker.domain.entities import ProjectPhaseKey
from .base_repository import BaseRepository


class ProjectPhaseRepository(BaseRepository[ProjectPhaseValidation]):
    """
    Allow-list of valid (company, project, phase) keys.

    The engine only reads this table; it is populated elsewhere.
    """

    def __init__(self, session: Session):
        super().__init__(session, ProjectPhaseValidation)

    def key_exists(self, company_code: str, project: str, phase_code: Optional[str]) -> bool:
        """True if the key is on the allow-list."""
        return self.key_query(ProjectPhaseKey(company_code, project, phase_code)).first() is not None

    def get_description(self, key: ProjectPhaseKey) -> Optional[str]:
        row = self.key_query(key).first()
        return row.description if row else None

    def describe(self, key: ProjectPhaseKey) -> str:
        """Key label with its allow-list description, e.g. 'TWR-P1: Tower A'."""
        return key.describe(self.get_description(key))

    def list_keys(self, company_code: str) -> List[ProjectPhaseValidation]:
        """Allow-listed keys for a company (for manual entry dropdowns)."""
        return self.session.query(ProjectPhaseValidation).filter(
            ProjectPhaseValidation.company_code == company_code
        ).order_by(ProjectPhaseValidation.project, ProjectPhaseValidation.phase_code).all()
