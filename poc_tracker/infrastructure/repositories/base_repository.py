"""
Base Repository - Generic repository pattern implementation.

Provides common query helpers and project/phase filtering for all tables.
"""
from typing import Generic, TypeVar, Optional, Type

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from poc_tracker.models import Base
from poc_tracker.domain.entities import ProjectPhaseKey

T = TypeVar('T', bound=Base)


def phase_filter(column, phase_code: Optional[str]):
    """
    Filter on a phase code column.

    The empty phase also matches legacy NULL rows.
    """
    if phase_code:
        return column == phase_code
    return or_(column.is_(None), column == "")


def period_after(model, period: tuple):
    """Rows whose (year, month) is strictly later than `period`."""
    year, month = period
    return or_(model.year > year, and_(model.year == year, model.month > month))


def period_on_or_before(model, period: tuple):
    """Rows whose (year, month) is on or before `period`."""
    year, month = period
    return or_(model.year < year, and_(model.year == year, model.month <= month))


class BaseRepository(Generic[T]):
    """
    Base repository providing common data access operations.

    Type Parameters:
        T: The SQLAlchemy model type this repository manages
    """

    def __init__(self, session: Session, model_class: Type[T]):
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy database session
            model_class: The model class this repository manages
        """
        self.session = session
        self.model_class = model_class

    def get_by_id(self, entity_id: int) -> Optional[T]:
        """
        Retrieve an entity by its primary key.

        Args:
            entity_id: Primary key value

        Returns:
            The entity if found, None otherwise
        """
        return self.session.query(self.model_class).filter(
            self.model_class.id == entity_id
        ).first()

    def key_query(self, key: ProjectPhaseKey):
        """Query scoped to one (company, project, phase) key."""
        model = self.model_class
        return self.session.query(model).filter(
            model.company_code == key.company_code,
            model.project == key.project,
            phase_filter(model.phase_code, key.phase_code),
        )

    def add(self, entity: T) -> T:
        """
        Add a new entity to the session.

        Args:
            entity: Entity to add

        Returns:
            The added entity
        """
        self.session.add(entity)
        return entity

    def flush(self) -> None:
        """Flush pending changes to the database."""
        self.session.flush()
