"""
Inbound entries - typed rows handed to the engine by file upload or manual entry.
"""
from dataclasses import dataclass
from datetime import date
from typing import Optional

from poc_tracker.models import RecordType
from .project_phase_key import ProjectPhaseKey


@dataclass(frozen=True)
class POCEntry:
    """
    One POC value for a project/phase period.

    Attributes:
        key: Project/phase the value belongs to
        year: Calendar year of the period
        month: Calendar month of the period (1-12)
        value: Percentage of completion (0-100)
        row_number: Source row for error reporting (1-based, optional)
    """

    key: ProjectPhaseKey
    year: int
    month: int
    value: float
    row_number: Optional[int] = None

    @property
    def period(self) -> tuple:
        return (self.year, self.month)


@dataclass(frozen=True)
class CompletionEntry:
    """
    A proposed completion date assertion for a project/phase.

    Attributes:
        key: Project/phase the date belongs to
        completion_type: Actual or Projected
        completion_date: Month-end completion date
        row_number: Source row for error reporting (1-based, optional)
    """

    key: ProjectPhaseKey
    completion_type: RecordType
    completion_date: date
    row_number: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, 'completion_type', RecordType(self.completion_type))

    @property
    def identity(self) -> tuple:
        """What a confirmed conflict descriptor is matched on."""
        return (self.key, self.completion_type, self.completion_date)

    def to_dict(self) -> dict:
        return {
            **self.key.to_dict(),
            'completion_type': self.completion_type.value,
            'completion_date': self.completion_date.isoformat(),
        }


@dataclass(frozen=True)
class SalesRecognitionEntry:
    """A sales recognition date for one account number."""

    account_no: str
    recognition_date: date
    row_number: Optional[int] = None
