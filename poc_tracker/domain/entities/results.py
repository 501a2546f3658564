"""
Result objects returned by the engine's public operations.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

from poc_tracker.models import RecordType
from .project_phase_key import ProjectPhaseKey


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a pure validation check."""
    is_valid: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.is_valid


@dataclass(frozen=True)
class EffectiveCompletionDate:
    """The authoritative completion date for a key (Actual beats Projected)."""
    completion_type: RecordType
    completion_date: date

    @property
    def period(self) -> tuple:
        return (self.completion_date.year, self.completion_date.month)

    def to_dict(self) -> dict:
        return {
            'completion_type': self.completion_type.value,
            'completion_date': self.completion_date.isoformat(),
        }


@dataclass(frozen=True)
class ConflictingRecord:
    """An active POC period that a new completion date would invalidate."""
    year: int
    month: int
    value: float
    type: str

    @property
    def period(self) -> tuple:
        return (self.year, self.month)

    def to_dict(self) -> dict:
        return {'year': self.year, 'month': self.month, 'value': self.value, 'type': self.type}


@dataclass
class ConflictDescriptor:
    """
    Conflicts for one proposed completion date.

    Attributes:
        key: Project/phase affected
        completion_type: Type of the proposed date
        completion_date: The proposed date
        description: Human readable project/phase description
        conflicting_records: Active records that committing would deactivate
    """
    key: ProjectPhaseKey
    completion_type: RecordType
    completion_date: date
    description: str
    conflicting_records: List[ConflictingRecord] = field(default_factory=list)

    @property
    def identity(self) -> tuple:
        return (self.key, RecordType(self.completion_type), self.completion_date)

    @property
    def periods(self) -> set:
        return {r.period for r in self.conflicting_records}

    @property
    def poc_count(self) -> int:
        return len(self.conflicting_records)

    def to_dict(self) -> dict:
        return {
            **self.key.to_dict(),
            'completion_type': RecordType(self.completion_type).value,
            'completion_date': self.completion_date.isoformat(),
            'description': self.description,
            'poc_count': self.poc_count,
            'conflicting_records': [r.to_dict() for r in self.conflicting_records],
        }


@dataclass
class RowError:
    """A row-level failure collected during a batch."""
    row_number: Optional[int]
    code: str
    message: str

    def to_dict(self) -> dict:
        return {'row_number': self.row_number, 'code': self.code, 'message': self.message}


@dataclass
class BatchResult:
    """Outcome of a batch operation: counts plus collected row errors."""
    processed_count: int = 0
    succeeded_count: int = 0
    inserted_count: int = 0
    updated_count: int = 0
    actual_count: int = 0
    projected_count: int = 0
    errors: List[RowError] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def add_error(self, row_number: Optional[int], code: str, message: str) -> None:
        self.errors.append(RowError(row_number, code, message))

    def to_dict(self) -> dict:
        return {
            'processed_count': self.processed_count,
            'succeeded_count': self.succeeded_count,
            'inserted_count': self.inserted_count,
            'updated_count': self.updated_count,
            'actual_count': self.actual_count,
            'projected_count': self.projected_count,
            'error_count': self.error_count,
            'errors': [e.to_dict() for e in self.errors],
        }


@dataclass
class KeyBreakdown:
    """Per-key counts reported by a completion date commit."""
    key: ProjectPhaseKey
    inserted: int = 0
    deactivated: int = 0
    completion_type: Optional[RecordType] = None
    redistribution_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            **self.key.to_dict(),
            'inserted': self.inserted,
            'deactivated': self.deactivated,
            'completion_type': self.completion_type.value if self.completion_type else None,
            'redistribution_id': self.redistribution_id,
        }


@dataclass
class CommitResult(BatchResult):
    """Outcome of resolve_and_commit."""
    deactivated_count: int = 0
    per_key_breakdown: Dict[ProjectPhaseKey, KeyBreakdown] = field(default_factory=dict)
    record_ids: List[int] = field(default_factory=list)

    def breakdown_for(self, key: ProjectPhaseKey) -> KeyBreakdown:
        if key not in self.per_key_breakdown:
            self.per_key_breakdown[key] = KeyBreakdown(key=key)
        return self.per_key_breakdown[key]

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            'deactivated_count': self.deactivated_count,
            'per_key_breakdown': [b.to_dict() for b in self.per_key_breakdown.values()],
            'record_ids': list(self.record_ids),
        })
        return data


@dataclass(frozen=True)
class POCRecordState:
    """Snapshot of a POC record after a write."""
    id: int
    key: ProjectPhaseKey
    year: int
    month: int
    value: float
    type: RecordType
    active: bool
    created: bool
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None

    @classmethod
    def from_record(cls, record, created: bool) -> "POCRecordState":
        return cls(
            id=record.id,
            key=ProjectPhaseKey.of(record),
            year=record.year,
            month=record.month,
            value=record.value,
            type=RecordType(record.type),
            active=record.active,
            created=created,
            updated_at=record.updated_at,
            updated_by=record.updated_by,
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            **self.key.to_dict(),
            'year': self.year,
            'month': self.month,
            'value': self.value,
            'type': self.type.value,
            'active': self.active,
            'created': self.created,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
            'updated_by': self.updated_by,
        }


@dataclass(frozen=True)
class RedistributionInfo:
    """Details of an unresolved redistribution."""
    id: int
    key: ProjectPhaseKey
    orphaned_total: float
    new_completion_date: date
    old_completion_date: date
    status: str
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None

    @classmethod
    def from_record(cls, record) -> "RedistributionInfo":
        return cls(
            id=record.id,
            key=ProjectPhaseKey.of(record),
            orphaned_total=record.orphaned_total,
            new_completion_date=record.new_completion_date,
            old_completion_date=record.old_completion_date,
            status=record.status,
            created_at=record.created_at,
            created_by=record.created_by,
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            **self.key.to_dict(),
            'orphaned_total': self.orphaned_total,
            'new_completion_date': self.new_completion_date.isoformat(),
            'old_completion_date': self.old_completion_date.isoformat(),
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'created_by': self.created_by,
        }


@dataclass
class POCReport:
    """POC rows for one key up to a cutoff."""
    key: ProjectPhaseKey
    cutoff_date: date
    description: Optional[str] = None
    rows: List[dict] = field(default_factory=list)

    redistribution_pending = False

    def to_dict(self) -> dict:
        return {
            **self.key.to_dict(),
            'cutoff_date': self.cutoff_date.isoformat(),
            'description': self.description,
            'redistribution_pending': False,
            'rows': self.rows,
        }


@dataclass
class RedistributionPendingReport:
    """Returned instead of POC rows while a key awaits manual re-entry."""
    key: ProjectPhaseKey
    cutoff_date: date
    pending: List[RedistributionInfo] = field(default_factory=list)
    description: Optional[str] = None

    redistribution_pending = True

    @property
    def orphaned_total(self) -> float:
        return sum(p.orphaned_total for p in self.pending)

    def to_dict(self) -> dict:
        return {
            **self.key.to_dict(),
            'cutoff_date': self.cutoff_date.isoformat(),
            'description': self.description,
            'redistribution_pending': True,
            'orphaned_total': self.orphaned_total,
            'pending': [p.to_dict() for p in self.pending],
        }
