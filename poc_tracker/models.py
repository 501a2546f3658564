"""
Database models for the POC Tracker.

Tables:
- poc_per_month: POC percentage per project/phase/year/month (soft-deleted, never removed)
- completion_dates: append-only ledger of completion date assertions
- pending_redistributions: POC mass orphaned by an earlier completion date
- project_phase_validation: allow-list of valid (company, project, phase) keys
- sales_recognition: month-end sales recognition date per account
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Float, Boolean,
    DateTime, Date, Text, Index, UniqueConstraint, text
)
from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class RecordType(str, enum.Enum):
    """Actual (elapsed) or Projected (future) classification."""
    ACTUAL = "A"
    PROJECTED = "P"

    @property
    def label(self) -> str:
        return "Actual" if self is RecordType.ACTUAL else "Projected"


class RedistributionStatus(str, enum.Enum):
    PENDING_MANUAL_ENTRY = "pending_manual_entry"
    RESOLVED = "resolved"


# =============================================================================
# POC per Month
# =============================================================================

class POCRecord(Base):
    """
    Percentage of completion for one project/phase period.
    INVARIANT: at most one active row per (company, project, phase, year, month).
    Rows are deactivated, never deleted; deactivation is terminal.
    """
    __tablename__ = "poc_per_month"

    id = Column(Integer, primary_key=True, index=True)
    company_code = Column(String(10), nullable=False)
    project = Column(String(50), nullable=False)
    phase_code = Column(String(20), nullable=False, default="")  # "" = no sub-phase
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    value = Column(Float, nullable=False)
    type = Column(String(1), nullable=False)  # A, P
    active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, default=utcnow)
    created_by = Column(String(100), nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    updated_by = Column(String(100), nullable=True)
    # Populated only on deactivation
    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(String(100), nullable=True)
    deletion_reason = Column(Text, nullable=True)

    __table_args__ = (
        Index('ix_poc_key_period', 'company_code', 'project', 'phase_code', 'year', 'month'),
        Index(
            'uq_poc_active_period',
            'company_code', 'project', 'phase_code', 'year', 'month',
            unique=True,
            sqlite_where=text('active = 1'),
            postgresql_where=text('active'),
        ).ddl_if(dialect=('sqlite', 'postgresql')),
    )

    @property
    def period(self) -> tuple:
        return (self.year, self.month)


# =============================================================================
# Completion Date Ledger
# =============================================================================

class CompletionDateRecord(Base):
    """
    One completion date assertion. Rows are immutable once written;
    the effective date per type is the most recently created row.
    """
    __tablename__ = "completion_dates"

    id = Column(Integer, primary_key=True, index=True)
    company_code = Column(String(10), nullable=False)
    project = Column(String(50), nullable=False)
    phase_code = Column(String(20), nullable=False, default="")
    type = Column(String(1), nullable=False)  # A, P
    completion_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    created_by = Column(String(100), nullable=True)

    __table_args__ = (
        Index('ix_completion_key_type', 'company_code', 'project', 'phase_code', 'type'),
    )


# =============================================================================
# Pending Redistribution
# =============================================================================

class PendingRedistribution(Base):
    """
    POC percentage orphaned when a completion date moved earlier.
    Stays pending_manual_entry until someone re-enters POC for the key.
    """
    __tablename__ = "pending_redistributions"

    id = Column(Integer, primary_key=True, index=True)
    company_code = Column(String(10), nullable=False)
    project = Column(String(50), nullable=False)
    phase_code = Column(String(20), nullable=False, default="")
    orphaned_total = Column(Float, nullable=False)
    new_completion_date = Column(Date, nullable=False)
    old_completion_date = Column(Date, nullable=False)
    status = Column(
        String(30), nullable=False,
        default=RedistributionStatus.PENDING_MANUAL_ENTRY.value, index=True
    )
    created_at = Column(DateTime, default=utcnow)
    created_by = Column(String(100), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    resolved_by = Column(String(100), nullable=True)

    __table_args__ = (
        Index('ix_redistribution_key', 'company_code', 'project', 'phase_code'),
    )


# =============================================================================
# Allow-list (read-only for the engine)
# =============================================================================

class ProjectPhaseValidation(Base):
    """Valid (company, project, phase) keys with an optional description."""
    __tablename__ = "project_phase_validation"

    id = Column(Integer, primary_key=True, index=True)
    company_code = Column(String(10), nullable=False)
    project = Column(String(50), nullable=False)
    phase_code = Column(String(20), nullable=True, default="")
    description = Column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint('company_code', 'project', 'phase_code', name='uq_project_phase'),
    )


# =============================================================================
# Sales Recognition
# =============================================================================

class SalesRecognition(Base):
    """Month-end sales recognition date per account number."""
    __tablename__ = "sales_recognition"

    id = Column(Integer, primary_key=True, index=True)
    account_no = Column(String(30), unique=True, nullable=False, index=True)
    recognition_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
