"""
Shared fixtures: in-memory SQLite storage, a seeded allow-list and an engine
pinned to a fixed "today".
"""
from datetime import date

import pytest

from poc_tracker.domain.entities import ProjectPhaseKey
from poc_tracker.engine import CompletionEngine
from poc_tracker.infrastructure.audit import AuditLog
from poc_tracker.infrastructure.storage import StoragePort
from poc_tracker.models import POCRecord, ProjectPhaseValidation, RecordType

TODAY = date(2025, 6, 15)

TOWER = ProjectPhaseKey("C01", "TWR", "P1")
MALL = ProjectPhaseKey("C01", "MALL", "")


@pytest.fixture
def storage():
    """Fresh in-memory database with all tables."""
    port = StoragePort("sqlite://").open()
    with port.transaction() as session:
        session.add_all([
            ProjectPhaseValidation(company_code="C01", project="TWR", phase_code="P1",
                                   description="Tower A Phase 1"),
            ProjectPhaseValidation(company_code="C01", project="MALL", phase_code=""),
        ])
    yield port
    port.close()


@pytest.fixture
def audit():
    return AuditLog("poc_tracker.audit.test", keep_events=100)


@pytest.fixture
def engine(storage, audit):
    return CompletionEngine(storage, audit=audit, today=TODAY)


@pytest.fixture
def session(storage):
    """A session on the shared database for direct inspection."""
    with storage.read_session() as s:
        yield s


def seed_poc(storage, key, rows, record_type=RecordType.ACTUAL):
    """Insert active POC rows directly, bypassing the engine's checks."""
    with storage.transaction() as s:
        for year, month, value in rows:
            s.add(POCRecord(
                company_code=key.company_code,
                project=key.project,
                phase_code=key.phase_code,
                year=year,
                month=month,
                value=value,
                type=record_type.value,
                active=True,
            ))


def active_rows(storage, key):
    """(year, month, value) of a key's active POC rows, oldest first."""
    with storage.read_session() as s:
        rows = s.query(POCRecord).filter(
            POCRecord.company_code == key.company_code,
            POCRecord.project == key.project,
            POCRecord.phase_code == key.phase_code,
            POCRecord.active.is_(True),
        ).order_by(POCRecord.year, POCRecord.month).all()
        return [(r.year, r.month, r.value) for r in rows]
