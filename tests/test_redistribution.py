"""
Tests for orphaned POC tracking and reporting.
"""
import pytest
from datetime import date

from poc_tracker.models import PendingRedistribution, RecordType
from poc_tracker.domain.entities import CompletionEntry, POCReport, RedistributionPendingReport
from poc_tracker.domain.exceptions import RedistributionNotFoundError

from conftest import MALL, TOWER, active_rows, seed_poc


def commit(engine, key, completion_date, completion_type="A"):
    entries = [CompletionEntry(key, RecordType(completion_type), completion_date)]
    return engine.resolve_and_commit(entries, engine.check_conflicts(entries), actor="jdoe")


@pytest.fixture
def tower(engine, storage):
    """TOWER completes 2025-05-31; POC ramps 30/60/100 from March to May."""
    engine.append_completion_date(TOWER, "A", date(2025, 5, 31))
    seed_poc(storage, TOWER, [(2025, 2, 10), (2025, 3, 30), (2025, 4, 60), (2025, 5, 100)])
    return engine


class TestRedistribution:
    """Pending redistributions created by earlier completion dates."""

    def test_earlier_date_records_orphaned_total(self, tower):
        result = commit(tower, TOWER, date(2025, 3, 31))

        pending = tower.list_redistributions("C01")
        assert len(pending) == 1
        info = pending[0]
        assert info.key == TOWER
        assert info.orphaned_total == 160
        assert info.old_completion_date == date(2025, 5, 31)
        assert info.new_completion_date == date(2025, 3, 31)
        assert info.status == "pending_manual_entry"
        assert result.breakdown_for(TOWER).redistribution_id == info.id

    def test_orphaned_mass_measured_before_deactivation(self, tower, storage):
        commit(tower, TOWER, date(2025, 3, 31))

        assert active_rows(storage, TOWER) == [(2025, 2, 10), (2025, 3, 30)]
        assert tower.list_redistributions()[0].orphaned_total == 160

    def test_window_is_bounded_by_old_date(self, engine, storage):
        engine.append_completion_date(TOWER, "P", date(2025, 7, 31))
        seed_poc(storage, TOWER, [(2025, 6, 70), (2025, 7, 100), (2025, 8, 5)], RecordType.PROJECTED)

        commit(engine, TOWER, date(2025, 5, 31))

        assert engine.list_redistributions()[0].orphaned_total == 170

    def test_zero_values_do_not_count(self, engine, storage):
        engine.append_completion_date(TOWER, "A", date(2025, 5, 31))
        seed_poc(storage, TOWER, [(2025, 4, 0), (2025, 5, 0)])

        commit(engine, TOWER, date(2025, 3, 31))

        assert engine.list_redistributions() == []

    def test_later_date_creates_nothing(self, tower):
        commit(tower, TOWER, date(2025, 5, 31))
        tower.append_completion_date(TOWER, "P", date(2025, 12, 31))

        assert tower.list_redistributions() == []

    def test_first_date_creates_nothing(self, engine, storage):
        seed_poc(storage, TOWER, [(2025, 4, 50)])
        engine.append_completion_date(TOWER, "A", date(2025, 3, 31))

        assert engine.list_redistributions() == []

    def test_audit_event(self, tower, audit):
        commit(tower, TOWER, date(2025, 3, 31))

        events = audit.recent("redistribution_created")
        assert len(events) == 1
        assert events[0].payload['orphaned_total'] == 160

    def test_resolve(self, tower, storage, audit):
        commit(tower, TOWER, date(2025, 3, 31))
        pending_id = tower.list_redistributions()[0].id

        info = tower.resolve_redistribution(pending_id, actor="admin")

        assert info.status == "resolved"
        assert tower.list_redistributions() == []
        with storage.read_session() as s:
            row = s.get(PendingRedistribution, pending_id)
            assert row.resolved_by == "admin"
            assert row.resolved_at is not None
        assert len(audit.recent("redistribution_resolved")) == 1

    def test_resolve_twice_fails(self, tower):
        commit(tower, TOWER, date(2025, 3, 31))
        pending_id = tower.list_redistributions()[0].id
        tower.resolve_redistribution(pending_id)

        with pytest.raises(RedistributionNotFoundError):
            tower.resolve_redistribution(pending_id)

    def test_resolve_unknown(self, engine):
        with pytest.raises(RedistributionNotFoundError) as exc_info:
            engine.resolve_redistribution(999)
        assert exc_info.value.code == "REDISTRIBUTION_NOT_FOUND"


class TestReports:
    """POC reports and the redistribution-pending marker."""

    def test_report_rows_up_to_cutoff(self, tower):
        report = tower.get_report(TOWER, cutoff_date=date(2025, 3, 31))

        assert isinstance(report, POCReport)
        assert report.redistribution_pending is False
        assert report.description == "Tower A Phase 1"
        assert [(r['year'], r['month']) for r in report.rows] == [(2025, 2), (2025, 3)]

    def test_report_year_filter(self, tower, storage):
        seed_poc(storage, TOWER, [(2024, 12, 5)])
        report = tower.get_report(TOWER, cutoff_date=date(2025, 5, 31), year=2024)

        assert [(r['year'], r['month']) for r in report.rows] == [(2024, 12)]

    def test_pending_report_replaces_rows(self, tower):
        commit(tower, TOWER, date(2025, 3, 31))

        report = tower.get_report(TOWER, cutoff_date=date(2025, 5, 31))

        assert isinstance(report, RedistributionPendingReport)
        assert report.redistribution_pending is True
        assert report.orphaned_total == 160
        data = report.to_dict()
        assert data['redistribution_pending'] is True
        assert 'rows' not in data

    def test_report_returns_after_resolution(self, tower):
        commit(tower, TOWER, date(2025, 3, 31))
        tower.resolve_redistribution(tower.list_redistributions()[0].id)

        report = tower.get_report(TOWER, cutoff_date=date(2025, 5, 31))
        assert isinstance(report, POCReport)
        assert [(r['month'], r['value']) for r in report.rows] == [(2, 10), (3, 30)]

    def test_inactive_rows_on_request(self, tower):
        commit(tower, TOWER, date(2025, 3, 31))
        tower.resolve_redistribution(tower.list_redistributions()[0].id)

        report = tower.get_report(TOWER, cutoff_date=date(2025, 5, 31), include_inactive=True)
        inactive = [r for r in report.rows if not r['active']]
        assert {r['month'] for r in inactive} == {4, 5}
        assert all(r['deletion_reason'] for r in inactive)

    def test_company_report(self, tower, storage):
        tower.append_completion_date(MALL, "A", date(2025, 4, 30))
        tower.upsert_poc(MALL, 2025, 4, 100, cutoff_date=date(2025, 5, 31))
        commit(tower, TOWER, date(2025, 3, 31))

        reports = {r.key: r for r in tower.get_company_report("C01", cutoff_date=date(2025, 5, 31))}

        assert reports[TOWER].redistribution_pending is True
        assert reports[MALL].redistribution_pending is False
        assert len(reports[MALL].rows) == 1

    def test_options(self, tower):
        options = tower.get_options("C01")

        assert options['projects'] == ["TWR"]
        assert options['phase_codes'] == ["P1"]
        assert options['years'] == [2025]

    def test_completion_date_listing(self, tower):
        tower.append_completion_date(MALL, "A", date(2025, 4, 30))

        rows = tower.list_completion_dates(company_code="C01")
        assert [(r['project'], r['completion_date']) for r in rows] == [
            ("MALL", "2025-04-30"),
            ("TWR", "2025-05-31"),
        ]
        assert tower.list_completion_dates(company_code="C01", cutoff_date=date(2025, 4, 30))[0]['project'] == "MALL"
        assert len(tower.list_completion_dates(completion_type="P")) == 0
