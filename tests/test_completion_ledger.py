"""
Tests for the append-only completion date ledger.
"""
import pytest
from datetime import date

from poc_tracker.models import CompletionDateRecord, RecordType
from poc_tracker.domain.entities import ProjectPhaseKey
from poc_tracker.domain.exceptions import (
    CompletionDateRuleError,
    ImmutableRecordError,
    NotMonthEndError,
    ProjectPhaseNotFoundError,
    UnconfirmedConflictError,
)

from conftest import MALL, TOWER, active_rows, seed_poc


class TestAppendCompletionDate:
    """Tests for append_completion_date."""

    def test_no_effective_date_initially(self, engine):
        assert engine.get_effective_completion_date(TOWER) is None

    def test_append_and_read_effective(self, engine):
        record_id = engine.append_completion_date(TOWER, "A", date(2025, 3, 31), actor="jdoe")

        assert record_id > 0
        effective = engine.get_effective_completion_date(TOWER)
        assert effective.completion_type is RecordType.ACTUAL
        assert effective.completion_date == date(2025, 3, 31)

    def test_latest_assertion_wins(self, engine):
        engine.append_completion_date(TOWER, "A", date(2025, 3, 31))
        engine.append_completion_date(TOWER, "A", date(2025, 5, 31))

        assert engine.get_effective_completion_date(TOWER).completion_date == date(2025, 5, 31)

    def test_latest_wins_even_when_earlier(self, engine):
        """Effective means most recently asserted, not the largest date."""
        engine.append_completion_date(TOWER, "P", date(2025, 12, 31))
        engine.append_completion_date(TOWER, "P", date(2025, 9, 30))

        assert engine.get_effective_completion_date(TOWER).completion_date == date(2025, 9, 30)

    def test_actual_beats_projected(self, engine):
        engine.append_completion_date(TOWER, "A", date(2025, 4, 30))
        engine.append_completion_date(TOWER, "P", date(2025, 12, 31))

        effective = engine.get_effective_completion_date(TOWER)
        assert effective.completion_type is RecordType.ACTUAL
        assert effective.completion_date == date(2025, 4, 30)

    def test_history_is_preserved(self, engine, storage):
        engine.append_completion_date(TOWER, "A", date(2025, 3, 31))
        engine.append_completion_date(TOWER, "A", date(2025, 4, 30))

        with storage.read_session() as s:
            assert s.query(CompletionDateRecord).count() == 2

    def test_keys_are_independent(self, engine):
        engine.append_completion_date(TOWER, "A", date(2025, 3, 31))
        assert engine.get_effective_completion_date(MALL) is None

    def test_rejects_non_month_end(self, engine):
        with pytest.raises(NotMonthEndError) as exc_info:
            engine.append_completion_date(TOWER, "A", date(2025, 3, 30))
        assert exc_info.value.code == "VALIDATION_ERROR"

    def test_rejects_future_actual(self, engine):
        with pytest.raises(CompletionDateRuleError):
            engine.append_completion_date(TOWER, "A", date(2025, 7, 31))

    def test_rejects_past_projected(self, engine):
        with pytest.raises(CompletionDateRuleError):
            engine.append_completion_date(TOWER, "P", date(2025, 5, 31))

    def test_rejects_unknown_key(self, engine):
        with pytest.raises(ProjectPhaseNotFoundError) as exc_info:
            engine.append_completion_date(
                ProjectPhaseKey("C01", "NOPE", "X"), "A", date(2025, 3, 31)
            )
        assert exc_info.value.code == "REFERENCE_ERROR"

    def test_refuses_when_conflicts_exist(self, engine, storage):
        engine.append_completion_date(TOWER, "A", date(2025, 5, 31))
        seed_poc(storage, TOWER, [(2025, 5, 100)])

        with pytest.raises(UnconfirmedConflictError):
            engine.append_completion_date(TOWER, "A", date(2025, 3, 31))

        assert engine.get_effective_completion_date(TOWER).completion_date == date(2025, 5, 31)
        assert active_rows(storage, TOWER) == [(2025, 5, 100)]

    def test_emits_audit_event_after_commit(self, engine, audit):
        engine.append_completion_date(TOWER, "A", date(2025, 3, 31), actor="jdoe")

        events = audit.recent("completion_date_appended")
        assert len(events) == 1
        assert events[0].payload['completion_date'] == "2025-03-31"
        assert events[0].payload['actor'] == "jdoe"


class TestLedgerImmutability:
    """Ledger rows cannot be changed or removed once written."""

    def test_update_is_rejected(self, engine, storage):
        engine.append_completion_date(TOWER, "A", date(2025, 3, 31))

        with pytest.raises(ImmutableRecordError):
            with storage.transaction() as s:
                row = s.query(CompletionDateRecord).first()
                row.completion_date = date(2025, 4, 30)

        assert engine.get_effective_completion_date(TOWER).completion_date == date(2025, 3, 31)

    def test_delete_is_rejected(self, engine, storage):
        engine.append_completion_date(TOWER, "A", date(2025, 3, 31))

        with pytest.raises(ImmutableRecordError):
            with storage.transaction() as s:
                s.delete(s.query(CompletionDateRecord).first())

        with storage.read_session() as s:
            assert s.query(CompletionDateRecord).count() == 1
