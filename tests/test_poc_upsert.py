"""
Tests for POC writes.

Tests:
1. Completion date preconditions (Scenarios A and C)
2. Classification and write-by-natural-key (idempotence)
3. Value/period validation
4. Batch processing with collected row errors
"""
import pytest
from datetime import date

from poc_tracker.models import POCRecord, RecordType
from poc_tracker.domain.entities import POCEntry, ProjectPhaseKey
from poc_tracker.domain.exceptions import (
    CompletionDateExceededError,
    MissingCompletionDateError,
    POCValueOutOfRangeError,
    PreconditionError,
    ProjectPhaseNotFoundError,
    ValidationError,
)
from poc_tracker.engine import CompletionEngine

from conftest import MALL, TODAY, TOWER, active_rows

CUTOFF = date(2025, 5, 31)


@pytest.fixture
def completed(engine):
    """TOWER with an Actual completion date of 2025-03-31."""
    engine.append_completion_date(TOWER, "A", date(2025, 3, 31))
    return engine


class TestPreconditions:
    """Completion date preconditions for POC writes."""

    def test_scenario_a_full_completion_after_date(self, completed):
        with pytest.raises(PreconditionError) as exc_info:
            completed.upsert_poc(TOWER, 2025, 4, 100, cutoff_date=CUTOFF)

        assert isinstance(exc_info.value, CompletionDateExceededError)
        assert exc_info.value.code == "PRECONDITION_ERROR"

    def test_scenario_c_no_completion_date(self, engine):
        with pytest.raises(PreconditionError) as exc_info:
            engine.upsert_poc(TOWER, 2025, 6, 30, cutoff_date=CUTOFF)

        assert isinstance(exc_info.value, MissingCompletionDateError)
        assert exc_info.value.message.startswith("POC requires a completion date first")

    def test_full_completion_in_completion_month(self, completed):
        state = completed.upsert_poc(TOWER, 2025, 3, 100, cutoff_date=CUTOFF)
        assert state.value == 100

    def test_partial_value_after_completion_date(self, completed):
        """Only 100% is bounded by the completion date."""
        state = completed.upsert_poc(TOWER, 2025, 6, 99.5, cutoff_date=CUTOFF)
        assert state.value == 99.5

    def test_projected_date_bounds_full_completion(self, engine):
        engine.append_completion_date(TOWER, "P", date(2025, 9, 30))

        engine.upsert_poc(TOWER, 2025, 9, 100, cutoff_date=CUTOFF)
        with pytest.raises(CompletionDateExceededError):
            engine.upsert_poc(TOWER, 2025, 10, 100, cutoff_date=CUTOFF)

    def test_unknown_key(self, completed):
        with pytest.raises(ProjectPhaseNotFoundError):
            completed.upsert_poc(ProjectPhaseKey("C01", "TWR", "P9"), 2025, 1, 10, cutoff_date=CUTOFF)

    def test_injected_allow_list(self, storage):
        engine = CompletionEngine(storage, key_exists=lambda c, p, ph: p == "OTHER", today=TODAY)

        with pytest.raises(ProjectPhaseNotFoundError):
            engine.upsert_poc(TOWER, 2025, 1, 10, cutoff_date=CUTOFF)
        assert engine.key_exists("C01", "OTHER", "") is True


class TestUpsert:
    """Classification and write-by-natural-key."""

    def test_insert_then_update(self, completed, storage):
        first = completed.upsert_poc(TOWER, 2025, 2, 40, cutoff_date=CUTOFF, actor="jdoe")
        second = completed.upsert_poc(TOWER, 2025, 2, 45, cutoff_date=CUTOFF, actor="asmith")

        assert first.created is True
        assert second.created is False
        assert second.id == first.id
        assert second.updated_by == "asmith"
        assert active_rows(storage, TOWER) == [(2025, 2, 45)]

    def test_idempotent(self, completed, storage):
        completed.upsert_poc(TOWER, 2025, 2, 40, cutoff_date=CUTOFF)
        completed.upsert_poc(TOWER, 2025, 2, 40, cutoff_date=CUTOFF)

        assert active_rows(storage, TOWER) == [(2025, 2, 40)]
        with storage.read_session() as s:
            assert s.query(POCRecord).count() == 1

    def test_classification(self, completed):
        actual = completed.upsert_poc(TOWER, 2025, 5, 60, cutoff_date=CUTOFF)
        projected = completed.upsert_poc(TOWER, 2025, 6, 70, cutoff_date=CUTOFF)

        assert actual.type is RecordType.ACTUAL
        assert projected.type is RecordType.PROJECTED

    def test_type_recomputed_on_update(self, completed):
        completed.upsert_poc(TOWER, 2025, 6, 70, cutoff_date=CUTOFF)
        state = completed.upsert_poc(TOWER, 2025, 6, 70, cutoff_date=date(2025, 6, 30))

        assert state.type is RecordType.ACTUAL

    def test_default_cutoff_is_previous_month_end(self, completed):
        assert completed.default_cutoff() == date(2025, 5, 31)
        assert completed.upsert_poc(TOWER, 2025, 5, 10).type is RecordType.ACTUAL
        assert completed.upsert_poc(TOWER, 2025, 6, 10).type is RecordType.PROJECTED

    def test_empty_phase_key(self, engine, storage):
        engine.append_completion_date(MALL, "A", date(2025, 4, 30))
        state = engine.upsert_poc(MALL, 2025, 4, 100, cutoff_date=CUTOFF)

        assert state.key.phase_code == ""
        assert active_rows(storage, MALL) == [(2025, 4, 100)]

    def test_audit_event(self, completed, audit):
        completed.upsert_poc(TOWER, 2025, 2, 40, cutoff_date=CUTOFF, actor="jdoe")

        events = audit.recent("poc_upserted")
        assert len(events) == 1
        assert events[0].payload['value'] == 40
        assert events[0].payload['created'] is True


class TestValidation:
    """Period and value validation."""

    @pytest.mark.parametrize("value", [-1, 100.01, 150, float("nan")])
    def test_value_out_of_range(self, completed, value):
        with pytest.raises(POCValueOutOfRangeError):
            completed.upsert_poc(TOWER, 2025, 2, value, cutoff_date=CUTOFF)

    @pytest.mark.parametrize("value", [0, 0.5, 100])
    def test_value_bounds_inclusive(self, completed, value):
        assert completed.upsert_poc(TOWER, 2025, 3, value, cutoff_date=CUTOFF).value == value

    @pytest.mark.parametrize("month", [0, 13])
    def test_month_out_of_range(self, completed, month):
        with pytest.raises(ValidationError):
            completed.upsert_poc(TOWER, 2025, month, 10, cutoff_date=CUTOFF)

    def test_year_before_minimum(self, completed):
        with pytest.raises(ValidationError) as exc_info:
            completed.upsert_poc(TOWER, 2010, 12, 10, cutoff_date=CUTOFF)
        assert "2011" in exc_info.value.message

    def test_validation_before_reference_check(self, engine):
        with pytest.raises(POCValueOutOfRangeError):
            engine.upsert_poc(ProjectPhaseKey("C01", "NOPE"), 2025, 1, 200, cutoff_date=CUTOFF)


class TestBatch:
    """Batch upserts collect row errors without aborting."""

    def test_counts_and_errors(self, completed, storage):
        entries = [
            POCEntry(TOWER, 2025, 1, 10, row_number=2),
            POCEntry(TOWER, 2025, 2, 200, row_number=3),
            POCEntry(TOWER, 2025, 3, 100, row_number=4),
            POCEntry(TOWER, 2025, 4, 100, row_number=5),
            POCEntry(TOWER, 2025, 7, 100.0 - 1, row_number=6),
            POCEntry(ProjectPhaseKey("C01", "NOPE"), 2025, 1, 10, row_number=7),
        ]
        result = completed.upsert_poc_batch(entries, CUTOFF)

        assert result.processed_count == 6
        assert result.succeeded_count == 3
        assert result.inserted_count == 3
        assert result.actual_count == 2
        assert result.projected_count == 1
        assert [(e.row_number, e.code) for e in result.errors] == [
            (3, "VALIDATION_ERROR"),
            (5, "PRECONDITION_ERROR"),
            (7, "REFERENCE_ERROR"),
        ]
        assert active_rows(storage, TOWER) == [(2025, 1, 10), (2025, 3, 100), (2025, 7, 99)]

    def test_later_rows_see_earlier_rows(self, completed, storage):
        entries = [
            POCEntry(TOWER, 2025, 1, 10),
            POCEntry(TOWER, 2025, 1, 20),
        ]
        result = completed.upsert_poc_batch(entries, CUTOFF)

        assert result.inserted_count == 1
        assert result.updated_count == 1
        assert active_rows(storage, TOWER) == [(2025, 1, 20)]

    def test_reupload_is_idempotent(self, completed, storage):
        entries = [POCEntry(TOWER, 2025, m, 10 * m) for m in (1, 2, 3)]
        completed.upsert_poc_batch(entries, CUTOFF)
        result = completed.upsert_poc_batch(entries, CUTOFF)

        assert result.updated_count == 3
        with storage.read_session() as s:
            assert s.query(POCRecord).count() == 3
