"""
Tests for sales recognition dates.
"""
from datetime import date

from poc_tracker.domain.entities import SalesRecognitionEntry


class TestSalesRecognition:
    """Upsert-by-account batches with collected row errors."""

    def test_insert_and_list(self, engine):
        result = engine.record_sales_recognition([
            SalesRecognitionEntry("ACC-002", date(2025, 4, 30)),
            SalesRecognitionEntry("ACC-001", date(2025, 3, 31)),
        ])

        assert result.inserted_count == 2
        assert engine.list_sales_recognition() == [
            {'account_no': "ACC-001", 'recognition_date': "2025-03-31"},
            {'account_no': "ACC-002", 'recognition_date': "2025-04-30"},
        ]

    def test_update_by_account(self, engine):
        engine.record_sales_recognition([SalesRecognitionEntry("ACC-001", date(2025, 3, 31))])
        result = engine.record_sales_recognition([SalesRecognitionEntry(" ACC-001 ", date(2025, 4, 30))])

        assert result.updated_count == 1
        assert engine.list_sales_recognition()[0]['recognition_date'] == "2025-04-30"

    def test_row_errors(self, engine):
        result = engine.record_sales_recognition([
            SalesRecognitionEntry("", date(2025, 3, 31), row_number=2),
            SalesRecognitionEntry("X" * 31, date(2025, 3, 31), row_number=3),
            SalesRecognitionEntry("ACC-001", date(2025, 3, 15), row_number=4),
            SalesRecognitionEntry("ACC-001", date(2025, 6, 30), row_number=5),
            SalesRecognitionEntry("ACC-001", date(2025, 5, 31), row_number=6),
        ])

        assert [e.row_number for e in result.errors] == [2, 3, 4, 5]
        assert all(e.code == "VALIDATION_ERROR" for e in result.errors)
        assert result.succeeded_count == 1

    def test_default_cutoff_bounds_dates(self, engine):
        """TODAY is 2025-06-15, so the default cutoff is 2025-05-31."""
        result = engine.record_sales_recognition([SalesRecognitionEntry("ACC-001", date(2025, 6, 30))])
        assert result.error_count == 1

        result = engine.record_sales_recognition(
            [SalesRecognitionEntry("ACC-001", date(2025, 6, 30))], cutoff_date=date(2025, 6, 30)
        )
        assert result.inserted_count == 1

    def test_list_up_to_cutoff(self, engine):
        engine.record_sales_recognition([
            SalesRecognitionEntry("ACC-001", date(2025, 3, 31)),
            SalesRecognitionEntry("ACC-002", date(2025, 5, 31)),
        ])

        rows = engine.list_sales_recognition(cutoff_date=date(2025, 4, 30))
        assert [r['account_no'] for r in rows] == ["ACC-001"]
