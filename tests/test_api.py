"""
Tests for the REST API.
"""
import pytest
from datetime import date
from fastapi.testclient import TestClient

from poc_tracker.main import create_app

from conftest import TOWER, active_rows, seed_poc

TOWER_JSON = {"company_code": "C01", "project": "TWR", "phase_code": "P1"}


@pytest.fixture
def client(engine):
    return TestClient(create_app(engine))


@pytest.fixture
def scenario_b(engine, storage):
    engine.append_completion_date(TOWER, "A", date(2025, 5, 31))
    seed_poc(storage, TOWER, [(2025, 3, 20), (2025, 4, 50), (2025, 5, 100)])
    return engine


class TestCompletionDateEndpoints:
    """Tests for /api/v1/completion-dates."""

    def test_check_then_commit(self, client, scenario_b, storage):
        entries = [{**TOWER_JSON, "completion_type": "A", "completion_date": "2025-03-31"}]

        response = client.post("/api/v1/completion-dates/conflicts", json={"entries": entries})
        assert response.status_code == 200
        data = response.json()
        assert data["has_conflicts"] is True
        assert data["conflicts"][0]["poc_count"] == 2

        response = client.post("/api/v1/completion-dates", json={
            "entries": entries,
            "confirmed_conflicts": data["conflicts"],
            "actor": "jdoe",
        })
        assert response.status_code == 201
        result = response.json()
        assert result["inserted_count"] == 1
        assert result["deactivated_count"] == 2
        assert active_rows(storage, TOWER) == [(2025, 3, 20)]

    def test_unconfirmed_commit_is_409(self, client, scenario_b):
        response = client.post("/api/v1/completion-dates", json={
            "entries": [{**TOWER_JSON, "completion_date": "2025-03-31"}],
        })

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["code"] == "CONFLICT_ERROR"
        assert len(detail["conflicts"]) == 1

    def test_row_errors_are_reported(self, client):
        response = client.post("/api/v1/completion-dates", json={
            "entries": [
                {**TOWER_JSON, "completion_date": "2025-03-30"},
                {**TOWER_JSON, "completion_date": "2025-03-31"},
            ],
        })

        assert response.status_code == 201
        result = response.json()
        assert result["succeeded_count"] == 1
        assert result["errors"][0]["row_number"] == 1

    def test_request_validation(self, client):
        response = client.post("/api/v1/completion-dates/conflicts", json={"entries": []})
        assert response.status_code == 422

    def test_effective(self, client, scenario_b):
        response = client.get("/api/v1/completion-dates/effective", params=TOWER_JSON)

        assert response.status_code == 200
        assert response.json()["completion_date"] == "2025-05-31"
        assert response.json()["completion_type"] == "A"

    def test_effective_missing(self, client):
        response = client.get("/api/v1/completion-dates/effective", params=TOWER_JSON)
        assert response.status_code == 404

    def test_listing(self, client, scenario_b):
        response = client.get("/api/v1/completion-dates", params={"company_code": "C01"})
        assert response.json()["total"] == 1


class TestPOCEndpoints:
    """Tests for /api/v1/poc."""

    def test_upsert(self, client, scenario_b):
        response = client.post("/api/v1/poc", json={
            **TOWER_JSON, "year": 2025, "month": 2, "value": 15, "cutoff_date": "2025-05-31",
        })

        assert response.status_code == 200
        assert response.json()["type"] == "A"
        assert response.json()["created"] is True

    def test_missing_completion_date_is_400(self, client):
        response = client.post("/api/v1/poc", json={**TOWER_JSON, "year": 2025, "month": 2, "value": 15})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "PRECONDITION_ERROR"

    def test_out_of_range_is_422(self, client, scenario_b):
        response = client.post("/api/v1/poc", json={**TOWER_JSON, "year": 2025, "month": 2, "value": 101})

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "VALIDATION_ERROR"

    def test_unknown_key_is_404(self, client):
        response = client.post("/api/v1/poc", json={
            "company_code": "C01", "project": "NOPE", "year": 2025, "month": 2, "value": 15,
        })
        assert response.status_code == 404

    def test_batch(self, client, scenario_b):
        response = client.post("/api/v1/poc/batch", json={
            "entries": [
                {**TOWER_JSON, "year": 2025, "month": 1, "value": 5},
                {**TOWER_JSON, "year": 2025, "month": 6, "value": 100},
            ],
            "cutoff_date": "2025-05-31",
        })

        result = response.json()
        assert response.status_code == 200
        assert result["succeeded_count"] == 1
        assert result["errors"][0]["row_number"] == 2

    def test_report(self, client, scenario_b):
        response = client.get("/api/v1/poc/report", params={**TOWER_JSON, "cutoff_date": "2025-04-30"})

        data = response.json()
        assert data["redistribution_pending"] is False
        assert [r["month"] for r in data["rows"]] == [3, 4]

    def test_report_pending_redistribution(self, client, scenario_b):
        entries = [{**TOWER_JSON, "completion_date": "2025-03-31"}]
        conflicts = client.post("/api/v1/completion-dates/conflicts", json={"entries": entries}).json()["conflicts"]
        client.post("/api/v1/completion-dates", json={"entries": entries, "confirmed_conflicts": conflicts})

        data = client.get("/api/v1/poc/report", params={**TOWER_JSON, "cutoff_date": "2025-05-31"}).json()
        assert data["redistribution_pending"] is True
        assert data["orphaned_total"] == 150

        pending = client.get("/api/v1/redistributions", params={"company_code": "C01"}).json()
        assert pending["total"] == 1

    def test_options(self, client, scenario_b):
        assert client.get("/api/v1/poc/options").json()["projects"] == ["TWR"]


class TestOtherEndpoints:
    """Sales recognition and health."""

    def test_sales_recognition(self, client):
        response = client.post("/api/v1/sales-recognition", json={
            "entries": [{"account_no": "ACC-001", "recognition_date": "2025-03-31"}],
        })
        assert response.json()["inserted_count"] == 1
        assert client.get("/api/v1/sales-recognition").json()["total"] == 1

    def test_health(self, client):
        response = client.get("/api/v1/health")
        assert response.json() == {"status": "ok", "database": "connected"}
