"""
API Tests
=========
HTTP surface exercised through FastAPI's TestClient with an in-memory
orchestrator and no external integrations.
"""
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.agents.orchestrator import BugReportOrchestrator
from app.core.config import Settings
from app.services.report_store import ReportStore
from main import create_app


def _client(raise_server_exceptions: bool = True, **settings_overrides) -> TestClient:
    settings = Settings(**settings_overrides)
    app = create_app(settings=settings, orchestrator=BugReportOrchestrator(store=ReportStore()))
    return TestClient(app, raise_server_exceptions=raise_server_exceptions)


@pytest.fixture
def client():
    return _client()


def _analyze(client: TestClient, repo, **extra):
    body = {"description": "Login button does nothing on click", "repoPath": str(repo)}
    body.update(extra)
    return client.post("/api/bug-report/analyze", json=body)


def test_health_check(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "message": "Bug Report AI API is running"}


# ---------------------------------------------------------------------------
# /analyze
# ---------------------------------------------------------------------------
def test_analyze_then_fetch(client, sample_repo):
    response = _analyze(client, sample_repo, additionalContext="Started after deploy")
    assert response.status_code == 200
    body = response.json()
    assert body["pending_confirmation"] is True
    assert body["needs_more_info"]["needs_more_info"] is True

    fetched = client.get(f"/api/bug-report/{body['id']}")
    assert fetched.status_code == 200
    row = fetched.json()
    assert row["id"] == body["id"]
    assert row["status"] == "open"
    assert row["content_json"] == body["report_json"]
    assert row["content_markdown"] == body["report_markdown"]


def test_analyze_missing_description_is_500(client, sample_repo):
    response = client.post("/api/bug-report/analyze", json={"repoPath": str(sample_repo)})
    assert response.status_code == 500
    assert response.json() == {
        "message": "An error occurred while analyzing the bug report",
        "error": "Bug description is required",
    }


def test_analyze_is_rate_limited(sample_repo):
    client = _client(rate_limit_max=2)
    statuses = [_analyze(client, sample_repo).status_code for _ in range(3)]

    assert statuses == [200, 200, 429]
    rejected = _analyze(client, sample_repo)
    assert rejected.text == "Too many bug reports submitted, please try again later."


def test_rate_limit_only_guards_analyze(sample_repo):
    client = _client(rate_limit_max=1)
    report_id = _analyze(client, sample_repo).json()["id"]

    for _ in range(3):
        assert client.get(f"/api/bug-report/{report_id}").status_code == 200


# ---------------------------------------------------------------------------
# /confirm
# ---------------------------------------------------------------------------
def test_confirm_requires_report_id(client):
    response = client.post("/api/bug-report/confirm", json={})
    assert response.status_code == 400
    assert response.json() == {"message": "Report ID is required"}


def test_confirm_unknown_report_is_500(client):
    response = client.post("/api/bug-report/confirm", json={"reportId": "report-0-0"})
    assert response.status_code == 500
    assert response.json()["error"] == "Bug report not found"


def test_confirm_without_tracker(client, sample_repo):
    report_id = _analyze(client, sample_repo).json()["id"]

    response = client.post("/api/bug-report/confirm", json={"reportId": report_id})

    assert response.status_code == 200
    body = response.json()
    assert body["confirmed"] is True
    assert body["linear_issue"] is None
    assert client.get(f"/api/bug-report/{report_id}").json()["status"] == "confirmed"


# ---------------------------------------------------------------------------
# /{id}/additional-info
# ---------------------------------------------------------------------------
def test_additional_info_requires_responses(client, sample_repo):
    report_id = _analyze(client, sample_repo).json()["id"]
    response = client.post(f"/api/bug-report/{report_id}/additional-info", json={"responses": {}})
    assert response.status_code == 400
    assert response.json() == {"message": "Additional information is required"}


def test_additional_info_is_stored(client, sample_repo):
    report_id = _analyze(client, sample_repo).json()["id"]

    response = client.post(
        f"/api/bug-report/{report_id}/additional-info",
        json={"responses": {"environment": "Chrome 126 on macOS"}},
    )

    assert response.status_code == 200
    assert response.json()["id"] == report_id
    row = client.get(f"/api/bug-report/{report_id}").json()
    assert row["content_json"]["additional_info"]["environment"] == "Chrome 126 on macOS"
    assert row["feedback_requested"] is False


def test_additional_info_unknown_report_is_500(client):
    response = client.post(
        "/api/bug-report/report-0-0/additional-info",
        json={"responses": {"environment": "x"}},
    )
    assert response.status_code == 500


# ---------------------------------------------------------------------------
# GET /{id}
# ---------------------------------------------------------------------------
def test_get_unknown_report_is_404(client):
    response = client.get("/api/bug-report/report-0-0")
    assert response.status_code == 404
    assert response.json() == {"message": "Bug report not found", "error": "Bug report not found"}


# ---------------------------------------------------------------------------
# Unhandled errors
# ---------------------------------------------------------------------------
def _break_rate_limiter(client: TestClient) -> None:
    limiter = MagicMock()
    limiter.hit.side_effect = RuntimeError("limiter exploded")
    client.app.state.rate_limiter = limiter


def test_unhandled_error_includes_detail_outside_production(sample_repo):
    client = _client(raise_server_exceptions=False)
    _break_rate_limiter(client)

    response = _analyze(client, sample_repo)

    assert response.status_code == 500
    assert response.json() == {
        "status": "error",
        "message": "Internal server error",
        "error": "limiter exploded",
    }


def test_unhandled_error_hides_detail_in_production(sample_repo):
    client = _client(raise_server_exceptions=False, app_env="production")
    _break_rate_limiter(client)

    response = _analyze(client, sample_repo)

    assert response.status_code == 500
    assert response.json() == {"status": "error", "message": "Internal server error"}
