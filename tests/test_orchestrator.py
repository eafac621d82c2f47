"""
Orchestrator Tests
==================
End-to-end pipeline runs against a real on-disk repo with the language
model and tracker mocked.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.agents.file_selector import FileSelector
from app.agents.orchestrator import BugReportOrchestrator, build_orchestrator
from app.agents.report_synthesizer import FALLBACK_ROOT_CAUSE, ReportSynthesizer
from app.core.config import Settings
from app.llm.client import LLMClient
from app.models.report_record import TicketRef
from app.services.report_store import InMemoryReportStore, ReportNotFoundError, ReportStore
from app.services.ticket_publisher import LinearTicketPublisher, TicketError


def _publisher(ticket=None, **kwargs) -> MagicMock:
    publisher = MagicMock(spec=LinearTicketPublisher)
    publisher.publish = AsyncMock(return_value=ticket, **kwargs)
    publisher.add_comment = AsyncMock(return_value=True)
    publisher.close = AsyncMock()
    return publisher


def _orchestrator(publisher=None, client=None):
    local = InMemoryReportStore()
    orchestrator = BugReportOrchestrator(
        store=ReportStore(local=local),
        selector=FileSelector(client),
        synthesizer=ReportSynthesizer(client),
        publisher=publisher or _publisher(),
    )
    return orchestrator, local


TICKET = TicketRef(id="iss_1", number=42, url="https://linear.app/acme/issue/ENG-42")


# ---------------------------------------------------------------------------
# Analyze
# ---------------------------------------------------------------------------
class TestAnalyze:

    def test_degraded_run_without_any_integration(self, sample_repo):
        orchestrator, local = _orchestrator()

        result = asyncio.run(orchestrator.analyze(
            "Login button does nothing on click", str(sample_repo),
        ))

        assert result["pending_confirmation"] is True
        assert result["report_json"]["title"] == "Login button does nothing on click"
        assert result["report_json"]["suspected_root_cause"] == FALLBACK_ROOT_CAUSE
        assert result["needs_more_info"]["confidence"] == "medium-low"
        assert result["files_analyzed"][0].endswith("button.js")
        assert result["report_markdown"].startswith("# Bug Report: Login button does nothing on click")

        stored = local.peek(result["id"])
        assert stored.status == "open"
        assert stored.feedback_requested is True
        assert stored.files_analyzed == result["files_analyzed"]

    def test_model_backed_specific_report_needs_nothing(self, sample_repo):
        client = MagicMock(spec=LLMClient)
        client.available = True
        client.complete_json = AsyncMock(side_effect=[
            {"files": [str(sample_repo / "src" / "login" / "button.js")]},
            {
                "title": "Login click handler is empty",
                "suspected_root_cause": "onClick in src/login/button.js never dispatches submit.",
                "evidence": [
                    "src/login/button.js:1 onClick has an empty body",
                    "src/login/form.jsx:1 LoginForm never subscribes to onClick",
                ],
                "next_steps": ["Dispatch submit from onClick"],
            },
        ])
        orchestrator, local = _orchestrator(client=client)

        result = asyncio.run(orchestrator.analyze("Login button does nothing", str(sample_repo)))

        assert result["needs_more_info"] is None
        assert result["report_json"]["title"] == "Login click handler is empty"
        assert len(result["files_analyzed"]) == 1
        assert local.peek(result["id"]).feedback_requested is False
        assert client.complete_json.await_count == 2

    def test_missing_repository_still_produces_report(self, tmp_path):
        orchestrator, _ = _orchestrator()
        result = asyncio.run(orchestrator.analyze("Crash on save", str(tmp_path / "nope")))

        assert result["files_analyzed"] == []
        assert result["report_json"]["suspected_root_cause"] == FALLBACK_ROOT_CAUSE

    @pytest.mark.parametrize("description, repo_path, message", [
        ("", "/repo", "Bug description is required"),
        ("   ", "/repo", "Bug description is required"),
        ("Crash", None, "Repository path is required"),
    ])
    def test_required_fields(self, description, repo_path, message):
        orchestrator, local = _orchestrator()
        with pytest.raises(ValueError, match=message):
            asyncio.run(orchestrator.analyze(description, repo_path))
        assert len(local) == 0

    def test_reporter_identity_and_screenshots_are_kept(self, sample_repo):
        orchestrator, local = _orchestrator()
        result = asyncio.run(orchestrator.analyze(
            "Login fails", str(sample_repo),
            screenshots=["https://img/1.png"], email="sam@example.com", name="Sam",
        ))
        stored = local.peek(result["id"])

        assert result["screenshots"] == ["https://img/1.png"]
        assert stored.reporter_email == "sam@example.com"
        assert stored.reporter_name == "Sam"
        assert "Provided screenshots (analysis unavailable)" in stored.content_json.evidence


# ---------------------------------------------------------------------------
# Confirm
# ---------------------------------------------------------------------------
class TestConfirm:

    def _analyzed(self, orchestrator, sample_repo) -> str:
        result = asyncio.run(orchestrator.analyze("Login button does nothing", str(sample_repo)))
        return result["id"]

    def test_confirm_publishes_and_links_ticket(self, sample_repo):
        publisher = _publisher(TICKET)
        orchestrator, local = _orchestrator(publisher)
        report_id = self._analyzed(orchestrator, sample_repo)

        result = asyncio.run(orchestrator.confirm(report_id, team_id="team_1"))

        assert result["confirmed"] is True
        assert result["linear_issue"] == {"id": "iss_1", "number": 42, "url": TICKET.url}
        assert publisher.publish.await_args.kwargs["team_id"] == "team_1"

        stored = local.peek(report_id)
        assert stored.status == "confirmed"
        assert stored.linear_issue_id == "iss_1"
        assert stored.last_updated is not None

    def test_confirm_without_tracker(self, sample_repo):
        orchestrator, local = _orchestrator(_publisher(None))
        report_id = self._analyzed(orchestrator, sample_repo)

        result = asyncio.run(orchestrator.confirm(report_id))

        assert result["linear_issue"] is None
        assert local.peek(report_id).status == "confirmed"
        assert local.peek(report_id).linear_issue_id is None

    def test_confirm_unknown_report(self):
        publisher = _publisher(TICKET)
        orchestrator, local = _orchestrator(publisher)

        with pytest.raises(ReportNotFoundError) as exc_info:
            asyncio.run(orchestrator.confirm("report-0-0"))

        assert str(exc_info.value) == "Bug report not found"
        publisher.publish.assert_not_called()
        assert len(local) == 0

    def test_ticket_failure_leaves_report_open(self, sample_repo):
        orchestrator, local = _orchestrator(_publisher(side_effect=TicketError("HTTP 500")))
        report_id = self._analyzed(orchestrator, sample_repo)

        with pytest.raises(TicketError):
            asyncio.run(orchestrator.confirm(report_id))
        assert local.peek(report_id).status == "open"

    def test_confirm_requires_id(self):
        orchestrator, _ = _orchestrator()
        with pytest.raises(ValueError, match="Report ID is required"):
            asyncio.run(orchestrator.confirm(""))


# ---------------------------------------------------------------------------
# Additional information
# ---------------------------------------------------------------------------
class TestAdditionalInfo:

    def test_answers_merge_across_submissions(self, sample_repo):
        orchestrator, local = _orchestrator()
        report_id = asyncio.run(orchestrator.analyze("Login fails", str(sample_repo)))["id"]

        asyncio.run(orchestrator.submit_additional_info(report_id, {"environment": "Chrome"}))
        result = asyncio.run(orchestrator.submit_additional_info(
            report_id, {"environment": "Firefox", "version": "2.1"},
        ))

        assert result == {"message": "Additional information submitted successfully", "id": report_id}
        stored = local.peek(report_id)
        info = stored.content_json.additional_info
        assert info["environment"] == "Firefox"
        assert info["version"] == "2.1"
        assert "submitted_at" in info
        assert stored.feedback_requested is False
        assert stored.status == "open"

    def test_answers_are_commented_on_linked_ticket(self, sample_repo):
        publisher = _publisher(TICKET)
        orchestrator, _ = _orchestrator(publisher)
        report_id = asyncio.run(orchestrator.analyze("Login fails", str(sample_repo)))["id"]
        asyncio.run(orchestrator.confirm(report_id))

        asyncio.run(orchestrator.submit_additional_info(report_id, {"screenshot": "https://img/2.png"}))

        publisher.add_comment.assert_awaited_once_with("iss_1", {"screenshot": "https://img/2.png"})

    def test_no_comment_without_ticket(self, sample_repo):
        publisher = _publisher(None)
        orchestrator, _ = _orchestrator(publisher)
        report_id = asyncio.run(orchestrator.analyze("Login fails", str(sample_repo)))["id"]

        asyncio.run(orchestrator.submit_additional_info(report_id, {"environment": "Edge"}))

        publisher.add_comment.assert_not_called()

    def test_unknown_report_is_not_found(self):
        orchestrator, _ = _orchestrator()
        with pytest.raises(ReportNotFoundError):
            asyncio.run(orchestrator.submit_additional_info("report-0-0", {"environment": "x"}))

    def test_empty_answers_rejected(self):
        orchestrator, _ = _orchestrator()
        with pytest.raises(ValueError, match="Additional information is required"):
            asyncio.run(orchestrator.submit_additional_info("report-0-0", {}))


def test_build_orchestrator_shares_one_client():
    orchestrator = build_orchestrator(Settings(openai_api_key="sk-test"))
    assert orchestrator.selector.client is orchestrator.synthesizer.client
    assert orchestrator.selector.client.available


def test_build_orchestrator_without_key_has_no_client():
    orchestrator = build_orchestrator(Settings())
    assert orchestrator.selector.client is None
    assert orchestrator.store.remote is None
    assert not orchestrator.publisher.configured
