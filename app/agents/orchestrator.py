"""
Orchestrator
============
Sequences the bug-report pipeline for each HTTP request.

Report lifecycle:
    analyze                 → record stored with status "open"
                              (response carries pending_confirmation: true)
    submit_additional_info  → answers merged into content_json.additional_info,
                              feedback_requested cleared, status unchanged
    confirm                 → ticket published, status "confirmed"

Analyze pipeline:
    1. Validate description / repo path
    2. FileSelector: list repo + shortlist ≤ 10 files
    3. load_snippets: read each shortlisted file
    4. ReportSynthesizer: StructuredReport (model or fallback)
    5. render_markdown
    6. check_needs_more_info
    7. ReportStore.create

Known gap:
    confirm is NOT idempotent with respect to ticket creation. Confirming
    an already-confirmed report publishes another ticket.

Collaborators are injected; build_orchestrator() wires the production set
from Settings once at startup.
"""
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from app.agents.file_selector import FileSelector
from app.agents.report_synthesizer import ReportSynthesizer
from app.agents.snippet_loader import load_snippets
from app.core.config import Settings
from app.core.constants import (
    MSG_DESCRIPTION_REQUIRED,
    MSG_INFO_REQUIRED,
    MSG_INFO_SUBMITTED,
    MSG_REPO_PATH_REQUIRED,
    MSG_REPORT_ID_REQUIRED,
    STATUS_CONFIRMED,
)
from app.core.output_formatter import render_markdown
from app.llm.client import LLMClient, ProviderConfig
from app.models.bug_report import BugSubmission
from app.models.report_record import ReportRecord, utc_now_iso
from app.parser.info_gate import check_needs_more_info
from app.services.repo_service import FileSystem
from app.services.report_store import ReportStore, build_report_store
from app.services.ticket_publisher import LinearTicketPublisher, build_ticket_publisher

logger = logging.getLogger(__name__)


class BugReportOrchestrator:
    """
    Request-level coordinator for analyze / follow-up / confirm / fetch.

    Parameters
    ----------
    store : ReportStore
        Report persistence (remote-first with in-memory fallback).
    selector : FileSelector or None
        Relevant-file shortlister (keyword-only if not provided).
    synthesizer : ReportSynthesizer or None
        Report generator (fallback-only if not provided).
    publisher : LinearTicketPublisher or None
        Tracker integration (disabled if not provided).
    fs : FileSystem or None
        Repository file access.
    """

    def __init__(
        self,
        store: ReportStore,
        selector: Optional[FileSelector] = None,
        synthesizer: Optional[ReportSynthesizer] = None,
        publisher: Optional[LinearTicketPublisher] = None,
        fs: Optional[FileSystem] = None,
    ) -> None:
        self.store = store
        self.selector = selector if selector is not None else FileSelector()
        self.synthesizer = synthesizer if synthesizer is not None else ReportSynthesizer()
        self.publisher = publisher if publisher is not None else LinearTicketPublisher()
        self.fs = fs if fs is not None else FileSystem()

    # -------------------------------------------------------------------
    # Analyze
    # -------------------------------------------------------------------
    async def analyze(
        self,
        description: Optional[str],
        repo_path: Optional[str],
        logs: Optional[str] = None,
        steps: Optional[str] = None,
        additional_context: Optional[str] = None,
        screenshots: Optional[Iterable[str]] = None,
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Analyse a new submission and store it pending confirmation.

        Raises
        ------
        ValueError
            If the description or repository path is missing.
        """
        if not description or not description.strip():
            raise ValueError(MSG_DESCRIPTION_REQUIRED)
        if not repo_path:
            raise ValueError(MSG_REPO_PATH_REQUIRED)

        submission = BugSubmission(
            description=description,
            repo_path=repo_path,
            logs=logs,
            steps=steps,
            additional_context=additional_context,
            screenshots=list(screenshots or []),
            email=email,
            name=name,
        )
        logger.info("Analyzing bug report for repo %s", repo_path)

        relevant_files = await self.selector.search_codebase(
            submission.description, submission.repo_path, self.fs
        )
        snippets = await load_snippets(relevant_files, self.fs)
        report = await self.synthesizer.synthesize(submission, snippets)
        markdown = render_markdown(report)
        info_request = check_needs_more_info(report)

        record = await self.store.create(
            report,
            markdown,
            reporter_email=submission.email,
            reporter_name=submission.name,
            files_analyzed=relevant_files,
            screenshots=submission.screenshots,
            feedback_requested=info_request is not None,
        )
        logger.info(
            "Stored report %s (%d file(s), follow-up %s)",
            record.id, len(relevant_files), "requested" if info_request else "not needed",
        )

        return {
            "id": record.id,
            "report_json": report.to_json(),
            "report_markdown": markdown,
            "files_analyzed": relevant_files,
            "screenshots": list(submission.screenshots),
            "needs_more_info": info_request.model_dump() if info_request else None,
            "timestamp": utc_now_iso(),
            "pending_confirmation": True,
        }

    # -------------------------------------------------------------------
    # Confirm
    # -------------------------------------------------------------------
    async def confirm(self, report_id: Optional[str], team_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Publish a stored report to the tracker and mark it confirmed.

        Raises
        ------
        ValueError
            If ``report_id`` is empty.
        ReportNotFoundError
            If the report does not exist (nothing is mutated).
        TicketError
            If the tracker rejects issue creation.
        """
        if not report_id:
            raise ValueError(MSG_REPORT_ID_REQUIRED)

        record = await self.store.get(report_id)

        ticket = await self.publisher.publish(
            record.content_json,
            record.content_markdown,
            record.files_analyzed,
            record.screenshots,
            team_id=team_id,
        )

        changes: Dict[str, Any] = {"status": STATUS_CONFIRMED}
        if ticket is not None:
            changes.update({
                "linear_issue_id": ticket.id,
                "linear_issue_number": ticket.number,
                "linear_issue_url": ticket.url,
            })
        await self.store.update(report_id, changes, current=record)
        logger.info("Confirmed report %s (ticket: %s)", report_id, ticket.url if ticket else "none")

        return {
            "id": report_id,
            "report_json": record.content_json.to_json(),
            "report_markdown": record.content_markdown,
            "files_analyzed": list(record.files_analyzed),
            "screenshots": list(record.screenshots),
            "linear_issue": (
                {"id": ticket.id, "number": ticket.number, "url": ticket.url}
                if ticket else None
            ),
            "timestamp": utc_now_iso(),
            "confirmed": True,
        }

    # -------------------------------------------------------------------
    # Follow-up answers
    # -------------------------------------------------------------------
    async def submit_additional_info(
        self, report_id: Optional[str], responses: Optional[Mapping[str, Any]]
    ) -> Dict[str, Any]:
        """
        Merge follow-up answers into the report.

        Later submissions overwrite earlier answers of the same type and keep
        the rest. When the report already has a tracker ticket, the answers
        are also posted there as a comment.
        """
        if not report_id:
            raise ValueError(MSG_REPORT_ID_REQUIRED)
        if not responses:
            raise ValueError(MSG_INFO_REQUIRED)

        record = await self.store.get(report_id)

        content = record.content_json.model_copy(deep=True)
        content.additional_info = {
            **(content.additional_info or {}),
            **dict(responses),
            "submitted_at": utc_now_iso(),
        }
        updated = await self.store.update(
            report_id,
            {"content_json": content.to_json(), "feedback_requested": False},
            current=record,
        )

        if record.linear_issue_id:
            await self.publisher.add_comment(record.linear_issue_id, responses)

        return {"message": MSG_INFO_SUBMITTED, "id": updated.id}

    async def get_report(self, report_id: str) -> ReportRecord:
        return await self.store.get(report_id)

    async def close(self) -> None:
        """Release outbound HTTP clients."""
        clients = {id(c): c for c in (self.selector.client, self.synthesizer.client) if c}
        for client in clients.values():
            await client.close()
        remote_close = getattr(self.store.remote, "close", None)
        if remote_close is not None:
            await remote_close()
        await self.publisher.close()


def build_orchestrator(settings: Settings) -> BugReportOrchestrator:
    """Wire production collaborators from configuration."""
    client = LLMClient(ProviderConfig.from_settings(settings)) if settings.openai_configured else None
    return BugReportOrchestrator(
        store=build_report_store(settings),
        selector=FileSelector(client),
        synthesizer=ReportSynthesizer(client),
        publisher=build_ticket_publisher(settings),
        fs=FileSystem(),
    )
