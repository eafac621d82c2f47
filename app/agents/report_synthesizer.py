"""
Report Synthesizer
==================
Turns a bug submission plus code snippets into a StructuredReport.

Synthesis Strategy (tried in order):
    1. model    — one JSON-mode completion validated against the
                  four-field schema (title, suspected_root_cause,
                  evidence[], next_steps[]); any shape mismatch is a failure
    2. fallback — deterministic report built from the description alone

Safety Net:
    Any unexpected exception while synthesising yields MINIMAL_REPORT.
    ``synthesize`` never raises.
"""
import logging
from typing import Dict, Optional

from pydantic import ValidationError

from app.core.constants import TITLE_MAX_LENGTH
from app.llm.client import LLMClient, LLMError
from app.llm.prompts import REPORT_SYSTEM_PROMPT, build_report_user_prompt
from app.models.bug_report import BugSubmission, StructuredReport
from app.utils.fallback_chain import StrategyResult, run_chain

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Fixed report text
# ---------------------------------------------------------------------------
FALLBACK_ROOT_CAUSE = "Unable to generate detailed analysis without AI integration."

FALLBACK_NEXT_STEPS = [
    "Review the reported description manually",
    "Check the relevant files identified in the report",
    "Implement proper error handling and validation",
]

MINIMAL_REPORT = StructuredReport(
    title="Bug Report Analysis",
    suspected_root_cause="Analysis could not be completed due to a technical issue.",
    evidence=["Error during bug report generation"],
    next_steps=["Try again later or contact support for assistance"],
)


def truncate_title(description: str, max_length: int = TITLE_MAX_LENGTH) -> str:
    """First ``max_length`` characters, with an ellipsis when cut."""
    if len(description) > max_length:
        return description[:max_length] + "..."
    return description


def build_fallback_report(submission: BugSubmission) -> StructuredReport:
    """Deterministic report used when the model is unavailable or fails."""
    screenshot_line = (
        "Provided screenshots (analysis unavailable)"
        if submission.screenshots
        else "No screenshots provided"
    )
    return StructuredReport(
        title=truncate_title(submission.description),
        suspected_root_cause=FALLBACK_ROOT_CAUSE,
        evidence=[
            "Reported bug description",
            "Available code files (analysis unavailable)",
            screenshot_line,
        ],
        next_steps=list(FALLBACK_NEXT_STEPS),
    )


def parse_structured_report(data: dict) -> StructuredReport:
    """
    Validate model output against the four-field schema.

    Raises
    ------
    LLMError
        If a field is missing or has the wrong type.
    """
    try:
        report = StructuredReport.model_validate(data)
    except ValidationError as e:
        raise LLMError(f"Report does not match schema: {e.error_count()} error(s)") from e
    # Follow-up answers are only ever written by the reporter
    report.additional_info = None
    return report


class ReportSynthesizer:
    """
    Produces StructuredReports.

    Parameters
    ----------
    client : LLMClient or None
        Completion client; when missing or unconfigured only the
        deterministic fallback is used.
    """

    def __init__(self, client: Optional[LLMClient] = None) -> None:
        self.client = client

    async def _synthesize_with_model(
        self, submission: BugSubmission, snippets: Dict[str, str]
    ) -> StrategyResult[StructuredReport]:
        user_prompt = build_report_user_prompt(
            description=submission.description,
            snippets=snippets,
            logs=submission.logs,
            steps=submission.steps,
            additional_context=submission.additional_context,
            screenshots=submission.screenshots,
        )
        try:
            data = await self.client.complete_json(REPORT_SYSTEM_PROMPT, user_prompt)
            return StrategyResult.success(parse_structured_report(data))
        except LLMError as e:
            logger.error("Error using model for report generation: %s", e)
            return StrategyResult.failed(str(e))

    async def _synthesize_fallback(self, submission: BugSubmission) -> StrategyResult[StructuredReport]:
        logger.info("Using fallback bug report generation (no AI)")
        return StrategyResult.success(build_fallback_report(submission))

    async def synthesize(self, submission: BugSubmission, snippets: Dict[str, str]) -> StructuredReport:
        """Build a report for ``submission``. Never raises."""
        try:
            strategies = []
            if self.client is not None and self.client.available:
                strategies.append(
                    ("model", lambda: self._synthesize_with_model(submission, snippets))
                )
            strategies.append(("fallback", lambda: self._synthesize_fallback(submission)))

            result = await run_chain(strategies)
            if result.ok:
                return result.value
            logger.error("All synthesis strategies failed: %s", result.error)
        except Exception as e:
            logger.error("Error generating bug report: %s", e, exc_info=True)
        return MINIMAL_REPORT.model_copy(deep=True)
