"""
Bug Report API
==============
Routes under /api/bug-report.

    POST /analyze                 analyse a submission (rate limited)
    POST /confirm                 publish a stored report as a ticket
    POST /{id}/additional-info    attach follow-up answers
    GET  /{id}                    fetch a stored report

Error bodies are {"message": ..., "error": ...}. Validation of required
fields happens in the orchestrator, so a missing description or repoPath
on /analyze surfaces as a 500 with the descriptive message.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from app.agents.orchestrator import BugReportOrchestrator
from app.core.constants import (
    MSG_INFO_REQUIRED,
    MSG_NOT_FOUND,
    MSG_RATE_LIMITED,
    MSG_REPORT_ID_REQUIRED,
)
from app.services.rate_limiter import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bug-report", tags=["Bug Reports"])


# ---------------------------------------------------------------------------
# Request schemas (camelCase on the wire, matching the web form)
# ---------------------------------------------------------------------------
class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    description: Optional[str] = None
    logs: Optional[str] = None
    steps: Optional[str] = None
    repo_path: Optional[str] = Field(default=None, alias="repoPath")
    email: Optional[str] = None
    name: Optional[str] = None
    additional_context: Optional[str] = Field(default=None, alias="additionalContext")
    screenshots: Optional[List[str]] = None


class ConfirmRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    report_id: Optional[str] = Field(default=None, alias="reportId")


class AdditionalInfoRequest(BaseModel):
    responses: Optional[Dict[str, Any]] = None


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
def get_orchestrator(request: Request) -> BugReportOrchestrator:
    return request.app.state.orchestrator


def get_rate_limiter(request: Request) -> SlidingWindowRateLimiter:
    return request.app.state.rate_limiter


def get_team_id(request: Request) -> Optional[str]:
    return request.app.state.settings.linear_team_id


def _error(status_code: int, message: str, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message, "error": str(exc)})


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------
@router.post("/analyze")
async def analyze_bug_report(
    body: AnalyzeRequest,
    request: Request,
    orchestrator: BugReportOrchestrator = Depends(get_orchestrator),
    limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
):
    """Analyse a bug report without creating a ticket."""
    client_key = request.client.host if request.client else "unknown"
    if not limiter.hit(client_key):
        return PlainTextResponse(MSG_RATE_LIMITED, status_code=429)

    try:
        return await orchestrator.analyze(
            description=body.description,
            repo_path=body.repo_path,
            logs=body.logs,
            steps=body.steps,
            additional_context=body.additional_context,
            screenshots=body.screenshots,
            email=body.email,
            name=body.name,
        )
    except Exception as exc:
        logger.error("Route error - analyze bug report: %s", exc, exc_info=True)
        return _error(500, "An error occurred while analyzing the bug report", exc)


@router.post("/confirm")
async def confirm_bug_report(
    body: ConfirmRequest,
    orchestrator: BugReportOrchestrator = Depends(get_orchestrator),
    team_id: Optional[str] = Depends(get_team_id),
):
    """Confirm a bug report and create a tracker ticket."""
    if not body.report_id:
        return JSONResponse(status_code=400, content={"message": MSG_REPORT_ID_REQUIRED})

    try:
        return await orchestrator.confirm(body.report_id, team_id=team_id)
    except Exception as exc:
        logger.error("Route error - confirm bug report: %s", exc)
        return _error(500, "An error occurred while confirming the bug report", exc)


@router.post("/{report_id}/additional-info")
async def submit_additional_info(
    report_id: str,
    body: AdditionalInfoRequest,
    orchestrator: BugReportOrchestrator = Depends(get_orchestrator),
):
    """Attach follow-up answers to a bug report."""
    if not body.responses:
        return JSONResponse(status_code=400, content={"message": MSG_INFO_REQUIRED})

    try:
        return await orchestrator.submit_additional_info(report_id, body.responses)
    except Exception as exc:
        logger.error("Route error - submit additional info: %s", exc)
        return _error(500, "An error occurred while submitting additional information", exc)


@router.get("/{report_id}")
async def get_bug_report(
    report_id: str,
    orchestrator: BugReportOrchestrator = Depends(get_orchestrator),
):
    """Return the stored record verbatim."""
    try:
        record = await orchestrator.get_report(report_id)
    except Exception as exc:
        logger.error("Route error - get bug report: %s", exc)
        return _error(404, MSG_NOT_FOUND, exc)
    return record.to_row()
