"""
Report Record Model
===================
The persisted form of a report, owned by the report store.

Fields:
    id:                   unique, assigned at create time, never changes
    title:                copy of content_json.title for list views
    content_json:         the StructuredReport
    content_markdown:     rendered markdown of content_json (travels with it)
    files_analyzed:       paths fed to the synthesizer
    screenshots:          screenshot URLs from the submission
    status:               open → confirmed
    feedback_requested:   pending follow-up marker, cleared by additional info
    reporter_email/name:  optional reporter identity
    linear_issue_*:       linked tracker ticket, once confirmed
    created_at:           ISO-8601 UTC
    last_updated:         ISO-8601 UTC, set on every update
"""
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.bug_report import StructuredReport


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TicketRef(BaseModel):
    """Reference to an issue created in the tracker."""
    id: str
    number: Optional[int] = None
    url: Optional[str] = None
    title: Optional[str] = None


class ReportRecord(BaseModel):
    # Remote rows may carry extra columns (e.g. database defaults)
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    content_json: StructuredReport
    content_markdown: str
    files_analyzed: List[str] = Field(default_factory=list)
    screenshots: List[str] = Field(default_factory=list)
    status: Optional[str] = None
    feedback_requested: Optional[bool] = None
    reporter_email: Optional[str] = None
    reporter_name: Optional[str] = None
    linear_issue_id: Optional[str] = None
    linear_issue_number: Optional[int] = None
    linear_issue_url: Optional[str] = None
    created_at: str = Field(default_factory=utc_now_iso)
    last_updated: Optional[str] = None

    def to_row(self) -> dict:
        """Serialise for storage and for the GET endpoint."""
        row = self.model_dump(mode="json")
        row["content_json"] = self.content_json.to_json()
        return row
