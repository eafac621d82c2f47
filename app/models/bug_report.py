"""
Bug Report Models
=================
Pydantic models for what a user submits and what the synthesizer produces.

BugSubmission (immutable once received):
    description:         free-text bug description (required, non-empty)
    repo_path:           repository location on disk (required)
    logs / steps:        optional error log and reproduction steps
    additional_context:  optional free text forwarded to the model
    screenshots:         ordered screenshot URLs
    email / name:        optional reporter identity

StructuredReport (the four-field contract with the language model):
    title, suspected_root_cause, evidence[], next_steps[]
    additional_info:     follow-up answers keyed by question type, appended later
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BugSubmission(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str
    repo_path: str
    logs: Optional[str] = None
    steps: Optional[str] = None
    additional_context: Optional[str] = None
    screenshots: List[str] = Field(default_factory=list)
    email: Optional[str] = None
    name: Optional[str] = None


class StructuredReport(BaseModel):
    # Unknown keys from the model are dropped, never echoed back
    model_config = ConfigDict(extra="ignore")

    title: str
    suspected_root_cause: str
    evidence: List[str]
    next_steps: List[str]
    additional_info: Optional[Dict[str, Any]] = None

    def to_json(self) -> Dict[str, Any]:
        """JSON-ready dict; additional_info only appears once answers exist."""
        return self.model_dump(mode="json", exclude_none=True)


class CandidateFile(BaseModel):
    """A path scored during keyword selection. Discarded after ranking."""
    path: str
    score: int = 0
