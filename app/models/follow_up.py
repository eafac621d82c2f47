"""
Follow-Up Models
================
Produced transiently by the information-sufficiency gate and returned to the
reporter. Only the answers are persisted (inside StructuredReport.additional_info).
"""
from typing import List, Literal

from pydantic import BaseModel

FollowUpType = Literal[
    "reproduction_steps",
    "environment",
    "version",
    "user_context",
    "data_context",
    "screenshot",
]

ConfidenceLabel = Literal["low", "medium-low", "medium"]


class FollowUpRequest(BaseModel):
    type: FollowUpType
    question: str


class InfoRequest(BaseModel):
    needs_more_info: bool = True
    confidence: ConfidenceLabel
    requests: List[FollowUpRequest]
