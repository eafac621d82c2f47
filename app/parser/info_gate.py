"""
Information-Sufficiency Gate
============================
Decides whether a synthesized report is too vague to file, and if so which
follow-up questions to ask the reporter.

Signals (any one triggers follow-up):
    uncertain   — root cause contains an UNCERTAINTY_TERMS phrase
    thin        — fewer than 2 evidence entries
    vague       — an evidence entry is short (< 20 chars), names no path
                  ("/"), or mentions "code" without a ":" reference
    asks_more   — a next step already asks the reporter for more

Confidence:
    low         if uncertain
    medium-low  elif vague
    medium      otherwise

Classification Strategy:
    1. FIXED PHRASE TABLES ONLY — plain substring checks
    2. NEVER an LLM call, never I/O
"""
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from app.models.bug_report import StructuredReport
from app.models.follow_up import FollowUpRequest, InfoRequest


# ---------------------------------------------------------------------------
# Phrase Tables
# ---------------------------------------------------------------------------
UNCERTAINTY_TERMS: Tuple[str, ...] = (
    "unclear", "unknown", "uncertain", "possible", "might", "could be",
    "not enough information", "insufficient", "additional details needed",
    "vague", "ambiguous", "sometimes", "occasionally", "intermittent",
)

MORE_INFO_PHRASES: Tuple[str, ...] = (
    "provide more",
    "additional info",
    "reproduction steps",
    "more details",
    "clarify",
)

MIN_EVIDENCE_ENTRIES = 2
MIN_EVIDENCE_LENGTH = 20


# ---------------------------------------------------------------------------
# Follow-up Questions
# ---------------------------------------------------------------------------
QUESTIONS = {
    "reproduction_steps": (
        "Please provide specific steps to reproduce this issue. "
        "What were you doing right before the problem occurred?"
    ),
    "environment": (
        "What environment are you experiencing this issue in? "
        "(browser, OS, device, screen size, etc.)"
    ),
    "version": "What version of the software are you using? Is this a recent change?",
    "user_context": (
        "What were you trying to accomplish when you encountered this bug? "
        "What is your user role?"
    ),
    "data_context": (
        "What kind of data were you working with when the issue occurred? "
        "Any specific inputs that trigger the problem?"
    ),
    "screenshot": "Could you provide a screenshot or screen recording that shows the issue?",
}


@dataclass(frozen=True)
class GateSignals:
    """The four sufficiency checks for one report."""
    uncertain: bool
    thin_evidence: bool
    vague_evidence: bool
    asks_more: bool

    @property
    def needs_more_info(self) -> bool:
        return self.uncertain or self.thin_evidence or self.vague_evidence or self.asks_more

    @property
    def confidence(self) -> str:
        if self.uncertain:
            return "low"
        if self.vague_evidence:
            return "medium-low"
        return "medium"


def _is_vague(item: str) -> bool:
    return (
        len(item) < MIN_EVIDENCE_LENGTH
        or "/" not in item
        or ("code" in item and ":" not in item)
    )


def compute_signals(report: StructuredReport) -> GateSignals:
    root_cause = report.suspected_root_cause.lower()
    return GateSignals(
        uncertain=any(term in root_cause for term in UNCERTAINTY_TERMS),
        thin_evidence=len(report.evidence) < MIN_EVIDENCE_ENTRIES,
        vague_evidence=any(_is_vague(item) for item in report.evidence),
        asks_more=any(
            phrase in step.lower()
            for step in report.next_steps
            for phrase in MORE_INFO_PHRASES
        ),
    )


def _any_mentions(items: List[str], word: str) -> bool:
    return any(word in item.lower() for item in items)


def _follow_up_triggers(
    report: StructuredReport, signals: GateSignals
) -> List[Tuple[str, Callable[[], bool]]]:
    """Ordered (type, predicate) pairs; every predicate is evaluated independently."""
    root_cause = report.suspected_root_cause.lower()
    title = report.title.lower()
    return [
        ("reproduction_steps", lambda: (
            "reproduce" in root_cause
            or "steps to" not in root_cause
            or _any_mentions(report.next_steps, "reproduce")
        )),
        ("environment", lambda: (
            "environment" in root_cause
            or signals.vague_evidence
            or _any_mentions(report.next_steps, "environment")
        )),
        ("version", lambda: (
            "version" in root_cause or _any_mentions(report.next_steps, "version")
        )),
        ("user_context", lambda: "user" in title or "user" in root_cause),
        ("data_context", lambda: (
            "data" in root_cause or _any_mentions(report.evidence, "data")
        )),
        ("screenshot", lambda: not _any_mentions(report.evidence, "screenshot")),
    ]


def check_needs_more_info(report: StructuredReport) -> Optional[InfoRequest]:
    """
    Classify a report as sufficient (None) or needing follow-up.

    Returns
    -------
    InfoRequest or None
        Confidence label plus the follow-up questions that apply, or None
        when the report is specific enough to file as-is.
    """
    signals = compute_signals(report)
    if not signals.needs_more_info:
        return None

    requests = [
        FollowUpRequest(type=kind, question=QUESTIONS[kind])
        for kind, triggered in _follow_up_triggers(report, signals)
        if triggered()
    ]
    return InfoRequest(confidence=signals.confidence, requests=requests)
