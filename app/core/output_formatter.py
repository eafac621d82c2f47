"""
Output Formatter
================
THE SINGLE SOURCE OF TRUTH for the human-readable report document.

STRICT DETERMINISM CONTRACT:
  - This module NEVER calls an LLM.
  - This module NEVER touches the network, storage or environment.
  - Given the same StructuredReport it ALWAYS returns the same string.

Document layout:

    # Bug Report: {title}

    ## Suspected Root Cause
    {suspected_root_cause}

    ## Technical Evidence
    - {evidence...}

    ## Recommended Next Steps for Developers
    - {next_steps...}

    ## Files Involved            (only when evidence names files)
    - `{path}`

    ---
    Report generated by Bug Report AI

File extraction:
  Each evidence entry is scanned for ``<sep><dir><sep><name>.<ext>`` where
  <sep> is "/" or "\\" and <ext> is one of FILE_EXTENSIONS. The first match
  per entry is kept; duplicates across entries are NOT removed.
"""
import re
from typing import Iterable, List

from app.models.bug_report import StructuredReport

FILE_EXTENSIONS = ("js", "jsx", "ts", "tsx", "css", "html", "json")

_FILE_PATH_RE = re.compile(
    r"([/\\][^/\\:]+[/\\][^/\\:]+\.(?:" + "|".join(FILE_EXTENSIONS) + r"))\b"
)

FOOTER = "Report generated by Bug Report AI"


def extract_file_paths(evidence: Iterable[str]) -> List[str]:
    """
    Pull file paths out of evidence strings.

    Parameters
    ----------
    evidence : Iterable[str]
        Evidence entries in report order.

    Returns
    -------
    List[str]
        One path per matching entry, in order, duplicates preserved.
    """
    paths: List[str] = []
    for item in evidence:
        match = _FILE_PATH_RE.search(item)
        if match:
            paths.append(match.group(1))
    return paths


def _bullets(items: Iterable[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def render_markdown(report: StructuredReport) -> str:
    """Render a StructuredReport into the markdown document shown above."""
    sections = [
        f"# Bug Report: {report.title}",
        f"## Suspected Root Cause\n{report.suspected_root_cause}",
        f"## Technical Evidence\n{_bullets(report.evidence)}",
        f"## Recommended Next Steps for Developers\n{_bullets(report.next_steps)}",
    ]

    file_paths = extract_file_paths(report.evidence)
    if file_paths:
        sections.append(
            "## Files Involved\n" + "\n".join(f"- `{path}`" for path in file_paths)
        )

    sections.append(f"---\n{FOOTER}")
    return "\n\n".join(sections) + "\n"
