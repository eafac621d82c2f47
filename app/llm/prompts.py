"""
LLM Prompts
===========
Centralised store for the file-selection and report-synthesis prompts.

Prompt Design Rules:
    - Both prompts demand a bare JSON object (JSON mode is also requested)
    - File selection returns {"files": [...]} and nothing else
    - Report synthesis returns exactly the four-field report schema
    - User prompts label every section so the model can cite files by path
"""
import json
from typing import Dict, Iterable, Optional, Sequence


NONE_PROVIDED = "None provided"


# ---------------------------------------------------------------------------
# System Prompts
# ---------------------------------------------------------------------------
FILE_SELECTION_SYSTEM_PROMPT = (
    "You are a code analysis expert. Based on the bug report, identify which "
    "files in the repository are most likely to be relevant. Output ONLY a "
    'JSON object of the form {"files": ["path", ...]} listing file paths '
    "from the provided list, most relevant first, with no explanations or "
    "other text."
)

REPORT_SYSTEM_PROMPT = """# Bug Analysis Expert System

Your role is to bridge the gap between user-reported bugs and technical solutions.

## Primary Tasks
1. Translate user language (often non-technical) into developer terminology
2. Identify technical root causes from code analysis
3. Provide specific evidence from the codebase
4. Recommend precise technical fixes
5. Incorporate evidence from screenshots when available

## Analysis Guidelines
- Interpret business terms in their technical context
- Reference specific files, functions, and line numbers when possible
- Identify patterns and anti-patterns in the code
- Consider potential edge cases and interactions between components
- If screenshots are provided, incorporate insights from them into your analysis

## Response Structure
Return a JSON object with this exact schema:
{
    "title": "Clear, concise bug title",
    "suspected_root_cause": "Technical explanation with code structure references",
    "evidence": ["Specific file/line references", "Code patterns found", "Error conditions", "Visual evidence from screenshots"],
    "next_steps": ["Precise technical actions for developers"]
}

Focus on being specific, actionable, and technically accurate while making the bug understandable to developers who didn't write the original code."""


# ---------------------------------------------------------------------------
# User Prompt Builders
# ---------------------------------------------------------------------------
def build_file_selection_prompt(description: str, files: Sequence[str]) -> str:
    return f"Bug report: {description}\n\nAvailable files: {json.dumps(list(files))}"


def format_snippets(snippets: Dict[str, str]) -> str:
    """Label each snippet with its path, separated by horizontal rules."""
    return "---\n".join(
        f"File: {path}\n\n{content}\n\n" for path, content in snippets.items()
    )


def build_report_user_prompt(
    description: str,
    snippets: Dict[str, str],
    logs: Optional[str] = None,
    steps: Optional[str] = None,
    additional_context: Optional[str] = None,
    screenshots: Iterable[str] = (),
) -> str:
    """
    Assemble the synthesis prompt.

    Sections, in order: bug report, error log, reproduction steps, optional
    additional context, optional screenshot URLs, code snippets.
    """
    parts = [
        f"Bug Report: {description}",
        f"Error Log/Trace: {logs or NONE_PROVIDED}",
        f"Reproduction Steps: {steps or NONE_PROVIDED}",
    ]
    if additional_context:
        parts.append(f"Additional Context: {additional_context}")

    screenshot_list = list(screenshots)
    if screenshot_list:
        parts.append("Screenshots: " + "\n".join(screenshot_list))

    parts.append(f"Code Snippets:\n{format_snippets(snippets)}")
    return "\n\n".join(parts)
