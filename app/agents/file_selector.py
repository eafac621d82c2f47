"""
File Selector
=============
Shortlists the repository files most likely to be involved in a bug.

Selection Strategy (tried in order):
    1. model   — ask the LLM for {"files": [...]}; keep the first 10 verbatim
    2. keyword — score each path by how many description tokens it contains

Keyword Scoring:
    - Description is lower-cased and split on whitespace
    - A token scores 1 if it is a substring of the lower-cased path
    - Stable sort by score descending, so ties keep the input order
    - Top 10 returned

The selector never raises: a model failure degrades to keyword scoring and
a failure to list the repository yields an empty shortlist.
"""
import logging
from typing import List, Optional, Sequence

from app.core.constants import MAX_RELEVANT_FILES
from app.llm.client import LLMClient, LLMError
from app.llm.prompts import FILE_SELECTION_SYSTEM_PROMPT, build_file_selection_prompt
from app.models.bug_report import CandidateFile
from app.services.repo_service import FileSystem
from app.utils.fallback_chain import StrategyResult, run_chain

logger = logging.getLogger(__name__)


def rank_by_keywords(
    description: str,
    files: Sequence[str],
    limit: int = MAX_RELEVANT_FILES,
) -> List[str]:
    """
    Rank file paths by keyword overlap with the bug description.

    Parameters
    ----------
    description : str
        Free-text bug description.
    files : Sequence[str]
        Candidate paths, in their original order.
    limit : int
        Maximum number of paths returned.

    Returns
    -------
    List[str]
        At most ``limit`` paths, highest score first, ties in input order.
    """
    keywords = description.lower().split()
    candidates = [
        CandidateFile(
            path=path,
            score=sum(1 for keyword in keywords if keyword in path.lower()),
        )
        for path in files
    ]
    # sorted() is stable, which keeps ties in input order
    ranked = sorted(candidates, key=lambda c: c.score, reverse=True)
    return [c.path for c in ranked[:limit]]


class FileSelector:
    """
    Picks relevant files for a bug description.

    Parameters
    ----------
    client : LLMClient or None
        Completion client; when missing or unconfigured only keyword
        scoring is used.
    limit : int
        Maximum shortlist length (default: 10).
    """

    def __init__(self, client: Optional[LLMClient] = None, limit: int = MAX_RELEVANT_FILES) -> None:
        self.client = client
        self.limit = limit

    async def _select_with_model(self, description: str, files: Sequence[str]) -> StrategyResult[List[str]]:
        try:
            data = await self.client.complete_json(
                FILE_SELECTION_SYSTEM_PROMPT,
                build_file_selection_prompt(description, files),
            )
        except LLMError as e:
            return StrategyResult.failed(str(e))

        selected = data.get("files")
        if not isinstance(selected, list):
            return StrategyResult.failed("Response has no 'files' array")
        if not all(isinstance(path, str) for path in selected):
            return StrategyResult.failed("'files' array contains non-string entries")
        return StrategyResult.success(selected[:self.limit])

    async def _select_with_keywords(self, description: str, files: Sequence[str]) -> StrategyResult[List[str]]:
        logger.info("Using simple keyword matching for file selection")
        return StrategyResult.success(rank_by_keywords(description, files, self.limit))

    async def select(self, description: str, files: Sequence[str]) -> List[str]:
        """Shortlist ``files`` for ``description``. Never raises."""
        strategies = []
        if self.client is not None and self.client.available:
            strategies.append(("model", lambda: self._select_with_model(description, files)))
        strategies.append(("keyword", lambda: self._select_with_keywords(description, files)))

        result = await run_chain(strategies)
        if not result.ok:
            return []
        logger.info("Selected %d file(s) via %s strategy", len(result.value), result.strategy)
        return result.value

    async def search_codebase(self, description: str, repo_path: str, fs: FileSystem) -> List[str]:
        """List the repository and shortlist it. A listing failure yields []."""
        try:
            files = await fs.list_files(repo_path)
        except Exception as e:
            logger.error("Error searching codebase at %s: %s", repo_path, e)
            return []
        return await self.select(description, files)
