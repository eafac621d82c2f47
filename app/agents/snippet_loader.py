"""
Snippet Loader
==============
Reads the shortlisted files so their contents can be sent to the model.

Each read is independent: an unreadable file is recorded as
"Error reading file: <reason>" under its own path and the remaining files
are still read.
"""
import logging
from typing import Dict, Sequence

from app.services.repo_service import FileSystem

logger = logging.getLogger(__name__)


async def load_snippets(file_paths: Sequence[str], fs: FileSystem) -> Dict[str, str]:
    """
    Map each path to its file content (or a per-file error string).

    Parameters
    ----------
    file_paths : Sequence[str]
        Paths in shortlist order; the returned dict preserves that order.
    fs : FileSystem
        File access collaborator.
    """
    snippets: Dict[str, str] = {}
    for file_path in file_paths:
        try:
            snippets[file_path] = await fs.read_file(file_path)
        except Exception as e:
            logger.error("Error reading file %s: %s", file_path, e)
            snippets[file_path] = f"Error reading file: {e}"
    return snippets
