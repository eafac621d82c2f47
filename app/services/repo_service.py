"""
Repo Service
============
File-system access to the repository a bug report is filed against.

Philosophy:
    - The repository is already on disk (repo_path from the submission).
    - Listing is recursive and skips build / VCS / dependency directories.
    - Unreadable directories are logged and skipped, never fatal.
    - Reads are async so the request pipeline stays cooperative.
"""
import os
import asyncio
import logging
from typing import List

from app.utils.ignore_rules import is_ignored_dir, is_source_file

logger = logging.getLogger(__name__)


def _walk_source_files(repo_path: str) -> List[str]:
    """Collect source-like files under repo_path in directory order."""
    found: List[str] = []

    def _visit(directory: str) -> None:
        try:
            entries = sorted(os.listdir(directory))
        except OSError as e:
            logger.warning("Could not read directory %s: %s", directory, e)
            return

        for name in entries:
            full_path = os.path.join(directory, name)
            if os.path.isdir(full_path):
                if is_ignored_dir(name):
                    continue
                _visit(full_path)
            elif is_source_file(name):
                found.append(full_path)

    _visit(repo_path)
    return found


def _read_text(file_path: str) -> str:
    with open(file_path, "r", encoding="utf-8") as f:
        return f.read()


class FileSystem:
    """
    Repository file access used by the orchestrator.

    Usage:
        fs = FileSystem()
        files = await fs.list_files("/path/to/repo")
        content = await fs.read_file(files[0])
    """

    async def list_files(self, repo_path: str) -> List[str]:
        if not os.path.isdir(repo_path):
            raise FileNotFoundError(f"Repository path does not exist: {repo_path}")
        files = await asyncio.to_thread(_walk_source_files, repo_path)
        logger.info("Found %d candidate source files under %s", len(files), repo_path)
        return files

    async def read_file(self, file_path: str) -> str:
        return await asyncio.to_thread(_read_text, file_path)
