"""
Ignore Rules
============
Rules deciding which repository entries are offered to the file selector.

Ignored directories:
    - node_modules/, dist/, build/
    - .git/
    - __pycache__/, .venv/, venv/

Kept files:
    - Source-like extensions only (.js .jsx .ts .tsx .css .html .json .py)
"""
from pathlib import PurePath

IGNORED_DIRS: frozenset[str] = frozenset({
    "node_modules",
    ".git",
    "dist",
    "build",
    "__pycache__",
    ".venv",
    "venv",
})

SOURCE_EXTENSIONS: frozenset[str] = frozenset({
    ".js", ".jsx", ".ts", ".tsx", ".css", ".html", ".json", ".py",
})


def is_ignored_dir(name: str) -> bool:
    """True if a directory with this name must not be descended into."""
    return name in IGNORED_DIRS


def is_source_file(file_name: str) -> bool:
    """True if the file has one of the source-like extensions."""
    return PurePath(file_name).suffix.lower() in SOURCE_EXTENSIONS
