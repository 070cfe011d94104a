#!/usr/bin/env python3
"""
Candidate line selection for lineage tracing.

Finds files in a folder by name pattern and picks the lines that match a
regular expression. Each selected line becomes one trace.

Usage:
    from line_selector import discover_files, select_lines

    for path in discover_files("features", "*.feature"):
        for candidate in select_lines(path, re.compile(r"^\\s*Scenario")):
            print(candidate.line_number, candidate.content)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

__all__ = [
    "CandidateLine",
    "discover_files",
    "select_lines",
    "to_repo_path",
]


@dataclass(frozen=True)
class CandidateLine:
    """A line selected for tracing."""

    file_path: Path
    line_number: int  # 1-based
    content: str  # stripped

    @property
    def is_blank(self) -> bool:
        return not self.content


def discover_files(folder: str | Path, file_pattern: str) -> list[Path]:
    """
    List files directly inside `folder` whose name matches `file_pattern`.

    Args:
        folder: Directory to search (not recursive)
        file_pattern: Glob pattern (e.g. "*.feature")

    Returns:
        Sorted list of file paths

    Raises:
        FileNotFoundError: If the folder doesn't exist
    """
    folder = Path(folder)
    if not folder.is_dir():
        raise FileNotFoundError(f"Folder not found: {folder}")

    return sorted(p for p in folder.glob(file_pattern) if p.is_file())


def select_lines(file_path: str | Path, line_pattern: str | re.Pattern[str]) -> list[CandidateLine]:
    """
    Select the lines of a file where `line_pattern` is found.

    Args:
        file_path: File to read
        line_pattern: Regular expression, searched anywhere in the line

    Returns:
        Matching lines in file order
    """
    file_path = Path(file_path)
    regex = re.compile(line_pattern) if isinstance(line_pattern, str) else line_pattern

    # Undecodable bytes become lone surrogates and are handed to git unchanged
    text = file_path.read_text(encoding="utf-8", errors="surrogateescape")
    if text.endswith("\n"):
        text = text[:-1]

    return [
        CandidateLine(file_path=file_path, line_number=number, content=line.strip())
        for number, line in enumerate(text.split("\n") if text else [], start=1)
        if regex.search(line)
    ]


def to_repo_path(file_path: str | Path, repo_root: str | Path) -> str:
    """
    Convert a file path to the repository-relative POSIX form git expects.

    Raises:
        ValueError: If the file is outside the repository
    """
    resolved = Path(file_path).resolve()
    root = Path(repo_root).resolve()
    try:
        return resolved.relative_to(root).as_posix()
    except ValueError:
        raise ValueError(f"{file_path} is not inside repository {repo_root}") from None
