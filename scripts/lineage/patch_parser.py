"""
Change-detail parser.

Reads patch-style text (as printed by `git show`) and recovers the line that
precedes an added line. The line textually before an added line is used as the
proxy for "what this line replaced or followed".

Only hunk bodies take part in the ordering:
- the commit header and file headers (diff --git, index, ---, +++) are skipped
- "\\ No newline at end of file" markers are skipped
- combined diffs (@@@ headers) carry one sigil column per parent
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

HUNK_HEADER_RE = re.compile(r"^(@{2,}) -\d+(?:,\d+)? .*?\1")

_SIGILS = frozenset(" +-")


class LineKind(str, Enum):
    """Role of a line inside a hunk."""

    CONTEXT = "context"
    ADDED = "added"
    REMOVED = "removed"


@dataclass
class DiffLine:
    """A hunk body line with its sigils removed."""

    kind: LineKind
    text: str


@dataclass
class Hunk:
    """One @@ section of a patch."""

    header: str
    lines: list[DiffLine] = field(default_factory=list)


def _classify(sigils: str) -> LineKind:
    if "+" in sigils:
        return LineKind.ADDED
    if "-" in sigils:
        return LineKind.REMOVED
    return LineKind.CONTEXT


def parse_hunks(detail_text: str) -> list[Hunk]:
    """
    Split patch text into hunks.

    Args:
        detail_text: Patch text, possibly preceded by a commit header

    Returns:
        Hunks in document order
    """
    hunks: list[Hunk] = []
    current: Hunk | None = None
    width = 1

    if detail_text.endswith("\n"):
        detail_text = detail_text[:-1]

    # Only "\n" ends a patch line; a CR left by CRLF files is not content
    for raw in detail_text.split("\n"):
        raw = raw.rstrip("\r")
        header = HUNK_HEADER_RE.match(raw)
        if header:
            width = len(header.group(1)) - 1
            current = Hunk(header=raw)
            hunks.append(current)
            continue

        if current is None or raw.startswith("\\"):
            continue

        # Blank lines inside a hunk are context lines with trailing space stripped
        if len(raw) < width:
            current.lines.append(DiffLine(LineKind.CONTEXT, ""))
            continue

        sigils = raw[:width]
        if not set(sigils) <= _SIGILS:
            # Next file header or trailing text: the hunk is over
            current = None
            continue

        current.lines.append(DiffLine(_classify(sigils), raw[width:]))

    return hunks


def extract_preceding_line(detail_text: str, target_content: str) -> str | None:
    """
    Find the line preceding the first added line that matches `target_content`.

    A line matches when its trimmed text contains `target_content` (substring,
    so a longer added line can match a shorter target).

    Args:
        detail_text: Patch text of one revision
        target_content: Content being traced

    Returns:
        The preceding line without its sigil and leading whitespace, or None if
        no added line matches or the match opens its hunk
    """
    for hunk in parse_hunks(detail_text):
        for index, line in enumerate(hunk.lines):
            if line.kind is not LineKind.ADDED:
                continue
            if target_content not in line.text.strip():
                continue
            if index == 0:
                return None
            return hunk.lines[index - 1].text.lstrip()

    return None
