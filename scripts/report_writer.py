#!/usr/bin/env python3
"""
Report output for lineage traces.

Writes one human-readable file per traced line and a CSV summary with one row
per line.

Trace file layout, repeated per record:

    Commit: <revision>
    Line Content: <content>
    Diff:
    <change detail or "(diff not available)">
    <blank line>
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from lineage import LineageTrace

SUMMARY_HEADER = ("FilePath", "LineContent", "CommitHistoryLength")


@dataclass
class SummaryRow:
    """One summary line: a traced line and how many records it produced."""

    file_path: str
    line_content: str
    commit_history_length: int

    def to_row(self) -> tuple[str, str, int]:
        return (self.file_path, self.line_content, self.commit_history_length)


def ensure_output_dir(path: str | Path) -> Path:
    """Create the output directory (and parents) if missing."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def trace_file_name(line_number: int, file_path: str | Path) -> str:
    """Build the trace file name for a line, e.g. line_12_login.feature.txt."""
    return f"line_{line_number}_{Path(file_path).name}.txt"


def format_trace(trace: LineageTrace) -> str:
    """Render a trace in the trace file layout."""
    lines: list[str] = []
    for record in trace:
        lines.append(f"Commit: {record.revision}")
        lines.append(f"Line Content: {record.content}")
        lines.append("Diff:")
        lines.append(record.change_detail)
        lines.append("")

    return "".join(f"{line}\n" for line in lines)


def write_trace_file(trace: LineageTrace, output_path: str | Path) -> Path:
    """
    Write a trace file.

    Args:
        trace: The trace to write (may be empty)
        output_path: Destination file

    Returns:
        The path written
    """
    output_path = Path(output_path)
    output_path.write_text(format_trace(trace), encoding="utf-8", errors="surrogateescape")
    return output_path


def write_summary_csv(rows: Iterable[SummaryRow], csv_path: str | Path) -> Path:
    """
    Write the summary CSV with a FilePath,LineContent,CommitHistoryLength header.

    Fields are quoted only when they contain a delimiter, quote or newline.
    """
    csv_path = Path(csv_path)
    if csv_path.parent != Path("."):
        ensure_output_dir(csv_path.parent)

    with open(csv_path, "w", newline="", encoding="utf-8", errors="surrogateescape") as f:
        writer = csv.writer(f, lineterminator="\n")
        writer.writerow(SUMMARY_HEADER)
        for row in rows:
            writer.writerow(row.to_row())

    return csv_path
