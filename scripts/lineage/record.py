"""
Trace records for line lineage.

A TraceRecord is one step of the backward walk: the revision that introduced the
tracked content, the content itself, and the change detail of that revision.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

DIFF_NOT_AVAILABLE = "(diff not available)"


class StopReason(str, Enum):
    """Why a backward walk ended."""

    ORIGIN_REACHED = "origin_reached"  # no earlier change introduces the content
    DETAIL_UNAVAILABLE = "detail_unavailable"  # change detail could not be read
    CONTENT_NOT_FOUND = "content_not_found"  # no preceding line in the change
    BUDGET_EXHAUSTED = "budget_exhausted"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class TraceRecord:
    """One step of a lineage trace."""

    revision: str
    content: str
    change_detail: str = DIFF_NOT_AVAILABLE

    @property
    def detail_available(self) -> bool:
        return self.change_detail != DIFF_NOT_AVAILABLE


@dataclass
class LineageTrace:
    """
    Ordered lineage of a line, newest record first.

    Records are appended by the tracer in the order the backward walk finds
    them. Each record's revision is a strict ancestor of the one before it.
    """

    path: str
    initial_content: str
    records: list[TraceRecord] = field(default_factory=list)
    stop_reason: StopReason = StopReason.ORIGIN_REACHED

    def append(self, record: TraceRecord) -> None:
        self.records.append(record)

    @property
    def revisions(self) -> list[str]:
        return [r.revision for r in self.records]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[TraceRecord]:
        return iter(self.records)

    def __getitem__(self, index: int) -> TraceRecord:
        return self.records[index]
