"""
Line lineage tracing over version-control history.

Walks backward through the history of a file to reconstruct how one line came
to be: each step finds the change that introduced the tracked content and
recovers the line that preceded it in that change.

Usage:
    from lineage import LineageTracer, GitHistoryClient, trace_lineage

    # One call against a git working tree
    trace = trace_lineage("/path/to/repo", "features/login.feature", "Given a user", 100)

    # Or with an explicit client (any RevisionHistoryClient works)
    client = GitHistoryClient("/path/to/repo", timeout=10)
    trace = LineageTracer(client).trace("features/login.feature", "Given a user", 100)

    for record in trace:
        print(record.revision, record.content)
"""

from .git_client import GitHistoryClient
from .history import HistoryQueryError, LineageError, RepositoryError, RevisionHistoryClient
from .patch_parser import extract_preceding_line, parse_hunks
from .record import DIFF_NOT_AVAILABLE, LineageTrace, StopReason, TraceRecord
from .tracer import LineageTracer, TracingState, trace_lineage

__all__ = [
    "DIFF_NOT_AVAILABLE",
    "GitHistoryClient",
    "HistoryQueryError",
    "LineageError",
    "LineageTrace",
    "LineageTracer",
    "RepositoryError",
    "RevisionHistoryClient",
    "StopReason",
    "TraceRecord",
    "TracingState",
    "extract_preceding_line",
    "parse_hunks",
    "trace_lineage",
]
