"""
LineageTracer - backward walk through a file's history.

Usage:
    client = GitHistoryClient("/path/to/repo")
    trace = LineageTracer(client).trace("features/login.feature", "Given a user", 100)

    for record in trace:
        print(record.revision, record.content)

Or in one call:

    trace = trace_lineage("/path/to/repo", "features/login.feature", "Given a user", 100)

Each step searches for the most recent change that introduced the tracked
content, records it, and continues with the line that preceded the content in
that change. The walk stops when no earlier change is found, the change detail
cannot be read or parsed, the step budget runs out, or it is cancelled.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path

from .git_client import DEFAULT_QUERY_TIMEOUT, GitHistoryClient
from .history import RevisionHistoryClient
from .patch_parser import extract_preceding_line
from .record import DIFF_NOT_AVAILABLE, LineageTrace, StopReason, TraceRecord

logger = logging.getLogger(__name__)


@dataclass
class TracingState:
    """Where the walk currently is. Local to one trace call."""

    current_content: str
    current_revision: str
    include_current: bool = True  # False once the walk has left the head

    def advance(self, content: str, revision: str) -> None:
        self.current_content = content
        self.current_revision = revision
        self.include_current = False


class LineageTracer:
    """
    Reconstructs the lineage of a line from a RevisionHistoryClient.

    The tracer holds no per-trace state; one instance may run many traces,
    including from several threads at once.
    """

    def __init__(
        self,
        client: RevisionHistoryClient,
        cancel_event: threading.Event | None = None,
    ):
        """
        Initialize a tracer.

        Args:
            client: History query backend
            cancel_event: Optional event; once set, walks stop between steps
        """
        self.client = client
        self.cancel_event = cancel_event

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def trace(self, path: str, initial_content: str, step_budget: int) -> LineageTrace:
        """
        Walk backward from the head revision.

        Args:
            path: File path relative to the repository root
            initial_content: Trimmed text of the line to trace
            step_budget: Maximum number of steps (0 returns an empty trace)

        Returns:
            LineageTrace with at most `step_budget` records, newest first

        Raises:
            ValueError: If step_budget is negative
            RepositoryError: If the repository cannot be queried
        """
        if step_budget < 0:
            raise ValueError(f"step_budget must be >= 0, got {step_budget}")

        trace = LineageTrace(path=path, initial_content=initial_content)
        if step_budget == 0:
            trace.stop_reason = StopReason.BUDGET_EXHAUSTED
            return trace

        state = TracingState(
            current_content=initial_content,
            current_revision=self.client.resolve_head(),
        )

        for step in range(step_budget):
            if self._cancelled():
                logger.info("Trace of %s cancelled after %d steps", path, step)
                trace.stop_reason = StopReason.CANCELLED
                return trace

            revision = self.client.find_introducing_revision(
                state.current_revision,
                path,
                state.current_content,
                include_upper_bound=state.include_current,
            )
            if revision is None:
                logger.debug(
                    "No change introduces %r at or before %s",
                    state.current_content,
                    state.current_revision,
                )
                trace.stop_reason = StopReason.ORIGIN_REACHED
                return trace

            detail = self.client.get_change_detail(revision, path)
            if detail is None:
                trace.append(TraceRecord(revision, state.current_content, DIFF_NOT_AVAILABLE))
                trace.stop_reason = StopReason.DETAIL_UNAVAILABLE
                return trace

            trace.append(TraceRecord(revision, state.current_content, detail))
            logger.debug("Step %d: %s introduced %r", step + 1, revision, state.current_content)

            previous = extract_preceding_line(detail, state.current_content)
            if previous is None:
                trace.stop_reason = StopReason.CONTENT_NOT_FOUND
                return trace

            state.advance(previous, revision)

        trace.stop_reason = StopReason.BUDGET_EXHAUSTED
        return trace


def trace_lineage(
    repo_location: str | Path,
    path: str,
    initial_content: str,
    step_budget: int,
    *,
    timeout: float | None = DEFAULT_QUERY_TIMEOUT,
    git_executable: str = "git",
    cancel_event: threading.Event | None = None,
) -> LineageTrace:
    """
    Trace a line's lineage in a git repository.

    Args:
        repo_location: Path to the repository working tree
        path: File path relative to the repository root
        initial_content: Trimmed text of the line to trace
        step_budget: Maximum number of steps
        timeout: Seconds allowed per git query
        git_executable: Name or path of the git binary
        cancel_event: Optional event checked between steps

    Returns:
        The LineageTrace

    Raises:
        RepositoryError: If the repository cannot be queried
    """
    client = GitHistoryClient(repo_location, timeout=timeout, git_executable=git_executable)
    return LineageTracer(client, cancel_event=cancel_event).trace(path, initial_content, step_budget)
