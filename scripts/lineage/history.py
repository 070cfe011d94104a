"""
Revision history query interface.

LineageTracer only talks to a repository through RevisionHistoryClient.
Implementations may shell out to a VCS tool, call a library binding or query a
remote service; the tracer does not care which.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class LineageError(Exception):
    """Base error for lineage tracing."""


class RepositoryError(LineageError):
    """The repository cannot be queried at all (bad location, missing tool)."""


class HistoryQueryError(LineageError):
    """A single history query failed or timed out."""


class RevisionHistoryClient(ABC):
    """
    Read-only queries against a repository's history.

    Subclasses must implement:
        - resolve_head(): the current head revision
        - find_introducing_revision(): literal content search over changes
        - get_change_detail(): patch text for a revision and path
    """

    @abstractmethod
    def resolve_head(self) -> str:
        """
        Return the repository's current head revision.

        Raises:
            RepositoryError: If the head cannot be resolved
        """

    @abstractmethod
    def find_introducing_revision(
        self,
        upper_bound: str,
        path: str,
        literal_content: str,
        include_upper_bound: bool = True,
    ) -> str | None:
        """
        Find the most recent change on `path` whose added or removed text
        contains `literal_content` verbatim.

        Args:
            upper_bound: Revision whose ancestry is searched
            path: File path relative to the repository root
            literal_content: Text matched literally, never as a pattern
            include_upper_bound: If False, only strict ancestors of
                `upper_bound` are searched

        Returns:
            The revision, or None if no such change exists or the query failed
        """

    @abstractmethod
    def get_change_detail(self, revision: str, path: str) -> str | None:
        """
        Return the patch-style detail of `revision` limited to `path`.

        Returns:
            The patch text, or None if it is unavailable
        """
