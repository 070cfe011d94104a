"""
Git implementation of RevisionHistoryClient.

Uses the `git` CLI against a local working tree. Content searches use the
pickaxe in literal mode (`git log -S`), never `--pickaxe-regex`, and every value
is passed as its own argv element, so regex and shell metacharacters in the
traced content are matched verbatim.

Usage:
    from lineage.git_client import GitHistoryClient

    client = GitHistoryClient("/path/to/repo")
    head = client.resolve_head()
    revision = client.find_introducing_revision(head, "docs/a.feature", "Given a user")
    patch = client.get_change_detail(revision, "docs/a.feature")
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from .history import HistoryQueryError, RepositoryError, RevisionHistoryClient

logger = logging.getLogger(__name__)

DEFAULT_QUERY_TIMEOUT = 30.0


class GitHistoryClient(RevisionHistoryClient):
    """
    Queries a git repository through the git CLI.

    Requires `git` to be installed. The repository is verified on construction;
    a bad location raises RepositoryError immediately.
    """

    def __init__(
        self,
        repo_root: str | Path,
        timeout: float | None = DEFAULT_QUERY_TIMEOUT,
        git_executable: str = "git",
    ):
        """
        Initialize client.

        Args:
            repo_root: Path to the repository working tree
            timeout: Seconds allowed per git invocation (None = no limit)
            git_executable: Name or path of the git binary
        """
        self.repo_root = Path(repo_root)
        self.timeout = timeout
        self.git_executable = git_executable
        self._verify_repository()

    def _verify_repository(self) -> None:
        """Verify git is available and repo_root is inside a work tree."""
        if not self.repo_root.is_dir():
            raise RepositoryError(f"Repository path not found: {self.repo_root}")

        try:
            result = self._run("rev-parse", "--is-inside-work-tree")
        except HistoryQueryError as e:
            raise RepositoryError(f"Could not query repository {self.repo_root}: {e}") from e

        if result.returncode != 0 or result.stdout.strip() != "true":
            raise RepositoryError(
                f"Not a git repository: {self.repo_root} ({result.stderr.strip()})"
            )

    def _run(self, *args: str) -> subprocess.CompletedProcess[str]:
        """
        Run a git command in the repository.

        Output is decoded with surrogateescape so bytes that are not valid
        UTF-8 survive the round trip back into a later argv unchanged.

        Raises:
            RepositoryError: If the git executable cannot be found
            HistoryQueryError: If the command times out
        """
        cmd = [self.git_executable, "--no-pager", *args]
        try:
            return subprocess.run(
                cmd,
                cwd=self.repo_root,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="surrogateescape",
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError:
            raise RepositoryError(f"git executable not found: {self.git_executable}")
        except subprocess.TimeoutExpired as e:
            raise HistoryQueryError(f"git {args[0]} timed out after {e.timeout}s") from e

    def _query(self, *args: str) -> str:
        """Run a query and return stdout, raising HistoryQueryError on failure."""
        result = self._run(*args)
        if result.returncode != 0:
            raise HistoryQueryError(f"git {args[0]} failed: {result.stderr.strip()}")
        return result.stdout

    def resolve_head(self) -> str:
        try:
            return self._query("rev-parse", "--verify", "HEAD").strip()
        except HistoryQueryError as e:
            raise RepositoryError(f"Could not resolve HEAD in {self.repo_root}: {e}") from e

    def parents(self, revision: str) -> list[str]:
        """Return the parent revisions of `revision` (empty for a root commit)."""
        output = self._query("rev-list", "--parents", "-n", "1", revision, "--")
        return output.split()[1:]

    def find_introducing_revision(
        self,
        upper_bound: str,
        path: str,
        literal_content: str,
        include_upper_bound: bool = True,
    ) -> str | None:
        try:
            if include_upper_bound:
                revisions = [upper_bound]
            else:
                revisions = self.parents(upper_bound)
                if not revisions:
                    return None

            output = self._query(
                "log",
                "-n",
                "1",
                "--pretty=format:%H",
                "-S",
                literal_content,
                *revisions,
                "--",
                path,
            )
        except HistoryQueryError as e:
            logger.warning("History search on %s failed: %s", path, e)
            return None

        lines = output.splitlines()
        return lines[0].strip() if lines else None

    def get_change_detail(self, revision: str, path: str) -> str | None:
        try:
            output = self._query("show", "--no-color", "--no-ext-diff", revision, "--", path)
        except HistoryQueryError as e:
            logger.warning("Could not read change %s for %s: %s", revision, path, e)
            return None

        # Patch text as git printed it, minus the final newline
        if output.endswith("\n"):
            output = output[:-1]
        return output or None
