"""Shared pytest fixtures: throwaway git repositories with deterministic history."""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path

import pytest

GIT = shutil.which("git")


class GitRepo:
    """A scratch repository that commits files with fixed authors and dates."""

    def __init__(self, root: Path):
        self.root = root
        self._tick = 0
        self.env = {
            **os.environ,
            "GIT_AUTHOR_NAME": "Test Author",
            "GIT_AUTHOR_EMAIL": "author@example.com",
            "GIT_COMMITTER_NAME": "Test Author",
            "GIT_COMMITTER_EMAIL": "author@example.com",
            "GIT_CONFIG_NOSYSTEM": "1",
            "GIT_CONFIG_GLOBAL": os.devnull,
        }

    def git(self, *args: str) -> str:
        result = subprocess.run(
            ["git", *args],
            cwd=self.root,
            capture_output=True,
            text=True,
            check=True,
            env=self.env,
        )
        return result.stdout.strip()

    def _advance_clock(self) -> None:
        self._tick += 1
        date = f"@{1700000000 + self._tick * 60} +0000"
        self.env["GIT_AUTHOR_DATE"] = date
        self.env["GIT_COMMITTER_DATE"] = date

    def commit_file(self, rel_path: str, content: str | bytes, message: str | None = None) -> str:
        """Write `content` to `rel_path`, commit it and return the new revision."""
        path = self.root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)

        self._advance_clock()
        self.git("add", rel_path)
        self.git("commit", "-q", "--no-gpg-sign", "-m", message or f"Update {rel_path}")
        return self.git("rev-parse", "HEAD")

    def merge(self, branch: str) -> str:
        """Merge `branch` into the current branch with a merge commit."""
        self._advance_clock()
        self.git("merge", "-q", "--no-ff", "--no-edit", "--no-gpg-sign", branch)
        return self.git("rev-parse", "HEAD")

    def is_ancestor(self, older: str, newer: str) -> bool:
        result = subprocess.run(
            ["git", "merge-base", "--is-ancestor", older, newer],
            cwd=self.root,
            capture_output=True,
            env=self.env,
        )
        return result.returncode == 0


@pytest.fixture
def git_repo(tmp_path: Path) -> GitRepo:
    """An empty git repository under tmp_path."""
    if GIT is None:
        pytest.skip("git not installed")

    root = tmp_path / "repo"
    root.mkdir()
    repo = GitRepo(root)
    repo.git("init", "-q")
    return repo
