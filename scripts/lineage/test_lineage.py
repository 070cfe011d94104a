"""
Tests for the lineage core: change-detail parsing and the backward walk.

Runs against literal patch fixtures and an in-memory history, no repository
needed.

Usage:
    pytest scripts/lineage/test_lineage.py
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

import pytest

from lineage import (
    DIFF_NOT_AVAILABLE,
    LineageTracer,
    RepositoryError,
    RevisionHistoryClient,
    StopReason,
    TraceRecord,
    extract_preceding_line,
    parse_hunks,
)
from lineage.patch_parser import LineKind


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

SHOW_HEADER = """commit 2b1f0c9d
Author: Test Author <author@example.com>
Date:   Tue Nov 14 22:14:20 2023 +0000

    Rename scenario
"""

PATCH_INTRODUCE_BAR = SHOW_HEADER + """
diff --git a/app.txt b/app.txt
new file mode 100644
index 0000000..5716ca5
--- /dev/null
+++ b/app.txt
@@ -0,0 +1 @@
+bar"""

PATCH_BAR_TO_BAZ = SHOW_HEADER + """
diff --git a/app.txt b/app.txt
index 5716ca5..76018072 100644
--- a/app.txt
+++ b/app.txt
@@ -1 +1 @@
-bar
+baz"""


@dataclass
class FakeCommit:
    revision: str
    changed: list[str]  # text added or removed by the commit
    detail: str | None


@dataclass
class FakeHistoryClient(RevisionHistoryClient):
    """Linear in-memory history, oldest commit first."""

    commits: list[FakeCommit]
    calls: list[tuple] = field(default_factory=list)

    def _index(self, revision: str) -> int:
        return [c.revision for c in self.commits].index(revision)

    def resolve_head(self) -> str:
        self.calls.append(("head",))
        if not self.commits:
            raise RepositoryError("empty repository")
        return self.commits[-1].revision

    def find_introducing_revision(self, upper_bound, path, literal_content, include_upper_bound=True):
        self.calls.append(("find", upper_bound, literal_content, include_upper_bound))
        end = self._index(upper_bound) + (1 if include_upper_bound else 0)
        for commit in reversed(self.commits[:end]):
            if any(literal_content in text for text in commit.changed):
                return commit.revision
        return None

    def get_change_detail(self, revision, path):
        self.calls.append(("show", revision))
        return self.commits[self._index(revision)].detail


def chain_history(length: int) -> FakeHistoryClient:
    """History where commit i replaces line{i-1} with line{i}."""
    commits = [FakeCommit("r0", ["line0"], "@@ -0,0 +1 @@\n+line0")]
    for i in range(1, length):
        commits.append(
            FakeCommit(
                f"r{i}",
                [f"line{i - 1}", f"line{i}"],
                f"@@ -1 +1 @@\n-line{i - 1}\n+line{i}",
            )
        )
    return FakeHistoryClient(commits)


# ---------------------------------------------------------------------------
# Change-detail parser
# ---------------------------------------------------------------------------


def test_replaced_line_yields_removed_predecessor():
    """A -/+ pair gives back the removed line."""
    assert extract_preceding_line(PATCH_BAR_TO_BAZ, "baz") == "bar"


def test_first_line_of_hunk_has_no_predecessor():
    """An added line that opens its hunk gives not_found."""
    assert extract_preceding_line(PATCH_INTRODUCE_BAR, "bar") is None


def test_no_matching_added_line():
    assert extract_preceding_line(PATCH_BAR_TO_BAZ, "qux") is None


def test_match_only_in_removed_text():
    """Content that only appears in removed lines is not found."""
    assert extract_preceding_line(PATCH_BAR_TO_BAZ, "bar") is None


def test_file_headers_are_not_added_lines():
    """The +++ header never counts as an added line."""
    detail = (
        "diff --git a/foo b/foo\n"
        "--- a/foo\n"
        "+++ b/foo\n"
        "@@ -1,2 +1,2 @@\n"
        " alpha\n"
        "-beta\n"
        "+foo"
    )
    assert extract_preceding_line(detail, "foo") == "beta"


def test_context_predecessor_is_left_trimmed():
    detail = "@@ -1,2 +1,3 @@\n     indented context  \n+  new line\n end"
    assert extract_preceding_line(detail, "new line") == "indented context  "


def test_added_line_matches_by_substring():
    """A longer added line matches a shorter target."""
    detail = "@@ -1 +1,2 @@\n header\n+foo bar baz"
    assert extract_preceding_line(detail, "bar") == "header"


def test_first_match_wins_even_without_predecessor():
    """The first matching added line decides, later matches are ignored."""
    detail = "@@ -0,0 +1,2 @@\n+dup\n+dup"
    assert extract_preceding_line(detail, "dup") is None


def test_predecessor_does_not_cross_hunks():
    detail = (
        "@@ -1,2 +1,2 @@\n"
        " one\n"
        "-two\n"
        "+TWO\n"
        "@@ -10 +10 @@\n"
        "+ten"
    )
    assert extract_preceding_line(detail, "ten") is None
    assert extract_preceding_line(detail, "TWO") == "two"


def test_no_newline_marker_is_skipped():
    detail = (
        "@@ -1 +1 @@\n"
        "-old\n"
        "\\ No newline at end of file\n"
        "+new\n"
        "\\ No newline at end of file"
    )
    assert extract_preceding_line(detail, "new") == "old"


def test_combined_diff_sigil_columns():
    detail = (
        "diff --cc merged.txt\n"
        "@@@ -1,1 -1,1 +1,3 @@@\n"
        "  base\n"
        " +from ours\n"
        "++merged line"
    )
    assert extract_preceding_line(detail, "merged line") == "from ours"


def test_parse_hunks_skips_commit_header():
    hunks = parse_hunks(PATCH_BAR_TO_BAZ)

    assert len(hunks) == 1
    assert hunks[0].header == "@@ -1 +1 @@"
    assert [(line.kind, line.text) for line in hunks[0].lines] == [
        (LineKind.REMOVED, "bar"),
        (LineKind.ADDED, "baz"),
    ]


def test_parse_hunks_ends_hunk_at_next_file():
    detail = (
        "@@ -1 +1 @@\n"
        "-a\n"
        "+b\n"
        "diff --git a/other b/other\n"
        "--- a/other\n"
        "+++ b/other\n"
        "@@ -1 +1 @@\n"
        "-c\n"
        "+d"
    )
    hunks = parse_hunks(detail)

    assert [len(h.lines) for h in hunks] == [2, 2]


def test_blank_context_line_inside_hunk():
    detail = "@@ -1,2 +1,3 @@\n first\n\n+after blank"
    assert extract_preceding_line(detail, "after blank") == ""


# ---------------------------------------------------------------------------
# Backward walk
# ---------------------------------------------------------------------------


def test_single_revision_gives_one_record():
    """A file's only revision introduced the line."""
    client = FakeHistoryClient([FakeCommit("r1", ["foo"], "@@ -0,0 +1 @@\n+foo")])

    trace = LineageTracer(client).trace("app.txt", "foo", 5)

    assert len(trace) == 1
    assert trace[0].content == "foo"
    assert trace[0].revision == "r1"
    assert trace.stop_reason is StopReason.CONTENT_NOT_FOUND


def test_changed_line_is_followed_to_its_origin():
    """bar -> baz is traced back to the commit that introduced bar."""
    client = FakeHistoryClient(
        [
            FakeCommit("r1", ["bar"], PATCH_INTRODUCE_BAR),
            FakeCommit("r2", ["bar", "baz"], PATCH_BAR_TO_BAZ),
        ]
    )

    trace = LineageTracer(client).trace("app.txt", "baz", 5)

    assert [(r.revision, r.content) for r in trace] == [("r2", "baz"), ("r1", "bar")]
    assert trace.stop_reason is StopReason.CONTENT_NOT_FOUND


def test_unavailable_detail_ends_walk_with_sentinel():
    client = FakeHistoryClient([FakeCommit("r1", ["foo"], None)])

    trace = LineageTracer(client).trace("app.txt", "foo", 5)

    assert trace.records == [TraceRecord("r1", "foo", DIFF_NOT_AVAILABLE)]
    assert not trace[0].detail_available
    assert trace.stop_reason is StopReason.DETAIL_UNAVAILABLE


def test_reintroduced_content_follows_nearest_occurrence():
    """Content added, removed and added again is traced from the latest addition."""
    client = FakeHistoryClient(
        [
            FakeCommit("r1", ["target"], "@@ -0,0 +1 @@\n+target"),
            FakeCommit("r2", ["target", "other"], "@@ -1 +1 @@\n-target\n+other"),
            FakeCommit("r3", ["target"], "@@ -1 +1,2 @@\n other\n+target"),
        ]
    )

    trace = LineageTracer(client).trace("app.txt", "target", 10)

    assert trace.revisions == ["r3", "r2", "r1"]
    assert [r.content for r in trace] == ["target", "other", "target"]


def test_zero_budget_does_not_query():
    client = chain_history(3)

    trace = LineageTracer(client).trace("app.txt", "line2", 0)

    assert len(trace) == 0
    assert client.calls == []


def test_negative_budget_rejected():
    with pytest.raises(ValueError):
        LineageTracer(chain_history(2)).trace("app.txt", "line1", -1)


def test_nothing_found_gives_empty_trace():
    client = chain_history(3)

    trace = LineageTracer(client).trace("app.txt", "absent", 5)

    assert len(trace) == 0
    assert trace.stop_reason is StopReason.ORIGIN_REACHED


@pytest.mark.parametrize("budget", [1, 3, 9, 20])
def test_record_count_never_exceeds_budget(budget):
    trace = LineageTracer(chain_history(10)).trace("app.txt", "line9", budget)

    assert len(trace) <= budget
    if budget < 10:
        assert trace.stop_reason is StopReason.BUDGET_EXHAUSTED


def test_revisions_strictly_decrease():
    client = chain_history(6)

    trace = LineageTracer(client).trace("app.txt", "line5", 10)

    order = [client._index(r) for r in trace.revisions]
    assert order == sorted(order, reverse=True)
    assert len(set(order)) == len(order)
    assert trace.revisions == ["r5", "r4", "r3", "r2", "r1", "r0"]


def test_later_searches_exclude_found_revision():
    client = chain_history(3)

    LineageTracer(client).trace("app.txt", "line2", 5)

    finds = [c for c in client.calls if c[0] == "find"]
    assert finds[0] == ("find", "r2", "line2", True)
    assert finds[1] == ("find", "r2", "line1", False)


def test_match_in_removed_text_keeps_record_and_stops():
    """The search may report a change that only removed the content."""
    client = FakeHistoryClient(
        [FakeCommit("r1", ["foo", "bar"], "@@ -1 +1 @@\n-foo\n+bar")]
    )

    trace = LineageTracer(client).trace("app.txt", "foo", 5)

    assert trace.revisions == ["r1"]
    assert trace.stop_reason is StopReason.CONTENT_NOT_FOUND


def test_repository_error_propagates():
    with pytest.raises(RepositoryError):
        LineageTracer(FakeHistoryClient([])).trace("app.txt", "foo", 5)


def test_cancelled_before_first_step():
    event = threading.Event()
    event.set()

    trace = LineageTracer(chain_history(4), cancel_event=event).trace("app.txt", "line3", 5)

    assert len(trace) == 0
    assert trace.stop_reason is StopReason.CANCELLED


def test_cancelled_between_steps():
    event = threading.Event()

    class CancellingClient(FakeHistoryClient):
        def get_change_detail(self, revision, path):
            event.set()
            return super().get_change_detail(revision, path)

    client = CancellingClient(chain_history(4).commits)
    trace = LineageTracer(client, cancel_event=event).trace("app.txt", "line3", 5)

    assert trace.revisions == ["r3"]
    assert trace.stop_reason is StopReason.CANCELLED


def test_same_inputs_same_trace():
    first = LineageTracer(chain_history(5)).trace("app.txt", "line4", 10)
    second = LineageTracer(chain_history(5)).trace("app.txt", "line4", 10)

    assert first == second
