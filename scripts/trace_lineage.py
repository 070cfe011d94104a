#!/usr/bin/env python3
"""
Trace the commit lineage of matching lines in a git repository.

For every file in a folder that matches a name pattern, every line that matches
a regular expression is traced backward through the file's history. One trace
file is written per line and a CSV summary is written for the whole run.

Usage:
 # Trace scenario titles in feature files
 python scripts/trace_lineage.py --repo . --folder features --match "^\\s*Scenario"

 # Use a YAML job file, overriding the budget
 python scripts/trace_lineage.py --config config/trace.example.yaml --max-commits 20

 # Run four traces at a time
 python scripts/trace_lineage.py --config job.yaml --jobs 4 -v
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv(override=False)

from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

# Add scripts directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from line_selector import CandidateLine, discover_files, select_lines, to_repo_path
from lineage import LineageTrace, RepositoryError, trace_lineage
from report_writer import (
    SummaryRow,
    ensure_output_dir,
    trace_file_name,
    write_summary_csv,
    write_trace_file,
)
from trace_config import TraceJobConfig, build_job_config


console = Console()

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130


@dataclass
class LineResult:
    """Outcome of tracing one candidate line."""

    candidate: CandidateLine
    repo_path: Optional[str] = None
    trace: Optional[LineageTrace] = None
    output_path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and self.trace is not None


def configure_logging(verbose: bool = False) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def printable(text: str) -> str:
    """Console-safe form of line content; undecodable bytes show as U+FFFD."""
    return text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def collect_candidates(config: TraceJobConfig) -> list[CandidateLine]:
    """
    Find all candidate lines for a run.

    Lines that are blank after trimming would match almost every change in a
    content search, so they are skipped here rather than traced.
    """
    candidates: list[CandidateLine] = []

    for file_path in discover_files(config.folder, config.file_pattern):
        console.print(f"Processing file: {escape(str(file_path))}")
        for candidate in select_lines(file_path, config.compiled_pattern):
            if candidate.is_blank:
                console.print(
                    f"[yellow]Skipping blank line {candidate.line_number} "
                    f"in {escape(file_path.name)}[/yellow]"
                )
                continue
            candidates.append(candidate)

    return candidates


def trace_candidate(
    candidate: CandidateLine,
    config: TraceJobConfig,
    cancel_event: Optional[threading.Event] = None,
) -> LineResult:
    """
    Trace one line and write its trace file.

    Repository errors and trace file write errors are returned in the result
    so that one failing line doesn't stop the others.
    """
    try:
        repo_path = to_repo_path(candidate.file_path, config.repo_root)
    except ValueError as e:
        return LineResult(candidate=candidate, error=str(e))

    try:
        trace = trace_lineage(
            config.repo_root,
            repo_path,
            candidate.content,
            config.max_commits,
            timeout=config.query_timeout,
            git_executable=config.git_executable,
            cancel_event=cancel_event,
        )
    except RepositoryError as e:
        return LineResult(candidate=candidate, repo_path=repo_path, error=str(e))

    output_path = Path(config.output_dir) / trace_file_name(
        candidate.line_number, candidate.file_path
    )
    try:
        write_trace_file(trace, output_path)
    except OSError as e:
        return LineResult(
            candidate=candidate,
            repo_path=repo_path,
            error=f"Could not write {output_path}: {e.strerror or e}",
        )

    return LineResult(
        candidate=candidate,
        repo_path=repo_path,
        trace=trace,
        output_path=output_path,
    )


def report_line(result: LineResult) -> None:
    """Print progress for one traced line."""
    candidate = result.candidate
    name = candidate.file_path.name

    if not result.success:
        console.print(
            f"[red]Failed line {candidate.line_number} in file {escape(name)}: "
            f"{escape(printable(result.error or 'unknown error'))}[/red]"
        )
        console.print("----------------------------")
        return

    console.print(
        f"Processed line {candidate.line_number} in file {escape(name)}: '{escape(printable(candidate.content))}'"
    )
    console.print(f"Number of commits found: {len(result.trace)}")
    console.print(f"Output saved to: {escape(str(result.output_path))}")
    console.print("----------------------------")


def print_results_table(results: list[LineResult]) -> None:
    table = Table(title="Lineage Results")
    table.add_column("File", style="cyan")
    table.add_column("Line", justify="right")
    table.add_column("Content", max_width=40)
    table.add_column("Commits", justify="right")
    table.add_column("Stopped", style="magenta")
    table.add_column("Status", justify="center")

    for r in results:
        if r.success:
            status = "[green]OK[/green]"
            commits = str(len(r.trace))
            stopped = r.trace.stop_reason.value
        else:
            status = "[red]FAIL[/red]"
            commits = "-"
            stopped = "-"

        table.add_row(
            escape(r.candidate.file_path.name),
            str(r.candidate.line_number),
            escape(printable(r.candidate.content)[:40]),
            commits,
            stopped,
            status,
        )

    console.print(table)


def run_tracing(config: TraceJobConfig) -> int:
    """
    Run a full tracing job.

    Args:
        config: Validated job configuration

    Returns:
        Exit code (0 = all lines traced)
    """
    try:
        candidates = collect_candidates(config)
    except FileNotFoundError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return EXIT_CONFIG

    ensure_output_dir(config.output_dir)

    results: list[LineResult] = []
    cancel_event = threading.Event()
    interrupted = False

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task(f"Tracing {len(candidates)} lines...", total=len(candidates))

        with ThreadPoolExecutor(max_workers=config.jobs) as executor:
            futures = [
                executor.submit(trace_candidate, candidate, config, cancel_event)
                for candidate in candidates
            ]
            try:
                for future in futures:
                    result = future.result()
                    results.append(result)
                    report_line(result)
                    progress.advance(task)
            except KeyboardInterrupt:
                interrupted = True
                cancel_event.set()
                executor.shutdown(wait=True, cancel_futures=True)

    summary = [
        SummaryRow(
            file_path=str(r.candidate.file_path),
            line_content=r.candidate.content,
            commit_history_length=len(r.trace),
        )
        for r in results
        if r.success
    ]
    write_summary_csv(summary, config.summary_csv)

    if results:
        console.print()
        print_results_table(results)

    console.print(f"Summary saved to CSV file: {config.summary_csv}")

    failed = sum(1 for r in results if not r.success)
    if failed:
        console.print(f"[red]Failed:[/red] {failed}")

    if interrupted:
        console.print("[yellow]Interrupted: remaining lines were not traced[/yellow]")
        return EXIT_INTERRUPTED

    return EXIT_OK if failed == 0 else EXIT_FAILED


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Trace the commit lineage of matching lines in a git repository"
    )
    parser.add_argument("--config", type=Path, help="YAML job file")
    parser.add_argument("--repo", type=Path, help="Repository root")
    parser.add_argument("--folder", type=Path, help="Folder containing the files to scan")
    parser.add_argument("--pattern", type=str, help="File name pattern (default: *.feature)")
    parser.add_argument("--match", type=str, help="Regular expression selecting lines")
    parser.add_argument("--output-dir", type=Path, help="Directory for trace files (default: output)")
    parser.add_argument("--summary", type=Path, help="Summary CSV path (default: summary.csv)")
    parser.add_argument("--max-commits", type=int, help="Step budget per line (default: 100)")
    parser.add_argument("--jobs", type=int, help="Lines traced in parallel (default: 1)")
    parser.add_argument("--timeout", type=float, help="Seconds allowed per git query")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show every tracing step",
    )

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    overrides = {
        "repo_root": args.repo,
        "folder": args.folder,
        "file_pattern": args.pattern,
        "line_pattern": args.match,
        "output_dir": args.output_dir,
        "summary_csv": args.summary,
        "max_commits": args.max_commits,
        "jobs": args.jobs,
        "query_timeout": args.timeout,
    }

    try:
        config = build_job_config(overrides, config_path=args.config)
    except (ValidationError, ValueError, FileNotFoundError) as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        return EXIT_CONFIG

    return run_tracing(config)


if __name__ == "__main__":
    sys.exit(main())
