#!/usr/bin/env python3
"""
Configuration for lineage tracing runs.

Two layers:
- TraceSettings: defaults from environment variables (LINEAGE_*) and .env
- TraceJobConfig: one run, loaded from a YAML job file and/or CLI flags

CLI flags override the YAML file, which overrides the environment defaults.

Usage:
    from trace_config import build_job_config, load_trace_config

    config = load_trace_config(Path("config/trace.example.yaml"))
    config = build_job_config({"max_commits": 20}, config_path=Path("job.yaml"))

Example job file:

    repo_root: .
    folder: features
    file_pattern: "*.feature"
    line_pattern: "^\\\\s*Scenario"
    output_dir: output
    summary_csv: output/summary.csv
    max_commits: 100
    jobs: 4
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "TraceSettings",
    "TraceJobConfig",
    "load_trace_config",
    "build_job_config",
]


class TraceSettings(BaseSettings):
    """Defaults from environment variables."""

    model_config = SettingsConfigDict(env_prefix="LINEAGE_", env_file=".env", extra="ignore")

    git_executable: str = "git"
    query_timeout: float = 30.0
    max_commits: int = 100
    jobs: int = 1


class TraceJobConfig(BaseModel):
    """Complete configuration of one tracing run."""

    repo_root: Path
    folder: Path
    line_pattern: str
    file_pattern: str = "*.feature"
    output_dir: Path = Path("output")
    summary_csv: Path = Path("summary.csv")
    max_commits: int = 100
    jobs: int = 1
    query_timeout: Optional[float] = 30.0
    git_executable: str = "git"

    @field_validator("line_pattern")
    @classmethod
    def check_line_pattern(cls, v: str) -> str:
        """Reject patterns that don't compile."""
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid line_pattern '{v}': {e}") from e
        return v

    @field_validator("max_commits")
    @classmethod
    def check_max_commits(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_commits must be >= 0")
        return v

    @field_validator("jobs")
    @classmethod
    def check_jobs(cls, v: int) -> int:
        if v < 1:
            raise ValueError("jobs must be >= 1")
        return v

    @field_validator("query_timeout")
    @classmethod
    def check_query_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("query_timeout must be positive")
        return v

    @property
    def compiled_pattern(self) -> re.Pattern[str]:
        return re.compile(self.line_pattern)


def _read_yaml(config_path: Path) -> dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(f"Trace config not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Trace config must be a mapping: {config_path}")
    return data


def load_trace_config(config_path: Path) -> TraceJobConfig:
    """
    Load and validate a YAML job file.

    Args:
        config_path: Path to the YAML file

    Returns:
        Validated TraceJobConfig

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config validation fails
    """
    return TraceJobConfig.model_validate(_read_yaml(config_path))


def build_job_config(
    overrides: dict[str, Any],
    config_path: Optional[Path] = None,
    settings: Optional[TraceSettings] = None,
) -> TraceJobConfig:
    """
    Merge environment defaults, an optional YAML file and explicit overrides.

    Args:
        overrides: Values from the command line; None values are ignored
        config_path: Optional YAML job file
        settings: Environment settings (read from the environment if omitted)

    Returns:
        Validated TraceJobConfig
    """
    settings = settings or TraceSettings()

    data: dict[str, Any] = {
        "git_executable": settings.git_executable,
        "query_timeout": settings.query_timeout,
        "max_commits": settings.max_commits,
        "jobs": settings.jobs,
    }
    if config_path is not None:
        data.update(_read_yaml(config_path))

    data.update({k: v for k, v in overrides.items() if v is not None})

    return TraceJobConfig.model_validate(data)


if __name__ == "__main__":
    # Simple test/demo
    import sys

    if len(sys.argv) < 2:
        print("Usage: python trace_config.py <job.yaml>")
        sys.exit(1)

    config = load_trace_config(Path(sys.argv[1]))
    print(f"Repository: {config.repo_root}")
    print(f"Files: {config.folder}/{config.file_pattern}")
    print(f"Line pattern: {config.line_pattern}")
    print(f"Max commits: {config.max_commits} (jobs: {config.jobs})")
