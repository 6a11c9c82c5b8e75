"""
Run Configuration
=================

Parameters for one scheduler run. None of them affect what a cell's value
is, only which cells are attempted and how progress is reported.

Usage:
    config = RunConfig(parallel=True, ts_ids=[1, 2, 3])
    config.to_yaml("run.yaml")

    config = RunConfig.from_yaml("run.yaml")
    n_jobs = config.effective_n_jobs()

Environment:
    TSCOMPUTE_WORKERS   overrides n_jobs when parallel (0 = all cores)
"""

import os
from pathlib import Path
from typing import List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field

WORKERS_ENV = "TSCOMPUTE_WORKERS"


class RunConfig(BaseModel):
    """Scope, dispatch and reporting options for a run."""

    parallel: bool = Field(
        default=False,
        description="Evaluate master operations across a worker pool",
    )
    n_jobs: int = Field(
        default=-1,
        description="Worker count when parallel (-1 or 0 = all cores)",
    )
    backend: Literal["loky", "threading", "multiprocessing"] = Field(
        default="loky",
        description="joblib backend for master evaluation",
    )
    ts_ids: List[int] = Field(
        default_factory=list,
        description="Time series IDs to compute (empty = all)",
    )
    op_ids: List[int] = Field(
        default_factory=list,
        description="Operation IDs to compute (empty = all)",
    )
    verbose: bool = Field(
        default=True,
        description="Print per-row progress",
    )
    log_to_file: bool = Field(
        default=False,
        description="Write progress to a timestamped log file instead of stdout",
    )
    log_dir: str = Field(
        default=".",
        description="Directory for the progress log file",
    )
    checkpoint_interval: Optional[float] = Field(
        default=None,
        description="Seconds between intermediate bundle saves (None = save at end only)",
    )

    def effective_n_jobs(self) -> int:
        """1 when serial; otherwise n_jobs, overridden by TSCOMPUTE_WORKERS (0 = all cores)."""
        if not self.parallel:
            return 1
        env = os.environ.get(WORKERS_ENV, "")
        n_jobs = int(env) if env else self.n_jobs
        return n_jobs or (os.cpu_count() or 2)

    def to_yaml(self, path: Union[str, Path]) -> None:
        """Save config to YAML file."""
        with open(path, 'w') as f:
            yaml.safe_dump(self.model_dump(), f, sort_keys=False)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "RunConfig":
        """Load config from YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.model_validate(data)
