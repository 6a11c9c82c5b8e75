"""
Quality/State Store
===================

ResultMatrix holds the three parallel matrices (values, calc_times, quality),
all shaped (n_time_series, n_operations). NaN in `quality` marks a cell that
was never computed; that state drives incremental recomputation.

RunState carries everything that accumulates across rows during one run
(matrix, per-row timings, outcome totals). It is handed to each row step and
handed back, so nothing accumulates in module globals.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from tscompute.core.quality import count_outcomes


@dataclass
class ResultMatrix:
    """Values, calculation times and quality codes for every (row, column) cell."""
    values: np.ndarray
    calc_times: np.ndarray
    quality: np.ndarray

    def __post_init__(self):
        self.values = np.asarray(self.values, dtype=np.float64)
        self.calc_times = np.asarray(self.calc_times, dtype=np.float64)
        self.quality = np.asarray(self.quality, dtype=np.float64)

        if self.values.ndim != 2:
            raise ValueError(f"Result matrices must be 2-D, got shape {self.values.shape}")
        if not (self.values.shape == self.calc_times.shape == self.quality.shape):
            raise ValueError(
                "Result matrices have inconsistent shapes: "
                f"values={self.values.shape}, calc_times={self.calc_times.shape}, "
                f"quality={self.quality.shape}"
            )

    @classmethod
    def empty(cls, n_time_series: int, n_operations: int) -> "ResultMatrix":
        """All cells never computed."""
        shape = (n_time_series, n_operations)
        return cls(
            values=np.full(shape, np.nan),
            calc_times=np.full(shape, np.nan),
            quality=np.full(shape, np.nan),
        )

    @property
    def shape(self) -> tuple:
        return self.quality.shape

    def write_row(
        self,
        row: int,
        cols: np.ndarray,
        values: np.ndarray,
        calc_times: np.ndarray,
        quality: np.ndarray,
    ) -> None:
        """Store one row's results at exactly the given columns."""
        self.values[row, cols] = values
        self.calc_times[row, cols] = calc_times
        self.quality[row, cols] = quality

    def copy(self) -> "ResultMatrix":
        return ResultMatrix(
            values=self.values.copy(),
            calc_times=self.calc_times.copy(),
            quality=self.quality.copy(),
        )


@dataclass
class RowResult:
    """Outcome of processing one time series."""
    row: int
    ts_id: int
    name: str
    length: int
    cols: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))
    values: np.ndarray = field(default_factory=lambda: np.zeros(0))
    calc_times: np.ndarray = field(default_factory=lambda: np.zeros(0))
    quality: np.ndarray = field(default_factory=lambda: np.zeros(0))
    n_masters: int = 0
    master_time: float = 0.0
    elapsed: float = 0.0
    skipped: bool = False
    skip_reason: str = ''

    @property
    def n_calc(self) -> int:
        return int(len(self.cols))

    def counts(self):
        """(n_good, n_errors, n_special) for this row."""
        return count_outcomes(self.quality)


@dataclass
class RunSummary:
    """Run-level totals reported at the end of compute()."""
    n_rows: int
    n_rows_done: int
    n_cells: int
    n_good: int
    n_errors: int
    n_special: int
    skipped: List[int]
    cancelled: bool
    total_time: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to serializable dict."""
        return {
            'n_rows': self.n_rows,
            'n_rows_done': self.n_rows_done,
            'n_cells': self.n_cells,
            'n_good': self.n_good,
            'n_errors': self.n_errors,
            'n_special': self.n_special,
            'skipped': list(self.skipped),
            'cancelled': self.cancelled,
            'total_time': self.total_time,
        }


@dataclass
class RunState:
    """Everything a run accumulates across rows."""
    matrix: ResultMatrix
    row_indices: np.ndarray
    op_mask: np.ndarray
    row_times: List[float] = field(default_factory=list)
    n_cells: int = 0
    n_good: int = 0
    n_errors: int = 0
    n_special: int = 0
    skipped: List[int] = field(default_factory=list)
    cancelled: bool = False

    @property
    def n_rows(self) -> int:
        return int(len(self.row_indices))

    @property
    def n_rows_done(self) -> int:
        return len(self.row_times)

    @property
    def rows_remaining(self) -> int:
        return self.n_rows - self.n_rows_done

    def eta(self) -> Optional[float]:
        """Rows remaining × mean elapsed per completed row (None before any row)."""
        if not self.row_times:
            return None
        return self.rows_remaining * float(np.mean(self.row_times))

    def apply(self, result: RowResult) -> "RunState":
        """
        Record a finished row.

        Matrix cells are written only here, only for result.cols, and only
        for rows that were not skipped.
        """
        self.row_times.append(result.elapsed)

        if result.skipped:
            self.skipped.append(result.ts_id)
            return self

        if result.n_calc:
            self.matrix.write_row(
                result.row, result.cols, result.values, result.calc_times, result.quality
            )
            n_good, n_errors, n_special = result.counts()
            self.n_cells += result.n_calc
            self.n_good += n_good
            self.n_errors += n_errors
            self.n_special += n_special

        return self

    def summary(self) -> RunSummary:
        return RunSummary(
            n_rows=self.n_rows,
            n_rows_done=self.n_rows_done,
            n_cells=self.n_cells,
            n_good=self.n_good,
            n_errors=self.n_errors,
            n_special=self.n_special,
            skipped=list(self.skipped),
            cancelled=self.cancelled,
            total_time=float(sum(self.row_times)),
        )
