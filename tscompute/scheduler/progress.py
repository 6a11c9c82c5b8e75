"""
Progress/ETA Reporter
=====================

Prints per-row and per-run progress to stdout or to a run log file.

ETA after row i = (rows remaining) × (mean elapsed per completed row).

Purely observational: a write failure on the progress stream is logged and
dropped, never propagated into the scheduler.
"""

import logging
import sys
from datetime import datetime
from typing import Optional, TextIO

from tscompute.scheduler.state import RowResult, RunState, RunSummary

logger = logging.getLogger(__name__)

_RULE = "=" * 70
_THIN = "-" * 70


def format_duration(seconds: Optional[float], long: bool = False) -> str:
    """
    Human-readable duration.

    format_duration(0.5)       -> '0.50 s'
    format_duration(90, True)  -> '1.5 minutes'
    """
    if seconds is None:
        return 'unknown'

    units = [
        (86400.0, 'd', 'days'),
        (3600.0, 'h', 'hours'),
        (60.0, 'min', 'minutes'),
    ]
    for size, short_name, long_name in units:
        if seconds >= size:
            value = seconds / size
            return f"{value:.1f} {long_name}" if long else f"{value:.1f} {short_name}"

    if seconds < 1e-3:
        return "< 1 ms" if not long else "less than a millisecond"
    return f"{seconds:.2f} seconds" if long else f"{seconds:.2f} s"


class ProgressReporter:
    """Writes progress text for one run."""

    def __init__(self, stream: Optional[TextIO] = None, verbose: bool = True):
        self.stream = stream if stream is not None else sys.stdout
        self.verbose = verbose

    def _emit(self, *lines: str) -> None:
        if not self.verbose:
            return
        try:
            for line in lines:
                print(line, file=self.stream)
            self.stream.flush()
        except (OSError, ValueError) as e:
            logger.warning(f"Progress output failed: {e}")

    @staticmethod
    def _now() -> str:
        return datetime.now().strftime('%Y-%m-%d %H:%M:%S')

    def run_started(
        self,
        n_rows: int,
        n_ops: int,
        n_pending: int,
        n_jobs: int,
    ) -> None:
        if n_jobs != 1:
            mode = f"Computation will be performed in parallel across {n_jobs if n_jobs > 0 else 'all'} workers."
        else:
            mode = "Computations will be performed serially without parallelization."
        self._emit(
            mode,
            f"Calculation has begun on {self._now()} using {n_rows} time series "
            f"and {n_ops} operations ({n_pending} cells pending)",
        )

    def row_started(self, position: int, n_rows: int, result: RowResult, n_ops: int) -> None:
        self._emit(
            "",
            _RULE,
            f"[{self._now()}] Loaded time series {position} / {n_rows}",
            f"Preparing to calculate {result.name}",
            f"ts_id = {result.ts_id}, N = {result.length} samples",
            f"Computing {result.n_calc} / {n_ops} operations.",
            _RULE,
        )

    def masters_evaluated(self, n_masters: int, elapsed: float) -> None:
        self._emit(f"{n_masters} master operations evaluated in {format_duration(elapsed)}")

    def row_finished(self, result: RowResult, state: RunState, n_ops: int) -> None:
        lines = [_THIN]
        if result.skipped:
            lines.append(
                f"Skipped {result.name} (ts_id = {result.ts_id}): {result.skip_reason}"
            )
        else:
            lines.append(
                f"Calculation complete for {result.name} "
                f"(ts_id = {result.ts_id}, N = {result.length})"
            )
            if result.n_calc > 0:
                n_good, n_errors, n_special = result.counts()
                lines.append(
                    f"{n_good} real-valued outputs, {n_errors} errors, "
                    f"{n_special} special-valued outputs stored. [{result.n_calc} / {n_ops}]"
                )
                lines.append(
                    f"All calculations for this time series took {format_duration(result.elapsed, long=True)}."
                )
            else:
                lines.append(f"Nothing calculated! All {n_ops} operations already complete.")

        if state.rows_remaining > 0:
            lines.append(f"{state.rows_remaining} time series remaining")
            lines.append(f"{format_duration(state.eta(), long=True)} remaining")
        else:
            lines.append(f"All {state.n_rows} time series calculated!")
        lines.append(_THIN)
        self._emit(*lines)

    def cancelled(self, state: RunState) -> None:
        self._emit(f"Run cancelled with {state.rows_remaining} time series remaining.")

    def run_finished(self, summary: RunSummary) -> None:
        lines = [
            "",
            f"Calculation completed at {self._now()}",
            f"Calculations complete in a total of {format_duration(summary.total_time, long=True)}.",
            f"{summary.n_cells} cells computed: {summary.n_good} good, "
            f"{summary.n_errors} errors, {summary.n_special} special-valued.",
        ]
        if summary.skipped:
            lines.append(
                f"{len(summary.skipped)} time series skipped (malformed data): "
                f"{summary.skipped}"
            )
        self._emit(*lines)
