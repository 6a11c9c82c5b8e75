"""
tscompute Sequencer
===================

Fills in the missing cells of a bundle's result matrix.

Per row, strictly in catalog order:
    select pending cells -> group by master -> check row shape
    -> evaluate masters (serial or parallel) -> extract -> classify
    -> write the row's cells -> report progress

Rows run one at a time so only one time series payload is in memory and
progress can be checkpointed between rows. Cancellation is checked between
rows, never inside one.

Usage:
    python -m tscompute path/to/bundle
    python -m tscompute path/to/bundle --parallel --ts-ids 1,2,3
    python -m tscompute path/to/bundle --config run.yaml --log
"""

import argparse
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

import numpy as np

from tscompute.config import RunConfig
from tscompute.core.catalog import Catalog
from tscompute.core.normalization import zscore
from tscompute.core.registry import MasterRegistry, get_registry
from tscompute.io import load_bundle, save_bundle
from tscompute.scheduler.dedup import group_by_master
from tscompute.scheduler.executor import execute_plan
from tscompute.scheduler.progress import ProgressReporter, format_duration
from tscompute.scheduler.selector import column_mask, count_pending, resolve_indices, select_row
from tscompute.scheduler.state import ResultMatrix, RowResult, RunState, RunSummary
from tscompute.validation import MalformedRowError, check_row_data

logger = logging.getLogger(__name__)


def process_row(
    state: RunState,
    position: int,
    catalog: Catalog,
    registry: MasterRegistry,
    reporter: ProgressReporter,
    n_jobs: int = 1,
    backend: str = 'loky',
) -> RunState:
    """
    Compute every pending cell of one row and record it in the state.

    Raises:
        CatalogIntegrityError: Before anything is written for the row
    """
    start = time.perf_counter()
    row = int(state.row_indices[position])
    ts = catalog.time_series[row]
    n_ops = int(np.sum(state.op_mask))

    cols = select_row(state.matrix.quality[row], state.op_mask)
    result = RowResult(row=row, ts_id=ts.id, name=ts.name, length=ts.length, cols=cols)

    if result.n_calc > 0:
        plan = group_by_master(cols, catalog)

        try:
            x = check_row_data(ts.data, name=ts.name)
        except MalformedRowError as e:
            logger.warning(f"Skipping time series {ts.id}: {e}")
            result.cols = np.zeros(0, dtype=np.int64)
            result.skipped = True
            result.skip_reason = str(e)
            result.elapsed = time.perf_counter() - start
            state.apply(result)
            reporter.row_finished(result, state, n_ops)
            return state

        y = zscore(x)
        # Shared read-only inputs for every master of this row
        x.setflags(write=False)
        y.setflags(write=False)

        reporter.row_started(position + 1, state.n_rows, result, n_ops)

        values, calc_times, quality, _, master_time = execute_plan(
            plan, x, y, catalog, registry, n_jobs=n_jobs, backend=backend
        )
        result.n_masters = plan.n_masters
        result.master_time = master_time
        reporter.masters_evaluated(result.n_masters, result.master_time)

        result.values = values
        result.calc_times = calc_times
        result.quality = quality

    result.elapsed = time.perf_counter() - start
    state.apply(result)
    reporter.row_finished(result, state, n_ops)
    return state


def compute(
    catalog: Catalog,
    matrix: ResultMatrix,
    registry: Optional[MasterRegistry] = None,
    ts_ids: Optional[List[int]] = None,
    op_ids: Optional[List[int]] = None,
    n_jobs: int = 1,
    backend: str = 'loky',
    verbose: bool = True,
    stream=None,
    cancel=None,
    on_row: Optional[Callable[[RunState], None]] = None,
) -> RunSummary:
    """
    Fill pending cells of matrix in place.

    Args:
        catalog: Time series, operations and master operations
        matrix: Result matrix to update (mutated in place)
        registry: Master registry (default: global registry with built-ins)
        ts_ids: Time series IDs to compute (None/empty = all)
        op_ids: Operation IDs to compute (None/empty = all)
        n_jobs: 1 = serial; otherwise joblib workers per row
        backend: joblib backend for master evaluation
        verbose: Print progress
        stream: Progress stream (default stdout)
        cancel: Object with is_set() (e.g. threading.Event), checked between rows
        on_row: Callback after every row (checkpointing)

    Returns:
        RunSummary with run-level totals

    Raises:
        CatalogIntegrityError: Catalog cannot be linked; nothing is written
    """
    if registry is None:
        registry = get_registry()

    if matrix.shape != (catalog.n_time_series, catalog.n_operations):
        raise ValueError(
            f"Result matrix shape {matrix.shape} does not match catalog "
            f"({catalog.n_time_series} x {catalog.n_operations})"
        )

    catalog.resolve(registry)

    state = RunState(
        matrix=matrix,
        row_indices=resolve_indices(ts_ids, catalog.ts_ids),
        op_mask=column_mask(op_ids, catalog.op_ids),
    )

    reporter = ProgressReporter(stream=stream, verbose=verbose)
    reporter.run_started(
        n_rows=state.n_rows,
        n_ops=int(np.sum(state.op_mask)),
        n_pending=count_pending(matrix.quality, state.row_indices, state.op_mask),
        n_jobs=n_jobs,
    )

    for position in range(state.n_rows):
        if cancel is not None and cancel.is_set():
            state.cancelled = True
            reporter.cancelled(state)
            break

        state = process_row(
            state, position, catalog, registry, reporter,
            n_jobs=n_jobs, backend=backend,
        )

        if on_row is not None:
            on_row(state)

    summary = state.summary()
    reporter.run_finished(summary)
    return summary


def _open_log(log_dir: str):
    """Open a timestamped progress log file."""
    path = Path(log_dir) / f"tscompute_{datetime.now().strftime('%Y%m%dT%H%M%S')}.log"
    path.parent.mkdir(parents=True, exist_ok=True)
    return open(path, 'w'), path


def run(
    bundle_dir: str,
    config: Optional[RunConfig] = None,
    registry: Optional[MasterRegistry] = None,
    cancel=None,
) -> RunSummary:
    """
    Load a bundle, compute its pending cells, save it back.

    Args:
        bundle_dir: Bundle directory
        config: Run configuration (default RunConfig())
        registry: Master registry (default: global registry)
        cancel: Optional cancellation event, checked between rows

    Returns:
        RunSummary
    """
    config = config or RunConfig()
    verbose = config.verbose

    log_file = None
    stream = None
    if config.log_to_file:
        log_file, log_path = _open_log(config.log_dir)
        stream = log_file
        if verbose:
            print(f"Calculation details will be logged to {log_path}")

    try:
        if verbose:
            print(f"Loading data from {bundle_dir}...")
        bundle = load_bundle(bundle_dir)
        if verbose:
            print(f"  Loaded {bundle.catalog.n_time_series} time series, "
                  f"{bundle.catalog.n_operations} operations, "
                  f"{len(bundle.catalog.masters)} master operations.")

        last_saved = time.perf_counter()

        def checkpoint(state: RunState) -> None:
            nonlocal last_saved
            if config.checkpoint_interval is None:
                return
            if state.rows_remaining == 0:
                return
            if time.perf_counter() - last_saved >= config.checkpoint_interval:
                save_bundle(bundle)
                last_saved = time.perf_counter()
                logger.info(f"Checkpoint saved after {state.n_rows_done} / {state.n_rows} time series")

        summary = compute(
            bundle.catalog,
            bundle.matrix,
            registry=registry,
            ts_ids=config.ts_ids,
            op_ids=config.op_ids,
            n_jobs=config.effective_n_jobs(),
            backend=config.backend,
            verbose=verbose,
            stream=stream,
            cancel=cancel,
            on_row=checkpoint,
        )

        if verbose:
            print(f"Saving all results to {bundle_dir}...")
        save_start = time.perf_counter()
        save_bundle(bundle)
        if verbose:
            print(f"  Saved in {format_duration(time.perf_counter() - save_start)}.")
            print("Calculation complete!")
    finally:
        if log_file is not None:
            log_file.close()

    return summary


def _parse_ids(text: Optional[str]) -> List[int]:
    """'1,2,5-8' -> [1, 2, 5, 6, 7, 8]"""
    if not text:
        return []
    ids = []
    for part in text.split(','):
        part = part.strip()
        if not part:
            continue
        if '-' in part:
            lo, hi = part.split('-', 1)
            ids.extend(range(int(lo), int(hi) + 1))
        else:
            ids.append(int(part))
    return ids


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Compute pending cells of a time-series feature bundle",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Usage:
  python -m tscompute ~/bundles/demo
  python -m tscompute ~/bundles/demo --parallel --ts-ids 1-20
  python -m tscompute ~/bundles/demo --op-ids 3,4,5 --log
"""
    )
    parser.add_argument('bundle_dir', help='Path to bundle directory')
    parser.add_argument('--config', help='Run configuration YAML')
    parser.add_argument('--parallel', action='store_true', default=None,
                        help='Evaluate master operations across workers')
    parser.add_argument('--n-jobs', type=int, help='Worker count (-1 or 0 = all cores)')
    parser.add_argument('--backend', choices=['loky', 'threading', 'multiprocessing'])
    parser.add_argument('--ts-ids', help="Time series IDs, e.g. '1,2,5-8'")
    parser.add_argument('--op-ids', help="Operation IDs, e.g. '10-20'")
    parser.add_argument('--log', action='store_true', default=None,
                        help='Write progress to a timestamped log file')
    parser.add_argument('--log-dir', help='Directory for the log file')
    parser.add_argument('--checkpoint-interval', type=float,
                        help='Seconds between intermediate saves')
    parser.add_argument('-q', '--quiet', action='store_true', help='Suppress output')

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    config = RunConfig.from_yaml(args.config) if args.config else RunConfig()

    overrides = {
        'parallel': args.parallel,
        'n_jobs': args.n_jobs,
        'backend': args.backend,
        'ts_ids': _parse_ids(args.ts_ids) if args.ts_ids else None,
        'op_ids': _parse_ids(args.op_ids) if args.op_ids else None,
        'log_to_file': args.log,
        'log_dir': args.log_dir,
        'checkpoint_interval': args.checkpoint_interval,
        'verbose': False if args.quiet else None,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        config = config.model_copy(update=overrides)

    summary = run(args.bundle_dir, config=config)
    return 1 if summary.cancelled else 0


if __name__ == '__main__':
    sys.exit(main())
