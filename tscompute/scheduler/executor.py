"""
Executor
========

Runs one row's work in two phases:

1. Master evaluation. Each distinct master in the plan is evaluated once on
   the row's raw series x or its z-scored version y. Evaluations only read
   the shared inputs and write their own result, so they fan out across a
   joblib worker pool with a single join at the end.
2. Extraction. Each selected operation pulls its field out of its master's
   result. Depends only on the joined master results.

Failures are isolated: a raising master yields an empty result (all its
operations become FATAL); a failing extraction affects only that operation.
Every operation is charged its master's full elapsed time.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np
from joblib import Parallel, delayed

from tscompute.core.catalog import Catalog, OutputSelector
from tscompute.core.quality import classify_outputs
from tscompute.core.registry import MasterRegistry
from tscompute.scheduler.dedup import MasterPlan

logger = logging.getLogger(__name__)


@dataclass
class MasterResult:
    """Output of one master evaluation (output is None when it raised)."""
    master_id: int
    output: Any = None
    elapsed: float = 0.0
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


def _evaluate_master(
    master_id: int,
    func: Callable,
    data: np.ndarray,
    params: Dict[str, Any],
) -> MasterResult:
    """
    Evaluate a single master. Top-level for pickling.

    This function runs in a worker process when dispatch is parallel.
    """
    start = time.perf_counter()
    try:
        output = func(data, **params)
    except Exception as e:
        return MasterResult(
            master_id=master_id,
            output=None,
            elapsed=time.perf_counter() - start,
            error=f"{type(e).__name__}: {e}",
        )
    return MasterResult(
        master_id=master_id,
        output=output,
        elapsed=time.perf_counter() - start,
    )


def evaluate_masters(
    plan: MasterPlan,
    x: np.ndarray,
    y: np.ndarray,
    catalog: Catalog,
    registry: MasterRegistry,
    n_jobs: int = 1,
    backend: str = 'loky',
) -> Dict[int, MasterResult]:
    """
    Evaluate every master in the plan exactly once.

    Args:
        plan: Deduplicated master plan for the row
        x: Raw series (read-only)
        y: Z-scored series (read-only)
        catalog: Catalog with master definitions
        registry: Registry resolving master codes to callables
        n_jobs: 1 = sequential; otherwise joblib workers (-1 = all cores)
        backend: joblib backend ('loky', 'threading', 'multiprocessing')

    Returns:
        Dict of {master_id: MasterResult}
    """
    tasks = []
    for master_id in plan.master_ids:
        master = catalog.master(master_id)
        func = registry.get_compute_func(master.code)
        params = registry.get_params(master.code, master.params)
        data = x if master.input == 'raw' else y
        tasks.append((master_id, func, data, params))

    if n_jobs == 1 or len(tasks) <= 1:
        results = [_evaluate_master(*task) for task in tasks]
    else:
        results = Parallel(n_jobs=n_jobs, backend=backend)(
            delayed(_evaluate_master)(*task) for task in tasks
        )

    by_id = {}
    for result in results:
        if result.failed:
            master = catalog.master(result.master_id)
            logger.warning(
                f"Master {result.master_id} ('{master.label}') failed: {result.error}"
            )
        by_id[result.master_id] = result
    return by_id


def _extract_one(selector: OutputSelector, result: MasterResult) -> Tuple[Any, bool]:
    """(raw_value, failed) for one operation."""
    if result.failed:
        return None, True
    try:
        return selector.extract(result.output), False
    except Exception as e:
        logger.debug(f"Extraction failed for op {selector.op_id}: {type(e).__name__}: {e}")
        return None, True


def extract_outputs(
    plan: MasterPlan,
    master_results: Dict[int, MasterResult],
    catalog: Catalog,
    n_jobs: int = 1,
) -> Tuple[List[Any], np.ndarray, np.ndarray]:
    """
    Pull each selected operation's raw value from its master result.

    Returns:
        (raw_values, failed, calc_times), one entry per plan.op_cols
    """
    jobs = []
    for col, master_id in zip(plan.op_cols.tolist(), plan.op_master_ids.tolist()):
        op = catalog.operations[col]
        jobs.append((catalog.selectors[op.id], master_results[master_id]))

    if n_jobs == 1 or len(jobs) <= 1:
        pairs = [_extract_one(sel, res) for sel, res in jobs]
    else:
        # Extraction is cheap lookups; threads avoid pickling master outputs
        pairs = Parallel(n_jobs=n_jobs, backend='threading')(
            delayed(_extract_one)(sel, res) for sel, res in jobs
        )

    raw = [p[0] for p in pairs]
    failed = np.array([p[1] for p in pairs], dtype=bool)
    calc_times = np.array([res.elapsed for _, res in jobs], dtype=np.float64)
    return raw, failed, calc_times


def execute_plan(
    plan: MasterPlan,
    x: np.ndarray,
    y: np.ndarray,
    catalog: Catalog,
    registry: MasterRegistry,
    n_jobs: int = 1,
    backend: str = 'loky',
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, Dict[int, MasterResult], float]:
    """
    Evaluate, extract and classify one row.

    Returns:
        (values, calc_times, quality, master_results, master_time); the arrays
        are aligned with plan.op_cols, master_time is the wall time of the
        master evaluation phase
    """
    start = time.perf_counter()
    master_results = evaluate_masters(
        plan, x, y, catalog, registry, n_jobs=n_jobs, backend=backend
    )
    master_time = time.perf_counter() - start
    raw, failed, calc_times = extract_outputs(plan, master_results, catalog, n_jobs=n_jobs)
    values, quality = classify_outputs(raw, failed)
    return values, calc_times, quality, master_results, master_time
