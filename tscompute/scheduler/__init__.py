"""
Scheduler: selector, deduplicator, executor, state store, progress.

Row-level building blocks; tscompute.run drives them across rows.
"""

from tscompute.scheduler.state import ResultMatrix, RowResult, RunState, RunSummary
from tscompute.scheduler.selector import resolve_indices, column_mask, select_row, count_pending
from tscompute.scheduler.dedup import MasterPlan, group_by_master
from tscompute.scheduler.executor import (
    MasterResult,
    evaluate_masters,
    extract_outputs,
    execute_plan,
)
from tscompute.scheduler.progress import ProgressReporter, format_duration

__all__ = [
    'ResultMatrix',
    'RowResult',
    'RunState',
    'RunSummary',
    'resolve_indices',
    'column_mask',
    'select_row',
    'count_pending',
    'MasterPlan',
    'group_by_master',
    'MasterResult',
    'evaluate_masters',
    'extract_outputs',
    'execute_plan',
    'ProgressReporter',
    'format_duration',
]
