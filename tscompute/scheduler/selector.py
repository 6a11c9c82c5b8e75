"""
Selector
========

Decides which cells still need work. Pure queries, no side effects.

A cell (row, col) is selected iff
    col is requested  AND  (quality is NaN  OR  quality == FATAL)

so cells that failed on a previous run are retried automatically, and cells
with any other quality code are never recomputed.
"""

from typing import Iterable, Optional

import numpy as np

from tscompute.core.quality import Quality


def resolve_indices(
    requested_ids: Optional[Iterable[int]],
    all_ids: np.ndarray,
) -> np.ndarray:
    """
    Indices of all_ids that were requested, in catalog order.

    Empty or None means "all". IDs not in the catalog are dropped silently.
    """
    all_ids = np.asarray(all_ids)
    if requested_ids is None:
        return np.arange(len(all_ids))

    requested = np.asarray(list(requested_ids), dtype=np.int64)
    if requested.size == 0:
        return np.arange(len(all_ids))

    return np.flatnonzero(np.isin(all_ids, requested))


def column_mask(
    requested_ids: Optional[Iterable[int]],
    all_ids: np.ndarray,
) -> np.ndarray:
    """Boolean mask over columns for the requested operation IDs."""
    mask = np.zeros(len(all_ids), dtype=bool)
    mask[resolve_indices(requested_ids, all_ids)] = True
    return mask


def pending_mask(quality: np.ndarray) -> np.ndarray:
    """True where a cell was never computed or previously failed."""
    quality = np.asarray(quality, dtype=np.float64)
    return np.isnan(quality) | (quality == Quality.FATAL)


def select_row(quality_row: np.ndarray, op_mask: np.ndarray) -> np.ndarray:
    """Column indices of one row that need computing."""
    return np.flatnonzero(np.asarray(op_mask, dtype=bool) & pending_mask(quality_row))


def count_pending(
    quality: np.ndarray,
    row_indices: np.ndarray,
    op_mask: np.ndarray,
) -> int:
    """Total number of selected cells across the requested rows."""
    if len(row_indices) == 0:
        return 0
    sub = np.asarray(quality)[np.asarray(row_indices)]
    return int(np.sum(pending_mask(sub) & np.asarray(op_mask, dtype=bool)[None, :]))
