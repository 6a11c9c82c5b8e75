"""
Shared-Computation Deduplicator
===============================

Groups a row's selected operations by the master operation they read from.
Masters are expensive and operations are cheap lookups into their output, so
each distinct master is scheduled once per row no matter how many selected
operations consume it.
"""

from dataclasses import dataclass
from typing import Dict, List

import numpy as np

from tscompute.core.catalog import Catalog
from tscompute.validation import CatalogIntegrityError


@dataclass
class MasterPlan:
    """Work for one row: distinct masters and the operation -> master mapping."""
    master_ids: List[int]
    op_cols: np.ndarray
    op_master_ids: np.ndarray

    @property
    def n_masters(self) -> int:
        return len(self.master_ids)

    @property
    def n_ops(self) -> int:
        return int(len(self.op_cols))

    def ops_by_master(self) -> Dict[int, List[int]]:
        """master_id -> selected operation columns that depend on it."""
        groups: Dict[int, List[int]] = {mid: [] for mid in self.master_ids}
        for col, mid in zip(self.op_cols.tolist(), self.op_master_ids.tolist()):
            groups[mid].append(col)
        return groups


def group_by_master(op_cols: np.ndarray, catalog: Catalog) -> MasterPlan:
    """
    Build the master plan for a row.

    Args:
        op_cols: Selected operation column indices
        catalog: Catalog with operations and masters

    Returns:
        MasterPlan with distinct master IDs in first-use order

    Raises:
        CatalogIntegrityError: If a selected operation has no valid master
    """
    op_cols = np.asarray(op_cols, dtype=np.int64)
    master_ids: List[int] = []
    seen = set()
    op_master_ids = np.empty(len(op_cols), dtype=np.int64)

    for i, col in enumerate(op_cols.tolist()):
        op = catalog.operations[col]
        if not catalog.has_master(op.master_id):
            raise CatalogIntegrityError(op.id, op.code_string, op.master_id)
        op_master_ids[i] = op.master_id
        if op.master_id not in seen:
            seen.add(op.master_id)
            master_ids.append(op.master_id)

    return MasterPlan(
        master_ids=master_ids,
        op_cols=op_cols,
        op_master_ids=op_master_ids,
    )
