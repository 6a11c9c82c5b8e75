"""
Catalog
=======

Read-only lookup tables loaded once per run:

    TimeSeries        rows of the result matrix
    Operation         columns; a named output of exactly one master operation
    MasterOperation   an expensive computation shared by many operations

An operation's code string is "<master label>.<output>" (or just
"<master label>" when the master returns a single scalar). Catalog.resolve()
turns every code string into an OutputSelector, checked against the master's
declared outputs, so that a broken catalog fails before any row is computed.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import numpy as np

from tscompute.core.registry import MasterRegistry
from tscompute.validation import CatalogIntegrityError

# Inputs a master operation can consume
MASTER_INPUTS = ('raw', 'zscored')


@dataclass
class TimeSeries:
    """One row: a time series under analysis."""
    id: int
    name: str
    data: Any
    keywords: str = ''

    @property
    def length(self) -> int:
        """Sample count; for ragged payloads, the number of top-level items."""
        try:
            return int(np.size(self.data))
        except (ValueError, TypeError):
            return len(self.data) if hasattr(self.data, '__len__') else 0


@dataclass
class MasterOperation:
    """A shared computation, evaluated at most once per time series."""
    id: int
    label: str
    code: str
    params: Dict[str, Any] = field(default_factory=dict)
    input: str = 'zscored'


@dataclass
class Operation:
    """One column: a named output pulled from a master operation."""
    id: int
    name: str
    master_id: int
    code_string: str
    keywords: str = ''


@dataclass(frozen=True)
class OutputSelector:
    """Typed pointer from an operation to one field of its master's output."""
    op_id: int
    master_id: int
    field: Optional[str] = None

    def extract(self, output: Any) -> Any:
        """
        Pull this selector's value out of a master output.

        Raises:
            ValueError: Master output unavailable (the master failed)
            KeyError: Field absent from the output
            TypeError: Field requested from a non-mapping output
        """
        if output is None:
            raise ValueError(f"master {self.master_id} produced no output")
        if self.field is None:
            return output
        if isinstance(output, Mapping):
            return output[self.field]
        raise TypeError(
            f"master {self.master_id} returned {type(output).__name__}, "
            f"cannot select '{self.field}'"
        )


class Catalog:
    """Time series, operations and master operations for one bundle."""

    def __init__(
        self,
        time_series: List[TimeSeries],
        operations: List[Operation],
        masters: List[MasterOperation],
    ):
        self.time_series = list(time_series)
        self.operations = list(operations)
        self.masters = list(masters)

        self.ts_ids = np.array([ts.id for ts in self.time_series], dtype=np.int64)
        self.op_ids = np.array([op.id for op in self.operations], dtype=np.int64)

        if len(set(self.ts_ids.tolist())) != len(self.ts_ids):
            raise ValueError("Duplicate time series IDs in catalog")
        if len(set(self.op_ids.tolist())) != len(self.op_ids):
            raise ValueError("Duplicate operation IDs in catalog")

        self._masters_by_id: Dict[int, MasterOperation] = {}
        for m in self.masters:
            if m.id in self._masters_by_id:
                raise CatalogIntegrityError(
                    None, m.label, m.id, reason="duplicate master operation ID"
                )
            self._masters_by_id[m.id] = m

        self.selectors: Dict[int, OutputSelector] = {}

    @property
    def n_time_series(self) -> int:
        return len(self.time_series)

    @property
    def n_operations(self) -> int:
        return len(self.operations)

    def has_master(self, master_id: int) -> bool:
        return master_id in self._masters_by_id

    def master(self, master_id: int) -> MasterOperation:
        """Master operation by ID (KeyError if absent)."""
        return self._masters_by_id[master_id]

    def resolve(self, registry: MasterRegistry) -> Dict[int, OutputSelector]:
        """
        Link every operation to its master and output field.

        Raises:
            CatalogIntegrityError: On the first operation that cannot be linked
        """
        selectors: Dict[int, OutputSelector] = {}

        for op in self.operations:
            master = self._masters_by_id.get(op.master_id)
            if master is None:
                raise CatalogIntegrityError(op.id, op.code_string, op.master_id)

            if master.input not in MASTER_INPUTS:
                raise CatalogIntegrityError(
                    op.id, op.code_string, master.id,
                    reason=f"unknown master input '{master.input}' (expected one of {MASTER_INPUTS})",
                )

            if not registry.has_master(master.code):
                raise CatalogIntegrityError(
                    op.id, op.code_string, master.id,
                    reason=f"master code '{master.code}' is not a registered computation",
                )

            try:
                registry.get_compute_func(master.code)
            except ImportError as e:
                raise CatalogIntegrityError(
                    op.id, op.code_string, master.id,
                    reason=f"master code '{master.code}' cannot be loaded: {e}",
                )

            output_name = _parse_output_name(op, master)
            config = registry.get_config(master.code)

            if output_name is None and config.outputs:
                raise CatalogIntegrityError(
                    op.id, op.code_string, master.id,
                    reason=f"'{master.label}' returns {config.outputs}; an output name is required",
                )
            if output_name is not None and (config.is_scalar or not config.declares(output_name)):
                raise CatalogIntegrityError(
                    op.id, op.code_string, master.id,
                    reason=f"'{master.label}' has no output named '{output_name}'",
                )

            selectors[op.id] = OutputSelector(op.id, master.id, output_name)

        self.selectors = selectors
        return selectors


def _parse_output_name(op: Operation, master: MasterOperation) -> Optional[str]:
    """Split '<label>.<output>' against the master's label."""
    code = op.code_string.strip()
    if code == master.label:
        return None
    prefix = master.label + '.'
    if code.startswith(prefix) and len(code) > len(prefix):
        return code[len(prefix):]
    raise CatalogIntegrityError(
        op.id, op.code_string, master.id,
        reason=f"code string does not refer to master label '{master.label}'",
    )
