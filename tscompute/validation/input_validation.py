"""
Input Validation

Checks that run before any cell of the result matrix is touched.

Two failure classes live here:

    CatalogIntegrityError   Fatal. An operation points at a master operation
                            that does not exist (or cannot be resolved).
                            The run stops before any matrix mutation.
    MalformedRowError       Row-local. A time series payload is not a
                            one-dimensional sequence. The driver skips the row
                            and leaves its cells untouched.

PRINCIPLE: "Check before compute, not after failure"

Usage:
    from tscompute.validation import check_row_data, check_bundle_files

    x = check_row_data(ts.data, name=ts.name)
    missing = check_bundle_files('/path/to/bundle')
"""

import logging
from pathlib import Path
from typing import List, Optional

import numpy as np

logger = logging.getLogger(__name__)


class CatalogIntegrityError(Exception):
    """Raised when an operation cannot be linked to a valid master operation."""

    def __init__(
        self,
        op_id: Optional[int],
        code_string: str,
        master_id: Optional[int],
        reason: Optional[str] = None,
    ):
        self.op_id = op_id
        self.code_string = code_string
        self.master_id = master_id
        self.reason = reason or "no master operation with this ID"

        message = (
            f"Operation catalog is corrupt: op_id={op_id} ('{code_string}') "
            f"-> master_id={master_id}: {self.reason}"
        )
        super().__init__(message)


class MalformedRowError(Exception):
    """Raised when a time series payload is not a one-dimensional sequence."""

    def __init__(self, name: str, shape: Optional[tuple], reason: Optional[str] = None):
        self.name = name
        self.shape = shape
        self.reason = reason or "multivariate or otherwise malformed, expected a 1-D sequence"
        super().__init__(f"Time series '{name}' has shape {shape}: {self.reason}")


# =============================================================================
# ROW SHAPE GUARD
# =============================================================================

def check_row_data(data, name: str = '') -> np.ndarray:
    """
    Coerce a time series payload to a 1-D float array.

    Accepted:
        (N,)     returned as-is
        (N, 1)   column vector, flattened
        (1, N)   row vector, transposed back with a warning

    Args:
        data: Raw payload as stored in the catalog
        name: Time series name, for messages

    Returns:
        1-D numpy array (a copy; the caller owns it)

    Raises:
        MalformedRowError: For scalars, matrices, higher-rank, ragged and
            non-numeric payloads
    """
    try:
        x = np.asarray(data, dtype=np.float64)
    except (ValueError, TypeError) as e:
        raise MalformedRowError(name, None, reason=f"not a numeric sequence ({e})")

    if x.ndim == 1:
        return np.array(x, copy=True)

    if x.ndim == 2:
        if x.shape[1] == 1:
            return np.array(x[:, 0], copy=True)
        if x.shape[0] == 1:
            logger.warning(
                f"Time series '{name}' is a row vector {x.shape}; transposing it"
            )
            return np.array(x.T[:, 0], copy=True)

    raise MalformedRowError(name, x.shape)


# =============================================================================
# BUNDLE FILES
# =============================================================================
# Catalog files are required. Matrix files are optional: a bundle that has
# never been computed has no matrices yet.
# =============================================================================

BUNDLE_CATALOG_FILES: List[str] = [
    'time_series.parquet',
    'operations.parquet',
    'master_operations.parquet',
]

BUNDLE_MATRIX_FILES: List[str] = [
    'values.parquet',
    'calc_times.parquet',
    'quality.parquet',
]


def check_bundle_files(bundle_dir: str) -> List[str]:
    """
    Return the catalog files missing from a bundle directory.

    Empty list = bundle can be loaded.
    """
    path = Path(bundle_dir)
    return [f for f in BUNDLE_CATALOG_FILES if not (path / f).exists()]
