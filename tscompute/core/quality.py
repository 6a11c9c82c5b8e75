"""
Outcome Classifier
==================

Maps raw operation outputs to a (value, quality) pair before storage.

    Raw condition                  quality   stored value
    -----------------------------  -------   ------------
    evaluation/extraction raised      1          0
    NaN                               2          0
    +Inf                              3          0
    -Inf                              4          0
    non-zero imaginary part           5          0
    otherwise                         0          raw value

Precedence is top to bottom. Every classified cell gets exactly one of the
six codes. NEVER_COMPUTED (NaN in the quality matrix) is only ever written by
matrix initialization.
"""

from enum import IntEnum
from typing import Any, Sequence, Tuple

import numpy as np


class Quality(IntEnum):
    """Quality codes stored in the quality matrix."""
    GOOD = 0
    FATAL = 1
    NAN = 2
    POS_INF = 3
    NEG_INF = 4
    COMPLEX = 5


# Sentinel for cells that were never computed
NEVER_COMPUTED = np.nan

# Codes that count as "special-valued" in progress summaries
SPECIAL_CODES = (Quality.NAN, Quality.POS_INF, Quality.NEG_INF, Quality.COMPLEX)


def _as_number(raw: Any):
    """Return raw as a Python complex, or None if it is not a numeric scalar."""
    if raw is None:
        return None
    arr = np.asarray(raw)
    if arr.ndim != 0:
        return None
    if not (np.issubdtype(arr.dtype, np.number) or arr.dtype == np.bool_):
        return None
    return complex(arr.item())


def classify_outputs(
    raw: Sequence[Any],
    failed: Sequence[bool],
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Classify a row of raw outputs.

    Args:
        raw: Raw extracted outputs, one per operation (any type)
        failed: True where evaluation or extraction raised

    Returns:
        (values, quality) float64 arrays of the same length
    """
    n = len(raw)
    failed = np.array(failed, dtype=bool).reshape(n)
    z = np.zeros(n, dtype=np.complex128)

    for i, r in enumerate(raw):
        if failed[i]:
            continue
        number = _as_number(r)
        if number is None:
            # Arrays, strings, dicts: the operation did not yield a scalar
            failed[i] = True
        else:
            z[i] = number

    quality = np.zeros(n, dtype=np.float64)

    is_nan = ~failed & np.isnan(z)
    is_inf = ~failed & ~is_nan & np.isinf(z)
    is_pos_inf = is_inf & (z.real > 0)
    is_neg_inf = is_inf & (z.real < 0)
    is_complex = ~failed & ~is_nan & ~is_pos_inf & ~is_neg_inf & (z.imag != 0)

    quality[failed] = Quality.FATAL
    quality[is_nan] = Quality.NAN
    quality[is_pos_inf] = Quality.POS_INF
    quality[is_neg_inf] = Quality.NEG_INF
    quality[is_complex] = Quality.COMPLEX

    values = np.where(quality == Quality.GOOD, z.real, 0.0)
    return values.astype(np.float64), quality


def classify(raw: Any, failed: bool = False) -> Tuple[float, int]:
    """Classify a single raw output. Returns (stored_value, quality_code)."""
    values, quality = classify_outputs([raw], [failed])
    return float(values[0]), int(quality[0])


def count_outcomes(quality: np.ndarray) -> Tuple[int, int, int]:
    """Return (n_good, n_errors, n_special) for an array of quality codes."""
    quality = np.asarray(quality)
    n_good = int(np.sum(quality == Quality.GOOD))
    n_errors = int(np.sum(quality == Quality.FATAL))
    n_special = int(np.sum(quality > Quality.FATAL))
    return n_good, n_errors, n_special
