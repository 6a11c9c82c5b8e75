"""RMS Master. Returns a bare scalar, so its operation code string is just the label."""

import numpy as np


def compute(y: np.ndarray) -> float:
    """Root mean square of the finite samples."""
    y = np.asarray(y, dtype=np.float64).ravel()
    y = y[np.isfinite(y)]
    if len(y) == 0:
        return np.nan
    return float(np.sqrt(np.mean(y ** 2)))
