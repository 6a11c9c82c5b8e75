"""
Statistics Master.

Distribution moments of the series. One evaluation feeds the mean, std,
kurtosis, skewness and crest_factor operations.
"""

from typing import Dict

import numpy as np
from scipy.stats import kurtosis as _scipy_kurtosis, skew as _scipy_skew


def compute(y: np.ndarray) -> Dict[str, float]:
    """
    Compute statistical properties of signal.

    Args:
        y: Signal values

    Returns:
        dict with mean, std, kurtosis, skewness, crest_factor
    """
    result = {
        'mean': np.nan,
        'std': np.nan,
        'kurtosis': np.nan,
        'skewness': np.nan,
        'crest_factor': np.nan,
    }

    y = np.asarray(y, dtype=np.float64).ravel()
    y = y[np.isfinite(y)]

    if len(y) == 0:
        return result

    result['mean'] = float(np.mean(y))
    result['std'] = float(np.std(y, ddof=1)) if len(y) > 1 else np.nan

    rms = float(np.sqrt(np.mean(y ** 2)))
    if rms > 1e-15:
        result['crest_factor'] = float(np.max(np.abs(y)) / rms)

    if len(y) >= 3:
        result['skewness'] = float(_scipy_skew(y))
    if len(y) >= 4:
        result['kurtosis'] = float(_scipy_kurtosis(y, fisher=True))

    return result
