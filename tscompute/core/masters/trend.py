"""
Trend Master.

Least-squares linear trend plus residual spread and CUSUM range.
"""

from typing import Dict

import numpy as np


def compute(y: np.ndarray) -> Dict[str, float]:
    """
    Compute trend properties.

    Args:
        y: Signal values

    Returns:
        dict with trend_slope, trend_r2, detrend_std, cusum_range
    """
    y = np.asarray(y, dtype=np.float64).ravel()
    y = y[np.isfinite(y)]

    if len(y) < 3:
        return {
            'trend_slope': np.nan,
            'trend_r2': np.nan,
            'detrend_std': np.nan,
            'cusum_range': np.nan,
        }

    x = np.arange(len(y), dtype=float)
    slope, intercept = np.polyfit(x, y, 1)
    fitted = slope * x + intercept
    detrended = y - fitted

    ss_tot = float(np.sum((y - np.mean(y)) ** 2))
    # R² of a constant series is undefined; NaN is classified downstream
    r2 = 1.0 - float(np.sum(detrended ** 2)) / ss_tot if ss_tot > 0 else np.nan

    centered = y - np.mean(y)
    cusum = np.cumsum(centered)

    return {
        'trend_slope': float(slope),
        'trend_r2': r2,
        'detrend_std': float(np.std(detrended)),
        'cusum_range': float(np.max(cusum) - np.min(cusum)),
    }
