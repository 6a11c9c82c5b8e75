"""
Autocorrelation Master.

Computes the autocorrelation function once up to max_lag and exposes
selected lags plus the first zero crossing and first local minimum.
"""

from typing import Dict

import numpy as np

_LAGS = (1, 2, 3, 5, 10)


def _acf(y: np.ndarray, max_lag: int) -> np.ndarray:
    """Biased autocorrelation estimate for lags 0..max_lag."""
    n = len(y)
    centered = y - np.mean(y)
    denom = np.sum(centered ** 2)
    acf = np.empty(max_lag + 1)
    for lag in range(max_lag + 1):
        acf[lag] = np.sum(centered[:n - lag] * centered[lag:]) / denom
    return acf


def compute(y: np.ndarray, max_lag: int = 50) -> Dict[str, float]:
    """
    Compute autocorrelation features.

    Args:
        y: Signal values
        max_lag: Largest lag evaluated

    Returns:
        dict with ac1, ac2, ac3, ac5, ac10, first_zero, first_min
    """
    y = np.asarray(y, dtype=np.float64).ravel()
    y = y[np.isfinite(y)]
    n = len(y)

    result = {f'ac{lag}': np.nan for lag in _LAGS}
    result['first_zero'] = np.nan
    result['first_min'] = np.nan

    if n < 3 or np.std(y) < 1e-10:
        return result

    max_lag = int(min(max_lag, n - 1))
    acf = _acf(y, max_lag)

    for lag in _LAGS:
        if lag <= max_lag:
            result[f'ac{lag}'] = float(acf[lag])

    crossings = np.where(acf[1:] <= 0)[0]
    # No crossing within max_lag: report the horizon itself
    result['first_zero'] = float(crossings[0] + 1) if len(crossings) else float(max_lag)

    minima = np.where((acf[1:-1] < acf[:-2]) & (acf[1:-1] < acf[2:]))[0]
    result['first_min'] = float(minima[0] + 1) if len(minima) else float(max_lag)

    return result
