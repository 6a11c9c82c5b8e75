"""
Spectral Master.

Periodogram-based summary of the frequency content.
"""

from typing import Dict

import numpy as np
from scipy.signal import periodogram


def compute(y: np.ndarray, sample_rate: float = 1.0) -> Dict[str, float]:
    """
    Compute spectral properties of signal.

    Args:
        y: Signal values
        sample_rate: Sampling rate in Hz (default: 1.0)

    Returns:
        dict with dominant_freq, spectral_entropy, spectral_centroid,
        spectral_bandwidth
    """
    result = {
        'dominant_freq': np.nan,
        'spectral_entropy': np.nan,
        'spectral_centroid': np.nan,
        'spectral_bandwidth': np.nan,
    }

    y = np.asarray(y, dtype=np.float64).ravel()
    y = y[np.isfinite(y)]

    if len(y) < 4:
        return result

    if np.std(y) < 1e-10:
        return {k: 0.0 for k in result}

    freqs, power = periodogram(y, fs=sample_rate)
    # Drop the DC bin
    freqs, power = freqs[1:], power[1:]
    total = np.sum(power)
    if total <= 0:
        return result

    p = power / total
    nonzero = p[p > 0]

    centroid = float(np.sum(freqs * p))
    result['dominant_freq'] = float(freqs[np.argmax(power)])
    result['spectral_entropy'] = float(-np.sum(nonzero * np.log2(nonzero)) / np.log2(len(p))) if len(p) > 1 else 0.0
    result['spectral_centroid'] = centroid
    result['spectral_bandwidth'] = float(np.sqrt(np.sum(((freqs - centroid) ** 2) * p)))

    return result
