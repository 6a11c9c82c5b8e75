"""
Normalization
=============

Z-score transform applied to each time series before master evaluation.
Master operations take either the raw series x or its z-scored version y.
"""

from typing import Dict, Tuple

import numpy as np


def compute_zscore(
    data: np.ndarray,
    ddof: int = 1,
) -> Tuple[np.ndarray, Dict[str, float]]:
    """
    Z-score normalization: (x - mean) / std

    Args:
        data: 1-D input array
        ddof: Degrees of freedom for std calculation (1 = sample std)

    Returns:
        Tuple of (normalized_data, params_dict)
        params_dict contains 'mean' and 'std' for inverse transform
    """
    data = np.asarray(data, dtype=np.float64)

    if data.size == 0:
        return data.copy(), {'method': 'zscore', 'mean': np.nan, 'std': np.nan}

    mean = float(np.nanmean(data))
    std = float(np.nanstd(data, ddof=ddof)) if data.size > ddof else 0.0

    # Avoid division by zero - use 1.0 so constant series center to zeros
    if not np.isfinite(std) or std < 1e-10:
        std = 1.0

    normalized = (data - mean) / std

    params = {
        'method': 'zscore',
        'mean': mean,
        'std': std,
    }

    return normalized, params


def zscore(data: np.ndarray) -> np.ndarray:
    """Z-scored copy of data."""
    normalized, _ = compute_zscore(data)
    return normalized
