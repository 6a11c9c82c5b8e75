"""
Built-in master computations.

Each master computes ONE shared result per time series. Its .yaml declares
the named outputs operations can select from it.
"""

from . import statistics       # mean, std, kurtosis, skewness, crest_factor
from . import autocorrelation  # ac1..ac10, first_zero, first_min
from . import spectral         # dominant_freq, spectral_entropy, ...
from . import trend            # trend_slope, trend_r2, detrend_std, cusum_range
from . import rms              # scalar

__all__ = [
    'statistics',
    'autocorrelation',
    'spectral',
    'trend',
    'rms',
]
