"""
Core: catalog types, quality codes, master registry.

No file I/O and no scheduling here.
"""

from tscompute.core.quality import Quality, NEVER_COMPUTED, classify, classify_outputs
from tscompute.core.catalog import (
    Catalog,
    TimeSeries,
    Operation,
    MasterOperation,
    OutputSelector,
)
from tscompute.core.registry import MasterRegistry, get_registry, reset_registry

__all__ = [
    'Quality',
    'NEVER_COMPUTED',
    'classify',
    'classify_outputs',
    'Catalog',
    'TimeSeries',
    'Operation',
    'MasterOperation',
    'OutputSelector',
    'MasterRegistry',
    'get_registry',
    'reset_registry',
]
