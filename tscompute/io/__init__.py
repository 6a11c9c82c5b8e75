"""
Persistence: bundle directories of parquet files.

    load_bundle(path) -> Bundle
    save_bundle(bundle, path)
    init_bundle(path, time_series, operations, masters) -> Bundle
"""

from tscompute.io.reader import Bundle, load_bundle
from tscompute.io.writer import save_bundle, init_bundle

__all__ = [
    'Bundle',
    'load_bundle',
    'save_bundle',
    'init_bundle',
]
