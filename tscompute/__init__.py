"""
tscompute: incremental time-series feature computation.

Public API:
    from tscompute import run, compute
    run(bundle_dir, config)                 # load, compute pending cells, save
    compute(catalog, matrix, registry=...)  # in-memory, matrix updated in place

Layers:
    tscompute.core        Catalog types, quality codes, master registry, built-in masters
    tscompute.scheduler   Selector, deduplicator, executor, state store, progress
    tscompute.io          Parquet bundle I/O (reader, writer)
    tscompute.validation  Catalog integrity and row shape checks
    tscompute.config      Run configuration (pydantic, YAML)
"""

from tscompute.run import run, compute

__all__ = ["run", "compute"]
