"""
Writer: all bundle writes go through here.

No other module should call df.write_parquet directly.

save_bundle() writes every file under a temporary name first and only then
moves them into place, so an exception during the write leaves the previous
bundle intact.
"""

import json
import os
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import polars as pl

from tscompute.core.catalog import Catalog, MasterOperation, Operation, TimeSeries
from tscompute.io.reader import MATRIX_FILES, Bundle
from tscompute.scheduler.state import ResultMatrix

_TMP_SUFFIX = '.tmp'


def time_series_frame(series: List[TimeSeries]) -> pl.DataFrame:
    rows = []
    for ts in series:
        data = np.asarray(ts.data, dtype=np.float64)
        rows.append({
            'id': int(ts.id),
            'name': ts.name,
            'keywords': ts.keywords,
            'length': int(data.size),
            'data': data.ravel().tolist(),
            'shape': list(data.shape),
        })
    return pl.DataFrame(rows, schema={
        'id': pl.Int64,
        'name': pl.Utf8,
        'keywords': pl.Utf8,
        'length': pl.Int64,
        'data': pl.List(pl.Float64),
        'shape': pl.List(pl.Int64),
    })


def operations_frame(operations: List[Operation]) -> pl.DataFrame:
    return pl.DataFrame(
        {
            'id': [int(op.id) for op in operations],
            'name': [op.name for op in operations],
            'master_id': [int(op.master_id) for op in operations],
            'code_string': [op.code_string for op in operations],
            'keywords': [op.keywords for op in operations],
        },
        schema={
            'id': pl.Int64,
            'name': pl.Utf8,
            'master_id': pl.Int64,
            'code_string': pl.Utf8,
            'keywords': pl.Utf8,
        },
    )


def masters_frame(masters: List[MasterOperation]) -> pl.DataFrame:
    return pl.DataFrame(
        {
            'id': [int(m.id) for m in masters],
            'label': [m.label for m in masters],
            'code': [m.code for m in masters],
            'params': [json.dumps(m.params, default=str) for m in masters],
            'input': [m.input for m in masters],
        },
        schema={
            'id': pl.Int64,
            'label': pl.Utf8,
            'code': pl.Utf8,
            'params': pl.Utf8,
            'input': pl.Utf8,
        },
    )


def matrix_frame(matrix: np.ndarray, op_ids: np.ndarray) -> pl.DataFrame:
    """One Float64 column per operation ID, one row per time series."""
    return pl.DataFrame([
        pl.Series(str(op_id), matrix[:, j], dtype=pl.Float64)
        for j, op_id in enumerate(op_ids.tolist())
    ])


def _frames(catalog: Catalog, matrix: ResultMatrix) -> Dict[str, pl.DataFrame]:
    if matrix.shape != (catalog.n_time_series, catalog.n_operations):
        raise ValueError(
            f"Result matrix shape {matrix.shape} does not match catalog "
            f"({catalog.n_time_series} x {catalog.n_operations})"
        )

    frames = {
        'time_series': time_series_frame(catalog.time_series),
        'operations': operations_frame(catalog.operations),
        'master_operations': masters_frame(catalog.masters),
    }
    # 0 operations -> 0-column matrices; skip them, load() re-initialises
    if catalog.n_operations:
        for stem, attr in MATRIX_FILES.items():
            frames[stem] = matrix_frame(getattr(matrix, attr), catalog.op_ids)
    return frames


def save_bundle(bundle: Bundle, bundle_dir: Optional[str] = None, verbose: bool = False) -> Path:
    """
    Persist catalog and matrices.

    Args:
        bundle: Bundle to write
        bundle_dir: Target directory (defaults to bundle.path)
        verbose: Print path on write

    Returns:
        Path to the bundle directory
    """
    target = bundle_dir or bundle.path
    if target is None:
        raise ValueError("No bundle directory given and bundle has no path")

    path = Path(target)
    path.mkdir(parents=True, exist_ok=True)

    frames = _frames(bundle.catalog, bundle.matrix)

    staged = []
    try:
        for stem, df in frames.items():
            final = path / f"{stem}.parquet"
            tmp = path / f"{stem}.parquet{_TMP_SUFFIX}"
            staged.append((tmp, final))
            df.write_parquet(str(tmp))
    except Exception:
        for tmp, _ in staged:
            tmp.unlink(missing_ok=True)
        raise

    for tmp, final in staged:
        os.replace(tmp, final)

    bundle.path = str(path)

    if verbose:
        print(f"  -> {path} ({bundle.catalog.n_time_series} time series x "
              f"{bundle.catalog.n_operations} operations)")

    return path


def init_bundle(
    bundle_dir: str,
    time_series: List[TimeSeries],
    operations: List[Operation],
    masters: List[MasterOperation],
) -> Bundle:
    """Create a new bundle with every cell never computed."""
    catalog = Catalog(time_series, operations, masters)
    bundle = Bundle(
        catalog=catalog,
        matrix=ResultMatrix.empty(catalog.n_time_series, catalog.n_operations),
        path=str(bundle_dir),
    )
    save_bundle(bundle)
    return bundle
