"""
Reader: all bundle reads go through here.

A bundle is a directory of parquet files:

    time_series.parquet        id, name, keywords, length, data, shape
    operations.parquet         id, name, master_id, code_string, keywords
    master_operations.parquet  id, label, code, params (JSON), input
    values.parquet             one Float64 column per operation ID
    calc_times.parquet         "
    quality.parquet            "  (NaN = never computed)

No other module should call pl.read_parquet directly.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np
import polars as pl

from tscompute.core.catalog import Catalog, MasterOperation, Operation, TimeSeries
from tscompute.scheduler.state import ResultMatrix
from tscompute.validation import BUNDLE_MATRIX_FILES, check_bundle_files

# Matrix file stem -> ResultMatrix attribute
MATRIX_FILES = {
    'values': 'values',
    'calc_times': 'calc_times',
    'quality': 'quality',
}


@dataclass
class Bundle:
    """Catalog plus result matrix, as loaded from (or saved to) a directory."""
    catalog: Catalog
    matrix: ResultMatrix
    path: Optional[str] = None


def read_time_series(path: Path) -> List[TimeSeries]:
    df = pl.read_parquet(str(path))
    series = []
    for row in df.iter_rows(named=True):
        data = np.asarray(row['data'] or [], dtype=np.float64)
        shape = row.get('shape')
        if shape is not None:
            data = data.reshape(tuple(shape))
        series.append(TimeSeries(
            id=int(row['id']),
            name=row['name'] or '',
            data=data,
            keywords=row.get('keywords') or '',
        ))
    return series


def read_operations(path: Path) -> List[Operation]:
    df = pl.read_parquet(str(path))
    return [
        Operation(
            id=int(row['id']),
            name=row['name'] or '',
            master_id=int(row['master_id']),
            code_string=row['code_string'],
            keywords=row.get('keywords') or '',
        )
        for row in df.iter_rows(named=True)
    ]


def read_masters(path: Path) -> List[MasterOperation]:
    df = pl.read_parquet(str(path))
    masters = []
    for row in df.iter_rows(named=True):
        params = row.get('params')
        masters.append(MasterOperation(
            id=int(row['id']),
            label=row['label'],
            code=row['code'],
            params=json.loads(params) if params else {},
            input=row.get('input') or 'zscored',
        ))
    return masters


def read_matrix(path: Path, op_ids: np.ndarray, n_rows: int) -> np.ndarray:
    """Read one result matrix and check it matches the catalog."""
    df = pl.read_parquet(str(path))
    expected = [str(i) for i in op_ids.tolist()]
    if df.columns != expected:
        raise ValueError(
            f"{path.name}: columns do not match operation IDs "
            f"({len(df.columns)} columns, {len(expected)} operations)"
        )
    matrix = df.to_numpy().astype(np.float64) if len(expected) else np.zeros((df.height, 0))
    if matrix.shape != (n_rows, len(expected)):
        raise ValueError(
            f"{path.name}: shape {matrix.shape} does not match catalog "
            f"({n_rows} time series x {len(expected)} operations)"
        )
    return matrix


def load_bundle(bundle_dir: str) -> Bundle:
    """
    Load a bundle directory.

    Matrix files that are absent are initialised as never computed.

    Raises:
        FileNotFoundError: If the directory or a catalog file is missing
        ValueError: If matrix dimensions disagree with the catalog
    """
    p = Path(bundle_dir)
    if not p.is_dir():
        raise FileNotFoundError(f"No bundle directory at {bundle_dir}")

    missing = check_bundle_files(str(p))
    if missing:
        raise FileNotFoundError(
            f"Bundle {bundle_dir} is missing: " + ", ".join(missing)
        )

    catalog = Catalog(
        time_series=read_time_series(p / 'time_series.parquet'),
        operations=read_operations(p / 'operations.parquet'),
        masters=read_masters(p / 'master_operations.parquet'),
    )

    present = [f for f in BUNDLE_MATRIX_FILES if (p / f).exists()]
    if not present:
        matrix = ResultMatrix.empty(catalog.n_time_series, catalog.n_operations)
    else:
        if len(present) != len(BUNDLE_MATRIX_FILES):
            absent = sorted(set(BUNDLE_MATRIX_FILES) - set(present))
            raise FileNotFoundError(
                f"Bundle {bundle_dir} has partial result matrices; missing: " + ", ".join(absent)
            )
        arrays = {
            attr: read_matrix(p / f"{stem}.parquet", catalog.op_ids, catalog.n_time_series)
            for stem, attr in MATRIX_FILES.items()
        }
        matrix = ResultMatrix(**arrays)

    return Bundle(catalog=catalog, matrix=matrix, path=str(p))
