"""Tests for parquet bundle persistence."""

import numpy as np
import polars as pl
import pytest

from tscompute.io import Bundle, init_bundle, load_bundle, save_bundle
from tscompute.run import compute
from tscompute.scheduler.state import ResultMatrix


@pytest.fixture
def bundle_dir(tmp_path, catalog):
    path = tmp_path / "bundle"
    init_bundle(str(path), catalog.time_series, catalog.operations, catalog.masters)
    return path


class TestInitAndLoad:

    def test_files_written(self, bundle_dir):
        names = sorted(p.name for p in bundle_dir.iterdir())
        assert names == [
            'calc_times.parquet',
            'master_operations.parquet',
            'operations.parquet',
            'quality.parquet',
            'time_series.parquet',
            'values.parquet',
        ]

    def test_catalog_round_trip(self, bundle_dir, catalog):
        loaded = load_bundle(str(bundle_dir)).catalog

        np.testing.assert_array_equal(loaded.ts_ids, catalog.ts_ids)
        np.testing.assert_array_equal(loaded.op_ids, catalog.op_ids)
        assert [op.code_string for op in loaded.operations] == [op.code_string for op in catalog.operations]
        assert loaded.master(4).input == 'raw'
        assert loaded.master(1).input == 'zscored'

    def test_payload_shapes_preserved(self, bundle_dir):
        series = load_bundle(str(bundle_dir)).catalog.time_series

        assert series[0].data.shape == (100,)
        assert series[2].data.shape == (1, 30)
        assert series[3].data.shape == (10, 3)

    def test_master_params_round_trip(self, tmp_path, catalog):
        catalog.masters[3].params = {'scale': 2.5}
        init_bundle(str(tmp_path), catalog.time_series, catalog.operations, catalog.masters)

        assert load_bundle(str(tmp_path)).catalog.master(4).params == {'scale': 2.5}

    def test_new_bundle_never_computed(self, bundle_dir):
        matrix = load_bundle(str(bundle_dir)).matrix
        assert matrix.shape == (4, 10)
        assert np.all(np.isnan(matrix.quality))

    def test_matrix_columns_are_op_ids(self, bundle_dir, catalog):
        df = pl.read_parquet(str(bundle_dir / 'quality.parquet'))
        assert df.columns == [str(i) for i in catalog.op_ids.tolist()]


class TestSave:

    def test_computed_round_trip(self, bundle_dir, registry):
        bundle = load_bundle(str(bundle_dir))
        compute(bundle.catalog, bundle.matrix, registry=registry, verbose=False)
        save_bundle(bundle)

        reloaded = load_bundle(str(bundle_dir)).matrix
        np.testing.assert_array_equal(reloaded.values, bundle.matrix.values)
        np.testing.assert_array_equal(reloaded.calc_times, bundle.matrix.calc_times)
        np.testing.assert_array_equal(reloaded.quality, bundle.matrix.quality)

    def test_no_temporary_files_left(self, bundle_dir):
        save_bundle(load_bundle(str(bundle_dir)))
        assert not list(bundle_dir.glob("*.tmp"))

    def test_save_elsewhere(self, bundle_dir, tmp_path):
        bundle = load_bundle(str(bundle_dir))
        target = tmp_path / "copy"

        save_bundle(bundle, str(target))

        assert bundle.path == str(target)
        assert load_bundle(str(target)).matrix.shape == (4, 10)

    def test_no_path(self, catalog):
        bundle = Bundle(catalog, ResultMatrix.empty(4, 10))
        with pytest.raises(ValueError, match="No bundle directory"):
            save_bundle(bundle)

    def test_shape_mismatch(self, catalog, tmp_path):
        bundle = Bundle(catalog, ResultMatrix.empty(2, 2), path=str(tmp_path))
        with pytest.raises(ValueError, match="does not match catalog"):
            save_bundle(bundle)


class TestLoadErrors:

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_bundle(str(tmp_path / "nope"))

    def test_missing_catalog_file(self, bundle_dir):
        (bundle_dir / 'operations.parquet').unlink()
        with pytest.raises(FileNotFoundError, match="operations.parquet"):
            load_bundle(str(bundle_dir))

    def test_missing_matrices_initialised(self, bundle_dir):
        for name in ('values.parquet', 'calc_times.parquet', 'quality.parquet'):
            (bundle_dir / name).unlink()
        assert np.all(np.isnan(load_bundle(str(bundle_dir)).matrix.values))

    def test_partial_matrices(self, bundle_dir):
        (bundle_dir / 'calc_times.parquet').unlink()
        with pytest.raises(FileNotFoundError, match="calc_times.parquet"):
            load_bundle(str(bundle_dir))

    def test_matrix_columns_mismatch(self, bundle_dir):
        df = pl.read_parquet(str(bundle_dir / 'values.parquet'))
        df.drop(df.columns[0]).write_parquet(str(bundle_dir / 'values.parquet'))
        with pytest.raises(ValueError, match="columns do not match"):
            load_bundle(str(bundle_dir))
