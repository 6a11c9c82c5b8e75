"""Tests for the built-in master computations and their discovery."""

import numpy as np
import pytest

from tscompute.core.base import load_master_config
from tscompute.core.catalog import Catalog, MasterOperation, Operation, TimeSeries
from tscompute.core.registry import MasterRegistry, get_registry, reset_registry
from tscompute.run import compute
from tscompute.scheduler.state import ResultMatrix
from tscompute.validation import CatalogIntegrityError


@pytest.fixture
def builtins():
    return MasterRegistry()


@pytest.fixture
def signal():
    rng = np.random.default_rng(42)
    return rng.normal(size=500)


class TestDiscovery:

    def test_builtins_found(self, builtins):
        assert builtins.list_masters() == ['autocorrelation', 'rms', 'spectral', 'statistics', 'trend']

    def test_unknown_master(self, builtins):
        assert not builtins.has_master('nope')
        with pytest.raises(KeyError, match="Unknown master"):
            builtins.get_config('nope')

    def test_params_merge(self, builtins):
        assert builtins.get_params('autocorrelation') == {'max_lag': 50}
        assert builtins.get_params('autocorrelation', {'max_lag': 5}) == {'max_lag': 5}

    def test_scalar_master(self, builtins):
        assert builtins.get_config('rms').is_scalar
        assert builtins.get_outputs('rms') == []

    def test_bad_yaml_skipped(self, tmp_path):
        (tmp_path / 'good.yaml').write_text("master: good\noutputs: [a]\n")
        (tmp_path / 'bad.yaml').write_text("outputs: [a]\n")
        (tmp_path / '_private.yaml').write_text("master: private\n")

        registry = MasterRegistry(masters_dir=tmp_path)

        assert registry.list_masters() == ['good']

    def test_load_config(self, tmp_path):
        path = tmp_path / 'x.yaml'
        path.write_text("master: x\nversion: 2\noutputs: [a, b]\nparams:\n  k: 3\n")

        config = load_master_config(path)

        assert config.name == 'x'
        assert config.version == '2'
        assert config.declares('a')
        assert not config.declares('c')
        assert config.params == {'k': 3}

    def test_global_registry(self):
        reset_registry()
        first = get_registry()
        assert get_registry() is first
        reset_registry()
        assert get_registry() is not first


class TestBuiltinOutputs:
    """Every built-in returns exactly the outputs its yaml declares."""

    @pytest.mark.parametrize("name", ['autocorrelation', 'spectral', 'statistics', 'trend'])
    def test_declared_outputs(self, builtins, signal, name):
        func = builtins.get_compute_func(name)
        result = func(signal, **builtins.get_params(name))

        assert sorted(result) == sorted(builtins.get_outputs(name))
        assert all(np.isfinite(v) for v in result.values())

    @pytest.mark.parametrize("name", ['autocorrelation', 'spectral', 'statistics', 'trend'])
    def test_short_input(self, builtins, name):
        result = builtins.get_compute_func(name)(np.array([1.0]))
        assert sorted(result) == sorted(builtins.get_outputs(name))

    def test_rms(self, builtins):
        rms = builtins.get_compute_func('rms')
        assert rms(np.array([3.0, -3.0, 3.0, -3.0])) == pytest.approx(3.0)
        assert np.isnan(rms(np.array([])))


class TestBuiltinValues:

    def test_statistics(self, builtins, signal):
        result = builtins.get_compute_func('statistics')(signal)
        assert result['mean'] == pytest.approx(np.mean(signal))
        assert result['std'] == pytest.approx(np.std(signal, ddof=1))

    def test_autocorrelation_of_sine(self, builtins):
        t = np.arange(400)
        y = np.sin(2 * np.pi * t / 40)

        result = builtins.get_compute_func('autocorrelation')(y, max_lag=50)

        assert result['ac1'] > 0.9
        # Quarter period
        assert result['first_zero'] == pytest.approx(10, abs=1)

    def test_spectral_peak(self, builtins):
        t = np.arange(1000)
        y = np.sin(2 * np.pi * 0.1 * t)

        result = builtins.get_compute_func('spectral')(y, sample_rate=1.0)

        assert result['dominant_freq'] == pytest.approx(0.1, abs=0.01)

    def test_trend(self, builtins):
        y = 2.0 * np.arange(100) + 5.0

        result = builtins.get_compute_func('trend')(y)

        assert result['trend_slope'] == pytest.approx(2.0)
        assert result['trend_r2'] == pytest.approx(1.0)

    def test_constant_trend_r2_is_nan(self, builtins):
        assert np.isnan(builtins.get_compute_func('trend')(np.ones(20))['trend_r2'])


class TestCustomMastersDir:
    """Masters discovered outside the package load their code from the same directory."""

    @pytest.fixture
    def masters_dir(self, tmp_path):
        (tmp_path / 'mymaster.yaml').write_text("master: mymaster\noutputs: []\n")
        (tmp_path / 'mymaster.py').write_text("def compute(y):\n    return 1.0\n")
        (tmp_path / 'nocode.yaml').write_text("master: nocode\noutputs: []\n")
        return tmp_path

    def test_compute_func_from_directory(self, masters_dir):
        registry = MasterRegistry(masters_dir=masters_dir)
        assert registry.get_compute_func('mymaster')(np.zeros(3)) == 1.0

    def test_missing_module(self, masters_dir):
        registry = MasterRegistry(masters_dir=masters_dir)
        with pytest.raises(ImportError, match="nocode"):
            registry.get_compute_func('nocode')

    def test_end_to_end(self, masters_dir):
        registry = MasterRegistry(masters_dir=masters_dir)
        catalog = Catalog(
            [TimeSeries(1, 'a', np.arange(10.0))],
            [Operation(1, 'one', 1, 'mymaster')],
            [MasterOperation(1, 'mymaster', 'mymaster')],
        )
        matrix = ResultMatrix.empty(1, 1)

        compute(catalog, matrix, registry=registry, verbose=False)

        assert matrix.values[0, 0] == 1.0
        assert matrix.quality[0, 0] == 0

    def test_unloadable_code_fails_before_any_row(self, masters_dir):
        registry = MasterRegistry(masters_dir=masters_dir)
        catalog = Catalog(
            [TimeSeries(1, 'a', np.arange(10.0))],
            [Operation(1, 'one', 1, 'mymaster'), Operation(2, 'none', 2, 'nocode')],
            [MasterOperation(1, 'mymaster', 'mymaster'), MasterOperation(2, 'nocode', 'nocode')],
        )
        matrix = ResultMatrix.empty(1, 2)

        with pytest.raises(CatalogIntegrityError, match="cannot be loaded"):
            compute(catalog, matrix, registry=registry, verbose=False)

        assert np.all(np.isnan(matrix.quality))


class TestProcessBackend:
    """Built-in masters dispatched to loky worker processes."""

    def test_loky_matches_serial(self):
        rng = np.random.default_rng(3)
        catalog = Catalog(
            [TimeSeries(i, f's{i}', rng.normal(size=300)) for i in (1, 2)],
            [
                Operation(1, 'mean', 1, 'statistics.mean'),
                Operation(2, 'ac1', 2, 'autocorrelation.ac1'),
                Operation(3, 'dominant_freq', 3, 'spectral.dominant_freq'),
                Operation(4, 'rms', 4, 'rms'),
            ],
            [
                MasterOperation(1, 'statistics', 'statistics'),
                MasterOperation(2, 'autocorrelation', 'autocorrelation'),
                MasterOperation(3, 'spectral', 'spectral'),
                MasterOperation(4, 'rms', 'rms', input='raw'),
            ],
        )
        registry = MasterRegistry()
        serial = ResultMatrix.empty(2, 4)
        parallel = ResultMatrix.empty(2, 4)

        compute(catalog, serial, registry=registry, verbose=False)
        compute(catalog, parallel, registry=registry, n_jobs=2, backend='loky', verbose=False)

        np.testing.assert_array_equal(parallel.values, serial.values)
        np.testing.assert_array_equal(parallel.quality, serial.quality)
        assert np.all(parallel.quality == 0)
