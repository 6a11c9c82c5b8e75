"""Shared fixtures: a small catalog over a registry of instrumented masters."""

from collections import Counter

import numpy as np
import pytest

from tscompute.core.catalog import Catalog, MasterOperation, Operation, TimeSeries
from tscompute.core.registry import MasterRegistry
from tscompute.scheduler.state import ResultMatrix


@pytest.fixture
def calls():
    """Evaluation count per master code."""
    return Counter()


@pytest.fixture
def registry(calls):
    """Registry with test masters only (no built-in discovery)."""
    reg = MasterRegistry(discover=False)

    def moments(y):
        calls['moments'] += 1
        return {'mean': float(np.mean(y)), 'std': float(np.std(y, ddof=1)), 'max': float(np.max(y))}

    def special(y):
        calls['special'] += 1
        return {'nan': np.nan, 'pos_inf': np.inf, 'neg_inf': -np.inf, 'complex': 3 + 4j, 'real': 42.0}

    def broken(y):
        calls['broken'] += 1
        raise RuntimeError("boom")

    def length(x, scale=1.0):
        calls['length'] += 1
        return float(len(x)) * scale

    reg.register('moments', moments, outputs=['mean', 'std', 'max'])
    reg.register('special', special, outputs=['nan', 'pos_inf', 'neg_inf', 'complex', 'real'])
    reg.register('broken', broken, outputs=['x'])
    reg.register('length', length, outputs=[], params={'scale': 1.0})
    return reg


def make_masters():
    return [
        MasterOperation(id=1, label='moments', code='moments'),
        MasterOperation(id=2, label='special', code='special'),
        MasterOperation(id=3, label='broken', code='broken'),
        MasterOperation(id=4, label='length', code='length', input='raw'),
    ]


def make_operations():
    return [
        Operation(id=10, name='mean', master_id=1, code_string='moments.mean'),
        Operation(id=11, name='std', master_id=1, code_string='moments.std'),
        Operation(id=12, name='max', master_id=1, code_string='moments.max'),
        Operation(id=20, name='nan', master_id=2, code_string='special.nan'),
        Operation(id=21, name='pos_inf', master_id=2, code_string='special.pos_inf'),
        Operation(id=22, name='neg_inf', master_id=2, code_string='special.neg_inf'),
        Operation(id=23, name='complex', master_id=2, code_string='special.complex'),
        Operation(id=24, name='real', master_id=2, code_string='special.real'),
        Operation(id=30, name='broken', master_id=3, code_string='broken.x'),
        Operation(id=40, name='length', master_id=4, code_string='length'),
    ]


def make_time_series():
    return [
        TimeSeries(id=1, name='sine', data=np.sin(np.linspace(0, 8 * np.pi, 100))),
        TimeSeries(id=2, name='ramp', data=np.arange(50, dtype=float)),
        TimeSeries(id=3, name='row_vector', data=np.arange(30, dtype=float).reshape(1, 30)),
        TimeSeries(id=4, name='multivariate', data=np.ones((10, 3))),
    ]


@pytest.fixture
def catalog():
    return Catalog(make_time_series(), make_operations(), make_masters())


@pytest.fixture
def matrix(catalog):
    return ResultMatrix.empty(catalog.n_time_series, catalog.n_operations)


@pytest.fixture
def col(catalog):
    """Column index of an operation ID."""
    def _col(op_id):
        return int(np.flatnonzero(catalog.op_ids == op_id)[0])
    return _col
