"""Tests for the result matrix and run state."""

import numpy as np
import pytest

from tscompute.scheduler.state import ResultMatrix, RowResult, RunState


class TestResultMatrix:

    def test_empty_is_never_computed(self):
        matrix = ResultMatrix.empty(2, 3)
        assert matrix.shape == (2, 3)
        assert np.all(np.isnan(matrix.values))
        assert np.all(np.isnan(matrix.calc_times))
        assert np.all(np.isnan(matrix.quality))

    def test_inconsistent_shapes(self):
        with pytest.raises(ValueError, match="inconsistent shapes"):
            ResultMatrix(np.zeros((2, 3)), np.zeros((2, 3)), np.zeros((3, 2)))

    def test_not_2d(self):
        with pytest.raises(ValueError, match="2-D"):
            ResultMatrix(np.zeros(3), np.zeros(3), np.zeros(3))

    def test_write_row_only_touches_given_columns(self):
        matrix = ResultMatrix.empty(2, 4)
        matrix.write_row(1, np.array([0, 2]), np.array([1.0, 2.0]), np.array([0.5, 0.5]), np.array([0.0, 3.0]))

        np.testing.assert_array_equal(matrix.values[1, [0, 2]], [1.0, 2.0])
        np.testing.assert_array_equal(matrix.quality[1, [0, 2]], [0.0, 3.0])
        assert np.isnan(matrix.quality[1, [1, 3]]).all()
        assert np.isnan(matrix.quality[0]).all()


class TestRunState:

    def make_state(self):
        return RunState(
            matrix=ResultMatrix.empty(2, 2),
            row_indices=np.arange(2),
            op_mask=np.ones(2, dtype=bool),
        )

    def test_skipped_row_writes_nothing(self):
        state = self.make_state()
        state.apply(RowResult(row=0, ts_id=5, name='bad', length=4, skipped=True, elapsed=0.1))

        assert state.skipped == [5]
        assert state.n_rows_done == 1
        assert np.isnan(state.matrix.quality).all()

    def test_totals(self):
        state = self.make_state()
        state.apply(RowResult(
            row=1, ts_id=2, name='ok', length=4,
            cols=np.array([0, 1]), values=np.array([1.0, 0.0]),
            calc_times=np.array([0.2, 0.2]), quality=np.array([0.0, 1.0]),
            elapsed=0.3,
        ))

        summary = state.summary()
        assert summary.n_cells == 2
        assert summary.n_good == 1
        assert summary.n_errors == 1
        assert summary.total_time == pytest.approx(0.3)
        assert summary.to_dict()['n_rows_done'] == 1
