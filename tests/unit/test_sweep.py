"""
Tests for DesignSweep grid construction and evaluation.
"""

import warnings
from unittest.mock import MagicMock

import pytest

from powersim import (
    ConfigurationError,
    DesignSweep,
    PowerEstimator,
    PrecisionWarning,
    TrialProcedureError,
    TwoGroupMeanComparison,
)
from tests.config import BASE_DESIGN, N_SIMS_CHECK, SEED
from tests.helpers.procedures import FailAt, FailingProcedure


@pytest.fixture
def sweep():
    return DesignSweep(TwoGroupMeanComparison(), BASE_DESIGN, {"n": [20, 40, 60], "delta": [2.0, 5.0]})


class TestGridConstruction:
    """Grid enumeration and eager validation."""

    def test_grid_size_is_product(self):
        s = DesignSweep(
            TwoGroupMeanComparison(),
            BASE_DESIGN,
            {"n": [20, 40, 60], "delta": [2.0, 5.0], "sd": [5.0, 10.0]},
        )
        assert len(s) == 12
        assert len(set(s.grid)) == 12

    def test_first_dimension_varies_slowest(self, sweep):
        values = [(p.n, p.delta) for p in sweep.grid]
        assert values == [(20, 2.0), (20, 5.0), (40, 2.0), (40, 5.0), (60, 2.0), (60, 5.0)]

    def test_baseline_fields_carried(self, sweep):
        assert all(p.mu == 50.0 and p.alpha == 0.05 for p in sweep.grid)

    def test_accepts_design_parameters_baseline(self, base_params):
        s = DesignSweep(TwoGroupMeanComparison(), base_params, {"n": [10]})
        assert s.baseline is base_params

    def test_dimension_may_add_field(self):
        def procedure(params, rng):
            return rng.uniform() < params.p

        s = DesignSweep(procedure, {"alpha": 0.05}, {"p": [0.1, 0.9]})
        assert [p.p for p in s.grid] == [0.1, 0.9]

    def test_dimension_names(self, sweep):
        assert sweep.dimension_names == ["n", "delta"]

    def test_odd_n_rejected(self):
        with pytest.raises(ConfigurationError, match="divisible"):
            DesignSweep(TwoGroupMeanComparison(), BASE_DESIGN, {"n": [20, 31]})

    def test_empty_dimension_rejected(self):
        with pytest.raises(ConfigurationError, match="empty"):
            DesignSweep(TwoGroupMeanComparison(), BASE_DESIGN, {"n": []})

    def test_duplicate_values_rejected(self):
        with pytest.raises(ConfigurationError, match="duplicate"):
            DesignSweep(TwoGroupMeanComparison(), BASE_DESIGN, {"n": [20, 20]})

    def test_list_valued_dimension_rejected(self):
        with pytest.raises(ConfigurationError, match="scalar values"):
            DesignSweep(TwoGroupMeanComparison(), BASE_DESIGN, {"delta": [[1.0], [2.0]]})

    def test_no_dimensions_rejected(self):
        with pytest.raises(ConfigurationError):
            DesignSweep(TwoGroupMeanComparison(), BASE_DESIGN, {})

    def test_missing_required_field(self):
        with pytest.raises(ConfigurationError, match="Missing design parameter"):
            DesignSweep(TwoGroupMeanComparison(), {"n": 10, "alpha": 0.05}, {"delta": [1.0]})

    def test_non_callable_procedure(self):
        with pytest.raises(ConfigurationError, match="callable"):
            DesignSweep("ttest", BASE_DESIGN, {"n": [10]})


class TestRun:
    """Sequential evaluation."""

    def test_rows_in_grid_order(self, sweep):
        table = sweep.run(N_SIMS_CHECK, seed=SEED)
        assert len(table) == 6
        assert [row.index for row in table] == list(range(6))
        assert [row.params for row in table] == sweep.grid
        assert table.partial is False
        assert table.seed == SEED
        assert table.nsims == N_SIMS_CHECK

    def test_estimates_complete(self, sweep):
        table = sweep.run(N_SIMS_CHECK, seed=SEED)
        for row in table:
            assert not row.failed
            assert 0.0 <= row.power <= 1.0
            assert row.estimate.nsims == N_SIMS_CHECK
            assert row.estimate.params == row.params

    def test_values_hold_swept_fields_only(self, sweep):
        table = sweep.run(N_SIMS_CHECK, seed=SEED)
        assert table[0].values == {"n": 20, "delta": 2.0}

    def test_reproducible(self, sweep):
        a = sweep.run(N_SIMS_CHECK, seed=SEED)
        b = sweep.run(N_SIMS_CHECK, seed=SEED)
        assert a.powers() == b.powers()

    def test_unseeded_run_records_seed(self, sweep):
        a = sweep.run(N_SIMS_CHECK, seed=None)
        assert isinstance(a.seed, int)
        b = sweep.run(N_SIMS_CHECK, seed=a.seed)
        assert a.powers() == b.powers()

    def test_on_row(self, sweep):
        seen = []
        table = sweep.run(N_SIMS_CHECK, seed=SEED, on_row=seen.append)
        assert seen == table.rows

    def test_progress_callback(self, sweep):
        cb = MagicMock()
        sweep.run(N_SIMS_CHECK, seed=SEED, progress_callback=cb)
        total = N_SIMS_CHECK * 6
        assert cb.call_args_list[0].args == (0, total)
        assert cb.call_args_list[-1].args == (total, total)

    def test_custom_estimator(self, sweep):
        table = sweep.run(N_SIMS_CHECK, seed=SEED, estimator=PowerEstimator(ci_method="wald"))
        assert table[0].estimate.ci_method == "wald"

    def test_invalid_settings_fail_before_work(self, sweep):
        with pytest.raises(ConfigurationError):
            sweep.run(0)
        with pytest.raises(ConfigurationError):
            sweep.run(N_SIMS_CHECK, seed=-3)
        with pytest.raises(ConfigurationError):
            sweep.iter_run(N_SIMS_CHECK, n_jobs=0)


class TestIterRun:
    def test_lazy_rows(self, sweep):
        rows = sweep.iter_run(N_SIMS_CHECK, seed=SEED)
        first = next(rows)
        assert first.index == 0
        assert first.values == {"n": 20, "delta": 2.0}

    def test_matches_run(self, sweep):
        rows = list(sweep.iter_run(N_SIMS_CHECK, seed=SEED))
        assert [r.power for r in rows] == sweep.run(N_SIMS_CHECK, seed=SEED).powers()


class TestCancellation:
    """Cooperative cancellation returns a partial table."""

    def test_cancel_between_points(self, sweep):
        seen = []
        table = sweep.run(N_SIMS_CHECK, seed=SEED, on_row=seen.append, cancel_check=lambda: len(seen) >= 2)
        assert table.partial is True
        assert len(table) == 2
        assert table.completed == {0, 1}
        assert table.n_grid_points == 6

    def test_cancel_mid_point(self, sweep):
        calls = []

        def cancel():
            calls.append(1)
            return len(calls) > N_SIMS_CHECK + 10

        table = sweep.run(N_SIMS_CHECK, seed=SEED, cancel_check=cancel)
        assert table.partial is True
        assert len(table) == 1

    def test_partial_rows_match_full_run(self, sweep):
        full = sweep.run(N_SIMS_CHECK, seed=SEED)
        seen = []
        partial = sweep.run(N_SIMS_CHECK, seed=SEED, on_row=seen.append, cancel_check=lambda: len(seen) >= 3)
        assert partial.powers() == full.powers()[:3]

    def test_cancel_immediately(self, sweep):
        table = sweep.run(N_SIMS_CHECK, seed=SEED, cancel_check=lambda: True)
        assert len(table) == 0
        assert table.partial is True


class TestFailures:
    """Trial procedure failures at grid level."""

    def test_failed_point_recorded(self):
        s = DesignSweep(FailAt(bad_n=20), {"alpha": 0.05}, {"n": [10, 20, 30]})
        table = s.run(N_SIMS_CHECK, seed=SEED)
        assert len(table) == 3
        assert [row.failed for row in table] == [False, True, False]
        assert "cannot fit n=20" in table[1].error
        assert table.to_records()[1]["power"] is None

    def test_abort_on_error(self):
        s = DesignSweep(FailAt(bad_n=20), {"alpha": 0.05}, {"n": [10, 20, 30]})
        with pytest.raises(TrialProcedureError) as exc_info:
            s.run(N_SIMS_CHECK, seed=SEED, abort_on_error=True)
        assert exc_info.value.params.n == 20
        assert exc_info.value.point_index == 1

    def test_skip_policy_counts_failures(self):
        s = DesignSweep(FailingProcedure(), {"alpha": 0.05}, {"fail": [0.1, 0.2]})
        with pytest.warns(UserWarning, match="trials failed and were skipped"):
            table = s.run(200, seed=SEED, failure_policy="skip")
        assert all(row.estimate.n_failed > 0 for row in table)
        assert all(row.estimate.nsims_effective < 200 for row in table)

    def test_skip_max_failed_marks_row(self):
        s = DesignSweep(FailingProcedure(), {"alpha": 0.05}, {"fail": [0.05, 0.6]})
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            table = s.run(200, seed=SEED, failure_policy="skip", max_failed=0.3)
        assert not table[0].failed
        assert table[1].failed
        assert "Too many failed trials" in table[1].error


class TestPrecision:
    def test_precision_warning(self, sweep):
        with pytest.warns(PrecisionWarning):
            sweep.run(N_SIMS_CHECK, seed=SEED, estimator=PowerEstimator(precision_threshold=0.01))

    def test_precision_warning_does_not_block(self, sweep):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            table = sweep.run(N_SIMS_CHECK, seed=SEED, estimator=PowerEstimator(precision_threshold=0.01))
        assert len(table) == 6
