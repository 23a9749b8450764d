"""
End-to-end workflow: configure, estimate, sweep, export.
"""

import pandas as pd
import pytest

from powersim import PowerSim, PrintReporter
from powersim.core.results import RESULT_COLUMNS
from tests.config import N_SIMS_CHECK, SEED


@pytest.fixture
def model():
    sim = PowerSim()
    sim.set_baseline("n=100, mu=50, sd=10, delta=5, alpha=0.05").set_seed(SEED)
    with pytest.warns(UserWarning):
        sim.set_simulations(N_SIMS_CHECK)
    return sim


class TestWorkflow:
    def test_grid_to_frame(self, model):
        frame = model.find_power_grid(n=range(10, 201, 10), delta=[3, 5, 8]).to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert len(frame) == 60
        assert list(frame.columns) == ["n", "delta", *RESULT_COLUMNS]
        assert frame[["n", "delta"]].drop_duplicates().shape[0] == 60
        assert frame["power"].between(0, 1).all()
        assert frame["error"].isna().all()

    def test_alpha_as_swept_dimension(self, model):
        table = model.find_power_grid(alpha=[0.01, 0.05, 0.10])
        assert [row.params.alpha for row in table] == [0.01, 0.05, 0.10]

    def test_print_reporter(self, model, capsys):
        model.find_power_grid(n=[20, 40], progress_callback=PrintReporter())
        err = capsys.readouterr().err
        assert "Simulating [" in err
        assert err.endswith("\n")

    def test_records_are_plain(self, model):
        records = model.find_power_grid(n=[20, 40]).to_records()
        assert all(type(r) is dict for r in records)
        assert {"n", "power", "standard_error", "ci_lower", "ci_upper"} <= set(records[0])
