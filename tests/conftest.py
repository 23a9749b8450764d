"""
Shared pytest fixtures for PowerSim tests.
"""

import pytest

from tests.config import BASE_DESIGN, N_SIMS_CHECK, SEED


@pytest.fixture
def base_params():
    """Reference two-group ``DesignParameters``."""
    from powersim import DesignParameters

    return DesignParameters(BASE_DESIGN)


@pytest.fixture
def sim():
    """``PowerSim`` with the reference design and a small simulation count."""
    import warnings

    from powersim import PowerSim

    model = PowerSim()
    model.set_baseline(BASE_DESIGN).set_seed(SEED)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        model.set_simulations(N_SIMS_CHECK)
    return model

