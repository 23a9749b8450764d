"""
Reference two-group trial procedures.

Both procedures simulate a balanced two-arm study: ``n / 2`` control
observations drawn from ``N(mu, sd)`` and ``n / 2`` treated observations
drawn from ``N(mu + delta, sd)``. They differ only in the test applied.
"""

import numpy as np
from scipy.stats import ttest_ind

from ..core.parameters import DesignParameters
from ..core.rng import RandomSource
from ..stats.ols import fit_ols

_FIELDS = ("n", "mu", "sd", "delta", "alpha")


def _simulate_two_groups(params: DesignParameters, rng: RandomSource):
    """Return ``(group, y)``: 0/1 treatment indicator and outcome."""
    per_group = params.n // 2
    group = np.repeat([0.0, 1.0], per_group)
    y = params.mu + params.sd * rng.standard_normal(2 * per_group) + params.delta * group
    return group, y


class TwoGroupMeanComparison:
    """Linear model ``y ~ 1 + group``, t-test on the treatment coefficient.

    The treatment coefficient is looked up by name (``term``) in the fitted
    model, so the test never depends on coefficient ordering.

    Args:
        term: Name given to the treatment indicator column.
    """

    n_groups = 2
    required_fields = _FIELDS

    def __init__(self, term: str = "group"):
        self.term = term

    def __call__(self, params: DesignParameters, rng: RandomSource) -> bool:
        group, y = _simulate_two_groups(params, rng)
        fit = fit_ols(group[:, None], y, [self.term])
        return fit.pvalue(self.term) < params.alpha

    def __repr__(self):
        return f"TwoGroupMeanComparison(term={self.term!r})"


class WelchTTest:
    """Welch's unequal-variance t-test between the two arms."""

    n_groups = 2
    required_fields = _FIELDS

    def __call__(self, params: DesignParameters, rng: RandomSource) -> bool:
        group, y = _simulate_two_groups(params, rng)
        treated, control = y[group == 1.0], y[group == 0.0]
        if treated.var() == 0.0 or control.var() == 0.0:
            raise ValueError("Welch t-test is undefined for zero-variance groups")
        result = ttest_ind(treated, control, equal_var=False)
        if np.isnan(result.pvalue):
            raise ValueError("Welch t-test returned an undefined p-value")
        return bool(result.pvalue < params.alpha)

    def __repr__(self):
        return "WelchTTest()"
