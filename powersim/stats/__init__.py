"""Statistical helpers: OLS fitting and binomial proportion intervals."""

from .intervals import standard_error, wald_interval, wilson_interval
from .ols import OLSResult, fit_ols

__all__ = [
    "OLSResult",
    "fit_ols",
    "standard_error",
    "wald_interval",
    "wilson_interval",
]
