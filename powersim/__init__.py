"""PowerSim - Monte Carlo Power Estimation.

A simulation-based engine for statistical power: a pluggable trial
procedure is replicated many times per design, outcomes are reduced to a
power estimate with its precision, and the whole thing is repeated over a
grid of sample sizes, effect sizes or any other design field.

Example:
    >>> from powersim import PowerSim
    >>>
    >>> sim = PowerSim()
    >>> sim.set_baseline("n=100, mu=50, sd=10, delta=5, alpha=0.05")
    >>> sim.find_power()
    >>>
    >>> table = sim.find_power_grid(n=range(10, 201, 10), delta=[3, 5, 8])
    >>> table.to_frame()
"""

from importlib.metadata import version as _get_version

from .core import (
    DesignParameters,
    DesignSweep,
    PowerEstimate,
    PowerEstimator,
    RandomSource,
    ResultRow,
    ResultsTable,
    SimulationRunner,
    TrialBatch,
)
from .exceptions import ConfigurationError, EmptyBatchError, PrecisionWarning, TrialProcedureError
from .model import PowerSim
from .procedures import TrialProcedure, TwoGroupMeanComparison, WelchTTest
from .progress import PrintReporter, ProgressReporter, SimulationCancelled, TqdmReporter

__version__ = _get_version("PowerSim")

__all__ = [
    "PowerSim",
    # Engine
    "DesignParameters",
    "DesignSweep",
    "SimulationRunner",
    "TrialBatch",
    "PowerEstimator",
    "PowerEstimate",
    "ResultsTable",
    "ResultRow",
    "RandomSource",
    # Procedures
    "TrialProcedure",
    "TwoGroupMeanComparison",
    "WelchTTest",
    # Errors
    "ConfigurationError",
    "TrialProcedureError",
    "EmptyBatchError",
    "PrecisionWarning",
    "SimulationCancelled",
    # Progress
    "ProgressReporter",
    "PrintReporter",
    "TqdmReporter",
]
