"""Core components for the PowerSim engine.

Re-exports the building blocks:

- ``DesignParameters``: immutable experimental configuration.
- ``RandomSource``: per-trial random stream handed to trial procedures.
- ``SimulationRunner``, ``TrialBatch``: Monte Carlo replication of one
  configuration.
- ``PowerEstimator``, ``PowerEstimate``: reduction of outcomes to a power
  estimate with precision.
- ``DesignSweep``, ``ResultsTable``, ``ResultRow``: grid evaluation and its
  data product.
"""

from .parameters import DesignParameters
from .results import PowerEstimate, PowerEstimator, ResultRow, ResultsTable
from .rng import RandomSource, resolve_root_seed, trial_random_source
from .simulation import SimulationRunner, TrialBatch, TrialFailure
from .sweep import DesignSweep

__all__ = [
    # Parameters
    "DesignParameters",
    # Randomness
    "RandomSource",
    "resolve_root_seed",
    "trial_random_source",
    # Simulation
    "SimulationRunner",
    "TrialBatch",
    "TrialFailure",
    # Results
    "PowerEstimator",
    "PowerEstimate",
    "ResultRow",
    "ResultsTable",
    # Sweeps
    "DesignSweep",
]
