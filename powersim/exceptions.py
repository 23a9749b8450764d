"""
Exception and warning taxonomy for PowerSim.

``ConfigurationError`` is raised eagerly, before any simulation work starts.
``TrialProcedureError`` wraps a failure of the injected trial procedure for a
specific draw. ``PrecisionWarning`` is advisory and never blocks completion.
"""

from typing import Any, Optional

__all__ = [
    "ConfigurationError",
    "TrialProcedureError",
    "EmptyBatchError",
    "PrecisionWarning",
]


class ConfigurationError(ValueError):
    """Invalid design parameters, grid or simulation settings."""

    pass


class EmptyBatchError(ValueError):
    """Raised when a power estimate is requested for a batch with no outcomes."""

    pass


class TrialProcedureError(RuntimeError):
    """The injected trial procedure failed for a specific draw.

    Attributes:
        params: ``DesignParameters`` the failing trial ran under.
        trial_index: Index of the failing trial within its batch (``None``
            when the batch failed as a whole, e.g. every trial was skipped).
        point_index: Grid-point index the batch belongs to.
    """

    def __init__(
        self,
        message: str,
        params: Any = None,
        trial_index: Optional[int] = None,
        point_index: Optional[int] = None,
    ):
        super().__init__(message)
        self.params = params
        self.trial_index = trial_index
        self.point_index = point_index

    def __reduce__(self):
        # keep attributes when crossing process boundaries (joblib/loky)
        return (
            self.__class__,
            (self.args[0], self.params, self.trial_index, self.point_index),
        )


class PrecisionWarning(UserWarning):
    """Standard error of a power estimate exceeds the configured threshold."""

    pass
