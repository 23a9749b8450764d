"""
Trial procedures for PowerSim.

A trial procedure synthesises one dataset for a given set of design
parameters and answers a single question: was the null hypothesis
rejected? The engine treats it as an opaque function of
``(DesignParameters, RandomSource)`` and owns everything else
(replication, seeding, aggregation).

Any callable with that signature works. Procedures may additionally
declare:

- ``n_groups``: balanced-group requirement, ``n`` must be divisible by it.
- ``required_fields``: design fields the procedure reads.

Both are checked for every grid point before any simulation starts.
"""

from typing import Optional, Protocol, Sequence, Tuple, runtime_checkable

from ..core.parameters import DesignParameters
from ..core.rng import RandomSource
from .two_group import TwoGroupMeanComparison, WelchTTest


@runtime_checkable
class TrialProcedure(Protocol):
    """Protocol for injected trial procedures.

    Implementations must not mutate *params* or any shared state, must
    terminate, and must draw all randomness from *rng*. Raising an
    exception signals a broken configuration for that draw (e.g. a
    singular fit), not a non-significant result.
    """

    def __call__(self, params: DesignParameters, rng: RandomSource) -> bool:
        """Simulate one dataset and return ``True`` if H0 is rejected."""
        ...


def procedure_requirements(procedure) -> Tuple[Optional[int], Sequence[str]]:
    """Return ``(n_groups, required_fields)`` declared by *procedure*."""
    return getattr(procedure, "n_groups", None), tuple(getattr(procedure, "required_fields", ()))


__all__ = [
    "TrialProcedure",
    "TwoGroupMeanComparison",
    "WelchTTest",
    "procedure_requirements",
]
