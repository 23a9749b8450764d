"""
Results processing for PowerSim.

``PowerEstimator`` reduces a ``TrialBatch`` to a ``PowerEstimate``
(proportion of rejections with standard error and confidence interval).
``ResultsTable`` collects one ``ResultRow`` per grid point of a sweep and
exports them as plain records or a pandas DataFrame.
"""

import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set, Tuple, Union

import numpy as np
import pandas as pd

from ..exceptions import EmptyBatchError, PrecisionWarning
from ..stats.intervals import standard_error, wald_interval, wilson_interval
from ..utils.validators import _validate_ci_method, _validate_confidence, _validate_precision_threshold
from .parameters import DesignParameters
from .simulation import TrialBatch

_INTERVALS = {"wilson": wilson_interval, "wald": wald_interval}

RESULT_COLUMNS = [
    "power",
    "standard_error",
    "ci_lower",
    "ci_upper",
    "nsims",
    "nsims_effective",
    "n_failed",
    "error",
]


@dataclass(frozen=True)
class PowerEstimate:
    """Estimated power at one set of design parameters.

    Attributes:
        power: Proportion of trials that rejected H0, in [0, 1].
        standard_error: ``sqrt(power * (1 - power) / nsims_effective)``.
        ci_lower: Lower confidence bound.
        ci_upper: Upper confidence bound.
        confidence: Confidence level of the interval.
        ci_method: ``"wilson"`` or ``"wald"``.
        nsims: Trials requested.
        nsims_effective: Trials that produced an outcome.
        n_failed: Trials skipped after a procedure error.
        params: Design parameters the estimate belongs to.
        seed: Root seed the trials were drawn from (set by
            ``PowerSim.find_power``; re-running with it reproduces the estimate).
    """

    power: float
    standard_error: float
    ci_lower: float
    ci_upper: float
    confidence: float
    ci_method: str
    nsims: int
    nsims_effective: int
    n_failed: int = 0
    params: Optional[DesignParameters] = None
    seed: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "power": self.power,
            "standard_error": self.standard_error,
            "ci_lower": self.ci_lower,
            "ci_upper": self.ci_upper,
            "confidence": self.confidence,
            "ci_method": self.ci_method,
            "nsims": self.nsims,
            "nsims_effective": self.nsims_effective,
            "n_failed": self.n_failed,
        }

    def __str__(self) -> str:
        pct = int(round(self.confidence * 100))
        text = (
            f"power = {self.power:.4f} (SE {self.standard_error:.4f}, "
            f"{pct}% CI [{self.ci_lower:.4f}, {self.ci_upper:.4f}], "
            f"{self.nsims_effective} trials)"
        )
        if self.n_failed:
            text += f", {self.n_failed} failed trials skipped"
        return text


class PowerEstimator:
    """Turns trial outcomes into a power estimate with a precision bound.

    Args:
        confidence: Confidence level of the interval (default 0.95).
        ci_method: ``"wilson"`` (default) or ``"wald"``.
        precision_threshold: Standard-error ceiling; estimates above it
            emit a ``PrecisionWarning``. ``None`` disables the check.
    """

    def __init__(
        self,
        confidence: float = 0.95,
        ci_method: str = "wilson",
        precision_threshold: Optional[float] = None,
    ):
        _validate_confidence(confidence).raise_if_invalid()
        _validate_ci_method(ci_method).raise_if_invalid()
        _validate_precision_threshold(precision_threshold).raise_if_invalid()

        self.confidence = confidence
        self.ci_method = ci_method
        self.precision_threshold = precision_threshold

    def estimate(self, batch: Union[TrialBatch, Sequence[bool]]) -> PowerEstimate:
        """Reduce *batch* to a ``PowerEstimate``.

        Args:
            batch: A ``TrialBatch`` or any sequence of booleans.

        Raises:
            EmptyBatchError: If the batch holds no outcomes.
        """
        if isinstance(batch, TrialBatch):
            outcomes = batch.outcomes
            params, n_failed, n_requested = batch.params, batch.n_failed, batch.n_requested
        else:
            outcomes = np.asarray(batch, dtype=bool)
            params, n_failed, n_requested = None, 0, len(outcomes)

        n = len(outcomes)
        if n == 0:
            raise EmptyBatchError("Cannot estimate power from an empty batch")

        successes = int(np.count_nonzero(outcomes))
        power = successes / n
        se = standard_error(power, n)
        ci_lower, ci_upper = _INTERVALS[self.ci_method](successes, n, self.confidence)

        if n_failed:
            warnings.warn(
                f"{n_failed}/{n_requested} trials failed and were skipped for {params}; "
                f"estimate uses {n} trials",
                stacklevel=2,
            )

        if self.precision_threshold is not None and se > self.precision_threshold:
            warnings.warn(
                PrecisionWarning(
                    f"Standard error {se:.4f} exceeds threshold {self.precision_threshold:.4f} "
                    f"(power {power:.4f} from {n} trials); consider more simulations"
                ),
                stacklevel=2,
            )

        return PowerEstimate(
            power=power,
            standard_error=se,
            ci_lower=ci_lower,
            ci_upper=ci_upper,
            confidence=self.confidence,
            ci_method=self.ci_method,
            nsims=n_requested,
            nsims_effective=n,
            n_failed=n_failed,
            params=params,
        )


@dataclass(frozen=True)
class ResultRow:
    """One grid point of a sweep.

    Attributes:
        index: Position in the canonical grid enumeration.
        params: Full design parameters of the grid point.
        values: Swept dimension values, keyed by dimension name.
        estimate: Power estimate, or ``None`` if the grid point failed.
        error: Failure message when the trial procedure errored.
    """

    index: int
    params: DesignParameters
    values: Dict[str, Any]
    estimate: Optional[PowerEstimate] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.estimate is None

    @property
    def power(self) -> Optional[float]:
        return None if self.estimate is None else self.estimate.power

    def as_record(self, nsims: Optional[int] = None) -> Dict[str, Any]:
        """Flat dict: swept values followed by the result columns."""
        record = dict(self.values)
        if self.estimate is not None:
            est = self.estimate
            record.update(
                power=est.power,
                standard_error=est.standard_error,
                ci_lower=est.ci_lower,
                ci_upper=est.ci_upper,
                nsims=est.nsims,
                nsims_effective=est.nsims_effective,
                n_failed=est.n_failed,
                error=None,
            )
        else:
            record.update(
                power=None,
                standard_error=None,
                ci_lower=None,
                ci_upper=None,
                nsims=nsims,
                nsims_effective=0,
                n_failed=None,
                error=self.error,
            )
        return record


@dataclass
class ResultsTable:
    """Ordered power estimates for every visited grid point.

    Rows follow the sweep's grid enumeration order. A cancelled sweep
    yields a table with ``partial=True`` holding only the rows that
    completed.

    Attributes:
        rows: Completed rows in grid order.
        dimensions: Names of the swept dimensions.
        n_grid_points: Size of the full grid.
        nsims: Trials requested per grid point.
        seed: Root seed the sweep ran with.
        partial: ``True`` if the sweep was cancelled before finishing.
    """

    rows: List[ResultRow]
    dimensions: List[str]
    n_grid_points: int
    nsims: int
    seed: Optional[int] = None
    partial: bool = False
    _by_values: Dict[Tuple, ResultRow] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        self._by_values = {tuple(row.values[d] for d in self.dimensions): row for row in self.rows}

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[ResultRow]:
        return iter(self.rows)

    def __getitem__(self, index: int) -> ResultRow:
        return self.rows[index]

    @property
    def completed(self) -> Set[int]:
        """Grid indices with a finished row (including failed grid points)."""
        return {row.index for row in self.rows}

    @property
    def failed_rows(self) -> List[ResultRow]:
        return [row for row in self.rows if row.failed]

    def lookup(self, **values: Any) -> ResultRow:
        """Row for an exact combination of swept values.

        Raises:
            KeyError: If the combination was not visited.
        """
        key = tuple(values.get(d) for d in self.dimensions)
        if set(values) != set(self.dimensions) or key not in self._by_values:
            raise KeyError(f"No row for {values}")
        return self._by_values[key]

    def powers(self) -> List[Optional[float]]:
        return [row.power for row in self.rows]

    def to_records(self) -> List[Dict[str, Any]]:
        """Plain row-oriented export (list of dicts, no PowerSim types)."""
        return [row.as_record(self.nsims) for row in self.rows]

    def to_frame(self) -> pd.DataFrame:
        """Tabular export with one column per swept dimension plus result columns."""
        return pd.DataFrame(self.to_records(), columns=[*self.dimensions, *RESULT_COLUMNS])

    def first_achieved(self, target_power: float, along: str = "n") -> Dict[Tuple, Optional[Any]]:
        """First value along a dimension whose power reaches *target_power*.

        Rows are grouped by the values of every other swept dimension; within
        each group they are scanned in grid order.

        Args:
            target_power: Target power on the 0-1 scale.
            along: Dimension to scan (default ``"n"``).

        Returns:
            Mapping from the tuple of other-dimension values (in dimension
            order, empty tuple when *along* is the only dimension) to the first
            achieving value, or ``None`` if the target is never reached.

        Raises:
            KeyError: If *along* is not a swept dimension.
        """
        if along not in self.dimensions:
            raise KeyError(f"'{along}' is not a swept dimension. Available: {', '.join(self.dimensions)}")

        others = [d for d in self.dimensions if d != along]
        achieved: Dict[Tuple, Optional[Any]] = {}
        for row in self.rows:
            key = tuple(row.values[d] for d in others)
            achieved.setdefault(key, None)
            if achieved[key] is None and row.power is not None and row.power >= target_power:
                achieved[key] = row.values[along]
        return achieved
