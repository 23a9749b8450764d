"""
PowerSim - Monte Carlo Power Estimation.

This module provides the main PowerSim class for estimating statistical
power by simulation over a grid of experimental designs.
"""

import dataclasses
import warnings
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

from .core import DesignParameters, DesignSweep, PowerEstimate, PowerEstimator, ResultsTable, SimulationRunner
from .exceptions import ConfigurationError
from .progress import ProgressReporter
from .procedures import TwoGroupMeanComparison, procedure_requirements
from .utils.parsers import _parse_assignments
from .utils.validators import (
    _validate_alpha,
    _validate_ci_method,
    _validate_confidence,
    _validate_failure_policy,
    _validate_parallel_settings,
    _validate_precision_threshold,
    _validate_sample_size_range,
    _validate_seed,
    _validate_simulations,
    _validate_target_power,
)


class PowerSim:
    """Monte Carlo power estimation.

    Wraps a trial procedure together with a baseline design and the
    simulation settings. Configuration methods (``set_*``) validate their
    input immediately and return ``self`` for method chaining.

    Attributes:
        procedure: Trial procedure ``(params, rng) -> bool``.
        seed: Root seed for reproducibility (default: 2137).
        n_simulations: Trials per grid point (default: 1600).
        parallel: Whether grid points run on joblib workers (default: False).
        n_cores: Worker count, or ``"auto"`` for all cores.
        failure_policy: ``"fail_fast"`` (default) or ``"skip"``.
        max_failed: Failure-rate ceiling under ``"skip"``.
        confidence: Confidence level of power intervals (default: 0.95).
        ci_method: ``"wilson"`` (default) or ``"wald"``.
        precision_threshold: Standard error above which a
            ``PrecisionWarning`` is emitted (default: None).

    Example:
        >>> sim = PowerSim()
        >>> sim.set_baseline("n=100, mu=50, sd=10, delta=5").set_seed(7)
        >>> sim.find_power()
        >>> table = sim.find_power_grid(n=range(10, 201, 10), delta=[3, 5, 8])
    """

    def __init__(self, procedure: Optional[Callable] = None):
        """Initialise with a trial procedure.

        Args:
            procedure: Any callable ``(DesignParameters, RandomSource) -> bool``.
                Defaults to ``TwoGroupMeanComparison``.
        """
        if procedure is not None and not callable(procedure):
            raise ConfigurationError(f"procedure must be callable, got {type(procedure).__name__}")
        self.procedure = procedure if procedure is not None else TwoGroupMeanComparison()

        # Core configuration
        self.seed: Optional[int] = 2137
        self.n_simulations = 1600

        # Parallel processing
        self.parallel = False
        self.n_cores: Union[int, str] = 1

        # Trial failure handling
        self.failure_policy = "fail_fast"
        self.max_failed: Optional[float] = None

        # Estimate precision
        self.confidence = 0.95
        self.ci_method = "wilson"
        self.precision_threshold: Optional[float] = None

        self._baseline: Dict[str, Any] = {"alpha": 0.05}

    # =========================================================================
    # Configuration
    # =========================================================================

    @property
    def alpha(self) -> float:
        return self._baseline["alpha"]

    @property
    def baseline(self) -> DesignParameters:
        """Current baseline design as an immutable ``DesignParameters``."""
        return DesignParameters(self._baseline)

    def set_baseline(self, fields: Union[str, Mapping[str, Any], None] = None, **kwargs: Any):
        """Set or update fixed design parameters.

        Args:
            fields: ``"n=100, mu=50, sd=10, delta=5"`` string or a mapping.
            **kwargs: Further fields; override *fields*.

        Returns:
            self: For method chaining.

        Raises:
            ConfigurationError: If the string is malformed or a value is
                invalid (non-numeric, ``n`` not a positive integer,
                ``alpha`` outside (0, 1)).
        """
        if isinstance(fields, str):
            parsed, errors = _parse_assignments(fields)
            if errors:
                raise ConfigurationError("Error setting baseline:\n" + "\n".join(f"- {e}" for e in errors))
            updates: Dict[str, Any] = parsed
        elif fields is None:
            updates = {}
        elif isinstance(fields, Mapping):
            updates = dict(fields)
        else:
            raise ConfigurationError("fields must be a string or a mapping")
        updates.update(kwargs)

        merged = dict(self._baseline)
        merged.update(updates)
        DesignParameters(merged)  # validates
        self._baseline = merged
        return self

    def set_seed(self, seed: Optional[int] = None):
        """Set the root seed.

        Args:
            seed: Integer in ``[0, 2**32 - 1]``, or ``None`` for fresh
                entropy on every run (recorded on the results).

        Returns:
            self: For method chaining.
        """
        _validate_seed(seed).raise_if_invalid()
        self.seed = seed
        return self

    def set_alpha(self, alpha: float):
        """Set the significance threshold on the baseline design.

        Args:
            alpha: Value in (0, 1). Default is 0.05.

        Returns:
            self: For method chaining.
        """
        _validate_alpha(alpha).raise_if_invalid()
        self._baseline["alpha"] = float(alpha)
        return self

    def set_simulations(self, n_simulations: int):
        """Set the number of trials per grid point.

        Args:
            n_simulations: Positive integer. Fewer than 1000 triggers a
                warning about estimate precision.

        Returns:
            self: For method chaining.
        """
        n_sims, result = _validate_simulations(n_simulations)
        result.raise_if_invalid()
        for warning in result.warnings:
            warnings.warn(warning, stacklevel=2)
        self.n_simulations = n_sims
        return self

    def set_parallel(self, enable: bool = True, n_cores: Union[int, str, None] = None):
        """Enable or disable parallel evaluation through joblib.

        Args:
            enable: ``True`` spreads grid points (or, for a single point,
                trials) over worker processes.
            n_cores: Worker count or ``"auto"`` (default) for all cores.

        Returns:
            self: For method chaining.
        """
        if enable is False:
            self.parallel, self.n_cores = False, 1
            return self

        (enabled, n_jobs), result = _validate_parallel_settings(enable, n_cores)
        result.raise_if_invalid()
        self.parallel, self.n_cores = enabled, n_jobs
        return self

    def set_failure_policy(self, policy: str = "fail_fast", max_failed: Optional[float] = None):
        """Choose how trial procedure errors are handled.

        Args:
            policy: ``"fail_fast"`` aborts the grid point on the first
                error; ``"skip"`` drops failed trials and counts them.
            max_failed: Under ``"skip"``, maximum tolerated failure
                fraction (0-1).

        Returns:
            self: For method chaining.
        """
        _validate_failure_policy(policy, max_failed).raise_if_invalid()
        self.failure_policy = policy
        self.max_failed = max_failed
        return self

    def set_confidence(self, confidence: float = 0.95, method: str = "wilson"):
        """Set the confidence level and interval method for power estimates.

        Returns:
            self: For method chaining.
        """
        _validate_confidence(confidence).raise_if_invalid()
        _validate_ci_method(method).raise_if_invalid()
        self.confidence = float(confidence)
        self.ci_method = method
        return self

    def set_precision_threshold(self, threshold: Optional[float]):
        """Warn (``PrecisionWarning``) when a standard error exceeds *threshold*.

        Returns:
            self: For method chaining.
        """
        _validate_precision_threshold(threshold).raise_if_invalid()
        self.precision_threshold = threshold
        return self

    # =========================================================================
    # Analysis
    # =========================================================================

    def _estimator(self) -> PowerEstimator:
        return PowerEstimator(
            confidence=self.confidence,
            ci_method=self.ci_method,
            precision_threshold=self.precision_threshold,
        )

    @property
    def _n_jobs(self) -> Union[int, str]:
        return self.n_cores if self.parallel else 1

    def find_power(
        self,
        progress_callback: Optional[Callable[[int, int], None]] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
        **overrides: Any,
    ) -> PowerEstimate:
        """Estimate power at the baseline design.

        Args:
            progress_callback: ``(current, total)`` callable counting trials.
            cancel_check: Optional callable returning ``True`` to abort
                (raises ``SimulationCancelled``).
            **overrides: Design fields replacing baseline values for this
                call only.

        Returns:
            ``PowerEstimate`` for the design, carrying the resolved root seed.

        Raises:
            ConfigurationError: If the design is invalid for the procedure.
            TrialProcedureError: If the procedure fails (see failure policy).
        """
        params = self.baseline.replace(**overrides)
        n_groups, required_fields = procedure_requirements(self.procedure)
        params.validate_for(n_groups=n_groups, required_fields=required_fields)

        runner = SimulationRunner(
            self.procedure,
            self.n_simulations,
            seed=self.seed,
            failure_policy=self.failure_policy,
            max_failed=self.max_failed,
            n_jobs=self._n_jobs,
        )

        progress = ProgressReporter(progress_callback, self.n_simulations) if progress_callback is not None else None
        if progress is not None:
            progress.start()
        batch = runner.run(params, progress=progress, cancel_check=cancel_check)
        if progress is not None:
            progress.point_done(0)

        return dataclasses.replace(self._estimator().estimate(batch), seed=runner.seed)

    def find_power_grid(
        self,
        dimensions: Optional[Mapping[str, Sequence[Any]]] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
        on_row: Optional[Callable] = None,
        abort_on_error: bool = False,
        **dims: Sequence[Any],
    ) -> ResultsTable:
        """Estimate power over the Cartesian grid of swept dimensions.

        Args:
            dimensions: Ordered mapping ``{field: values}``; keyword
                dimensions are appended after it.
            progress_callback: ``(current, total)`` callable counting trials.
            cancel_check: Optional callable returning ``True`` to stop; the
                returned table is then marked ``partial``.
            on_row: Called with each ``ResultRow`` as it completes.
            abort_on_error: Propagate the first ``TrialProcedureError``
                instead of recording a failed row.
            **dims: Swept dimensions, e.g. ``n=range(10, 201, 10)``.

        Returns:
            ``ResultsTable`` with one row per grid point in grid order.
        """
        all_dims: Dict[str, Sequence[Any]] = dict(dimensions or {})
        all_dims.update(dims)

        sweep = DesignSweep(self.procedure, self.baseline, all_dims)
        return sweep.run(
            self.n_simulations,
            seed=self.seed,
            n_jobs=self._n_jobs,
            failure_policy=self.failure_policy,
            max_failed=self.max_failed,
            abort_on_error=abort_on_error,
            estimator=self._estimator(),
            progress_callback=progress_callback,
            cancel_check=cancel_check,
            on_row=on_row,
        )

    def find_sample_size(
        self,
        target_power: float = 0.8,
        from_size: int = 20,
        to_size: int = 200,
        by: int = 10,
        progress_callback: Optional[Callable[[int, int], None]] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
        **overrides: Any,
    ) -> Dict[str, Any]:
        """Find the smallest ``n`` in a range that reaches *target_power*.

        Sample sizes not divisible by the procedure's group count are
        dropped from the range.

        Args:
            target_power: Target power on the 0-1 scale (default 0.8).
            from_size: Smallest sample size tested.
            to_size: Largest sample size tested (inclusive).
            by: Step between sample sizes.
            progress_callback: ``(current, total)`` callable counting trials.
            cancel_check: Optional callable returning ``True`` to stop.
            **overrides: Design fields replacing baseline values.

        Returns:
            Dict with ``"model"`` (settings), ``"results"``
            (``sample_sizes_tested``, ``powers``, ``standard_errors``,
            ``first_achieved``) and ``"table"`` (the ``ResultsTable``).
        """
        _validate_target_power(target_power).raise_if_invalid()
        _validate_sample_size_range(from_size, to_size, by).raise_if_invalid()

        n_groups, _ = procedure_requirements(self.procedure)
        sample_sizes = [n for n in range(from_size, to_size + 1, by) if not n_groups or n % n_groups == 0]
        if not sample_sizes:
            raise ConfigurationError(f"No sample size in [{from_size}, {to_size}] step {by} is divisible by {n_groups}")

        saved = self._baseline
        try:
            if overrides:
                self.set_baseline(overrides)
            table = self.find_power_grid(
                n=sample_sizes,
                progress_callback=progress_callback,
                cancel_check=cancel_check,
            )
            alpha = self.alpha
        finally:
            self._baseline = saved

        first_achieved = table.first_achieved(target_power, along="n").get((), None)
        return {
            "model": {
                "procedure": repr(self.procedure),
                "target_power": target_power,
                "alpha": alpha,
                "n_simulations": self.n_simulations,
                "seed": table.seed,
                "parallel": self.parallel,
                "sample_size_range": {"from_size": from_size, "to_size": to_size, "by": by},
            },
            "results": {
                "sample_sizes_tested": [row.values["n"] for row in table],
                "powers": table.powers(),
                "standard_errors": [None if row.failed else row.estimate.standard_error for row in table],
                "first_achieved": first_achieved,
            },
            "table": table,
        }

    def __repr__(self):
        return (
            f"PowerSim(procedure={self.procedure!r}, baseline={self.baseline!r}, "
            f"n_simulations={self.n_simulations}, seed={self.seed})"
        )
