"""
Design sweeps for PowerSim.

``DesignSweep`` crosses a baseline ``DesignParameters`` with one or more
swept dimensions, evaluates every grid point independently (simulate,
then estimate) and assembles the rows into a ``ResultsTable`` in grid
order. Grid points share nothing but the root seed and the trial
procedure, so they can run on any number of workers with identical results.
"""

import itertools
import warnings
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Union

from ..exceptions import ConfigurationError, TrialProcedureError
from ..procedures import procedure_requirements
from ..progress import ProgressReporter, SimulationCancelled
from ..utils.validators import _validate_dimensions, _validate_parallel_settings, _validate_seed, _validate_simulations
from .parameters import DesignParameters
from .results import PowerEstimator, ResultRow, ResultsTable
from .rng import resolve_root_seed
from .simulation import SimulationRunner, TrialBatch


def _simulate_point(
    runner: SimulationRunner,
    params: DesignParameters,
    point_index: int,
    abort_on_error: bool,
    progress=None,
    cancel_check=None,
) -> Union[TrialBatch, str]:
    """Run one grid point; return its batch, or the error message if it failed.

    Module-level so joblib can ship it to worker processes.
    """
    try:
        return runner.run(params, point_index=point_index, progress=progress, cancel_check=cancel_check)
    except TrialProcedureError as e:
        if abort_on_error:
            raise
        return str(e)


class DesignSweep:
    """Cartesian sweep over design parameters.

    The grid is enumerated with the first dimension varying slowest and the
    last fastest. Every grid point is validated against the trial
    procedure's declared requirements at construction time, so a bad grid
    fails with ``ConfigurationError`` before any trial runs.

    Args:
        procedure: Trial procedure ``(params, rng) -> bool``.
        baseline: Fixed design parameters shared by all grid points.
        dimensions: Ordered mapping of field name to the values to sweep.

    Example:
        >>> sweep = DesignSweep(
        ...     TwoGroupMeanComparison(),
        ...     DesignParameters(n=100, mu=50, sd=10, delta=5, alpha=0.05),
        ...     {"n": range(10, 201, 10), "delta": [3, 5, 8]},
        ... )
        >>> table = sweep.run(n_simulations=500, seed=7)
    """

    def __init__(
        self,
        procedure: Callable,
        baseline: Union[DesignParameters, Mapping[str, Any]],
        dimensions: Mapping[str, Sequence[Any]],
    ):
        if not callable(procedure):
            raise ConfigurationError(f"procedure must be callable, got {type(procedure).__name__}")

        self.procedure = procedure
        self.baseline = baseline if isinstance(baseline, DesignParameters) else DesignParameters(baseline)
        self.dimensions: Dict[str, List[Any]] = {name: list(values) for name, values in dimensions.items()}

        _validate_dimensions(self.dimensions).raise_if_invalid()

        n_groups, required_fields = procedure_requirements(procedure)
        self._grid: List[DesignParameters] = []
        for combo in itertools.product(*self.dimensions.values()):
            params = self.baseline.replace(**dict(zip(self.dimensions, combo)))
            params.validate_for(n_groups=n_groups, required_fields=required_fields)
            self._grid.append(params)

    def __len__(self) -> int:
        return len(self._grid)

    @property
    def grid(self) -> List[DesignParameters]:
        """Grid points in canonical enumeration order."""
        return list(self._grid)

    @property
    def dimension_names(self) -> List[str]:
        return list(self.dimensions)

    def iter_run(
        self,
        n_simulations: int,
        seed: Optional[int] = None,
        n_jobs: Union[int, str] = 1,
        failure_policy: str = "fail_fast",
        max_failed: Optional[float] = None,
        abort_on_error: bool = False,
        estimator: Optional[PowerEstimator] = None,
        progress: Optional[ProgressReporter] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> Iterator[ResultRow]:
        """Evaluate the grid, yielding rows as they complete in grid order.

        Settings are validated immediately; simulation starts on first
        iteration. Stopping iteration early, or *cancel_check* returning
        ``True``, stops launching new grid points. Rows already yielded are
        final.

        Args:
            n_simulations: Trials per grid point.
            seed: Root seed (``None`` for fresh entropy).
            n_jobs: ``1`` for sequential, an int or ``"auto"`` to spread
                grid points over joblib workers.
            failure_policy: ``"fail_fast"`` or ``"skip"`` (see
                ``SimulationRunner``).
            max_failed: Failure-rate ceiling under ``"skip"``.
            abort_on_error: Propagate the first ``TrialProcedureError``
                instead of recording a failed row.
            estimator: ``PowerEstimator`` to use (default 95 % Wilson).
            progress: Optional ``ProgressReporter``; trials are counted as
                they finish and each grid point is marked done with its row.
            cancel_check: Optional callable returning ``True`` to cancel.

        Raises:
            ConfigurationError: On invalid settings (before any work).
            TrialProcedureError: Only when *abort_on_error* is set.
        """
        runner = SimulationRunner(
            self.procedure,
            n_simulations,
            seed=seed,
            failure_policy=failure_policy,
            max_failed=max_failed,
            n_jobs=1,
        )
        _validate_parallel_settings(True, n_jobs)[1].raise_if_invalid()
        estimator = estimator if estimator is not None else PowerEstimator()

        if n_jobs != 1 and len(self._grid) == 1:
            # a single point gets the workers at trial level instead
            runner.n_jobs = n_jobs
            n_jobs = 1

        return self._iter_rows(runner, estimator, n_jobs, abort_on_error, progress, cancel_check)

    def run(
        self,
        n_simulations: int,
        seed: Optional[int] = None,
        n_jobs: Union[int, str] = 1,
        failure_policy: str = "fail_fast",
        max_failed: Optional[float] = None,
        abort_on_error: bool = False,
        estimator: Optional[PowerEstimator] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
        on_row: Optional[Callable[[ResultRow], None]] = None,
    ) -> ResultsTable:
        """Evaluate the whole grid and return a ``ResultsTable``.

        Takes the same settings as :meth:`iter_run`, plus:

        Args:
            progress_callback: ``(current, total)`` callable counting trials.
            on_row: Called with each ``ResultRow`` as it completes.

        Returns:
            ``ResultsTable`` in grid order; ``partial=True`` if cancelled.
        """
        _validate_simulations(n_simulations)[1].raise_if_invalid()
        _validate_seed(seed).raise_if_invalid()
        root_seed = resolve_root_seed(seed)

        progress = None
        if progress_callback is not None:
            progress = ProgressReporter(progress_callback, n_simulations, n_grid_points=len(self._grid))

        rows_iter = self.iter_run(
            n_simulations,
            seed=root_seed,
            n_jobs=n_jobs,
            failure_policy=failure_policy,
            max_failed=max_failed,
            abort_on_error=abort_on_error,
            estimator=estimator,
            progress=progress,
            cancel_check=cancel_check,
        )

        if progress is not None:
            progress.start()

        rows = []
        for row in rows_iter:
            rows.append(row)
            if on_row is not None:
                on_row(row)

        partial = len(rows) < len(self._grid)

        return ResultsTable(
            rows=rows,
            dimensions=self.dimension_names,
            n_grid_points=len(self._grid),
            nsims=n_simulations,
            seed=root_seed,
            partial=partial,
        )

    def _make_row(self, index: int, outcome: Union[TrialBatch, str], estimator: PowerEstimator) -> ResultRow:
        params = self._grid[index]
        values = params.subset(self.dimensions)
        if isinstance(outcome, str):
            return ResultRow(index=index, params=params, values=values, error=outcome)
        return ResultRow(index=index, params=params, values=values, estimate=estimator.estimate(outcome))

    def _emit(self, index, outcome, estimator, progress) -> ResultRow:
        row = self._make_row(index, outcome, estimator)
        if progress is not None:
            progress.point_done(index)
        return row

    def _iter_rows(self, runner, estimator, n_jobs, abort_on_error, progress, cancel_check) -> Iterator[ResultRow]:
        start = 0
        if n_jobs != 1:
            outcomes = self._iter_parallel(runner, n_jobs, abort_on_error)
            while True:
                if cancel_check is not None and cancel_check():
                    return
                try:
                    outcome = next(outcomes)
                except StopIteration:
                    return
                except TrialProcedureError:
                    raise
                except Exception as e:
                    warnings.warn(f"Parallel execution failed ({e}). Falling back to sequential.", stacklevel=3)
                    break
                yield self._emit(start, outcome, estimator, progress)
                start += 1

        yield from self._iter_sequential(runner, estimator, start, abort_on_error, progress, cancel_check)

    def _iter_sequential(self, runner, estimator, start, abort_on_error, progress, cancel_check) -> Iterator[ResultRow]:
        for index in range(start, len(self._grid)):
            if cancel_check is not None and cancel_check():
                return
            try:
                outcome = _simulate_point(runner, self._grid[index], index, abort_on_error, progress, cancel_check)
            except SimulationCancelled:
                return
            yield self._emit(index, outcome, estimator, progress)

    def _iter_parallel(self, runner, n_jobs, abort_on_error) -> Iterator[Union[TrialBatch, str]]:
        """Grid-point outcomes from joblib workers, in grid order."""
        from joblib import Parallel, delayed

        yield from Parallel(
            n_jobs=-1 if n_jobs == "auto" else n_jobs,
            backend="loky",
            verbose=0,
            return_as="generator",
        )(delayed(_simulate_point)(runner, params, index, abort_on_error) for index, params in enumerate(self._grid))
