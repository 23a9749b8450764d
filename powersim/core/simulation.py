"""
Simulation execution for PowerSim.

``SimulationRunner`` replicates one trial procedure ``n_simulations`` times
for a single ``DesignParameters`` value and collects the outcomes into a
``TrialBatch``. Each trial draws from its own random stream derived from
``(root seed, grid-point index, trial index)``, so the batch is identical
whether trials run sequentially or across any number of workers.
"""

import warnings
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..exceptions import TrialProcedureError
from ..progress import SimulationCancelled
from ..utils.validators import (
    _validate_failure_policy,
    _validate_parallel_settings,
    _validate_seed,
    _validate_simulations,
)
from .parameters import DesignParameters
from .rng import resolve_root_seed, trial_random_source


@dataclass(frozen=True)
class TrialFailure:
    """A trial dropped under the ``"skip"`` failure policy.

    Attributes:
        trial_index: Index of the trial within its batch.
        message: ``"ExceptionType: message"`` of the procedure error.
    """

    trial_index: int
    message: str


@dataclass
class TrialBatch:
    """Outcomes of all successful trials for one set of design parameters.

    Attributes:
        params: Design parameters every trial ran under.
        outcomes: Boolean array, ``True`` where H0 was rejected, ordered by
            trial index.
        n_requested: Number of trials requested.
        point_index: Grid-point index used for seed derivation.
        failures: Trials dropped under the ``"skip"`` policy.
    """

    params: Optional[DesignParameters]
    outcomes: np.ndarray
    n_requested: int
    point_index: int = 0
    failures: List[TrialFailure] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.outcomes)

    @property
    def n_failed(self) -> int:
        return len(self.failures)

    @property
    def n_rejected(self) -> int:
        return int(np.count_nonzero(self.outcomes))


def _run_single_trial(
    procedure: Callable,
    params: DesignParameters,
    root_seed: int,
    point_index: int,
    trial_index: int,
    failure_policy: str,
) -> Tuple[Optional[bool], Optional[TrialFailure]]:
    """Run one trial; return ``(outcome, None)`` or ``(None, failure)``.

    Raises:
        TrialProcedureError: On procedure failure under ``"fail_fast"``, and
            always when the procedure returns something other than a bool.
    """
    rng = trial_random_source(root_seed, point_index, trial_index)
    try:
        outcome = procedure(params, rng)
    except Exception as e:
        if failure_policy == "fail_fast":
            raise TrialProcedureError(
                f"Trial {trial_index} failed for {params}: {type(e).__name__}: {e}",
                params=params,
                trial_index=trial_index,
                point_index=point_index,
            ) from e
        return None, TrialFailure(trial_index, f"{type(e).__name__}: {e}")

    if not isinstance(outcome, (bool, np.bool_)):
        raise TrialProcedureError(
            f"Trial procedure must return a bool, got {type(outcome).__name__}",
            params=params,
            trial_index=trial_index,
            point_index=point_index,
        )
    return bool(outcome), None


def _run_trial_chunk(
    procedure: Callable,
    params: DesignParameters,
    root_seed: int,
    point_index: int,
    trial_indices: Sequence[int],
    failure_policy: str,
) -> List[Tuple[int, Optional[bool], Optional[TrialFailure]]]:
    """Run a contiguous chunk of trials (unit of work for joblib)."""
    return [
        (i, *_run_single_trial(procedure, params, root_seed, point_index, i, failure_policy))
        for i in trial_indices
    ]


class SimulationRunner:
    """Executes Monte Carlo trials for power estimation.

    Args:
        procedure: Trial procedure ``(params, rng) -> bool``.
        n_simulations: Default number of trials per batch.
        seed: Root seed. ``None`` draws fresh entropy once; the resolved
            value is kept in :attr:`seed`.
        failure_policy: ``"fail_fast"`` (default) aborts the batch on the
            first procedure error; ``"skip"`` drops failed trials and
            records them on the batch.
        max_failed: Under ``"skip"``, the largest tolerated fraction of
            failed trials (0-1). ``None`` tolerates any fraction short of
            all trials failing.
        n_jobs: Workers for within-batch parallelism (``1`` sequential,
            ``"auto"`` for all cores).
    """

    def __init__(
        self,
        procedure: Callable,
        n_simulations: int,
        seed: Optional[int] = None,
        failure_policy: str = "fail_fast",
        max_failed: Optional[float] = None,
        n_jobs: Union[int, str] = 1,
    ):
        _validate_simulations(n_simulations)[1].raise_if_invalid()
        _validate_seed(seed).raise_if_invalid()
        _validate_failure_policy(failure_policy, max_failed).raise_if_invalid()
        _validate_parallel_settings(True, n_jobs)[1].raise_if_invalid()

        self.procedure = procedure
        self.n_simulations = n_simulations
        self.seed = resolve_root_seed(seed)
        self.failure_policy = failure_policy
        self.max_failed = max_failed
        self.n_jobs = n_jobs

    def run(
        self,
        params: DesignParameters,
        n_simulations: Optional[int] = None,
        point_index: int = 0,
        progress=None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> TrialBatch:
        """Run the trial procedure repeatedly at *params*.

        Args:
            params: Design parameters for every trial.
            n_simulations: Overrides the runner's default trial count.
            point_index: Grid-point index mixed into each trial's seed.
            progress: Optional ``ProgressReporter`` advanced once per trial.
            cancel_check: Optional callable returning ``True`` to abort.

        Returns:
            ``TrialBatch`` with one outcome per successful trial.

        Raises:
            TrialProcedureError: Under ``"fail_fast"`` on the first failure;
                under ``"skip"`` when every trial fails or the failure rate
                exceeds ``max_failed``.
            SimulationCancelled: If *cancel_check* returns ``True``.
        """
        nsims = self.n_simulations if n_simulations is None else n_simulations
        if n_simulations is not None:
            _validate_simulations(n_simulations)[1].raise_if_invalid()

        trials = None
        if self.n_jobs != 1 and nsims > 1:
            try:
                trials = self._run_parallel(params, nsims, point_index, progress, cancel_check)
            except (TrialProcedureError, SimulationCancelled):
                raise
            except Exception as e:
                warnings.warn(f"Parallel execution failed ({e}). Falling back to sequential.", stacklevel=2)
        if trials is None:
            trials = self._run_sequential(params, nsims, point_index, progress, cancel_check)

        outcomes = [outcome for _, outcome, failure in trials if failure is None]
        failures = [failure for _, _, failure in trials if failure is not None]

        if not outcomes:
            raise TrialProcedureError(
                f"All {nsims} trials failed for {params}; first error: {failures[0].message}",
                params=params,
                point_index=point_index,
            )

        if self.max_failed is not None and len(failures) / nsims > self.max_failed:
            raise TrialProcedureError(
                f"Too many failed trials: {len(failures)}/{nsims} "
                f"({len(failures) / nsims:.1%}), threshold: {self.max_failed:.1%}",
                params=params,
                point_index=point_index,
            )

        return TrialBatch(
            params=params,
            outcomes=np.array(outcomes, dtype=bool),
            n_requested=nsims,
            point_index=point_index,
            failures=failures,
        )

    def _run_sequential(self, params, nsims, point_index, progress, cancel_check) -> List[Tuple[int, Any, Any]]:
        trials = []
        for trial_index in range(nsims):
            if cancel_check is not None and cancel_check():
                raise SimulationCancelled("Simulation cancelled by user")

            outcome, failure = _run_single_trial(
                self.procedure, params, self.seed, point_index, trial_index, self.failure_policy
            )
            trials.append((trial_index, outcome, failure))

            if progress is not None:
                progress.advance(1)
        return trials

    def _run_parallel(self, params, nsims, point_index, progress, cancel_check) -> List[Tuple[int, Any, Any]]:
        from joblib import Parallel, delayed, effective_n_jobs

        n_workers = effective_n_jobs(-1 if self.n_jobs == "auto" else self.n_jobs)
        # a few chunks per worker keeps cancellation and progress responsive
        chunks = [c for c in np.array_split(np.arange(nsims), n_workers * 4) if len(c)]

        chunk_results = Parallel(
            n_jobs=n_workers,
            backend="loky",
            verbose=0,
            return_as="generator",
        )(
            delayed(_run_trial_chunk)(
                self.procedure, params, self.seed, point_index, chunk.tolist(), self.failure_policy
            )
            for chunk in chunks
        )

        trials = []
        for chunk_trials in chunk_results:
            if cancel_check is not None and cancel_check():
                raise SimulationCancelled("Simulation cancelled by user")
            trials.extend(chunk_trials)
            if progress is not None:
                progress.advance(len(chunk_trials))
        return trials
