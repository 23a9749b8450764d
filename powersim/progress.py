"""
Progress reporting for PowerSim runs.

A run is ``n_grid_points`` grid points of ``n_simulations`` trials each.
``ProgressReporter`` counts both: trials as they finish (one at a time
from a sequential runner, in chunks from trial-level workers) and grid
points as their rows are produced. Display is delegated to a plain
``(trials_done, trials_total)`` callback such as ``PrintReporter`` or
``TqdmReporter``.
"""

import sys
from typing import Callable, List, Optional


class SimulationCancelled(Exception):
    """Raised inside a simulation run when cooperative cancellation fires."""

    pass


class ProgressReporter:
    """Trial and grid-point bookkeeping for one run.

    Trial counts never run ahead of the grid point being simulated: a
    point contributes at most ``n_simulations`` trials, however often its
    trials are reported (a parallel runner that falls back to sequential
    reports some of them twice). Completing a point tops the count up to
    the point's full budget, so failed or parallel-evaluated points still
    account for their trials.

    Args:
        callback: Called as ``callback(trials_done, trials_total)``.
        n_simulations: Trials per grid point.
        n_grid_points: Grid points in the run (1 for a single estimate).
        update_every: Minimum trial step between callbacks. Defaults to
            about 0.5 % of the run.
    """

    def __init__(
        self,
        callback: Callable[[int, int], None],
        n_simulations: int,
        n_grid_points: int = 1,
        update_every: Optional[int] = None,
    ):
        self._callback = callback
        self.n_simulations = n_simulations
        self.n_grid_points = n_grid_points
        self.total = n_simulations * n_grid_points
        self.update_every = update_every if update_every is not None else max(1, self.total // 200)
        self.completed_points: List[int] = []
        self._trials = 0
        self._reported = 0

    @property
    def trials_done(self) -> int:
        return self._trials

    @property
    def points_done(self) -> int:
        return len(self.completed_points)

    @property
    def done(self) -> bool:
        return self.points_done >= self.n_grid_points

    def start(self):
        self.completed_points = []
        self._trials = self._reported = 0
        self._callback(0, self.total)

    def advance(self, n_trials: int = 1):
        """Count *n_trials* finished trials of the current grid point."""
        ceiling = (self.points_done + 1) * self.n_simulations
        self._trials = min(self._trials + n_trials, ceiling, self.total)
        self._notify()

    def point_done(self, point_index: int):
        """Mark grid point *point_index* as finished (row produced)."""
        self.completed_points.append(point_index)
        self._trials = max(self._trials, min(self.points_done * self.n_simulations, self.total))
        self._notify(force=self.done)

    def _notify(self, force: bool = False):
        if self._trials == self._reported:
            return
        step = self._trials // self.update_every > self._reported // self.update_every
        if force or step or self._trials >= self.total:
            self._reported = self._trials
            self._callback(self._trials, self.total)


class PrintReporter:
    """Text progress bar on stderr, e.g. ``Simulating [######------]  52.1% 834/1600 trials``.

    Args:
        label: Text shown before the bar.
        width: Bar width in characters.
    """

    def __init__(self, label: str = "Simulating", width: int = 30):
        self.label = label
        self.width = width

    def __call__(self, trials_done: int, trials_total: int):
        if trials_total <= 0:
            return
        fraction = trials_done / trials_total
        filled = int(round(self.width * fraction))
        bar = "#" * filled + "-" * (self.width - filled)
        stream = sys.stderr
        stream.write(f"\r{self.label} [{bar}] {100 * fraction:5.1f}% {trials_done}/{trials_total} trials")
        if trials_done >= trials_total:
            stream.write("\n")
        stream.flush()


class TqdmReporter:
    """tqdm progress bar (needs the ``progress`` extra).

    Usage::

        from powersim.progress import TqdmReporter
        sim.find_power_grid(n=[50, 100, 150], progress_callback=TqdmReporter(desc="power"))
    """

    def __init__(self, **tqdm_kwargs):
        self._tqdm_kwargs = tqdm_kwargs
        self._bar = None

    def __call__(self, trials_done: int, trials_total: int):
        from tqdm import tqdm

        if self._bar is None:
            self._bar = tqdm(total=trials_total, unit="trial", unit_scale=True, **self._tqdm_kwargs)
        self._bar.update(trials_done - self._bar.n)
        if trials_done >= trials_total:
            self._bar.close()
            self._bar = None
