"""
Toy trial procedures for engine tests.

Module-level so joblib workers can unpickle them.
"""


class CoinFlip:
    """Rejects with probability ``params.p``."""

    def __call__(self, params, rng):
        return bool(rng.uniform() < params.p)

    def __repr__(self):
        return "CoinFlip()"


class FailingProcedure:
    """Raises whenever the trial's draw falls below ``params.fail``; otherwise rejects."""

    def __call__(self, params, rng):
        if rng.uniform() < params.fail:
            raise ValueError("singular fit")
        return True


class FailAt:
    """Raises on every trial when ``params.n`` equals ``bad_n``."""

    n_groups = 2

    def __init__(self, bad_n):
        self.bad_n = bad_n

    def __call__(self, params, rng):
        if params.n == self.bad_n:
            raise RuntimeError(f"cannot fit n={params.n}")
        return bool(rng.uniform() < 0.5)
