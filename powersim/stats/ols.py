"""
OLS fitting for PowerSim reference trial procedures.

Fits ``y = b0 + X @ b`` by QR decomposition and reports per-coefficient
standard errors, t statistics and two-sided p-values. Coefficients are
addressed by name, never by position, so a change in the design matrix
layout cannot silently test the wrong term.
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence

import numpy as np
from scipy.stats import t as t_dist

FLOAT_NEAR_ZERO = 1e-15
INTERCEPT = "(Intercept)"


@dataclass(frozen=True)
class OLSResult:
    """Fitted OLS model with named coefficient lookups.

    Attributes:
        names: Coefficient names, intercept first.
        coefficients: Estimated coefficients, aligned with *names*.
        standard_errors: Coefficient standard errors.
        t_values: ``coefficient / standard_error``.
        p_values: Two-sided p-values from the t distribution.
        dof: Residual degrees of freedom.
        sigma: Residual standard error.
    """

    names: List[str]
    coefficients: np.ndarray
    standard_errors: np.ndarray
    t_values: np.ndarray
    p_values: np.ndarray
    dof: int
    sigma: float

    def _index(self, name: str) -> int:
        try:
            return self.names.index(name)
        except ValueError:
            raise KeyError(f"No coefficient named '{name}'. Available: {', '.join(self.names)}") from None

    def coefficient(self, name: str) -> float:
        return float(self.coefficients[self._index(name)])

    def standard_error(self, name: str) -> float:
        return float(self.standard_errors[self._index(name)])

    def t_value(self, name: str) -> float:
        return float(self.t_values[self._index(name)])

    def pvalue(self, name: str) -> float:
        """Two-sided p-value for coefficient *name*.

        Raises:
            KeyError: If the model has no coefficient called *name*.
        """
        return float(self.p_values[self._index(name)])

    def summary(self) -> Dict[str, Dict[str, float]]:
        """Coefficient table keyed by name."""
        return {
            name: {
                "estimate": float(self.coefficients[i]),
                "std_error": float(self.standard_errors[i]),
                "t_value": float(self.t_values[i]),
                "p_value": float(self.p_values[i]),
            }
            for i, name in enumerate(self.names)
        }


def fit_ols(X: np.ndarray, y: np.ndarray, names: Sequence[str]) -> OLSResult:
    """Fit an OLS model with an intercept.

    Args:
        X: Design matrix of shape ``(n, p)`` without the intercept column.
        y: Response vector of shape ``(n,)``.
        names: Names for the *p* columns of *X*.

    Returns:
        ``OLSResult`` with the intercept named ``"(Intercept)"``.

    Raises:
        ValueError: If shapes disagree, residual degrees of freedom are not
            positive, or residual variance is zero (perfect fit).
        numpy.linalg.LinAlgError: If the design matrix is rank deficient.
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float)
    if X.ndim == 1:
        X = X[:, None]
    n, p = X.shape
    if len(names) != p:
        raise ValueError(f"Got {len(names)} names for {p} design columns")
    if y.shape != (n,):
        raise ValueError(f"y must have shape ({n},), got {y.shape}")

    dof = n - (p + 1)
    if dof <= 0:
        raise ValueError(f"Not enough observations ({n}) for {p + 1} coefficients")

    X_int = np.column_stack((np.ones(n), X))
    Q, R = np.linalg.qr(X_int)
    diag = np.abs(np.diag(R))
    if np.any(diag <= FLOAT_NEAR_ZERO * max(1.0, float(diag.max()))):
        raise np.linalg.LinAlgError("Design matrix is rank deficient")

    beta = np.linalg.solve(R, Q.T @ y)
    residuals = y - X_int @ beta
    mse = float(residuals @ residuals) / dof
    if mse <= FLOAT_NEAR_ZERO:
        raise ValueError("Residual variance is zero; the fit is degenerate")

    # (X'X)^-1 = R^-1 R^-T
    R_inv = np.linalg.solve(R, np.eye(p + 1))
    std_err = np.sqrt(mse * np.sum(R_inv**2, axis=1))
    t_values = beta / std_err
    p_values = 2.0 * t_dist.sf(np.abs(t_values), dof)

    return OLSResult(
        names=[INTERCEPT, *names],
        coefficients=beta,
        standard_errors=std_err,
        t_values=t_values,
        p_values=p_values,
        dof=dof,
        sigma=mse**0.5,
    )
