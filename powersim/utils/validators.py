"""
Validation utilities for PowerSim.

This module provides validation functions for design parameters, sweep
dimensions and simulation settings. Every check collects errors and
warnings into a ``_ValidationResult``; callers decide when to raise.
"""

from dataclasses import dataclass
from numbers import Integral, Real
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from ..exceptions import ConfigurationError

__all__ = []

FAILURE_POLICIES = ("fail_fast", "skip")
CI_METHODS = ("wilson", "wald")
MAX_SEED = 2**32 - 1
# DesignParameters attributes a field of the same name could not be read through
RESERVED_FIELD_NAMES = ("get", "items", "keys", "values", "replace", "subset", "as_dict", "validate_for")


@dataclass
class _ValidationResult:
    """Outcome of a validation check, carrying errors and warnings.

    Attributes:
        is_valid: ``True`` if no errors were found.
        errors: List of error messages (empty when valid).
        warnings: List of non-fatal warning messages.
    """

    is_valid: bool
    errors: List[str]
    warnings: List[str]

    def raise_if_invalid(self):
        """Raise ``ConfigurationError`` if the validation failed."""
        if not self.is_valid:
            error_msg = "Validation failed:\n" + "\n".join(f"• {err}" for err in self.errors)
            raise ConfigurationError(error_msg)


class _Validator:
    """Static helpers for type and range checks used by all validators."""

    @staticmethod
    def _check_type(value: Any, expected_types: tuple, name: str) -> Optional[str]:
        """Check if value has expected type (bools are never numbers here)."""
        if isinstance(value, bool) or not isinstance(value, expected_types):
            actual_type = type(value).__name__
            expected = expected_types[0].__name__ if len(expected_types) == 1 else f"one of {[t.__name__ for t in expected_types]}"
            return f"{name} must be {expected}, got {actual_type}"
        return None

    @staticmethod
    def _check_range(
        value: Union[int, float],
        min_val: Optional[float],
        max_val: Optional[float],
        name: str,
        exclusive: bool = False,
    ) -> Optional[str]:
        """Check if value is within range (optionally open at both ends)."""
        if exclusive:
            if min_val is not None and value <= min_val:
                return f"{name} must be > {min_val}, got {value}"
            if max_val is not None and value >= max_val:
                return f"{name} must be < {max_val}, got {value}"
            return None
        if min_val is not None and value < min_val:
            return f"{name} must be >= {min_val}, got {value}"
        if max_val is not None and value > max_val:
            return f"{name} must be <= {max_val}, got {value}"
        return None


_validator = _Validator()


def _validate_numeric_parameter(
    value: Any,
    name: str,
    expected_types: tuple = (Real,),
    min_val: Optional[float] = None,
    max_val: Optional[float] = None,
    exclusive: bool = False,
) -> _ValidationResult:
    """Generic validation for numeric parameters."""
    errors: List[str] = []
    warnings: List[str] = []

    type_error = _validator._check_type(value, expected_types, name)
    if type_error:
        errors.append(type_error)
        return _ValidationResult(False, errors, warnings)

    range_error = _validator._check_range(value, min_val, max_val, name, exclusive)
    if range_error:
        errors.append(range_error)

    return _ValidationResult(len(errors) == 0, errors, warnings)


def _validate_alpha(alpha: Any) -> _ValidationResult:
    """Validate significance threshold, open interval (0, 1)."""
    return _validate_numeric_parameter(alpha, "alpha", min_val=0, max_val=1, exclusive=True)


def _validate_confidence(confidence: Any) -> _ValidationResult:
    """Validate confidence level for power intervals, open interval (0, 1)."""
    return _validate_numeric_parameter(confidence, "confidence", min_val=0, max_val=1, exclusive=True)


def _validate_simulations(n_simulations: Any) -> Tuple[int, _ValidationResult]:
    """Validate number of simulations per grid point."""
    result = _validate_numeric_parameter(n_simulations, "Number of simulations", expected_types=(Integral,), min_val=1)

    if result.is_valid:
        if n_simulations < 1000:
            result.warnings.append(f"Low simulation count ({n_simulations}). Consider using at least 1000 for reliable results.")
        return int(n_simulations), result

    return 0, result


def _validate_seed(seed: Any) -> _ValidationResult:
    """Validate root seed (``None`` or integer in ``[0, 2**32 - 1]``)."""
    if seed is None:
        return _ValidationResult(True, [], [])
    return _validate_numeric_parameter(seed, "seed", expected_types=(Integral,), min_val=0, max_val=MAX_SEED)


def _validate_failure_policy(policy: Any, max_failed: Any = None) -> _ValidationResult:
    """Validate trial failure policy and optional failure-rate ceiling."""
    errors: List[str] = []
    if policy not in FAILURE_POLICIES:
        errors.append(f"failure_policy must be one of {list(FAILURE_POLICIES)}, got {policy!r}")
    if max_failed is not None:
        sub = _validate_numeric_parameter(max_failed, "max_failed", min_val=0, max_val=1)
        errors.extend(sub.errors)
        if policy == "fail_fast" and sub.is_valid:
            errors.append("max_failed only applies to the 'skip' failure policy")
    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_ci_method(method: Any) -> _ValidationResult:
    """Validate confidence interval method."""
    if method not in CI_METHODS:
        return _ValidationResult(False, [f"ci_method must be one of {list(CI_METHODS)}, got {method!r}"], [])
    return _ValidationResult(True, [], [])


def _validate_precision_threshold(threshold: Any) -> _ValidationResult:
    """Validate standard-error threshold for ``PrecisionWarning`` (``None`` disables)."""
    if threshold is None:
        return _ValidationResult(True, [], [])
    return _validate_numeric_parameter(threshold, "precision_threshold", min_val=0, max_val=1, exclusive=True)


def _validate_parallel_settings(enable: Any, n_cores: Any) -> Tuple[Tuple[bool, Union[int, str]], _ValidationResult]:
    """Validate parallel processing settings.

    Returns:
        Tuple of ``((enabled, n_jobs), result)`` where *n_jobs* is a
        positive int or ``"auto"`` (all available cores).
    """
    errors: List[str] = []
    warnings: List[str] = []

    if not isinstance(enable, bool):
        errors.append(f"enable must be True or False, got {enable!r}")

    if n_cores is None or n_cores == "auto":
        n_jobs: Union[int, str] = "auto"
    elif isinstance(n_cores, Integral) and not isinstance(n_cores, bool) and n_cores >= 1:
        n_jobs = n_cores
    else:
        errors.append(f"n_cores must be a positive integer or 'auto', got {n_cores!r}")
        n_jobs = 1

    return (bool(enable), n_jobs), _ValidationResult(len(errors) == 0, errors, warnings)


def _validate_design_fields(
    fields: Mapping[str, Any],
    n_groups: Optional[int] = None,
    required_fields: Sequence[str] = (),
) -> _ValidationResult:
    """Validate one set of design parameters.

    Checks that every value is a real number, that ``n`` is a positive
    integer (divisible by *n_groups* when given), that ``alpha`` lies in
    (0, 1) and that all *required_fields* are present.
    """
    errors: List[str] = []

    for name, value in fields.items():
        if name in RESERVED_FIELD_NAMES or name.startswith("_"):
            errors.append(f"'{name}' is a reserved name and cannot be used as a design parameter")
            continue
        type_error = _validator._check_type(value, (Real,), name)
        if type_error:
            errors.append(type_error)

    missing = [name for name in required_fields if name not in fields]
    if missing:
        errors.append(f"Missing design parameter(s): {', '.join(missing)}")

    if "n" in fields:
        n = fields["n"]
        if isinstance(n, bool) or not isinstance(n, Integral):
            errors.append(f"n must be an integer, got {type(n).__name__}")
        elif n <= 0:
            errors.append(f"n must be > 0, got {n}")
        elif n_groups is not None and n % n_groups != 0:
            errors.append(f"n={n} must be divisible by the number of groups ({n_groups})")

    if "alpha" in fields and _validator._check_type(fields["alpha"], (Real,), "alpha") is None:
        errors.extend(_validate_alpha(fields["alpha"]).errors)

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_dimensions(dimensions: Mapping[str, Sequence[Any]]) -> _ValidationResult:
    """Validate sweep dimensions: non-empty, no duplicate values."""
    errors: List[str] = []

    if not dimensions:
        errors.append("At least one sweep dimension is required")

    for name, values in dimensions.items():
        if len(values) == 0:
            errors.append(f"Sweep dimension '{name}' is empty")
            continue
        try:
            distinct = len(set(values))
        except TypeError:
            errors.append(f"Sweep dimension '{name}' must contain scalar values")
            continue
        if distinct != len(values):
            errors.append(f"Sweep dimension '{name}' contains duplicate values")

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_sample_size_range(from_size: Any, to_size: Any, by: Any) -> _ValidationResult:
    """Validate sample size range parameters."""
    errors: List[str] = []

    for name, value in [("from_size", from_size), ("to_size", to_size), ("by", by)]:
        type_error = _validator._check_type(value, (Integral,), name)
        if type_error:
            errors.append(type_error)

    if not errors:
        if from_size < 1:
            errors.append(f"from_size must be >= 1, got {from_size}")
        if from_size >= to_size:
            errors.append("from_size must be less than to_size")
        if by <= 0:
            errors.append("by must be positive")

    return _ValidationResult(len(errors) == 0, errors, [])


def _validate_target_power(power: Any) -> _ValidationResult:
    """Validate target power on the 0-1 scale."""
    return _validate_numeric_parameter(power, "target_power", min_val=0, max_val=1)
