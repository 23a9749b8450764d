"""
Tests for validation utilities.
"""

import numpy as np
import pytest

from powersim import ConfigurationError


class TestValidationResult:
    """Test _ValidationResult.raise_if_invalid."""

    def test_valid_does_not_raise(self):
        from powersim.utils.validators import _ValidationResult

        _ValidationResult(True, [], []).raise_if_invalid()

    def test_invalid_lists_errors(self):
        from powersim.utils.validators import _ValidationResult

        with pytest.raises(ConfigurationError, match="first") as exc_info:
            _ValidationResult(False, ["first", "second"], []).raise_if_invalid()
        assert "second" in str(exc_info.value)

    def test_configuration_error_is_value_error(self):
        assert issubclass(ConfigurationError, ValueError)


class TestValidateAlpha:
    """Test _validate_alpha function."""

    @pytest.mark.parametrize("alpha", [0.001, 0.05, 0.5, 0.999])
    def test_valid(self, alpha):
        from powersim.utils.validators import _validate_alpha

        assert _validate_alpha(alpha).is_valid

    @pytest.mark.parametrize("alpha", [0, 1, -0.01, 2, "0.05", None, True])
    def test_invalid(self, alpha):
        from powersim.utils.validators import _validate_alpha

        assert not _validate_alpha(alpha).is_valid


class TestValidateSimulations:
    """Test _validate_simulations function."""

    def test_valid(self):
        from powersim.utils.validators import _validate_simulations

        n, result = _validate_simulations(1600)
        assert n == 1600
        assert result.is_valid
        assert result.warnings == []

    def test_low_count_warns(self):
        from powersim.utils.validators import _validate_simulations

        n, result = _validate_simulations(100)
        assert result.is_valid
        assert any("Low simulation count" in w for w in result.warnings)

    def test_numpy_integer_accepted(self):
        from powersim.utils.validators import _validate_simulations

        n, result = _validate_simulations(np.int64(2000))
        assert result.is_valid
        assert n == 2000

    @pytest.mark.parametrize("value", [0, -5, 10.0, "100"])
    def test_invalid(self, value):
        from powersim.utils.validators import _validate_simulations

        _, result = _validate_simulations(value)
        assert not result.is_valid


class TestValidateSeed:
    """Test _validate_seed function."""

    @pytest.mark.parametrize("seed", [None, 0, 2137, 2**32 - 1])
    def test_valid(self, seed):
        from powersim.utils.validators import _validate_seed

        assert _validate_seed(seed).is_valid

    @pytest.mark.parametrize("seed", [-1, 2**32, 1.5, "7"])
    def test_invalid(self, seed):
        from powersim.utils.validators import _validate_seed

        assert not _validate_seed(seed).is_valid


class TestValidateFailurePolicy:
    """Test _validate_failure_policy function."""

    def test_defaults(self):
        from powersim.utils.validators import _validate_failure_policy

        assert _validate_failure_policy("fail_fast").is_valid
        assert _validate_failure_policy("skip").is_valid

    def test_unknown_policy(self):
        from powersim.utils.validators import _validate_failure_policy

        assert not _validate_failure_policy("ignore").is_valid

    def test_max_failed_with_skip(self):
        from powersim.utils.validators import _validate_failure_policy

        assert _validate_failure_policy("skip", 0.1).is_valid

    def test_max_failed_with_fail_fast(self):
        from powersim.utils.validators import _validate_failure_policy

        result = _validate_failure_policy("fail_fast", 0.1)
        assert not result.is_valid
        assert "skip" in result.errors[0]

    @pytest.mark.parametrize("max_failed", [-0.1, 1.5])
    def test_max_failed_out_of_range(self, max_failed):
        from powersim.utils.validators import _validate_failure_policy

        assert not _validate_failure_policy("skip", max_failed).is_valid


class TestValidateParallelSettings:
    """Test _validate_parallel_settings function."""

    @pytest.mark.parametrize("n_cores,expected", [(None, "auto"), ("auto", "auto"), (4, 4)])
    def test_valid(self, n_cores, expected):
        from powersim.utils.validators import _validate_parallel_settings

        (enabled, n_jobs), result = _validate_parallel_settings(True, n_cores)
        assert result.is_valid
        assert enabled is True
        assert n_jobs == expected

    @pytest.mark.parametrize("n_cores", [0, -2, 1.5, "many", True])
    def test_invalid_cores(self, n_cores):
        from powersim.utils.validators import _validate_parallel_settings

        _, result = _validate_parallel_settings(True, n_cores)
        assert not result.is_valid

    def test_non_bool_enable(self):
        from powersim.utils.validators import _validate_parallel_settings

        _, result = _validate_parallel_settings("yes", None)
        assert not result.is_valid


class TestValidateDimensions:
    """Test _validate_dimensions function."""

    def test_valid(self):
        from powersim.utils.validators import _validate_dimensions

        assert _validate_dimensions({"n": [10, 20], "delta": [1.0]}).is_valid

    def test_no_dimensions(self):
        from powersim.utils.validators import _validate_dimensions

        assert not _validate_dimensions({}).is_valid

    def test_empty_dimension(self):
        from powersim.utils.validators import _validate_dimensions

        result = _validate_dimensions({"n": []})
        assert not result.is_valid
        assert "'n' is empty" in result.errors[0]

    def test_duplicate_values(self):
        from powersim.utils.validators import _validate_dimensions

        result = _validate_dimensions({"n": [10, 20, 10]})
        assert not result.is_valid
        assert "duplicate" in result.errors[0]

    def test_unhashable_values_reported(self):
        from powersim.utils.validators import _validate_dimensions

        result = _validate_dimensions({"p": [[0.1], [0.2]]})
        assert not result.is_valid
        assert "scalar values" in result.errors[0]


class TestValidateSampleSizeRange:
    """Test _validate_sample_size_range function."""

    def test_valid(self):
        from powersim.utils.validators import _validate_sample_size_range

        assert _validate_sample_size_range(20, 200, 10).is_valid

    @pytest.mark.parametrize(
        "from_size,to_size,by",
        [(0, 100, 10), (100, 50, 10), (100, 100, 10), (20, 200, 0), (20.0, 200, 10)],
    )
    def test_invalid(self, from_size, to_size, by):
        from powersim.utils.validators import _validate_sample_size_range

        assert not _validate_sample_size_range(from_size, to_size, by).is_valid


class TestSmallValidators:
    """Confidence, CI method, precision threshold and target power."""

    def test_confidence(self):
        from powersim.utils.validators import _validate_confidence

        assert _validate_confidence(0.95).is_valid
        assert not _validate_confidence(1.0).is_valid
        assert not _validate_confidence(95).is_valid

    def test_ci_method(self):
        from powersim.utils.validators import _validate_ci_method

        assert _validate_ci_method("wilson").is_valid
        assert _validate_ci_method("wald").is_valid
        assert not _validate_ci_method("clopper").is_valid

    def test_precision_threshold(self):
        from powersim.utils.validators import _validate_precision_threshold

        assert _validate_precision_threshold(None).is_valid
        assert _validate_precision_threshold(0.01).is_valid
        assert not _validate_precision_threshold(0).is_valid

    def test_target_power(self):
        from powersim.utils.validators import _validate_target_power

        assert _validate_target_power(0.8).is_valid
        assert _validate_target_power(1).is_valid
        assert not _validate_target_power(80).is_valid
