"""
Tests for input validation utilities.

Validates every function in core/validation.py.
"""

import numpy as np
import pytest

from pyregkit.core.exceptions import DimensionError, ValidationError
from pyregkit.core.validation import (
    check_1d,
    check_2d,
    check_array,
    check_binary,
    check_conf_level,
    check_consistent_length,
    check_finite,
    check_iteration_control,
    check_min_samples,
    check_nonnegative,
)


class TestCheckArray:
    """check_array converts to float ndarray and rejects non-numeric data."""

    def test_list_to_float_array(self):
        result = check_array([1, 2, 3], "X")
        assert np.issubdtype(result.dtype, np.floating)
        np.testing.assert_array_equal(result, [1.0, 2.0, 3.0])

    def test_float32_promoted_to_float64(self):
        result = check_array(np.ones(3, dtype=np.float32), "X")
        assert result.dtype == np.float64

    def test_float64_input_is_copied(self):
        X = np.arange(4.0)
        result = check_array(X, "X")
        assert not np.shares_memory(result, X)
        X[0] = 99.0
        assert result[0] == 0.0

    def test_bool_becomes_indicator(self):
        result = check_array([True, False], "event")
        np.testing.assert_array_equal(result, [1.0, 0.0])

    def test_strings_rejected(self):
        with pytest.raises(ValidationError, match="non-numeric"):
            check_array(["a", "b"], "X")

    def test_mixed_object_rejected(self):
        with pytest.raises(ValidationError, match="object dtype"):
            check_array(np.array([1, "a", None], dtype=object), "X")


class TestShapeChecks:

    def test_check_finite(self):
        with pytest.raises(ValidationError, match="1 NaN"):
            check_finite(np.array([1.0, np.nan]), "y")

    def test_check_1d(self):
        with pytest.raises(DimensionError):
            check_1d(np.zeros((2, 2)), "y")

    def test_check_2d(self):
        with pytest.raises(DimensionError):
            check_2d(np.zeros(3), "X")

    def test_consistent_length(self):
        with pytest.raises(DimensionError, match="X=3, y=2"):
            check_consistent_length(np.zeros((3, 2)), np.zeros(2), names=("X", "y"))

    def test_min_samples(self):
        with pytest.raises(ValidationError, match="at least 1"):
            check_min_samples(np.zeros(0), 1, "time")


class TestValueChecks:

    def test_binary_ok(self):
        check_binary(np.array([0.0, 1.0, 1.0]), "y")

    def test_binary_rejects(self):
        with pytest.raises(ValidationError, match="only 0 and 1"):
            check_binary(np.array([0.0, 2.0]), "y")

    def test_nonnegative(self):
        with pytest.raises(ValidationError, match="1 negative"):
            check_nonnegative(np.array([1.0, -1.0]), "y")

    @pytest.mark.parametrize("level", [0.0, 1.0, -0.5, 1.5])
    def test_conf_level(self, level):
        with pytest.raises(ValidationError):
            check_conf_level(level)

    def test_iteration_control(self):
        check_iteration_control(1e-8, 25)
        with pytest.raises(ValidationError):
            check_iteration_control(0.0, 25)
        with pytest.raises(ValidationError):
            check_iteration_control(1e-8, 0)
        with pytest.raises(ValidationError):
            check_iteration_control(1e-8, 2.5)
