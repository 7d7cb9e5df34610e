"""
Tests for the shared numeric kernels: pivoted QR, Newton-Raphson, timing.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from pyregkit.core.compute import Timer, timed
from pyregkit.core.compute.linalg import (
    check_full_rank,
    hat_diagonal,
    qr_decompose,
    qr_solve,
    unscaled_covariance,
)
from pyregkit.core.compute.optimization import invert_information, newton_raphson
from pyregkit.core.compute.tolerances import (
    DIRECT_FP64,
    ILL_CONDITIONED_FP64,
    ITERATIVE_FP64,
    select_tolerance,
)
from pyregkit.core.exceptions import (
    ConvergenceError,
    NotPositiveDefiniteError,
    SingularMatrixError,
)


class TestQR:

    def test_solve_matches_lstsq(self, simple_regression_data):
        X, y, _ = simple_regression_data
        beta, qr = qr_solve(X, y)
        expected, *_ = np.linalg.lstsq(X, y, rcond=None)
        assert_allclose(beta, expected, rtol=1e-10)
        assert qr.rank == 3

    def test_unscaled_covariance(self, simple_regression_data):
        X, y, _ = simple_regression_data
        _, qr = qr_solve(X, y)
        assert_allclose(unscaled_covariance(qr), np.linalg.inv(X.T @ X), rtol=1e-10)

    def test_hat_diagonal(self, simple_regression_data):
        X, y, _ = simple_regression_data
        _, qr = qr_solve(X, y)
        H = X @ np.linalg.inv(X.T @ X) @ X.T
        h = hat_diagonal(qr)
        assert_allclose(h, np.diag(H), atol=1e-12)
        assert h.sum() == pytest.approx(3.0)

    def test_collinear_reports_aliased(self, collinear_data):
        X, y = collinear_data
        with pytest.raises(SingularMatrixError) as exc_info:
            qr_solve(X, y, column_names=("a", "b", "c"))
        err = exc_info.value
        assert err.rank == 2
        assert err.expected_rank == 3
        assert len(err.aliased) == 1
        assert err.aliased[0] in ("a", "b", "c")

    def test_identical_columns(self, rng):
        x = rng.standard_normal(20)
        with pytest.raises(SingularMatrixError):
            check_full_rank(qr_decompose(np.column_stack([x, x])), 2)


class TestInvertInformation:

    def test_inverse(self):
        info = np.array([[4.0, 1.0], [1.0, 3.0]])
        assert_allclose(invert_information(info) @ info, np.eye(2), atol=1e-12)

    def test_negative_eigenvalue(self):
        with pytest.raises(NotPositiveDefiniteError):
            invert_information(np.array([[1.0, 0.0], [0.0, -1.0]]))

    def test_singular(self):
        with pytest.raises(SingularMatrixError):
            invert_information(np.array([[1.0, 1.0], [1.0, 1.0]]))


def _quadratic(center):
    """Concave log-likelihood -½|θ - c|² with exact derivatives."""
    def objective(theta):
        d = theta - center
        return -0.5 * float(d @ d), -d, np.eye(len(center))
    return objective


class TestNewtonRaphson:

    def test_quadratic_converges_in_two_steps(self):
        center = np.array([1.0, -2.0])
        fit = newton_raphson(_quadratic(center), np.zeros(2), tol=1e-10, max_iter=10)
        assert_allclose(fit.params, center)
        # One exact step, one zero step to confirm
        assert fit.n_iter == 2
        assert fit.final_change == 0.0

    def test_step_cap(self):
        center = np.array([20.0])
        fit = newton_raphson(_quadratic(center), np.zeros(1), tol=1e-10,
                             max_iter=20, max_step=5.0)
        assert_allclose(fit.params, center)
        assert fit.n_iter >= 4

    def test_max_iterations(self):
        center = np.array([20.0])
        with pytest.raises(ConvergenceError) as exc_info:
            newton_raphson(_quadratic(center), np.zeros(1), tol=1e-10,
                           max_iter=2, max_step=1.0)
        assert exc_info.value.reason == "max_iterations"
        assert exc_info.value.iterations == 2


class TestTimer:

    def test_sections_accumulate(self):
        timer = Timer()
        timer.start()
        with timer.section("a"):
            pass
        with timer.section("a"):
            pass
        timer.stop()
        result = timer.result()
        assert set(result) == {"total_seconds", "a"}
        assert result["a"] >= 0.0

    def test_result_before_stop(self):
        timer = Timer()
        timer.start()
        with pytest.raises(RuntimeError):
            timer.result()

    def test_timed(self):
        with timed() as timer:
            pass
        assert timer.result()["total_seconds"] >= 0.0


class TestTolerances:

    def test_closed_form_backend(self):
        assert select_tolerance('cpu_qr') is DIRECT_FP64

    @pytest.mark.parametrize("backend", ['cpu_irls', 'cpu_newton', 'cpu_cox'])
    def test_iterative_backends(self, backend):
        assert select_tolerance(backend) is ITERATIVE_FP64

    def test_ill_conditioned_overrides(self):
        assert select_tolerance('cpu_qr', is_ill_conditioned=True) is ILL_CONDITIONED_FP64
