"""
CPU backend for Generalized Linear Models via IRLS.

Implements Iteratively Reweighted Least Squares (Fisher scoring). Each
IRLS iteration solves a weighted least squares problem via pivoted QR on
the transformed system √W·X, √W·z.

Algorithm (R's glm.fit, with a coefficient-based stopping rule):
    Initialize: μ = family.initialize(y), η = link(μ)
    For iteration 1..max_iter:
        dμ/dη = link.mu_eta(η)
        V(μ) = family.variance(μ)
        z = η - offset + (y - μ) / dμ_dη     # working response
        w = (dμ/dη)² / V(μ)                  # working weights
        Solve WLS: min_β || √w·z - √w·X·β ||²  via QR
        η_new = X @ β + offset
        μ_new = linkinv(η_new)
        Stop when max|β - β_old| < tol
    If the deviance becomes non-finite, the step is halved toward β_old.
"""

from typing import Any

import numpy as np
from numpy.typing import NDArray

from pyregkit.core.compute.linalg.qr import qr_solve, unscaled_covariance
from pyregkit.core.compute.timing import Timer
from pyregkit.core.exceptions import ConvergenceError
from pyregkit.core.result import Result
from pyregkit.regression.design import RegressionDesign
from pyregkit.regression.families import Family
from pyregkit.regression.solution import GLMParams

_MAX_HALVINGS = 20


class CPUIRLSBackend:
    """CPU backend using IRLS with QR inner solve.

    Defaults match R's glm.control(): tol=1e-8, max_iter=25. Failure to
    converge raises instead of returning a partial fit.
    """

    @property
    def name(self) -> str:
        return 'cpu_irls'

    def solve(
        self,
        design: RegressionDesign,
        family: Family,
        tol: float = 1e-8,
        max_iter: int = 25,
    ) -> Result[GLMParams]:
        """Run IRLS to fit the GLM.

        Args:
            design: Design with X, y and optional offset
            family: GLM family specification
            tol: Convergence tolerance on max|Δβ|
            max_iter: Maximum IRLS iterations

        Returns:
            Result[GLMParams] with coefficients, deviance, residuals, etc.

        Raises:
            SingularMatrixError: If the weighted design is rank-deficient
            ConvergenceError: If max_iter is reached (e.g. separation)
        """
        timer = Timer()
        timer.start()

        X, y = design.X, design.y
        n = design.n
        offset = design.offset_or_zero()
        link = family.link

        # Prior weights (unit weights; no case weighting)
        wt = np.ones(n, dtype=np.float64)

        with timer.section('irls'):
            coefficients, eta, mu, qr, n_iter, change = self._irls(
                X, y, offset, wt, family, tol, max_iter,
                column_names=design.column_names,
            )

        dev = family.deviance(y, mu, wt)

        with timer.section('null_deviance'):
            null_deviance = self._null_deviance(design, wt, family, tol, max_iter)

        rank = qr.rank
        df_residual = n - rank
        if family.dispersion_is_fixed:
            dispersion = 1.0
        else:
            dispersion = dev / df_residual if df_residual > 0 else float('nan')

        with timer.section('residuals'):
            resid_response = y - mu
            resid_pearson = resid_response / np.sqrt(family.variance(mu))
            resid_deviance = family.deviance_residuals(y, mu, wt)
            resid_working = (y - mu) / link.mu_eta(eta)

        timer.stop()

        params = GLMParams(
            coefficients=coefficients,
            fitted_values=mu,
            linear_predictor=eta,
            residuals_working=resid_working,
            residuals_deviance=resid_deviance,
            residuals_pearson=resid_pearson,
            residuals_response=resid_response,
            deviance=dev,
            null_deviance=null_deviance,
            log_likelihood=family.log_likelihood(y, mu, wt),
            aic=family.aic(y, mu, wt, rank),
            dispersion=dispersion,
            rank=rank,
            df_residual=df_residual,
            df_null=n - 1 if design.has_intercept else n,
            n_iter=n_iter,
            unscaled_covariance=unscaled_covariance(qr),
            family_name=family.name,
            link_name=link.name,
        )

        return Result(
            params=params,
            info={
                'method': 'irls_qr',
                'rank': rank,
                'iterations': n_iter,
                'final_change': change,
                'converged': True,
                'n_dropped': design.n_dropped,
            },
            timing=timer.result(),
            backend_name=self.name,
            warnings=design.warnings,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _irls(
        X: NDArray,
        y: NDArray,
        offset: NDArray,
        wt: NDArray,
        family: Family,
        tol: float,
        max_iter: int,
        column_names: tuple[str, ...] | None = None,
    ):
        """Core IRLS loop; returns (β, η, μ, final QR, iterations, last change)."""
        link = family.link
        mu = family.initialize(y)
        eta = link.link(mu)
        beta_old: NDArray | None = None
        dev_old = np.inf
        change = float('inf')

        for iteration in range(1, max_iter + 1):
            mu_eta_val = link.mu_eta(eta)
            z = eta - offset + (y - mu) / mu_eta_val
            w = np.maximum(wt * mu_eta_val ** 2 / family.variance(mu), 1e-30)

            sqrt_w = np.sqrt(w)
            beta, qr = qr_solve(
                X * sqrt_w[:, np.newaxis], z * sqrt_w, column_names=column_names,
            )

            eta = X @ beta + offset
            mu = link.linkinv(eta)
            dev = family.deviance(y, mu, wt)

            # Step halving toward the previous iterate on a non-finite deviance
            halvings = 0
            while not np.isfinite(dev) and beta_old is not None:
                if halvings == _MAX_HALVINGS:
                    raise ConvergenceError(
                        f"IRLS deviance became non-finite at iteration {iteration}",
                        iterations=iteration,
                        final_change=change,
                        reason='diverging',
                        threshold=tol,
                    )
                beta = 0.5 * (beta + beta_old)
                eta = X @ beta + offset
                mu = link.linkinv(eta)
                dev = family.deviance(y, mu, wt)
                halvings += 1

            if beta_old is not None:
                change = float(np.max(np.abs(beta - beta_old))) if beta.size else 0.0
                if change < tol:
                    return beta, eta, mu, qr, iteration, change

            beta_old, dev_old = beta, dev

        raise ConvergenceError(
            f"IRLS did not converge in {max_iter} iterations "
            f"(last coefficient change {change:.3e}, deviance {dev_old:.6f}); "
            f"fitted probabilities near 0 or 1 suggest separation",
            iterations=max_iter,
            final_change=change,
            reason='max_iterations',
            threshold=tol,
        )

    def _null_deviance(
        self,
        design: RegressionDesign,
        wt: NDArray,
        family: Family,
        tol: float,
        max_iter: int,
    ) -> float:
        """Deviance of the intercept-only model (or of the offset alone).

        Without an offset the intercept-only MLE is the mean of y for every
        family/link, so no iteration is needed.
        """
        y = design.y
        if not design.has_intercept:
            mu_null = family.link.linkinv(design.offset_or_zero())
            return family.deviance(y, mu_null, wt)

        if design.offset is None:
            mu_null = np.full(design.n, np.mean(y))
            return family.deviance(y, mu_null, wt)

        ones = np.ones((design.n, 1), dtype=np.float64)
        _, _, mu_null, _, _, _ = self._irls(
            ones, y, design.offset, wt, family, tol, max_iter,
        )
        return family.deviance(y, mu_null, wt)
