"""
CPU reference backend for linear regression.

Uses pivoted QR decomposition (LAPACK via SciPy) to solve the least
squares problem. Replicates R's lm() for full-rank designs; a
rank-deficient design is rejected rather than silently aliased.
"""

from typing import Any

import numpy as np

from pyregkit.core.compute.linalg.qr import hat_diagonal, qr_solve, unscaled_covariance
from pyregkit.core.compute.timing import Timer
from pyregkit.core.result import Result
from pyregkit.regression.design import RegressionDesign
from pyregkit.regression.solution import LinearParams


class CPUQRBackend:
    """
    CPU backend using QR decomposition.

    Solves RegressionDesign -> Result[LinearParams].
    """

    @property
    def name(self) -> str:
        return 'cpu_qr'

    def solve(self, design: RegressionDesign) -> Result[LinearParams]:
        """
        Solve OLS via pivoted QR decomposition.

        Algorithm:
            1. Compute QR decomposition: X P = Q R, check rank
            2. Solve: β[P] = R⁻¹ Q'y
            3. Compute residuals, fitted values, (X'X)⁻¹ and leverage

        Raises:
            SingularMatrixError: If X is rank-deficient
        """
        timer = Timer()
        timer.start()

        X = design.X
        y = design.y
        n = design.n

        with timer.section('qr_solve'):
            coefficients, qr = qr_solve(X, y, column_names=design.column_names)

        with timer.section('residuals'):
            fitted_values = X @ coefficients
            residuals = y - fitted_values

        with timer.section('statistics'):
            rss = float(residuals @ residuals)
            if design.has_intercept:
                tss = float(np.sum((y - np.mean(y)) ** 2))
            else:
                tss = float(y @ y)
            cov_unscaled = unscaled_covariance(qr)
            leverage = hat_diagonal(qr)

        timer.stop()

        params = LinearParams(
            coefficients=coefficients,
            residuals=residuals,
            fitted_values=fitted_values,
            rss=rss,
            tss=tss,
            rank=qr.rank,
            df_residual=n - qr.rank,
            unscaled_covariance=cov_unscaled,
            leverage=leverage,
        )

        info: dict[str, Any] = {
            'method': 'qr',
            'rank': qr.rank,
            'pivot': qr.pivot.tolist(),
            'n_dropped': design.n_dropped,
        }

        return Result(
            params=params,
            info=info,
            timing=timer.result(),
            backend_name=self.name,
            warnings=design.warnings,
        )
