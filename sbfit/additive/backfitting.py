"""Smooth backfitting for nonparametric additive models."""

# Authors: Ching-Chuan Chen
# SPDX-License-Identifier: MIT

import logging
import warnings
from dataclasses import dataclass
from typing import Dict, Literal, Optional, Tuple

import numpy as np
from sklearn.exceptions import ConvergenceWarning

from sbfit.additive.nw_regression import nw_marginal_regression
from sbfit.density import JointDensity, estimate_densities
from sbfit.smooth import KernelType, resolve_kernel
from sbfit.smooth.kernel import KernelLike
from sbfit.utils import (
    check_bandwidth_vector,
    check_grid_and_sample,
    check_response,
    check_support,
    default_bandwidth,
    support_mask,
    trapezoid_weights,
)

logger = logging.getLogger(__name__)


class BackfittingParams:
    """
    Parameters controlling the smooth backfitting iteration and its density estimates.

    Parameters
    ----------
    tol : float, default=1e-5
        The iteration stops as converged once the stopping statistic, the
        largest root-mean-squared change of a component over one sweep, is at
        most `tol`.
    stagnation_tol : float, default=1e-3
        The iteration stops as stagnated once the stopping statistic changes by
        less than `stagnation_tol` between two consecutive sweeps.
    max_iter : int, default=50
        The iteration stops once the number of sweeps exceeds `max_iter`, so at
        most ``max_iter + 1`` sweeps are run.
    density_floor : float, default=1e-10
        Lower bound applied to marginal densities used as denominators.
    num_points_work_grid : int, default=51
        Minimum number of working grid points used in density estimation; the
        working grid is refined to a spacing of at most half the bandwidth.
    density_frame : {'rotated', 'standard'}, default='rotated'
        Coordinate frame of the bivariate smoother used for joint densities.
    density_degree : int, default=1
        Degree of the local polynomial used for joint densities.
    n_jobs : int, optional
        Number of joblib workers used to estimate joint densities.
    center_components : bool, default=True
        Whether every updated component is shifted to have zero mean under its
        estimated marginal density, which fixes the otherwise unidentified
        constants of the components.
    """

    def __init__(
        self,
        tol: float = 1e-5,
        stagnation_tol: float = 1e-3,
        max_iter: int = 50,
        density_floor: float = 1e-10,
        num_points_work_grid: int = 51,
        density_frame: Literal["rotated", "standard"] = "rotated",
        density_degree: int = 1,
        n_jobs: Optional[int] = None,
        center_components: bool = True,
    ):
        if not isinstance(tol, (int, float)) or isinstance(tol, bool) or tol < 0:
            raise ValueError("tol must be a non-negative scalar.")
        if not isinstance(stagnation_tol, (int, float)) or isinstance(stagnation_tol, bool) or stagnation_tol < 0:
            raise ValueError("stagnation_tol must be a non-negative scalar.")
        if not isinstance(max_iter, int) or isinstance(max_iter, bool) or max_iter < 0:
            raise ValueError("max_iter must be a non-negative integer.")
        if not isinstance(density_floor, (int, float)) or isinstance(density_floor, bool) or not 0 < density_floor < np.inf:
            raise ValueError("density_floor must be a positive scalar.")
        if not isinstance(num_points_work_grid, int) or isinstance(num_points_work_grid, bool) or num_points_work_grid < 2:
            raise ValueError("num_points_work_grid must be an integer of at least 2.")
        if density_frame not in ["rotated", "standard"]:
            raise ValueError("density_frame must be either 'rotated' or 'standard'.")
        if density_degree not in [0, 1, 2]:
            raise ValueError("density_degree must be one of 0, 1 or 2.")
        if n_jobs is not None and (not isinstance(n_jobs, int) or isinstance(n_jobs, bool) or n_jobs == 0):
            raise ValueError("n_jobs must be None or a non-zero integer.")
        if not isinstance(center_components, bool):
            raise ValueError("center_components must be a boolean value.")

        self.tol = float(tol)
        self.stagnation_tol = float(stagnation_tol)
        self.max_iter = max_iter
        self.density_floor = float(density_floor)
        self.num_points_work_grid = num_points_work_grid
        self.density_frame = density_frame
        self.density_degree = density_degree
        self.n_jobs = n_jobs
        self.center_components = center_components

    def __repr__(self):
        return (
            f"BackfittingParams(tol={self.tol}, stagnation_tol={self.stagnation_tol}, max_iter={self.max_iter}, "
            f"density_floor={self.density_floor}, num_points_work_grid={self.num_points_work_grid}, "
            f"density_frame='{self.density_frame}', density_degree={self.density_degree}, n_jobs={self.n_jobs}, "
            f"center_components={self.center_components})"
        )


@dataclass
class SBFResult:
    """Output of :func:`smooth_backfit`.

    Attributes
    ----------
    sbf_fit : np.ndarray of shape (N, d)
        Smooth backfitting component estimates on the evaluation grid.
    nw : np.ndarray of shape (N, d)
        Nadaraya-Watson marginal regression estimates of E[Y | X_j] on the
        evaluation grid. Grid points without samples in the kernel window hold
        the intercept.
    marginal_density : np.ndarray of shape (N, d)
        Marginal density estimates on the evaluation grid.
    joint_density : JointDensity
        Joint density estimates of every pair of components.
    n_iter : int
        Number of sweeps performed.
    stop_reason : {"converged", "stagnated", "max_iter"}
        Which stopping rule ended the iteration.
    mean_response : float
        Mean of the responses inside the support, the intercept of the model.
    stopping_statistic : float
        Stopping statistic of the last sweep.
    """

    sbf_fit: np.ndarray
    nw: np.ndarray
    marginal_density: np.ndarray
    joint_density: JointDensity
    n_iter: int
    stop_reason: Literal["converged", "stagnated", "max_iter"]
    mean_response: float
    stopping_statistic: float


def _projection_operators(
    x: np.ndarray, marginal: np.ndarray, joint: JointDensity, density_floor: float
) -> Dict[Tuple[int, int], np.ndarray]:
    """Discretised conditional expectation operators between component grids.

    ``ops[j, k] @ f_k`` approximates ``\\int f_k(u) p_jk(x, u) / p_j(x) du`` at the
    points of grid j, integrating over grid k with the trapezoidal rule. Rows at
    points where the marginal density of component j is below `density_floor`
    are zero.
    """
    floored = marginal < density_floor
    num_floored = int(floored.sum())
    if num_floored > 0:
        warnings.warn(
            f"The marginal density is below {density_floor} at {num_floored} of {marginal.size} grid points; "
            "the backfitting projections are set to 0 there."
        )
    denominator = np.maximum(marginal, density_floor)
    quadrature = [trapezoid_weights(x[:, k]) for k in range(x.shape[1])]
    ops = {}
    for j in range(x.shape[1]):
        for k in range(x.shape[1]):
            if j != k:
                ops[(j, k)] = joint[j, k] * quadrature[k][None, :] / denominator[:, j, None]
                # no conditional expectation where component j has no mass
                ops[(j, k)][floored[:, j]] = 0.0
    return ops


def _align_sign(update: np.ndarray, previous: np.ndarray) -> np.ndarray:
    """Negate `update` when it points away from the previous iterate of the same component."""
    if np.dot(update, previous) < 0:
        return -update
    return update


def _centering_weights(x: np.ndarray, marginal: np.ndarray) -> np.ndarray:
    """Column j integrates a function on grid j against the estimated marginal density of component j."""
    quadrature = np.column_stack([trapezoid_weights(x[:, j]) for j in range(x.shape[1])])
    weights = quadrature * marginal
    # a density vanishing on the whole grid falls back to the plain average
    empty = weights.sum(axis=0) <= 0
    weights[:, empty] = 1.0
    return weights / weights.sum(axis=0)


def smooth_backfit(
    Y: np.ndarray,
    x: np.ndarray,
    X: np.ndarray,
    h: Optional[np.ndarray] = None,
    kernel: KernelLike = KernelType.EPANECHNIKOV,
    supp: Optional[np.ndarray] = None,
    params: BackfittingParams = BackfittingParams(),
    verbose: bool = False,
) -> SBFResult:
    """
    Fit the components of an additive model with the smooth backfitting algorithm.

    The model is :math:`E[Y | X] = m_0 + \\sum_j f_j(X_j)` with
    :math:`m_0 = \\bar Y`. Starting from zero, each sweep updates the
    components in order, in place, by

    .. math::
        f_j(x) = \\hat m_j(x) - \\sum_{k \\neq j} \\int f_k(u) \\frac{\\hat p_{jk}(x, u)}{\\hat p_j(x)} du

    where :math:`\\hat m_j` is the Nadaraya-Watson regression of the centred
    response on :math:`X_j`. The update is then shifted so that
    :math:`\\int f_j(x) \\hat p_j(x) dx = 0` unless
    ``params.center_components`` is False. A freshly updated component whose
    inner product with its previous value is negative is negated.

    Parameters
    ----------
    Y : array-like of shape (n,)
        Responses.
    x : array-like of shape (N, d)
        Evaluation grid; column j holds the estimation points of component j.
    X : array-like of shape (n, d)
        Predictor sample.
    h : array-like of shape (d,) or float, optional
        Bandwidths. Defaults to ``0.25 * n ** (-1 / 5) * (supp[:, 1] - supp[:, 0])``.
    kernel : KernelType, str, Kernel or callable, default=KernelType.EPANECHNIKOV
        Smoothing kernel.
    supp : array-like of shape (d, 2), optional
        Lower and upper limits of the estimation support of each component.
        Defaults to [0, 1] for every component. Samples outside are ignored.
    params : BackfittingParams, default=BackfittingParams()
        Stopping rules and density estimation settings.
    verbose : bool, default=False
        Log the per-sweep progress at INFO instead of DEBUG level.

    Returns
    -------
    SBFResult
        Component estimates together with the Nadaraya-Watson estimates, the
        density estimates and the iteration diagnostics.

    Warns
    -----
    ConvergenceWarning
        If the number of sweeps exceeds ``params.max_iter``. The current
        estimates are returned nonetheless.
    """
    x, X = check_grid_and_sample(x, X)
    n, d = X.shape
    Y = check_response(Y, n)
    supp = check_support(supp, d)
    h = check_bandwidth_vector(default_bandwidth(n, supp) if h is None else h, d)
    kernel = resolve_kernel(kernel)
    if not isinstance(params, BackfittingParams):
        raise ValueError("params must be an instance of BackfittingParams.")
    log_level = logging.INFO if verbose else logging.DEBUG

    inside = support_mask(X, supp)
    X = X[inside]
    Y = Y[inside]
    mean_response = float(np.mean(Y))

    nw_centred = nw_marginal_regression(Y - mean_response, x, X, h, kernel, params.density_floor)
    densities = estimate_densities(
        x,
        X,
        h,
        supp,
        kernel,
        num_points_work_grid=params.num_points_work_grid,
        degree=params.density_degree,
        frame=params.density_frame,
        n_jobs=params.n_jobs,
    )
    ops = _projection_operators(x, densities.marginal, densities.joint, params.density_floor)
    centering = _centering_weights(x, densities.marginal)

    f = np.zeros(x.shape, dtype=np.float64)
    prev_stat = 100.0
    n_iter = 0
    while True:
        n_iter += 1
        f_prev = f.copy()
        for j in range(d):
            update = nw_centred[:, j].copy()
            for k in range(d):
                if k != j:
                    update -= np.matmul(ops[(j, k)], f[:, k])
            if params.center_components:
                update -= np.dot(centering[:, j], update)
            f[:, j] = _align_sign(update, f_prev[:, j])

        stat = float(np.max(np.sqrt(np.mean((f - f_prev) ** 2, axis=0))))
        logger.log(log_level, "SBF sweep %d: stopping statistic=%.6g (tol=%g)", n_iter, stat, params.tol)
        if stat <= params.tol:
            stop_reason = "converged"
            break
        if abs(stat - prev_stat) < params.stagnation_tol:
            stop_reason = "stagnated"
            break
        if n_iter > params.max_iter:
            stop_reason = "max_iter"
            warnings.warn(
                f"Smooth backfitting did not converge after {n_iter} sweeps (stopping statistic={stat:.6g}). "
                "Consider wider bandwidths or a coarser evaluation grid.",
                ConvergenceWarning,
            )
            break
        prev_stat = stat

    logger.log(log_level, "SBF stopped after %d sweeps (%s).", n_iter, stop_reason)
    return SBFResult(
        sbf_fit=f,
        nw=nw_centred + mean_response,
        marginal_density=densities.marginal,
        joint_density=densities.joint,
        n_iter=n_iter,
        stop_reason=stop_reason,
        mean_response=mean_response,
        stopping_statistic=stat,
    )
