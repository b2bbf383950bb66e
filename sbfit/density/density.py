"""Marginal and pairwise joint kernel density estimation on evaluation grids.

Densities are obtained by linearly binning the sample onto an equally spaced
working grid spanning the support, smoothing the binned (histogram) density
with a local linear fit and interpolating the result onto the evaluation grid.
The local linear fit corrects the boundary bias of the plain kernel density
estimate; the bivariate fit uses the rotated frame of
:func:`sbfit.smooth.polyfit2d`.
"""

# Authors: Ching-Chuan Chen
# SPDX-License-Identifier: MIT

import logging
import math
import warnings
from collections.abc import Mapping
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, Iterator, Literal, Optional, Tuple

import numpy as np
from joblib import Parallel, delayed

from sbfit.interp import interp1d, interp2d
from sbfit.smooth import KernelType, mesh_points, polyfit1d, polyfit2d, resolve_kernel
from sbfit.smooth.kernel import Kernel, KernelLike
from sbfit.utils import (
    check_bandwidth_vector,
    check_grid_and_sample,
    check_support,
    linear_binning_1d,
    linear_binning_2d,
    support_mask,
    trapezoid_weights,
)

logger = logging.getLogger(__name__)


class JointDensity(Mapping):
    """Bivariate density grids stored once per unordered component pair.

    ``density[j, k]`` is an (N, N) array whose rows follow the grid of component
    `j` and whose columns follow the grid of component `k`; ``density[k, j]`` is
    its transpose. Diagonal pairs ``(j, j)`` are not stored.

    Parameters
    ----------
    num_components : int
        Number of predictor components d.
    grids : dict
        Mapping from pairs ``(j, k)`` with ``j < k`` to (N, N) arrays.
    """

    def __init__(self, num_components: int, grids: Dict[Tuple[int, int], np.ndarray]):
        expected = set(combinations(range(num_components), 2))
        if set(grids) != expected:
            raise ValueError(f"grids must hold exactly the pairs {sorted(expected)}.")
        self.num_components = num_components
        self._grids = dict(grids)

    def __getitem__(self, key: Tuple[int, int]) -> np.ndarray:
        j, k = key
        if j == k:
            raise KeyError(f"No joint density is stored for the diagonal pair ({j}, {k}).")
        if j < k:
            return self._grids[(j, k)]
        return self._grids[(k, j)].T

    def __iter__(self) -> Iterator[Tuple[int, int]]:
        return iter(self._grids)

    def __len__(self) -> int:
        return len(self._grids)

    def __repr__(self):
        return f"JointDensity(num_components={self.num_components}, pairs={list(self._grids)})"

    def to_array(self) -> np.ndarray:
        """Dense (N, N, d, d) layout; ``[:, :, j, k]`` is ``self[j, k]`` and diagonal slices are zero."""
        if not self._grids:
            return np.zeros((0, 0, self.num_components, self.num_components))
        n_grid = next(iter(self._grids.values())).shape[0]
        dense = np.zeros((n_grid, n_grid, self.num_components, self.num_components))
        for j, k in self._grids:
            dense[:, :, j, k] = self[j, k]
            dense[:, :, k, j] = self[k, j]
        return dense


@dataclass
class MarginalJointDensity:
    """Marginal and joint density grids of the predictor components.

    Attributes
    ----------
    marginal : np.ndarray of shape (N, d)
        Marginal density of component j evaluated on ``x[:, j]``.
    joint : JointDensity
        Joint densities of every pair of components on the product grids.
    """

    marginal: np.ndarray
    joint: JointDensity


def _work_grid(lower: float, upper: float, num_points: int, bandwidth: float) -> np.ndarray:
    """Equally spaced nodes over [lower, upper], refined so the spacing is at most half the bandwidth."""
    num_points = max(num_points, int(math.ceil(2.0 * (upper - lower) / bandwidth)) + 1)
    return np.linspace(lower, upper, num_points)


def _fill_infeasible(fit: np.ndarray, feasible: np.ndarray, label: str) -> np.ndarray:
    if not feasible.all():
        warnings.warn(
            f"{int((~feasible).sum())} of {feasible.size} working grid points of the {label} could not be estimated "
            "and are set to 0. Consider a wider bandwidth or a finer working grid."
        )
        fit = np.where(feasible, fit, 0.0)
    return fit


def _check_density_params(num_points_work_grid: int, degree: int) -> None:
    if num_points_work_grid is None or isinstance(num_points_work_grid, bool) or not isinstance(num_points_work_grid, int):
        raise TypeError("Number of working grid points, num_points_work_grid, should be an integer.")
    if num_points_work_grid < 2:
        raise ValueError("Number of working grid points, num_points_work_grid, should be at least 2.")
    if degree not in [0, 1, 2]:
        raise ValueError(f"degree must be one of [0, 1, 2], got {degree}")


def _marginal_density_component(
    x_j: np.ndarray, X_j: np.ndarray, h_j: float, supp_j: np.ndarray, kernel: Kernel, num_points_work_grid: int, label: str
) -> np.ndarray:
    grid = _work_grid(supp_j[0], supp_j[1], num_points_work_grid, h_j)
    cell = trapezoid_weights(grid)
    raw = linear_binning_1d(X_j, grid) / (X_j.size * cell)
    fit, feasible = polyfit1d(grid, raw, cell, grid, h_j, kernel, degree=1, return_feasibility=True)
    fit = _fill_infeasible(fit, feasible, label)
    return np.clip(interp1d(grid, fit, x_j), 0.0, None)


def _joint_density_pair(
    x_j: np.ndarray,
    x_k: np.ndarray,
    X_j: np.ndarray,
    X_k: np.ndarray,
    h_j: float,
    h_k: float,
    supp_j: np.ndarray,
    supp_k: np.ndarray,
    kernel: Kernel,
    num_points_work_grid: int,
    degree: int,
    frame: str,
    label: str,
) -> np.ndarray:
    grid_j = _work_grid(supp_j[0], supp_j[1], num_points_work_grid, h_j)
    grid_k = _work_grid(supp_k[0], supp_k[1], num_points_work_grid, h_k)
    cell = np.outer(trapezoid_weights(grid_j), trapezoid_weights(grid_k))
    raw = linear_binning_2d(X_j, X_k, grid_j, grid_k) / (X_j.size * cell)
    points = mesh_points(grid_j, grid_k)
    fit, feasible = polyfit2d(
        points, raw.ravel(), cell.ravel(), points, h_j, h_k, kernel, degree=degree, frame=frame, return_feasibility=True
    )
    fit = _fill_infeasible(fit, feasible, label).reshape(grid_j.size, grid_k.size)
    return np.clip(interp2d(grid_j, grid_k, fit, x_j, x_k), 0.0, None)


def marginal_density(
    x: np.ndarray,
    X: np.ndarray,
    h: np.ndarray,
    supp: Optional[np.ndarray] = None,
    kernel_type: KernelLike = KernelType.EPANECHNIKOV,
    num_points_work_grid: int = 51,
) -> np.ndarray:
    """Estimate the marginal density of every predictor component.

    Parameters
    ----------
    x : array-like of shape (N, d)
        Evaluation grid; column j holds the points for component j.
    X : array-like of shape (n, d)
        Predictor sample.
    h : array-like of shape (d,)
        Bandwidths.
    supp : array-like of shape (d, 2), optional
        Lower and upper limits per component. Defaults to [0, 1].
    kernel_type : KernelType, str, Kernel or callable, default=KernelType.EPANECHNIKOV
        Smoothing kernel.
    num_points_work_grid : int, default=51
        Minimum number of equally spaced working grid points per component. The
        grid of component j is refined until its spacing is at most h[j] / 2.

    Returns
    -------
    np.ndarray of shape (N, d)
        Non-negative marginal density values.
    """
    x, X = check_grid_and_sample(x, X)
    d = X.shape[1]
    h = check_bandwidth_vector(h, d)
    supp = check_support(supp, d)
    _check_density_params(num_points_work_grid, 1)
    kernel = resolve_kernel(kernel_type)
    X = X[support_mask(X, supp)]

    density = np.empty(x.shape, dtype=np.float64)
    for j in range(d):
        density[:, j] = _marginal_density_component(
            x[:, j], X[:, j], h[j], supp[j], kernel, num_points_work_grid, f"marginal density of component {j}"
        )
    return density


def joint_density(
    x: np.ndarray,
    X: np.ndarray,
    h: np.ndarray,
    supp: Optional[np.ndarray] = None,
    kernel_type: KernelLike = KernelType.EPANECHNIKOV,
    num_points_work_grid: int = 51,
    degree: int = 1,
    frame: Literal["standard", "rotated"] = "rotated",
    n_jobs: Optional[int] = None,
) -> JointDensity:
    """Estimate the joint density of every pair of predictor components.

    Parameters
    ----------
    x : array-like of shape (N, d)
        Evaluation grid; column j holds the points for component j.
    X : array-like of shape (n, d)
        Predictor sample.
    h : array-like of shape (d,)
        Bandwidths; pair (j, k) is smoothed with (h[j], h[k]).
    supp : array-like of shape (d, 2), optional
        Lower and upper limits per component. Defaults to [0, 1].
    kernel_type : KernelType, str, Kernel or callable, default=KernelType.EPANECHNIKOV
        Smoothing kernel.
    num_points_work_grid : int, default=51
        Minimum number of equally spaced working grid points per component. The
        grid of component j is refined until its spacing is at most h[j] / 2.
    degree : {0, 1, 2}, default=1
        Degree of the bivariate local polynomial.
    frame : {"standard", "rotated"}, default="rotated"
        Coordinate frame of the bivariate fit.
    n_jobs : int, optional
        Number of joblib workers used across component pairs. None or 1 runs
        sequentially.

    Returns
    -------
    JointDensity
        Non-negative (N, N) density grids for every pair j < k.
    """
    x, X = check_grid_and_sample(x, X)
    d = X.shape[1]
    h = check_bandwidth_vector(h, d)
    supp = check_support(supp, d)
    _check_density_params(num_points_work_grid, degree)
    if frame not in ["standard", "rotated"]:
        raise ValueError(f"frame must be one of ['standard', 'rotated'], got {frame}")
    kernel = resolve_kernel(kernel_type)
    X = X[support_mask(X, supp)]

    pairs = list(combinations(range(d), 2))
    tasks = (
        delayed(_joint_density_pair)(
            x[:, j], x[:, k], X[:, j], X[:, k], h[j], h[k], supp[j], supp[k],
            kernel, num_points_work_grid, degree, frame, f"joint density of components ({j}, {k})",
        )
        for j, k in pairs
    )
    if n_jobs is None or n_jobs == 1:
        grids = [task(*args, **kwargs) for task, args, kwargs in tasks]
    else:
        logger.debug("Estimating %d joint densities with n_jobs=%s", len(pairs), n_jobs)
        grids = Parallel(n_jobs=n_jobs)(tasks)
    return JointDensity(d, dict(zip(pairs, grids)))


def estimate_densities(
    x: np.ndarray,
    X: np.ndarray,
    h: np.ndarray,
    supp: Optional[np.ndarray] = None,
    kernel_type: KernelLike = KernelType.EPANECHNIKOV,
    num_points_work_grid: int = 51,
    degree: int = 1,
    frame: Literal["standard", "rotated"] = "rotated",
    n_jobs: Optional[int] = None,
) -> MarginalJointDensity:
    """Estimate the marginal and joint densities used by smooth backfitting.

    See :func:`marginal_density` and :func:`joint_density` for the parameters.

    Returns
    -------
    MarginalJointDensity
    """
    marginal = marginal_density(x, X, h, supp, kernel_type, num_points_work_grid)
    joint = joint_density(x, X, h, supp, kernel_type, num_points_work_grid, degree, frame, n_jobs)
    return MarginalJointDensity(marginal, joint)
