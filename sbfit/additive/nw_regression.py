"""Nadaraya-Watson marginal regression of the response on each predictor component."""

# Authors: Ching-Chuan Chen
# SPDX-License-Identifier: MIT

import warnings

import numpy as np

from sbfit.smooth import KernelType, resolve_kernel
from sbfit.smooth.kernel import KernelLike
from sbfit.utils import check_bandwidth_vector, check_grid_and_sample, check_response


def nw_marginal_regression(
    Y: np.ndarray,
    x: np.ndarray,
    X: np.ndarray,
    h: np.ndarray,
    kernel_type: KernelLike = KernelType.EPANECHNIKOV,
    density_floor: float = 1e-10,
) -> np.ndarray:
    r"""Estimate :math:`E[Y | X_j = x]` on the grid of every component separately.

    .. math::
        \hat m_j(x) = \frac{\sum_i K((x - X_{ij}) / h_j) Y_i}
                           {\max\left(\sum_i K((x - X_{ij}) / h_j), \; n h_j \epsilon\right)}

    where :math:`\epsilon` is `density_floor`, i.e. the denominator is the
    kernel density estimate of :math:`X_j` floored at `density_floor`.

    Parameters
    ----------
    Y : array-like of shape (n,)
        Responses.
    x : array-like of shape (N, d)
        Evaluation grid; column j holds the points for component j.
    X : array-like of shape (n, d)
        Predictor sample.
    h : array-like of shape (d,)
        Bandwidths.
    kernel_type : KernelType, str, Kernel or callable, default=KernelType.EPANECHNIKOV
        Smoothing kernel.
    density_floor : float, default=1e-10
        Lower bound applied to the density estimate in the denominator.

    Returns
    -------
    np.ndarray of shape (N, d)
        Marginal regression estimates. Grid points without any sample in the
        kernel window get 0.
    """
    x, X = check_grid_and_sample(x, X)
    n, d = X.shape
    Y = check_response(Y, n)
    h = check_bandwidth_vector(h, d)
    if not np.isfinite(density_floor) or density_floor <= 0:
        raise ValueError("Density floor, density_floor, should be positive and finite.")
    kernel = resolve_kernel(kernel_type)

    nw = np.empty(x.shape, dtype=np.float64)
    num_floored = 0
    for j in range(d):
        weights = kernel((x[:, j, None] - X[None, :, j]) / h[j]) / (n * h[j])
        density = weights.sum(axis=1)
        floored = density < density_floor
        num_floored += int(floored.sum())
        nw[:, j] = np.matmul(weights, Y) / np.where(floored, density_floor, density)
    if num_floored > 0:
        warnings.warn(
            f"The marginal density is below {density_floor} at {num_floored} of {x.size} grid points; "
            "the Nadaraya-Watson denominator is floored there."
        )
    return nw
