"""Numerical helpers: trapezoidal integration and linear binning on grids."""

# Authors: Ching-Chuan Chen
# SPDX-License-Identifier: MIT

from typing import Tuple, Union

import numpy as np


def trapz(y: np.ndarray, x: np.ndarray) -> Union[np.ndarray, float]:
    r"""
    Compute the integrated area using the trapezoidal rule.

    Parameters
    ----------
    y : array_like
        1D or 2D array of function values with respect to `x`.
        Accepted shapes:
        - (n_features,) for a single curve.
        - (n_samples, n_features) for multiple curves.
        If `y` is 1D, it is treated as a single row (1, n_features).
    x : array_like of shape (n_features,)
        1D array of x-coordinates corresponding to the function values.

    Returns
    -------
    np.ndarray or float
        If `y` was 1D, returns a scalar float.
        If `y` was 2D, returns a 1D array with the integral per row of `y`
        (or per column when only the number of rows matches `x`).

    Raises
    ------
    ValueError
        If the number of points in `x` does not match either the number of rows
        or the number of columns of `y`.

    Mathematical definition
    -----------------------
    For a single curve ``y`` of length ``n`` and ``x`` of the same length:

    .. math::
        T(y, x) = \sum_{i=0}^{n-2} \frac{x_{i+1}-x_i}{2}\,\big(y_i + y_{i+1}\big).
    """
    y = np.asarray(y)
    x = np.asarray(x)
    if y.ndim == 1:
        y = y.reshape((1, -1))  # Ensure y is 2D for consistency
    if y.ndim != 2:
        raise ValueError("y must be 1D or 2D.")
    if y.shape[1] != x.shape[0] and y.shape[0] != x.shape[0]:
        raise ValueError("The number of columns or rows of y must match the size of x.")
    if y.dtype not in [np.float64, np.float32]:
        y = y.astype(np.float64, copy=False)  # Convert to float64 if not already

    # force x to match y's dtype
    x = x.astype(y.dtype, copy=False)
    if y.shape[1] == x.shape[0]:
        trapz_result = np.matmul(y[:, :-1] + y[:, 1:], np.diff(x)) * 0.5
    else:
        trapz_result = np.matmul(np.diff(x), y[:-1, :] + y[1:, :]) * 0.5
    if y.shape[0] == 1:
        return float(trapz_result[0])
    return trapz_result


def trapezoid_weights(x: np.ndarray) -> np.ndarray:
    """Quadrature weights of the trapezoidal rule on the nodes `x`.

    ``np.dot(trapezoid_weights(x), f(x))`` equals ``trapz(f(x)[order], x[order])``
    for the sorting permutation ``order`` of `x`, so unsorted grids are accepted.

    Parameters
    ----------
    x : np.ndarray of shape (n,)
        Grid nodes.

    Returns
    -------
    np.ndarray of shape (n,)
        Non-negative weights, aligned with `x`. A single node gets weight 0.
    """
    x = np.asarray(x)
    if x.ndim != 1:
        raise ValueError("x must be a 1D array.")
    dtype = x.dtype if x.dtype in (np.float32, np.float64) else np.float64
    weights = np.zeros(x.size, dtype=dtype)
    if x.size < 2:
        return weights
    order = np.argsort(x, kind="stable")
    dx = np.diff(x[order].astype(dtype, copy=False))
    sorted_weights = np.zeros(x.size, dtype=dtype)
    sorted_weights[:-1] += 0.5 * dx
    sorted_weights[1:] += 0.5 * dx
    weights[order] = sorted_weights
    return weights


def _binning_coordinates(values: np.ndarray, grid: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Lower node index and the share of mass sent to the upper node."""
    values = np.clip(values, grid[0], grid[-1])
    lower = np.clip(np.searchsorted(grid, values, side="right") - 1, 0, grid.size - 2)
    share = (values - grid[lower]) / (grid[lower + 1] - grid[lower])
    return lower, share


def linear_binning_1d(values: np.ndarray, grid: np.ndarray, weights: np.ndarray = None) -> np.ndarray:
    """Distribute sample mass onto an equally or unequally spaced sorted grid.

    Each sample sends ``1 - t`` of its weight to the grid node below it and
    ``t`` to the node above it, where ``t`` is its relative position within the
    cell. Samples beyond the grid ends are assigned to the end nodes.

    Parameters
    ----------
    values : np.ndarray of shape (n,)
        Sample coordinates.
    grid : np.ndarray of shape (m,)
        Strictly increasing grid nodes, m >= 2.
    weights : np.ndarray of shape (n,), optional
        Sample weights. Defaults to ones.

    Returns
    -------
    np.ndarray of shape (m,)
        Binned mass; sums to ``weights.sum()``.
    """
    if grid.ndim != 1 or grid.size < 2:
        raise ValueError("grid must be a 1D array with at least 2 points.")
    if np.any(np.diff(grid) <= 0):
        raise ValueError("grid must be strictly increasing.")
    if weights is None:
        weights = np.ones(values.size, dtype=grid.dtype)
    lower, share = _binning_coordinates(values, grid)
    mass = np.bincount(lower, weights=(1.0 - share) * weights, minlength=grid.size)
    mass += np.bincount(lower + 1, weights=share * weights, minlength=grid.size)
    return mass


def linear_binning_2d(values1: np.ndarray, values2: np.ndarray, grid1: np.ndarray, grid2: np.ndarray) -> np.ndarray:
    """Bivariate linear binning of paired samples onto the mesh grid1 x grid2.

    Parameters
    ----------
    values1, values2 : np.ndarray of shape (n,)
        Paired sample coordinates.
    grid1 : np.ndarray of shape (m1,)
        Strictly increasing nodes for the first coordinate.
    grid2 : np.ndarray of shape (m2,)
        Strictly increasing nodes for the second coordinate.

    Returns
    -------
    np.ndarray of shape (m1, m2)
        Binned mass; sums to n.
    """
    if values1.shape != values2.shape:
        raise ValueError("values1 must have the same shape as values2.")
    for grid in (grid1, grid2):
        if grid.ndim != 1 or grid.size < 2:
            raise ValueError("grid must be a 1D array with at least 2 points.")
        if np.any(np.diff(grid) <= 0):
            raise ValueError("grid must be strictly increasing.")
    lower1, share1 = _binning_coordinates(values1, grid1)
    lower2, share2 = _binning_coordinates(values2, grid2)
    mass = np.zeros((grid1.size, grid2.size), dtype=np.float64)
    for di, wi in ((0, 1.0 - share1), (1, share1)):
        for dj, wj in ((0, 1.0 - share2), (1, share2)):
            np.add.at(mass, (lower1 + di, lower2 + dj), wi * wj)
    return mass
