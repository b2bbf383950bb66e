"""Interpolation on 1D and 2D grids.

This module provides linear and spline interpolation for 1D grids and bilinear
interpolation for 2D rectangular grids. Query points outside the grid range are
clamped to the nearest grid edge, so extrapolated values equal the values on
the grid boundary.
"""

# Authors: Ching-Chuan Chen
# SPDX-License-Identifier: MIT

from typing import Literal, Tuple

import numpy as np
from scipy.interpolate import CubicSpline


def _unique_sorted(x: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    # np.unique keeps the first occurrence of duplicated coordinates
    return np.unique(x, return_index=True)


def _cell_index(grid: np.ndarray, q: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Locate the enclosing cell of clamped queries.

    Returns the lower node index, the upper node index and the relative position
    of each query within its cell. Queries on a node get a position of exactly 0
    or 1 so that interpolation reproduces the node value.
    """
    if grid.size == 1:
        zeros = np.zeros(q.size, dtype=np.int64)
        return zeros, zeros, np.zeros(q.size, dtype=grid.dtype)
    q = np.clip(q, grid[0], grid[-1])
    lower = np.clip(np.searchsorted(grid, q, side="right") - 1, 0, grid.size - 2)
    upper = lower + 1
    t = (q - grid[lower]) / (grid[upper] - grid[lower])
    return lower, upper, t


def interp1d(x: np.ndarray, y: np.ndarray, x_new: np.ndarray, method: Literal["linear", "spline"] = "linear") -> np.ndarray:
    """Interpolate 1D data using linear or spline interpolation.

    Parameters
    ----------
    x : np.ndarray of shape (n,)
        Input coordinates. Duplicates are allowed but will be reduced to the
        first occurrence internally; unsorted input is sorted.
    y : np.ndarray of shape (n,)
        Values at `x`. Must match `x` in length.
    x_new : np.ndarray of shape (m,)
        Query points.
    method : {"linear", "spline"}, default="linear"
        Interpolation method. "spline" uses a not-a-knot cubic spline and falls
        back to linear interpolation when fewer than 4 unique nodes exist.

    Returns
    -------
    y_new : np.ndarray of shape (m,)
        Interpolated values at `x_new`. Queries outside [min(x), max(x)] take
        the value at the nearest end of the grid.

    Raises
    ------
    ValueError
        If any input is not 1D, is empty, sizes mismatch, contains NaN, or
        `method` is invalid.

    See Also
    --------
    interp2d : Interpolate 2D gridded data.
    """
    if x.ndim != 1 or y.ndim != 1 or x_new.ndim != 1:
        raise ValueError("x, y, and x_new must be 1-dimensional arrays.")
    if x.size == 0 or y.size == 0 or x_new.size == 0:
        raise ValueError("x, y, and x_new must not be empty.")
    if x.size != y.size:
        raise ValueError("x must have the same size as y.")
    # NaN check
    if np.isnan(x).any():
        raise ValueError("Input array x contains NaN values.")
    if np.isnan(y).any():
        raise ValueError("Input array y contains NaN values.")
    if np.isnan(x_new).any():
        raise ValueError("Input array x_new contains NaN values.")
    if method not in ["linear", "spline"]:
        raise ValueError("Invalid method. Use 'linear' or 'spline'.")

    dtype = np.float32 if x.dtype == np.float32 else np.float64
    x_unique, idx = _unique_sorted(x.astype(dtype, copy=False))
    y_unique = y[idx].astype(dtype, copy=False)
    x_query = np.clip(x_new.astype(dtype, copy=False), x_unique[0], x_unique[-1])
    if method == "spline" and x_unique.size >= 4:
        return CubicSpline(x_unique, y_unique, bc_type="not-a-knot")(x_query).astype(dtype, copy=False)
    lower, upper, t = _cell_index(x_unique, x_query)
    return ((1.0 - t) * y_unique[lower] + t * y_unique[upper]).astype(dtype, copy=False)


def _check_2d_inputs(x: np.ndarray, y: np.ndarray, v: np.ndarray, x_new: np.ndarray, y_new: np.ndarray) -> None:
    if x.ndim != 1 or y.ndim != 1 or v.ndim != 2 or x_new.ndim != 1 or y_new.ndim != 1:
        raise ValueError("x, y, x_new and y_new must be 1D arrays and v must be a 2D array.")
    if x.size == 0 or y.size == 0 or v.size == 0 or x_new.size == 0 or y_new.size == 0:
        raise ValueError("x, y, v, x_new, and y_new must not be empty.")
    if x.size != v.shape[0]:
        raise ValueError("x must have the same length as the first dimension of v")
    if y.size != v.shape[1]:
        raise ValueError("y must have the same length as the second dimension of v")
    # NaN check
    if np.isnan(x).any():
        raise ValueError("Input array x contains NaN values.")
    if np.isnan(y).any():
        raise ValueError("Input array y contains NaN values.")
    if np.isnan(v).any():
        raise ValueError("Input array v contains NaN values.")
    if np.isnan(x_new).any():
        raise ValueError("Input array x_new contains NaN values.")
    if np.isnan(y_new).any():
        raise ValueError("Input array y_new contains NaN values.")


def _bilinear(
    x: np.ndarray, y: np.ndarray, v: np.ndarray, x_new: np.ndarray, y_new: np.ndarray
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    dtype = np.float32 if x.dtype == np.float32 else np.float64
    x_unique, idx_x = _unique_sorted(x.astype(dtype, copy=False))
    y_unique, idx_y = _unique_sorted(y.astype(dtype, copy=False))
    v_unique = v[np.ix_(idx_x, idx_y)].astype(dtype, copy=False)
    x0, x1, tx = _cell_index(x_unique, x_new.astype(dtype, copy=False))
    y0, y1, ty = _cell_index(y_unique, y_new.astype(dtype, copy=False))
    return v_unique, x0, x1, tx, y0, y1, ty


def interp2d_points(x: np.ndarray, y: np.ndarray, v: np.ndarray, x_new: np.ndarray, y_new: np.ndarray) -> np.ndarray:
    """Bilinear interpolation of gridded data at arbitrary query pairs.

    Parameters
    ----------
    x : np.ndarray of shape (n_x,)
        X-coordinates of the grid (first axis of `v`).
    y : np.ndarray of shape (n_y,)
        Y-coordinates of the grid (second axis of `v`).
    v : np.ndarray of shape (n_x, n_y)
        Values on the grid defined by (`x`, `y`).
    x_new : np.ndarray of shape (m,)
        Query x-coordinates.
    y_new : np.ndarray of shape (m,)
        Query y-coordinates, paired element-wise with `x_new`.

    Returns
    -------
    v_new : np.ndarray of shape (m,)
        Interpolated values at the pairs (x_new[i], y_new[i]). Values at grid
        nodes are reproduced exactly; queries outside the grid are clamped to
        the nearest edge.

    See Also
    --------
    interp2d : Interpolate onto the mesh x_new x y_new.
    """
    _check_2d_inputs(x, y, v, x_new, y_new)
    if x_new.size != y_new.size:
        raise ValueError("x_new must have the same size as y_new.")
    v_unique, x0, x1, tx, y0, y1, ty = _bilinear(x, y, v, x_new, y_new)
    lower = (1.0 - ty) * v_unique[x0, y0] + ty * v_unique[x0, y1]
    upper = (1.0 - ty) * v_unique[x1, y0] + ty * v_unique[x1, y1]
    return (1.0 - tx) * lower + tx * upper


def interp2d(x: np.ndarray, y: np.ndarray, v: np.ndarray, x_new: np.ndarray, y_new: np.ndarray) -> np.ndarray:
    """Bilinear interpolation of gridded data onto a new rectangular mesh.

    Parameters
    ----------
    x : np.ndarray of shape (n_x,)
        X-coordinates of the grid (first axis of `v`).
    y : np.ndarray of shape (n_y,)
        Y-coordinates of the grid (second axis of `v`).
    v : np.ndarray of shape (n_x, n_y)
        Values on the grid defined by (`x`, `y`).
    x_new : np.ndarray of shape (m_x,)
        Query x-coordinates.
    y_new : np.ndarray of shape (m_y,)
        Query y-coordinates.

    Returns
    -------
    v_new : np.ndarray of shape (m_x, m_y)
        Interpolated values on the mesh defined by (`x_new`, `y_new`).

    See Also
    --------
    interp2d_points : Interpolate at paired query coordinates.
    interp1d : Interpolate 1D data using linear or spline interpolation.
    """
    _check_2d_inputs(x, y, v, x_new, y_new)
    v_unique, x0, x1, tx, y0, y1, ty = _bilinear(x, y, v, x_new, y_new)
    tx = tx[:, None]
    ty = ty[None, :]
    lower = (1.0 - ty) * v_unique[np.ix_(x0, y0)] + ty * v_unique[np.ix_(x0, y1)]
    upper = (1.0 - ty) * v_unique[np.ix_(x1, y0)] + ty * v_unique[np.ix_(x1, y1)]
    return (1.0 - tx) * lower + tx * upper
