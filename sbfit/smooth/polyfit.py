"""Local polynomial kernel smoothing for sbfit."""

# Authors: Ching-Chuan Chen
# SPDX-License-Identifier: MIT

import math
from typing import List, Literal, Tuple, Union

import numpy as np

from sbfit.smooth.kernel import KernelLike, KernelType, resolve_kernel

# Upper bound on the number of (target, sample, basis) elements held at once.
_MAX_CHUNK_ELEMENTS = 1 << 22


def _rcond_threshold(dtype: np.dtype) -> float:
    return float(np.finfo(dtype).eps) * 1e4


def _check_bandwidth(bandwidth, name: str) -> float:
    if bandwidth is None or isinstance(bandwidth, bool) or not isinstance(bandwidth, (float, int, np.floating, np.integer)):
        raise TypeError(f"Bandwidth, {name}, should be a float or an integer.")
    if np.isnan(bandwidth):
        raise ValueError(f"Bandwidth, {name}, should not be NaN.")
    if bandwidth <= 0:
        raise ValueError(f"Bandwidth, {name}, should be positive.")
    return float(bandwidth)


def _check_degree(degree, deriv_orders: List[int], max_degree: int = None) -> None:
    if degree is None or isinstance(degree, bool) or not isinstance(degree, (int, np.integer)):
        raise TypeError("Degree of polynomial, degree, should be an integer.")
    if degree < 0:
        raise ValueError("Degree of polynomial, degree, should be non-negative.")
    if max_degree is not None and degree > max_degree:
        raise ValueError(f"Degree of polynomial, degree, should be at most {max_degree}.")
    for deriv in deriv_orders:
        if deriv is None or isinstance(deriv, bool) or not isinstance(deriv, (int, np.integer)):
            raise TypeError("Order of derivative, deriv, should be an integer.")
        if deriv < 0:
            raise ValueError("Order of derivative, deriv, should be non-negative.")
    if degree < sum(deriv_orders):
        raise ValueError("Degree of polynomial, degree, should be greater than or equal to order of derivative, deriv.")


def _working_dtype(*arrays: np.ndarray) -> np.dtype:
    return np.float32 if all(a.dtype == np.float32 for a in arrays) else np.float64


def _group_structure(coords: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Order and group starts that make identical input locations contiguous."""
    if coords.ndim == 1:
        _, inverse = np.unique(coords, return_inverse=True)
    else:
        _, inverse = np.unique(coords, axis=0, return_inverse=True)
    inverse = inverse.reshape(-1)
    order = np.argsort(inverse, kind="stable")
    starts = np.flatnonzero(np.r_[True, np.diff(inverse[order]) != 0])
    return order, starts


def _solve_local_systems(
    basis: np.ndarray,
    weights: np.ndarray,
    y: np.ndarray,
    group_order: np.ndarray,
    group_starts: np.ndarray,
    check_feasibility: bool,
    need_flags: bool,
) -> Tuple[np.ndarray, np.ndarray]:
    """Solve the weighted normal equations for a chunk of target points.

    Parameters
    ----------
    basis : np.ndarray of shape (m, n, p)
        Local polynomial basis for every (target, sample) pair.
    weights : np.ndarray of shape (m, n)
        Kernel times sample weights.
    y : np.ndarray of shape (n,)
        Responses.

    Returns
    -------
    coef : np.ndarray of shape (m, p)
        Local coefficients; NaN rows for infeasible targets when
        `check_feasibility` is True.
    feasible : np.ndarray of shape (m,)
        Feasibility flags (all True when no check was requested).
    """
    m, _, p = basis.shape
    weighted_basis_t = np.swapaxes(basis * weights[..., None], 1, 2)
    xtwx = np.matmul(weighted_basis_t, basis)
    xtwy = np.matmul(weighted_basis_t, y)

    feasible = np.ones(m, dtype=bool)
    if check_feasibility or need_flags:
        nonzero = (weights > 0)[:, group_order]
        num_distinct = np.logical_or.reduceat(nonzero, group_starts, axis=1).sum(axis=1)
        feasible = num_distinct >= p
        if feasible.any():
            cond = np.linalg.cond(xtwx[feasible])
            feasible[feasible] = np.isfinite(cond) & (cond < 1.0 / _rcond_threshold(xtwx.dtype))

    coef = np.full((m, p), np.nan, dtype=xtwx.dtype)
    if check_feasibility:
        if feasible.any():
            coef[feasible] = np.linalg.solve(xtwx[feasible], xtwy[feasible][..., None])[..., 0]
    else:
        coef = np.einsum("mpq,mq->mp", np.linalg.pinv(xtwx), xtwy)
    return coef, feasible


def polyfit1d(
    x: np.ndarray,
    y: np.ndarray,
    w: np.ndarray,
    x_new: np.ndarray,
    bandwidth: float,
    kernel_type: KernelLike = KernelType.EPANECHNIKOV,
    degree: int = 1,
    deriv: int = 0,
    check_feasibility: bool = True,
    return_feasibility: bool = False,
) -> Union[np.ndarray, Tuple[np.ndarray, np.ndarray]]:
    """Perform local polynomial regression on 1D data.

    At each point of `x_new` a weighted least-squares fit of `y` on the
    polynomial basis ``((x - x0) / bandwidth) ** r, r = 0, ..., degree`` is
    solved with weights ``kernel((x - x0) / bandwidth) * w``. Degree 0 gives
    the Nadaraya-Watson (local constant) estimate.

    Parameters
    ----------
    x : np.ndarray
        1D array of x-coordinates of the data points. Need not be sorted.
    y : np.ndarray
        1D array of y-coordinates of the data points.
    w : np.ndarray
        1D array of non-negative weights for the data points.
    x_new : np.ndarray
        1D array of x-coordinates where the polynomial should be evaluated.
    bandwidth : float
        The bandwidth for the local polynomial regression.
    kernel_type : KernelType, str, Kernel or callable, optional
        The kernel used to weight the data points. Default is KernelType.EPANECHNIKOV.
    degree : int, optional
        The degree of the local polynomial. Default is 1.
    deriv : int, optional
        The order of the derivative to compute. Default is 0 (no derivative).
    check_feasibility : bool, optional
        If True (default), points whose local design is singular or supported by
        fewer distinct samples than basis terms are returned as NaN. If False,
        the pseudo-inverse is used and no point is rejected.
    return_feasibility : bool, optional
        If True, also return the boolean feasibility flags.

    Returns
    -------
    y_new : np.ndarray of shape (len(x_new),)
        The fitted values (or derivatives) at `x_new`.
    feasible : np.ndarray of shape (len(x_new),)
        Only when `return_feasibility` is True.
    """
    if x.ndim != 1:
        raise ValueError("x must be a 1D array.")
    if y.ndim != 1:
        raise ValueError("y must be a 1D array.")
    if w.ndim != 1:
        raise ValueError("w must be a 1D array.")
    if x.size != y.size:
        raise ValueError("y must have the same size as x.")
    if x.size != w.size:
        raise ValueError("w must have the same size as x.")
    if x_new.ndim != 1:
        raise ValueError("x_new must be a 1D array.")
    if x.size == 0:
        raise ValueError("x must not be empty.")
    if x_new.size == 0:
        raise ValueError("x_new must not be empty.")
    bandwidth = _check_bandwidth(bandwidth, "bandwidth")
    kernel = resolve_kernel(kernel_type)
    _check_degree(degree, [deriv])
    if np.isnan(x).any():
        raise ValueError("Input array x contains NaN values.")
    if np.isnan(y).any():
        raise ValueError("Input array y contains NaN values.")
    if np.isnan(w).any():
        raise ValueError("Input array w contains NaN values.")
    if np.isnan(x_new).any():
        raise ValueError("Input array x_new contains NaN values.")
    if np.any(w < 0):
        raise ValueError("All weights in w must be non-negative.")

    dtype = _working_dtype(x, x_new)
    x = x.astype(dtype, copy=False)
    y = y.astype(dtype, copy=False)
    w = w.astype(dtype, copy=False)
    x_new = x_new.astype(dtype, copy=False)

    group_order, group_starts = _group_structure(x)
    powers = np.arange(degree + 1)
    chunk_size = max(1, _MAX_CHUNK_ELEMENTS // (x.size * (degree + 1)))

    y_new = np.empty(x_new.size, dtype=dtype)
    feasible = np.empty(x_new.size, dtype=bool)
    for start in range(0, x_new.size, chunk_size):
        stop = min(start + chunk_size, x_new.size)
        offsets = (x[None, :] - x_new[start:stop, None]) / dtype(bandwidth)
        weights = kernel(offsets) * w[None, :]
        basis = offsets[..., None] ** powers
        coef, feasible[start:stop] = _solve_local_systems(
            basis, weights, y, group_order, group_starts, check_feasibility, return_feasibility
        )
        y_new[start:stop] = coef[:, deriv]

    if deriv > 0:
        y_new *= math.factorial(deriv) / bandwidth**deriv
    if return_feasibility:
        return y_new, feasible
    return y_new


def _exponents_2d(degree: int) -> List[Tuple[int, int]]:
    """Monomial exponents (r, s) with r + s <= degree, ordered by total degree."""
    return [(total - s, s) for total in range(degree + 1) for s in range(total + 1)]


def polyfit2d(
    x_grid: np.ndarray,
    y: np.ndarray,
    w: np.ndarray,
    new_grid: np.ndarray,
    bandwidth1: float,
    bandwidth2: float,
    kernel_type: KernelLike = KernelType.EPANECHNIKOV,
    degree: int = 1,
    frame: Literal["standard", "rotated"] = "standard",
    deriv1: int = 0,
    deriv2: int = 0,
    check_feasibility: bool = True,
    return_feasibility: bool = False,
) -> Union[np.ndarray, Tuple[np.ndarray, np.ndarray]]:
    """Perform local polynomial regression on 2D data.

    The offsets of the data points from a target are first scaled by the
    bandwidths, ``a = (x1 - x01) / bandwidth1`` and ``b = (x2 - x02) / bandwidth2``.
    In the ``"standard"`` frame the weights are ``K(a) K(b) w`` and the basis is
    the set of monomials in ``(a, b)`` of total degree at most `degree`. In the
    ``"rotated"`` frame both the weights and the basis use the coordinates
    rotated by 45 degrees, ``u = (a + b) / sqrt(2)`` and ``v = (b - a) / sqrt(2)``,
    which keeps the kernel footprint aligned with the diagonal of a rectangular
    support.

    Parameters
    ----------
    x_grid : np.ndarray of shape (n, 2)
        Coordinates of the data points.
    y : np.ndarray of shape (n,)
        Values at the data points.
    w : np.ndarray of shape (n,)
        Non-negative weights for the data points.
    new_grid : np.ndarray of shape (m, 2)
        Coordinates where the local polynomial should be evaluated.
    bandwidth1 : float
        The bandwidth in the first dimension.
    bandwidth2 : float
        The bandwidth in the second dimension.
    kernel_type : KernelType, str, Kernel or callable, optional
        The kernel used to weight the data points. Default is KernelType.EPANECHNIKOV.
    degree : {0, 1, 2}, optional
        The total degree of the local polynomial. Default is 1.
    frame : {"standard", "rotated"}, optional
        Coordinate frame of the local fit. Default is "standard".
    deriv1 : int, optional
        Order of the derivative in the first dimension ("standard" frame only).
    deriv2 : int, optional
        Order of the derivative in the second dimension ("standard" frame only).
    check_feasibility : bool, optional
        If True (default), infeasible target points are returned as NaN.
    return_feasibility : bool, optional
        If True, also return the boolean feasibility flags.

    Returns
    -------
    y_new : np.ndarray of shape (m,)
        The fitted values (or derivatives) at `new_grid`.
    feasible : np.ndarray of shape (m,)
        Only when `return_feasibility` is True.
    """
    if x_grid.ndim != 2 or x_grid.shape[1] != 2:
        raise ValueError("x_grid must be a 2D array with shape (n, 2).")
    if new_grid.ndim != 2 or new_grid.shape[1] != 2:
        raise ValueError("new_grid must be a 2D array with shape (m, 2).")
    if y.ndim != 1:
        raise ValueError("y must be a 1D array.")
    if w.ndim != 1:
        raise ValueError("w must be a 1D array.")
    if x_grid.shape[0] != y.size:
        raise ValueError("y must have the same size as the first dimension of x_grid.")
    if y.size != w.size:
        raise ValueError("w must have the same size as y.")
    if y.size == 0:
        raise ValueError("x_grid must not be empty.")
    if new_grid.shape[0] == 0:
        raise ValueError("new_grid must not be empty.")
    bandwidth1 = _check_bandwidth(bandwidth1, "bandwidth1")
    bandwidth2 = _check_bandwidth(bandwidth2, "bandwidth2")
    kernel = resolve_kernel(kernel_type)
    if frame not in ["standard", "rotated"]:
        raise ValueError(f"frame must be one of ['standard', 'rotated'], got {frame}")
    _check_degree(degree, [deriv1, deriv2], max_degree=2)
    if frame == "rotated" and (deriv1 > 0 or deriv2 > 0):
        raise ValueError("Derivatives are only available in the 'standard' frame.")
    if np.isnan(x_grid).any():
        raise ValueError("Input array x_grid contains NaN values.")
    if np.isnan(y).any():
        raise ValueError("Input array y contains NaN values.")
    if np.isnan(w).any():
        raise ValueError("Input array w contains NaN values.")
    if np.isnan(new_grid).any():
        raise ValueError("Input array new_grid contains NaN values.")
    if np.any(w < 0):
        raise ValueError("All weights in w must be non-negative.")

    dtype = _working_dtype(x_grid, new_grid)
    x_grid = x_grid.astype(dtype, copy=False)
    y = y.astype(dtype, copy=False)
    w = w.astype(dtype, copy=False)
    new_grid = new_grid.astype(dtype, copy=False)

    group_order, group_starts = _group_structure(x_grid)
    exponents = _exponents_2d(degree)
    r_pow = np.array([e[0] for e in exponents])
    s_pow = np.array([e[1] for e in exponents])
    chunk_size = max(1, _MAX_CHUNK_ELEMENTS // (y.size * len(exponents)))
    inv_sqrt2 = dtype(1.0 / math.sqrt(2.0))

    y_new = np.empty(new_grid.shape[0], dtype=dtype)
    feasible = np.empty(new_grid.shape[0], dtype=bool)
    for start in range(0, new_grid.shape[0], chunk_size):
        stop = min(start + chunk_size, new_grid.shape[0])
        a = (x_grid[None, :, 0] - new_grid[start:stop, 0, None]) / dtype(bandwidth1)
        b = (x_grid[None, :, 1] - new_grid[start:stop, 1, None]) / dtype(bandwidth2)
        if frame == "rotated":
            a, b = (a + b) * inv_sqrt2, (b - a) * inv_sqrt2
        weights = kernel(a) * kernel(b) * w[None, :]
        basis = a[..., None] ** r_pow * b[..., None] ** s_pow
        coef, feasible[start:stop] = _solve_local_systems(
            basis, weights, y, group_order, group_starts, check_feasibility, return_feasibility
        )
        y_new[start:stop] = coef[:, exponents.index((deriv1, deriv2))]

    if deriv1 > 0 or deriv2 > 0:
        y_new *= math.factorial(deriv1) * math.factorial(deriv2) / (bandwidth1**deriv1 * bandwidth2**deriv2)
    if return_feasibility:
        return y_new, feasible
    return y_new


def mesh_points(x1: np.ndarray, x2: np.ndarray) -> np.ndarray:
    """Return the (len(x1) * len(x2), 2) points of the mesh x1 x x2 in row-major order."""
    g1, g2 = np.meshgrid(x1, x2, indexing="ij")
    return np.column_stack([g1.ravel(), g2.ravel()])

