"""Input validation shared by the density, regression and backfitting routines."""

# Authors: Ching-Chuan Chen
# SPDX-License-Identifier: MIT

import warnings
from typing import Optional, Tuple, Union

import numpy as np
from sklearn.utils.validation import check_array


def check_grid_and_sample(x, X) -> Tuple[np.ndarray, np.ndarray]:
    """Validate the evaluation grid `x` (N, d) against the predictor sample `X` (n, d)."""
    x = check_array(x, ensure_2d=True, dtype=np.float64, input_name="x")
    X = check_array(X, ensure_2d=True, dtype=np.float64, input_name="X")
    if x.shape[1] != X.shape[1]:
        raise ValueError(f"x and X must have the same number of columns, got {x.shape[1]} and {X.shape[1]}.")
    if x.shape[0] < 2:
        raise ValueError("x must have at least 2 rows (grid points).")
    return x, X


def check_response(Y, n: int) -> np.ndarray:
    """Validate the response vector against the sample size."""
    Y = check_array(Y, ensure_2d=False, dtype=np.float64, input_name="Y")
    if Y.ndim == 2 and Y.shape[1] == 1:
        Y = Y.ravel()
    if Y.ndim != 1:
        raise ValueError("Y must be a 1D array.")
    if Y.size != n:
        raise ValueError(f"Y must have the same length as the number of rows of X, got {Y.size} and {n}.")
    return Y


def check_support(supp, d: int) -> np.ndarray:
    """Validate a (d, 2) support matrix; None means [0, 1] for every component."""
    if supp is None:
        return np.tile(np.array([0.0, 1.0]), (d, 1))
    supp = check_array(supp, ensure_2d=False, dtype=np.float64, input_name="supp")
    if supp.ndim == 1 and supp.size == 2:
        supp = np.tile(supp, (d, 1))
    if supp.shape != (d, 2):
        raise ValueError(f"supp must have shape ({d}, 2), got {supp.shape}.")
    if np.any(supp[:, 0] >= supp[:, 1]):
        raise ValueError("Each row of supp must satisfy lower < upper.")
    return supp


def default_bandwidth(n: int, supp: np.ndarray) -> np.ndarray:
    """Rule-of-thumb bandwidth 0.25 * n^(-1/5) * (support width) per component."""
    return 0.25 * n ** (-0.2) * (supp[:, 1] - supp[:, 0])


def check_bandwidth_vector(h: Optional[Union[float, np.ndarray]], d: int) -> np.ndarray:
    """Validate a length-d bandwidth vector; a scalar is broadcast to every component."""
    if h is None:
        raise ValueError("Bandwidth, h, should not be None.")
    h = np.atleast_1d(np.asarray(h, dtype=np.float64))
    if h.ndim != 1:
        raise ValueError("Bandwidth, h, should be a 1D array.")
    if h.size == 1 and d > 1:
        h = np.full(d, h[0])
    if h.size != d:
        raise ValueError(f"Bandwidth, h, should have {d} values, got {h.size}.")
    if np.isnan(h).any():
        raise ValueError("Bandwidth, h, should not contain NaN.")
    if np.any(h <= 0) or not np.all(np.isfinite(h)):
        raise ValueError("Bandwidth, h, should be positive and finite.")
    return h


def support_mask(X: np.ndarray, supp: np.ndarray) -> np.ndarray:
    """Rows of `X` lying inside the rectangular support; warns if any is dropped."""
    inside = np.all((X >= supp[:, 0]) & (X <= supp[:, 1]), axis=1)
    num_outside = int(X.shape[0] - inside.sum())
    if num_outside == X.shape[0]:
        raise ValueError("No sample of X lies within the support supp.")
    if num_outside > 0:
        warnings.warn(f"{num_outside} of {X.shape[0]} samples lie outside the support and are ignored.")
    return inside
