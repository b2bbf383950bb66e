"""Additive Data Generator"""

# Authors: Ching-Chuan Chen
# SPDX-License-Identifier: MIT

from typing import Callable, List, Optional, Tuple

import numpy as np
import scipy.special


class AdditiveDataGenerator(object):
    """
    AdditiveDataGenerator
    =====================
    A class for generating samples of an additive regression model with dependent predictors on [0, 1]^d.

    The predictors are obtained by mapping an equicorrelated standard Gaussian vector through the standard
    normal distribution function, and the response is ``Y = sum_j f_j(X_j) + e`` with ``e ~ N(0, error_sd^2)``.

    parameters
    ----------
    component_funcs : list of Callable[[np.ndarray], np.ndarray]
        The additive component functions f_1, ..., f_d. The length of the list determines the number of predictors.
    correlation : float, optional, default=0.0
        The correlation between every pair of the underlying Gaussian variables. It must lie in (-1 / (d - 1), 1)
        so that the correlation matrix is positive definite.
    error_sd : float, optional, default=0.1
        The standard deviation of the error term added to the response.
    """

    def __init__(
        self,
        component_funcs: List[Callable[[np.ndarray], np.ndarray]],
        correlation: float = 0.0,
        error_sd: float = 0.1,
    ):
        if len(component_funcs) == 0:
            raise ValueError("component_funcs must contain at least one function.")
        if not all(callable(func) for func in component_funcs):
            raise ValueError("Every element of component_funcs must be callable.")
        d = len(component_funcs)
        lower = -1.0 / (d - 1) if d > 1 else -1.0
        if not (lower < correlation < 1):
            raise ValueError(f"correlation must be between {lower} and 1 (exclusive).")
        if error_sd < 0:
            raise ValueError("error_sd must be non-negative.")
        self.component_funcs: List[Callable[[np.ndarray], np.ndarray]] = list(component_funcs)
        self.correlation: float = float(correlation)
        self.error_sd: float = float(error_sd)

    @property
    def num_components(self) -> int:
        return len(self.component_funcs)

    def get_correlation_matrix(self) -> np.ndarray:
        """Get the correlation matrix of the underlying Gaussian variables.

        Returns
        -------
        corr_mat : array_like of shape (d, d)
            Ones on the diagonal and `correlation` elsewhere.
        """
        d = self.num_components
        return np.full((d, d), self.correlation) + (1.0 - self.correlation) * np.eye(d)

    def true_components(self, x: np.ndarray) -> np.ndarray:
        """Evaluate the component functions on an estimation grid.

        Parameters
        ----------
        x : array_like of shape (N,) or (N, d)
            Grid points. A 1D grid is shared by every component.

        Returns
        -------
        f : array_like of shape (N, d)
            Column j holds f_j evaluated at the grid of component j.
        """
        x = np.asarray(x, dtype=np.float64)
        if x.ndim == 1:
            x = np.tile(x[:, None], (1, self.num_components))
        if x.ndim != 2 or x.shape[1] != self.num_components:
            raise ValueError(f"x must be a 1D array or a 2D array with {self.num_components} columns.")
        return np.column_stack([func(x[:, j]) for j, func in enumerate(self.component_funcs)])

    def generate(self, n: int, seed: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
        """Generate samples of the additive model.

        Parameters
        ----------
        n : int
            The number of samples to generate. It must be a positive integer.
        seed : Optional[int], optional
            Random seed for reproducibility. If None, the random number generator will not be seeded.

        Returns
        -------
        X : array_like of shape (n, d)
            The predictors, each lying in [0, 1].
        Y : array_like of shape (n,)
            The responses.
        """
        if not isinstance(n, int) or n <= 0:
            raise ValueError("n must be a positive integer.")
        rng = np.random.default_rng(seed)
        d = self.num_components
        z = rng.multivariate_normal(np.zeros(d), self.get_correlation_matrix(), n)
        X = scipy.special.ndtr(z)
        Y = self.true_components(X).sum(axis=1) + rng.normal(0, self.error_sd, n)
        return X, Y
