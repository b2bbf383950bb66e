"""Scikit-learn style estimator for additive models fitted by smooth backfitting."""

# Authors: Ching-Chuan Chen
# SPDX-License-Identifier: MIT

import time
from typing import List, Literal, Optional, Tuple, Union

import numpy as np
from sklearn.base import BaseEstimator, RegressorMixin
from sklearn.utils.validation import check_array, check_is_fitted

from sbfit.additive.backfitting import BackfittingParams, smooth_backfit
from sbfit.interp import interp1d
from sbfit.smooth import KernelType, resolve_kernel
from sbfit.smooth.kernel import KernelLike
from sbfit.utils import check_bandwidth_vector, check_support, default_bandwidth


class SmoothBackfitting(BaseEstimator, RegressorMixin):
    """
    Nonparametric additive regression fitted by smooth backfitting.

    The model is ``E[y | X] = intercept_ + sum_j f_j(X[:, j])``. The components
    ``f_j`` are estimated on a regular grid per feature and evaluated at new
    points by interpolation.

    Parameters
    ----------
    bandwidth : float or array-like of shape (n_features,), optional
        Bandwidths of the components. If None, the rule of thumb
        ``0.25 * n ** (-1 / 5) * (support width)`` is used.
    kernel_type : KernelType, str, Kernel or callable, default=KernelType.EPANECHNIKOV
        Smoothing kernel.
    support : array-like of shape (n_features, 2), optional
        Estimation support of every component. Defaults to [0, 1].
    num_points_reg_grid : int, default=101
        Number of points of the regular estimation grid of every component.
    interp_kind : {"linear", "spline"}, default="linear"
        Interpolation method used for prediction.
    params : BackfittingParams, default=BackfittingParams()
        Stopping rules and density estimation settings.
    verbose : bool, default=False
        Whether to log the backfitting progress at INFO level.

    Attributes
    ----------
    n_features_in_ : int
        Number of features seen during fit.
    support_ : np.ndarray of shape (n_features, 2)
        Support used during fit.
    bandwidth_ : np.ndarray of shape (n_features,)
        Bandwidths used during fit.
    reg_grid_ : np.ndarray of shape (num_points_reg_grid, n_features)
        Estimation grid; column j belongs to feature j.
    components_ : np.ndarray of shape (num_points_reg_grid, n_features)
        Component estimates on `reg_grid_`.
    nw_ : np.ndarray of shape (num_points_reg_grid, n_features)
        Nadaraya-Watson marginal regression estimates on `reg_grid_`.
    intercept_ : float
        Mean response.
    n_iter_ : int
        Number of backfitting sweeps.
    stop_reason_ : str
        Stopping rule that ended the iteration.
    result_ : SBFResult
        Full backfitting output, including the density estimates.
    fitted_y_ : np.ndarray of shape (n_samples,)
        Fitted values at the training inputs.
    elapsed_time_ : float
        Elapsed time of the fit in seconds.

    See Also
    --------
    smooth_backfit : Functional interface of the fitting algorithm.
    """

    def __init__(
        self,
        bandwidth: Optional[Union[float, np.ndarray]] = None,
        kernel_type: KernelLike = KernelType.EPANECHNIKOV,
        support: Optional[np.ndarray] = None,
        num_points_reg_grid: int = 101,
        interp_kind: Literal["linear", "spline"] = "linear",
        params: BackfittingParams = BackfittingParams(),
        verbose: bool = False,
    ) -> None:
        resolve_kernel(kernel_type)
        if num_points_reg_grid is None or isinstance(num_points_reg_grid, bool) or not isinstance(num_points_reg_grid, int):
            raise TypeError("Number of points for estimation grid, num_points_reg_grid, should be an integer.")
        if num_points_reg_grid < 2:
            raise ValueError("Number of points for estimation grid, num_points_reg_grid, should be at least 2.")
        if interp_kind not in ["linear", "spline"]:
            raise ValueError(f"interp_kind must be one of ['linear', 'spline'], got {interp_kind}")
        if not isinstance(params, BackfittingParams):
            raise ValueError("params must be an instance of BackfittingParams.")
        if not isinstance(verbose, bool):
            raise ValueError("verbose must be a boolean value.")

        self.bandwidth = bandwidth
        self.kernel_type = kernel_type
        self.support = support
        self.num_points_reg_grid = num_points_reg_grid
        self.interp_kind = interp_kind
        self.params = params
        self.verbose = verbose

    def _build_reg_grid(self, reg_grid, d: int) -> np.ndarray:
        if reg_grid is None:
            return np.linspace(self.support_[:, 0], self.support_[:, 1], self.num_points_reg_grid)
        reg_grid = check_array(reg_grid, ensure_2d=False, dtype=np.float64, input_name="reg_grid")
        if reg_grid.ndim == 1:
            reg_grid = np.tile(reg_grid[:, None], (1, d))
        if reg_grid.shape[1] != d:
            raise ValueError(f"reg_grid must have {d} columns, got {reg_grid.shape[1]}.")
        if reg_grid.shape[0] < 2:
            raise ValueError("reg_grid must have at least 2 points")
        return reg_grid

    def fit(
        self,
        X: Union[np.ndarray, List[List[float]]],
        y: Union[np.ndarray, List[float]],
        reg_grid: Optional[np.ndarray] = None,
    ) -> "SmoothBackfitting":
        """Fit the additive components.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Training inputs.
        y : array-like of shape (n_samples,)
            Training targets.
        reg_grid : array-like of shape (m,) or (m, n_features), optional
            Estimation grid. A 1D grid is shared by every feature. If None, a
            regular grid of `num_points_reg_grid` points spans the support.

        Returns
        -------
        SmoothBackfitting
            Fitted estimator (self).
        """
        start_time = time.time_ns()
        X = check_array(X, ensure_2d=True, dtype=np.float64)
        n, d = X.shape
        self.n_features_in_ = d
        self.support_ = check_support(self.support, d)
        self.bandwidth_ = check_bandwidth_vector(
            default_bandwidth(n, self.support_) if self.bandwidth is None else self.bandwidth, d
        )
        self.reg_grid_ = self._build_reg_grid(reg_grid, d)

        self.result_ = smooth_backfit(
            y,
            self.reg_grid_,
            X,
            h=self.bandwidth_,
            kernel=self.kernel_type,
            supp=self.support_,
            params=self.params,
            verbose=self.verbose,
        )
        self.components_ = self.result_.sbf_fit
        self.nw_ = self.result_.nw
        self.intercept_ = self.result_.mean_response
        self.n_iter_ = self.result_.n_iter
        self.stop_reason_ = self.result_.stop_reason
        self.fitted_y_ = self.predict(X)
        self.elapsed_time_ = (time.time_ns() - start_time) / 1e9
        return self

    def predict_components(self, X: Union[np.ndarray, List[List[float]]]) -> np.ndarray:
        """Evaluate every fitted component at new inputs.

        Parameters
        ----------
        X : array-like of shape (m, n_features)
            Query points. Values outside the estimation grid take the value of
            the component at the nearest grid end.

        Returns
        -------
        np.ndarray of shape (m, n_features)
            Column j holds the contribution of feature j.
        """
        check_is_fitted(self, ["components_", "reg_grid_", "intercept_"])
        X = check_array(X, ensure_2d=True, dtype=np.float64)
        if X.shape[1] != self.n_features_in_:
            raise ValueError(f"X must have {self.n_features_in_} features, got {X.shape[1]}")
        contributions = np.empty(X.shape, dtype=np.float64)
        for j in range(self.n_features_in_):
            contributions[:, j] = interp1d(self.reg_grid_[:, j], self.components_[:, j], X[:, j], self.interp_kind)
        return contributions

    def predict(self, X: Union[np.ndarray, List[List[float]]]) -> np.ndarray:
        """Predict responses at new inputs.

        Parameters
        ----------
        X : array-like of shape (m, n_features)
            Query points.

        Returns
        -------
        np.ndarray of shape (m,)
            ``intercept_`` plus the sum of the component contributions.

        Raises
        ------
        sklearn.exceptions.NotFittedError
            If the model is not fitted.
        """
        return self.intercept_ + self.predict_components(X).sum(axis=1)

    def fitted_values(self) -> np.ndarray:
        """
        Return fitted values at the training inputs.

        Returns
        -------
        np.ndarray of shape (n_samples,)
        """
        check_is_fitted(self, ["components_", "fitted_y_"])
        return self.fitted_y_.copy()

    def get_fitted_grids(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return the estimation grid and the components on it.

        Returns
        -------
        reg_grid : np.ndarray of shape (m, n_features)
            Estimation grid.
        components : np.ndarray of shape (m, n_features)
            Component estimates on `reg_grid`.

        Raises
        ------
        sklearn.exceptions.NotFittedError
            If the model is not fitted.
        """
        check_is_fitted(self, ["components_", "reg_grid_"])
        return self.reg_grid_.copy(), self.components_.copy()
