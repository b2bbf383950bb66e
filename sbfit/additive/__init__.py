"""Additive models fitted by smooth backfitting."""

# Authors: Ching-Chuan Chen
# SPDX-License-Identifier: MIT

from sbfit.additive.backfitting import BackfittingParams, SBFResult, smooth_backfit
from sbfit.additive.nw_regression import nw_marginal_regression
from sbfit.additive.sbf_model import SmoothBackfitting

__all__ = ["BackfittingParams", "SBFResult", "SmoothBackfitting", "nw_marginal_regression", "smooth_backfit"]
