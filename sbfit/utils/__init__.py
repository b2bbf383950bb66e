"""Utilities to help with grid-based kernel estimation."""

# Authors: Ching-Chuan Chen
# SPDX-License-Identifier: MIT
from sbfit.utils.utility import linear_binning_1d, linear_binning_2d, trapezoid_weights, trapz
from sbfit.utils.validation import (
    check_bandwidth_vector,
    check_grid_and_sample,
    check_response,
    check_support,
    default_bandwidth,
    support_mask,
)

__all__ = [
    "check_bandwidth_vector",
    "check_grid_and_sample",
    "check_response",
    "check_support",
    "default_bandwidth",
    "linear_binning_1d",
    "linear_binning_2d",
    "support_mask",
    "trapezoid_weights",
    "trapz",
]
