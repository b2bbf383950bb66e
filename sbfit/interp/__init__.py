"""Interpolation utilities for gridded estimates."""

# Authors: Ching-Chuan Chen
# SPDX-License-Identifier: MIT

from sbfit.interp.interp import interp1d, interp2d, interp2d_points

__all__ = ["interp1d", "interp2d", "interp2d_points"]
