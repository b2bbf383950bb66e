"""Smooth utilities for sbfit."""

# Authors: Ching-Chuan Chen
# SPDX-License-Identifier: MIT

from sbfit.smooth.kernel import Kernel, KernelType, calculate_kernel_value, resolve_kernel
from sbfit.smooth.polyfit import mesh_points, polyfit1d, polyfit2d

__all__ = [
    "Kernel",
    "KernelType",
    "calculate_kernel_value",
    "mesh_points",
    "polyfit1d",
    "polyfit2d",
    "resolve_kernel",
]
