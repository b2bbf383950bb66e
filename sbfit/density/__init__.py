"""Kernel density estimation on evaluation grids."""

# Authors: Ching-Chuan Chen
# SPDX-License-Identifier: MIT

from sbfit.density.density import JointDensity, MarginalJointDensity, estimate_densities, joint_density, marginal_density

__all__ = ["JointDensity", "MarginalJointDensity", "estimate_densities", "joint_density", "marginal_density"]
