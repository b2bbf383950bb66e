"""Configure global settings and get information about the working environment."""

# Authors: Ching-Chuan Chen
# SPDX-License-Identifier: MIT

# Smooth Backfitting (sbfit) for Python
# =====================================
#
# sbfit is a Python package for nonparametric additive regression models fitted by the smooth
# backfitting algorithm of Mammen, Linton and Nielsen (1999).
#
# It includes local polynomial kernel smoothing, grid interpolation, marginal and joint kernel density
# estimation, Nadaraya-Watson marginal regression and the smooth backfitting iteration.
# This package is designed to leverage scikit-learn's interface and utilities, making it easy to integrate with
# other machine learning workflows.

import importlib as _importlib
import logging

logger = logging.getLogger(__name__)


# PEP0440 compatible formatted version, see:
# https://www.python.org/dev/peps/pep-0440/
#
# Dev branch marker is: 'X.Y.dev' or 'X.Y.devN' where N is an integer.
# 'X.Y.dev0' is the canonical version of 'X.Y.dev'

__version__ = "0.1.0.dev0"

from sbfit.additive_data_generator import AdditiveDataGenerator  # noqa: F401 E402

_submodules = [
    "additive",
    "density",
    "interp",
    "smooth",
    "utils",
]

__all__ = _submodules + ["AdditiveDataGenerator"]


def __dir__():
    return __all__ + ["__version__"]


def __getattr__(name):
    if name in _submodules:
        return _importlib.import_module(f"sbfit.{name}")
    else:
        try:
            return globals()[name]
        except KeyError:
            raise AttributeError(f"Module 'sbfit' has no attribute '{name}'")
