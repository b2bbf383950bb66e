"""Kernel types for local regression and density estimation in sbfit."""

# Authors: Ching-Chuan Chen
# SPDX-License-Identifier: MIT

from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Callable, Union

import numpy as np


class KernelType(Enum):
    """Enum for kernel types used in local regression."""

    GAUSSIAN = 0
    LOGISTIC = 1
    SIGMOID = 2
    RECTANGULAR = 100  # Uniform Kernel
    TRIANGULAR = 101
    EPANECHNIKOV = 102
    BIWEIGHT = 103  # Quartic Kernel
    TRIWEIGHT = 104
    TRICUBE = 105
    COSINE = 106

    @property
    def is_compact(self) -> bool:
        """Whether the kernel vanishes outside [-1, 1]."""
        return self.value >= 100

    def __repr__(self):
        return f"KernelType.{self.name}"

    def __str__(self):
        return self.name


def calculate_kernel_value(u: Union[float, np.ndarray], kernel_type: KernelType) -> np.ndarray:
    """Evaluate a kernel at the rescaled distances `u`.

    Parameters
    ----------
    u : float or np.ndarray
        Rescaled distances, i.e. (x - x0) / bandwidth.
    kernel_type : KernelType
        Kernel to evaluate.

    Returns
    -------
    np.ndarray
        Kernel values with the same shape as `u`. The dtype follows `u` for
        float32/float64 input and is float64 otherwise.
    """
    u = np.asarray(u)
    if u.dtype not in (np.float32, np.float64):
        u = u.astype(np.float64)
    if kernel_type == KernelType.GAUSSIAN:
        return np.exp(-0.5 * u * u) / np.sqrt(2.0 * np.pi).astype(u.dtype)
    if kernel_type == KernelType.LOGISTIC:
        return 1.0 / (np.exp(u) + 2.0 + np.exp(-u))
    if kernel_type == KernelType.SIGMOID:
        return (2.0 / np.pi) / (np.exp(u) + np.exp(-u))

    abs_u = np.abs(u)
    inside = abs_u <= 1.0
    if kernel_type == KernelType.RECTANGULAR:
        value = np.full_like(u, 0.5)
    elif kernel_type == KernelType.TRIANGULAR:
        value = 1.0 - abs_u
    elif kernel_type == KernelType.EPANECHNIKOV:
        value = 0.75 * (1.0 - u * u)
    elif kernel_type == KernelType.BIWEIGHT:
        value = (15.0 / 16.0) * (1.0 - u * u) ** 2
    elif kernel_type == KernelType.TRIWEIGHT:
        value = (35.0 / 32.0) * (1.0 - u * u) ** 3
    elif kernel_type == KernelType.TRICUBE:
        value = (70.0 / 81.0) * (1.0 - abs_u**3) ** 3
    elif kernel_type == KernelType.COSINE:
        value = (np.pi / 4.0) * np.cos(0.5 * np.pi * u)
    else:
        raise ValueError(f"kernel must be one of {list(KernelType)}.")
    return np.where(inside, value, 0.0).astype(u.dtype, copy=False)


@dataclass(frozen=True)
class Kernel:
    """A weighting kernel resolved once per call.

    Attributes
    ----------
    name : str
        Display name of the kernel.
    func : Callable[[np.ndarray], np.ndarray]
        Pointwise kernel function of the rescaled distance.
    compact : bool, default=True
        If True, weights outside [-1, 1] are forced to zero.
    """

    name: str
    func: Callable[[np.ndarray], np.ndarray]
    compact: bool = True

    def __call__(self, u: np.ndarray) -> np.ndarray:
        u = np.asarray(u)
        value = np.asarray(self.func(u), dtype=u.dtype if u.dtype in (np.float32, np.float64) else np.float64)
        if value.shape != u.shape:
            value = np.broadcast_to(value, u.shape).copy()
        if self.compact:
            value = np.where(np.abs(u) <= 1.0, value, 0.0).astype(value.dtype, copy=False)
        return value


KernelLike = Union[KernelType, str, Kernel, Callable[[np.ndarray], np.ndarray]]


def resolve_kernel(kernel: KernelLike) -> Kernel:
    """Resolve a kernel specification into a :class:`Kernel`.

    Parameters
    ----------
    kernel : KernelType, str, Kernel or callable
        A member of :class:`KernelType`, its case-insensitive name, an already
        resolved :class:`Kernel`, or a callable mapping rescaled distances to
        weights. Plain callables are treated as compact on [-1, 1].

    Returns
    -------
    Kernel
        The resolved kernel.

    Raises
    ------
    ValueError
        If the kernel is unknown or a callable returns negative or non-finite
        weights on [-1, 1].
    """
    if isinstance(kernel, Kernel):
        return kernel
    if isinstance(kernel, KernelType):
        return Kernel(str(kernel), partial(calculate_kernel_value, kernel_type=kernel), kernel.is_compact)
    if isinstance(kernel, str):
        try:
            kernel_type = KernelType[kernel.upper()]
        except KeyError:
            raise ValueError(f"kernel must be one of {list(KernelType)}.") from None
        return resolve_kernel(kernel_type)
    if callable(kernel):
        resolved = Kernel(getattr(kernel, "__name__", "custom"), kernel, True)
        probe = resolved(np.linspace(-1.0, 1.0, 201))
        if not np.all(np.isfinite(probe)) or np.any(probe < 0):
            raise ValueError("Kernel function must return non-negative finite weights on [-1, 1].")
        return resolved
    raise ValueError(f"kernel must be one of {list(KernelType)}, a Kernel or a callable.")
