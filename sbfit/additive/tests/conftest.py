import numpy as np
import pytest

from sbfit import AdditiveDataGenerator


def f1(t):
    return 2.0 * (t - 0.5)


def f2(t):
    return np.sin(2.0 * np.pi * t)


@pytest.fixture
def reg_grid():
    grid = np.linspace(0.0, 1.0, 101)
    return np.column_stack([grid, grid])


@pytest.fixture
def correlated_sample():
    generator = AdditiveDataGenerator([f1, f2], correlation=0.6, error_sd=0.1)
    X, Y = generator.generate(100, seed=100)
    return X, Y, generator


@pytest.fixture
def independent_sample():
    rng = np.random.default_rng(21)
    X = rng.uniform(0, 1, (2000, 2))
    Y = 1.0 + f1(X[:, 0]) + f2(X[:, 1]) + rng.normal(0, 0.1, 2000)
    return X, Y
