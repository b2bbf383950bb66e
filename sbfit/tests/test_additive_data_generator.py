import numpy as np
import pytest
from numpy.testing import assert_allclose

from sbfit.additive_data_generator import AdditiveDataGenerator


def test_additive_data_generator_happy_path():
    funcs = [lambda x: 2.0 * x, lambda x: np.sin(np.pi * x), lambda x: x**2]
    generator = AdditiveDataGenerator(funcs, correlation=0.3, error_sd=0.0)
    X, Y = generator.generate(50, 100)

    assert generator.num_components == 3
    assert X.shape == (50, 3)
    assert Y.shape == (50,)
    assert np.all((X >= 0) & (X <= 1))
    assert_allclose(Y, generator.true_components(X).sum(axis=1))


def test_additive_data_generator_is_reproducible():
    generator = AdditiveDataGenerator([np.sin, np.cos], correlation=0.5)
    X1, Y1 = generator.generate(30, seed=7)
    X2, Y2 = generator.generate(30, seed=7)
    assert_allclose(X1, X2)
    assert_allclose(Y1, Y2)


def test_additive_data_generator_dependence():
    generator = AdditiveDataGenerator([np.sin, np.cos], correlation=0.8)
    X, _ = generator.generate(5000, seed=1)
    assert np.corrcoef(X.T)[0, 1] > 0.6
    # uniform marginals
    assert_allclose(X.mean(axis=0), 0.5, atol=0.02)


def test_additive_data_generator_noise_level():
    generator = AdditiveDataGenerator([lambda x: np.zeros_like(x)], error_sd=0.5)
    _, Y = generator.generate(5000, seed=2)
    assert_allclose(np.std(Y), 0.5, rtol=0.05)


def test_get_correlation_matrix():
    generator = AdditiveDataGenerator([np.sin, np.cos, np.tan], correlation=0.25)
    assert_allclose(generator.get_correlation_matrix(), [[1, 0.25, 0.25], [0.25, 1, 0.25], [0.25, 0.25, 1]])


def test_true_components_on_shared_grid():
    generator = AdditiveDataGenerator([lambda x: x, lambda x: -x])
    grid = np.linspace(0, 1, 5)
    assert_allclose(generator.true_components(grid), np.column_stack([grid, -grid]))
    with pytest.raises(ValueError, match="2 columns"):
        generator.true_components(np.zeros((5, 3)))


@pytest.mark.parametrize(
    "funcs, correlation, error_sd, message",
    [
        ([], 0.0, 0.1, "at least one function"),
        ([np.sin, 1.0], 0.0, 0.1, "must be callable"),
        ([np.sin, np.cos], 1.0, 0.1, "correlation must be between"),
        ([np.sin, np.cos, np.tan], -0.5, 0.1, "correlation must be between"),
        ([np.sin], 0.0, -1.0, "error_sd must be non-negative"),
    ],
)
def test_additive_data_generator_bad_inputs(funcs, correlation, error_sd, message):
    with pytest.raises(ValueError, match=message):
        AdditiveDataGenerator(funcs, correlation=correlation, error_sd=error_sd)


def test_generate_bad_sample_size():
    generator = AdditiveDataGenerator([np.sin])
    with pytest.raises(ValueError, match="positive integer"):
        generator.generate(0)
