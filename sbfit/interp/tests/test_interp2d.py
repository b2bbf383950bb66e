import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from sbfit.interp import interp2d, interp2d_points


@pytest.fixture
def grid_values():
    x = np.array([0.0, 0.25, 0.5, 1.0])
    y = np.array([-1.0, 0.0, 2.0])
    rng = np.random.default_rng(5)
    v = rng.normal(size=(x.size, y.size))
    return x, y, v


def test_interp2d_points_exact_at_nodes(grid_values):
    x, y, v = grid_values
    xx, yy = np.meshgrid(x, y, indexing="ij")
    assert_array_equal(interp2d_points(x, y, v, xx.ravel(), yy.ravel()), v.ravel())


def test_interp2d_exact_at_nodes(grid_values):
    x, y, v = grid_values
    assert_array_equal(interp2d(x, y, v, x, y), v)


def test_interp2d_points_reproduces_bilinear_function():
    x = np.linspace(0, 1, 5)
    y = np.linspace(0, 2, 7)
    v = 1.0 + 2.0 * x[:, None] - y[None, :] + 3.0 * x[:, None] * y[None, :]
    rng = np.random.default_rng(8)
    x_new = rng.uniform(0, 1, 30)
    y_new = rng.uniform(0, 2, 30)
    assert_allclose(interp2d_points(x, y, v, x_new, y_new), 1.0 + 2.0 * x_new - y_new + 3.0 * x_new * y_new, atol=1e-12)


def test_interp2d_matches_pointwise_interpolation(grid_values):
    x, y, v = grid_values
    x_new = np.array([0.1, 0.6, 0.9])
    y_new = np.array([-0.5, 1.0])
    mesh = interp2d(x, y, v, x_new, y_new)
    assert mesh.shape == (3, 2)
    xx, yy = np.meshgrid(x_new, y_new, indexing="ij")
    assert_allclose(mesh.ravel(), interp2d_points(x, y, v, xx.ravel(), yy.ravel()))


def test_interp2d_points_clamps_outside_grid(grid_values):
    x, y, v = grid_values
    x_new = np.array([-5.0, 2.0, 0.25, -1.0])
    y_new = np.array([-3.0, 5.0, 10.0, 0.0])
    assert_allclose(interp2d_points(x, y, v, x_new, y_new), [v[0, 0], v[-1, -1], v[1, -1], v[0, 1]])


def test_interp2d_unsorted_grid(grid_values):
    x, y, v = grid_values
    order = np.array([2, 0, 3, 1])
    x_new = np.array([0.1, 0.7])
    y_new = np.array([-0.2, 1.5])
    assert_allclose(interp2d(x[order], y, v[order], x_new, y_new), interp2d(x, y, v, x_new, y_new))


def test_interp2d_bad_inputs(grid_values):
    x, y, v = grid_values
    with pytest.raises(ValueError, match="first dimension of v"):
        interp2d(x[:-1], y, v, x, y)
    with pytest.raises(ValueError, match="second dimension of v"):
        interp2d(x, y[:-1], v, x, y)
    with pytest.raises(ValueError, match="must be 1D arrays"):
        interp2d(x, y, v.ravel(), x, y)
    with pytest.raises(ValueError, match="contains NaN"):
        interp2d(x, y, np.full_like(v, np.nan), x, y)
    with pytest.raises(ValueError, match="same size as y_new"):
        interp2d_points(x, y, v, x, y)
