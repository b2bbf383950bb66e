import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from sbfit.smooth import KernelType, mesh_points, polyfit2d


@pytest.fixture
def mesh():
    grid = np.linspace(0.0, 1.0, 11)
    return grid, mesh_points(grid, grid)


def test_mesh_points_order():
    points = mesh_points(np.array([0.0, 1.0]), np.array([2.0, 3.0, 4.0]))
    assert_allclose(points, [[0, 2], [0, 3], [0, 4], [1, 2], [1, 3], [1, 4]])


@pytest.mark.parametrize("frame", ["standard", "rotated"])
@pytest.mark.parametrize("kernel_type", [KernelType.EPANECHNIKOV, KernelType.GAUSSIAN, KernelType.BIWEIGHT])
def test_polyfit2d_reproduces_linear_surface(mesh, frame, kernel_type):
    _, points = mesh
    y = 1.0 + 2.0 * points[:, 0] - 3.0 * points[:, 1]
    w = np.ones(points.shape[0])
    new_grid = np.array([[0.0, 0.0], [0.25, 0.8], [0.5, 0.5], [1.0, 1.0], [0.93, 0.05]])
    y_new = polyfit2d(points, y, w, new_grid, 0.3, 0.25, kernel_type, degree=1, frame=frame)
    assert_allclose(y_new, 1.0 + 2.0 * new_grid[:, 0] - 3.0 * new_grid[:, 1], atol=1e-9)


def test_polyfit2d_rotated_and_standard_agree_on_linear_surface(mesh):
    _, points = mesh
    rng = np.random.default_rng(11)
    y = 0.5 - points[:, 0] + 4.0 * points[:, 1]
    w = rng.uniform(0.5, 1.5, points.shape[0])
    new_grid = rng.uniform(0, 1, (20, 2))
    standard = polyfit2d(points, y, w, new_grid, 0.3, 0.3, frame="standard")
    rotated = polyfit2d(points, y, w, new_grid, 0.3, 0.3, frame="rotated")
    assert_allclose(standard, rotated, atol=1e-9)


@pytest.mark.parametrize("frame", ["standard", "rotated"])
def test_polyfit2d_reproduces_quadratic_surface(mesh, frame):
    _, points = mesh
    y = points[:, 0] ** 2 - points[:, 0] * points[:, 1] + 2.0 * points[:, 1] ** 2
    w = np.ones(points.shape[0])
    new_grid = np.array([[0.1, 0.9], [0.5, 0.5], [0.7, 0.2]])
    y_new = polyfit2d(points, y, w, new_grid, 0.35, 0.35, degree=2, frame=frame)
    expected = new_grid[:, 0] ** 2 - new_grid[:, 0] * new_grid[:, 1] + 2.0 * new_grid[:, 1] ** 2
    assert_allclose(y_new, expected, atol=1e-8)


def test_polyfit2d_partial_derivatives(mesh):
    _, points = mesh
    y = 1.0 + 2.0 * points[:, 0] + 3.0 * points[:, 1] + points[:, 0] * points[:, 1]
    w = np.ones(points.shape[0])
    new_grid = np.array([[0.3, 0.6], [0.5, 0.5]])
    d1 = polyfit2d(points, y, w, new_grid, 0.35, 0.35, degree=2, deriv1=1)
    d2 = polyfit2d(points, y, w, new_grid, 0.35, 0.35, degree=2, deriv2=1)
    assert_allclose(d1, 2.0 + new_grid[:, 1], atol=1e-7)
    assert_allclose(d2, 3.0 + new_grid[:, 0], atol=1e-7)


def test_polyfit2d_local_constant_is_weighted_mean(mesh):
    _, points = mesh
    y = np.arange(points.shape[0], dtype=np.float64)
    w = np.ones(points.shape[0])
    new_grid = np.array([[0.5, 0.5]])
    h1, h2 = 0.15, 0.25
    a = (points[:, 0] - 0.5) / h1
    b = (points[:, 1] - 0.5) / h2
    k = np.where((np.abs(a) <= 1) & (np.abs(b) <= 1), 0.5625 * (1 - a**2) * (1 - b**2), 0.0)
    assert_allclose(polyfit2d(points, y, w, new_grid, h1, h2, degree=0), [(k @ y) / k.sum()], rtol=1e-10)


def test_polyfit2d_feasibility_flags():
    points = np.array([[0.0, 0.0], [0.05, 0.0], [0.0, 0.05], [1.0, 1.0]])
    y = points.sum(axis=1)
    w = np.ones(4)
    new_grid = np.array([[0.02, 0.02], [0.5, 0.5], [1.0, 1.0]])
    y_new, feasible = polyfit2d(points, y, w, new_grid, 0.1, 0.1, return_feasibility=True)
    assert_array_equal(feasible, [True, False, False])
    assert_allclose(y_new[0], 0.04, atol=1e-10)
    assert np.all(np.isnan(y_new[1:]))


def test_polyfit2d_collinear_points_are_infeasible():
    points = np.column_stack([np.linspace(0, 1, 11), np.linspace(0, 1, 11)])
    y = points[:, 0]
    w = np.ones(11)
    y_new, feasible = polyfit2d(points, y, w, np.array([[0.5, 0.5]]), 0.3, 0.3, return_feasibility=True)
    assert not feasible[0]
    assert np.isnan(y_new[0])


def test_polyfit2d_bad_inputs(mesh):
    _, points = mesh
    y = points[:, 0].copy()
    w = np.ones(points.shape[0])
    with pytest.raises(ValueError, match="x_grid must be a 2D array"):
        polyfit2d(points[:, 0], y, w, points, 0.1, 0.1)
    with pytest.raises(ValueError, match="new_grid must be a 2D array"):
        polyfit2d(points, y, w, points[:, :1], 0.1, 0.1)
    with pytest.raises(ValueError, match="y must have the same size"):
        polyfit2d(points, y[:-1], w, points, 0.1, 0.1)
    with pytest.raises(ValueError, match="bandwidth2, should be positive"):
        polyfit2d(points, y, w, points, 0.1, 0.0)
    with pytest.raises(ValueError, match="frame must be one of"):
        polyfit2d(points, y, w, points, 0.1, 0.1, frame="polar")
    with pytest.raises(ValueError, match="at most 2"):
        polyfit2d(points, y, w, points, 0.1, 0.1, degree=3)
    with pytest.raises(ValueError, match="only available in the 'standard' frame"):
        polyfit2d(points, y, w, points, 0.3, 0.3, frame="rotated", deriv1=1)
    with pytest.raises(ValueError, match="non-negative"):
        polyfit2d(points, y, -w, points, 0.3, 0.3)
