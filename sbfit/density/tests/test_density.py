import warnings

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from sbfit.density import JointDensity, MarginalJointDensity, estimate_densities, joint_density, marginal_density
from sbfit.utils import trapz


@pytest.fixture
def uniform_sample():
    rng = np.random.default_rng(2024)
    X = rng.uniform(0, 1, (2000, 3))
    grid = np.linspace(0, 1, 101)
    x = np.tile(grid[:, None], (1, 3))
    return x, X


def test_marginal_density_shape_nonnegative_and_mass(uniform_sample):
    x, X = uniform_sample
    density = marginal_density(x, X, np.array([0.1, 0.15, 0.2]))
    assert density.shape == (101, 3)
    assert np.all(density >= 0)
    assert_allclose(trapz(density, x[:, 0]), np.ones(3), atol=0.05)
    interior = (x[:, 0] > 0.1) & (x[:, 0] < 0.9)
    assert np.mean(np.abs(density[interior] - 1.0)) < 0.1


def test_marginal_density_mass_with_coarser_grids(uniform_sample):
    _, X = uniform_sample
    for num_points in [11, 31]:
        grid = np.linspace(0, 1, num_points)
        x = np.tile(grid[:, None], (1, 3))
        density = marginal_density(x, X, 0.15)
        assert_allclose(trapz(density, grid), np.ones(3), atol=0.08)


def test_marginal_density_of_non_uniform_sample():
    rng = np.random.default_rng(7)
    X = rng.beta(2.0, 2.0, (4000, 1))
    grid = np.linspace(0, 1, 51)
    density = marginal_density(grid[:, None], X, 0.1)[:, 0]
    truth = 6.0 * grid * (1.0 - grid)
    assert np.all(density >= 0)
    assert np.max(np.abs(density[10:41] - truth[10:41])) < 0.2


def test_marginal_density_custom_support():
    rng = np.random.default_rng(9)
    X = rng.uniform(-2, 2, (1500, 1))
    grid = np.linspace(-2, 2, 41)
    density = marginal_density(grid[:, None], X, 0.5, supp=[[-2, 2]])
    assert_allclose(trapz(density[:, 0], grid), 1.0, atol=0.05)


def test_joint_density_structure(uniform_sample):
    x, X = uniform_sample
    joint = joint_density(x, X, np.array([0.15, 0.15, 0.2]))
    assert isinstance(joint, JointDensity)
    assert len(joint) == 3
    assert sorted(joint) == [(0, 1), (0, 2), (1, 2)]
    for j, k in [(0, 1), (0, 2), (1, 2)]:
        assert joint[j, k].shape == (101, 101)
        assert np.all(joint[j, k] >= 0)
        assert_array_equal(joint[k, j], joint[j, k].T)
    with pytest.raises(KeyError):
        joint[1, 1]

    dense = joint.to_array()
    assert dense.shape == (101, 101, 3, 3)
    for j in range(3):
        assert np.all(dense[:, :, j, j] == 0)
    assert_array_equal(dense[:, :, 2, 0], joint[2, 0])


def test_joint_density_mass_and_level(uniform_sample):
    x, X = uniform_sample
    joint = joint_density(x[:, :2], X[:, :2], 0.15)
    grid = x[:, 0]
    mass = trapz(trapz(joint[0, 1], grid), grid)
    assert_allclose(mass, 1.0, atol=0.05)
    interior = (grid > 0.15) & (grid < 0.85)
    assert abs(np.mean(joint[0, 1][np.ix_(interior, interior)]) - 1.0) < 0.1


def test_joint_density_rows_follow_first_component():
    rng = np.random.default_rng(4)
    X = np.column_stack([rng.beta(2.0, 5.0, 3000), rng.uniform(0, 1, 3000)])
    grid = np.linspace(0, 1, 41)
    x = np.tile(grid[:, None], (1, 2))
    p01 = joint_density(x, X, 0.12)[0, 1]
    row_profile = p01.mean(axis=1)
    col_profile = p01.mean(axis=0)
    assert np.argmax(row_profile) < 15
    assert np.std(col_profile) < np.std(row_profile)


@pytest.mark.parametrize("frame", ["standard", "rotated"])
def test_joint_density_frames_are_close(uniform_sample, frame):
    x, X = uniform_sample
    joint = joint_density(x[:, :2], X[:, :2], 0.2, frame=frame)
    grid = x[:, 0]
    assert_allclose(trapz(trapz(joint[0, 1], grid), grid), 1.0, atol=0.05)


def test_joint_density_parallel_matches_sequential(uniform_sample):
    x, X = uniform_sample
    sequential = joint_density(x, X, 0.2)
    parallel = joint_density(x, X, 0.2, n_jobs=2)
    for key in sequential:
        assert_allclose(parallel[key], sequential[key])


def test_estimate_densities(uniform_sample):
    x, X = uniform_sample
    result = estimate_densities(x, X, 0.2)
    assert isinstance(result, MarginalJointDensity)
    assert_allclose(result.marginal, marginal_density(x, X, 0.2))
    assert_allclose(result.joint[0, 2], joint_density(x, X, 0.2)[0, 2])


def test_densities_ignore_samples_outside_support():
    rng = np.random.default_rng(12)
    X = rng.uniform(0, 1, (500, 2))
    X_out = np.vstack([X, [[1.5, 0.5], [0.5, -0.3]]])
    x = np.tile(np.linspace(0, 1, 21)[:, None], (1, 2))
    with pytest.warns(UserWarning, match="2 of 502 samples lie outside"):
        density = marginal_density(x, X_out, 0.2)
    assert_allclose(density, marginal_density(x, X, 0.2))


def _spike_kernel(u):
    return np.where(np.abs(u) < 0.05, 1.0, 0.0)


def test_infeasible_working_grid_points_are_zero():
    rng = np.random.default_rng(13)
    X = rng.uniform(0, 1, (200, 2))
    x = np.tile(np.linspace(0, 1, 11)[:, None], (1, 2))
    # the kernel window holds a single working node, so no local linear fit exists
    with pytest.warns(UserWarning, match="could not be estimated"):
        density = marginal_density(x, X, 0.2, kernel_type=_spike_kernel)
    assert_array_equal(density, 0.0)
    with pytest.warns(UserWarning, match="could not be estimated"):
        joint = joint_density(x, X, 0.2, kernel_type=_spike_kernel)
    assert_array_equal(joint[0, 1], 0.0)


def test_marginal_density_with_bandwidth_below_default_grid_spacing():
    rng = np.random.default_rng(14)
    X = rng.uniform(0, 1, (20000, 2))
    grid = np.linspace(0, 1, 201)
    x = np.column_stack([grid, grid])
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        density = marginal_density(x, X, [0.015, 0.015])
    interior = (grid > 0.05) & (grid < 0.95)
    assert np.min(density[interior]) > 0.5
    assert np.mean(np.abs(density[interior] - 1.0)) < 0.1
    assert_allclose(trapz(density, grid), np.ones(2), atol=0.05)


def test_joint_density_with_bandwidth_below_default_grid_spacing():
    rng = np.random.default_rng(15)
    X = rng.uniform(0, 1, (20000, 2))
    grid = np.linspace(0, 1, 41)
    x = np.column_stack([grid, grid])
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        joint = joint_density(x, X, 0.018)
    assert np.max(joint[0, 1]) > 0
    assert_allclose(trapz(trapz(joint[0, 1], grid), grid), 1.0, atol=0.1)


def test_density_bad_inputs(uniform_sample):
    x, X = uniform_sample
    with pytest.raises(ValueError, match="same number of columns"):
        marginal_density(x[:, :2], X, 0.1)
    with pytest.raises(ValueError, match="should have 3 values"):
        marginal_density(x, X, [0.1, 0.1])
    with pytest.raises(ValueError, match="lower < upper"):
        joint_density(x, X, 0.1, supp=[1.0, 0.0])
    with pytest.raises(ValueError, match="frame must be one of"):
        joint_density(x, X, 0.1, frame="polar")
    with pytest.raises(TypeError, match="num_points_work_grid"):
        marginal_density(x, X, 0.1, num_points_work_grid=20.5)
    with pytest.raises(ValueError, match="grids must hold exactly"):
        JointDensity(3, {(0, 1): np.zeros((2, 2))})
