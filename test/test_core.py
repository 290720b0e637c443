import os.path as op
import sys

sys.path.insert(0, op.abspath(op.join(__file__, "../..")))

import numpy as np
import pytest
from scipy.spatial import ConvexHull

from regfusion import core, exceptions, utils
from regfusion.classes import Surface
from regfusion.core import Interp


def _linear_field(coords):
    coords = np.atleast_2d(coords)
    return 1 + coords[:, 0] + 10 * coords[:, 1] + 100 * coords[:, 2]


def _linear_grid(shape):
    i, j, k = np.meshgrid(*[np.arange(s) for s in shape], indexing="ij")
    return 1 + i + 10 * j + 100 * k


def test_error_hierarchy():
    for err in [
        exceptions.InvalidShape,
        exceptions.InvalidResolution,
        exceptions.InvalidInterpolationMode,
        exceptions.InsufficientMapping,
    ]:
        assert issubclass(err, exceptions.RegFusionError)
        assert issubclass(err, ValueError)


def test_interp_cast():
    assert Interp.cast("nearest") is Interp.NEAREST
    assert Interp.cast("LINEAR") is Interp.LINEAR
    assert Interp.cast(Interp.NEAREST) is Interp.NEAREST

    for bad in ["cubic", "", None, 1]:
        with pytest.raises(exceptions.InvalidInterpolationMode):
            Interp.cast(bad)


def test_resolution_tag():
    assert core.resolution_tag(10242) == "fsaverage5"
    assert core.resolution_tag(40962) == "fsaverage6"
    assert core.resolution_tag(163842) == "fsaverage"

    for bad in [0, 1000, 32492, 163841]:
        with pytest.raises(exceptions.InvalidResolution):
            core.resolution_tag(bad)


def test_kdtree_nearest(rng):
    ps = rng.random((200, 3))
    index = core.KDTreeIndex(ps, cores=1)
    assert isinstance(index, core.SpatialIndex)
    assert (index.nearest(ps) == np.arange(200)).all()

    near = index.nearest(ps[:5] + 1e-9, k=3)
    assert near.shape == (5, 3)
    assert (near[:, 0] == np.arange(5)).all()

    with pytest.raises(ValueError):
        core.KDTreeIndex(rng.random((10, 2)))


def test_upsample_constant(sphere_meshes):
    low = sphere_meshes("lh", "fsaverage5")
    high = sphere_meshes("lh", "fsaverage")
    data = np.full(low.n_points, 3.5)
    up = core.upsample_to_canonical(data, low.points, high.points, cores=1)
    assert up.shape == (163842,)
    assert (up == 3.5).all()


def test_upsample_labels(sphere_meshes, rng):
    low = sphere_meshes("lh", "fsaverage6")
    high = sphere_meshes("lh", "fsaverage")
    labels = rng.integers(1, 50, low.n_points)
    up = core.upsample_to_canonical(labels, low.points, high.points, cores=1)
    assert up.dtype == labels.dtype
    assert np.isin(up, labels).all(), "upsampling should never blend labels"


def test_upsample_canonical_copies(sphere_meshes):
    high = sphere_meshes("lh", "fsaverage")
    data = np.arange(163842, dtype=float)
    up = core.upsample_to_canonical(data, high.points, high.points)
    assert np.array_equal(up, data)
    up[0] = -1
    assert data[0] == 0


def test_upsample_bad_inputs(sphere_meshes):
    low = sphere_meshes("lh", "fsaverage5")
    mid = sphere_meshes("lh", "fsaverage6")
    high = sphere_meshes("lh", "fsaverage")

    with pytest.raises(exceptions.InvalidResolution):
        core.upsample_to_canonical(np.ones(5000), low.points, high.points)
    with pytest.raises(exceptions.InvalidResolution):
        core.upsample_to_canonical(np.ones(10242), mid.points, high.points)
    with pytest.raises(exceptions.InvalidResolution):
        core.upsample_to_canonical(np.ones(10242), low.points, mid.points)


def test_sample_volume_linear(rng):
    shape = (4, 5, 6)
    grid = _linear_grid(shape)
    coords = rng.random((50, 3)) * (np.array(shape) - 1)
    out = core.sample_volume(grid, coords, "linear")
    assert np.allclose(out, _linear_field(coords))


def test_sample_volume_nearest(rng):
    shape = (4, 5, 6)
    grid = _linear_grid(shape)
    ijk = np.stack([rng.integers(0, s, 30) for s in shape], axis=1)
    offset = np.where(ijk > 0, -0.3, 0.3)
    out = core.sample_volume(grid, ijk + offset, Interp.NEAREST)
    assert np.array_equal(out, _linear_field(ijk))


def test_sample_volume_outside_grid():
    grid = np.ones((3, 3, 3))
    coords = np.array([[1, 1, 1], [-2, 0, 0], [0, 5, 0]])
    out = core.sample_volume(grid, coords, "linear")
    assert out[0] == 1
    assert np.isnan(out[1:]).all(), "default fill should be NaN"

    out = core.sample_volume(grid, coords, "nearest", fill_value=0)
    assert np.array_equal(out, [1, 0, 0])


def test_sample_volume_nearest_tie():
    grid = _linear_grid((3, 3, 3))
    coords = np.array([[0.5, 1, 1], [1.5, 1, 1], [1, 1, 0.5]])
    out = core.sample_volume(grid, coords, "nearest")
    # halfway coordinates resolve to the lower voxel
    lower = np.array([[0, 1, 1], [1, 1, 1], [1, 1, 0]])
    assert np.array_equal(out, _linear_field(lower))


def test_grid_sampler():
    sampler = core.RegularGridSampler(np.zeros((2, 2, 2)), "linear")
    assert isinstance(sampler, core.GridInterpolator)
    assert sampler(np.array([0.5, 0.5, 0.5])).shape == (1,)

    with pytest.raises(ValueError):
        core.RegularGridSampler(np.zeros((2, 2)))


def test_sample_surface_nearest(sphere_meshes, rng):
    surf = sphere_meshes("lh", "fsaverage5")
    data = rng.random(surf.n_points)
    idx = rng.integers(0, surf.n_points, 100)
    points = 1.05 * surf.points[idx]
    out = core.sample_surface(data, surf, points, "nearest", cores=1)
    assert np.array_equal(out, data[idx])


def test_sample_surface_linear_constant(sphere_meshes, rng):
    surf = sphere_meshes("lh", "fsaverage5")
    data = np.full(surf.n_points, 2.5)
    dirs = rng.normal(size=(500, 3))
    points = 100 * dirs / np.linalg.norm(dirs, axis=1)[:, None]
    out = core.sample_surface(data, surf, points, "linear", cores=1)
    assert np.allclose(out, 2.5)


def test_sample_surface_linear_at_vertices(sphere_meshes, rng):
    surf = sphere_meshes("lh", "fsaverage5")
    data = rng.random(surf.n_points)
    idx = rng.integers(0, surf.n_points, 100)
    out = core.sample_surface(data, surf, surf.points[idx], "linear", cores=1)
    assert np.allclose(out, data[idx], atol=1e-5)


def test_sample_surface_linear_bounded(sphere_meshes, rng):
    surf = sphere_meshes("lh", "fsaverage6")
    data = rng.random(surf.n_points)
    dirs = rng.normal(size=(500, 3))
    out = core.sample_surface(data, surf, dirs, "linear", cores=1)
    assert (out >= data.min() - 1e-5).all()
    assert (out <= data.max() + 1e-5).all()


def test_linear_single_triangle():
    ps = 100 * np.eye(3)
    surf = Surface.manual(ps, np.array([[0, 1, 2]]))
    data = np.array([1.0, 2.0, 3.0])
    queries = np.array(
        [
            [1, 1, 1],  # centre of the triangle
            [1, 0, 0],  # first vertex
            [-1, -1, -1],  # behind the origin
            [1, -1, 0.1],  # outside the triangle
        ]
    )
    out = core.sample_surface(data, surf, queries, "linear", cores=1)
    assert np.allclose(out[:2], [2.0, 1.0])
    assert (out[2:] == 0).all(), "points in no triangle should give 0"


def test_sample_surface_size_mismatch(sphere_meshes):
    surf = sphere_meshes("lh", "fsaverage5")
    with pytest.raises(exceptions.InvalidResolution):
        core.sample_surface(np.ones(100), surf, np.ones((1, 3)), "nearest")


def test_world_to_array():
    vox2world = np.diag([2.0, 3.0, 4.0, 1.0])
    vox2world[:3, 3] = [-10, -20, -30]
    ijk = np.array([[1, 2, 3], [0, 0, 0]])
    world = utils.affine_transform(ijk, vox2world)
    arr = utils.world_to_array(world, np.linalg.inv(vox2world))
    assert np.allclose(arr, [[2, 1, 3], [0, 0, 0]])
    assert np.allclose(utils.swap_storage_axes(arr), ijk)


class AntipodalIndex(core.SpatialIndex):
    """Returns the vertices nearest the opposite side of the sphere"""

    def __init__(self, points):
        self._index = core.KDTreeIndex(points, cores=1)

    def nearest(self, points, k=1):
        return self._index.nearest(-np.asarray(points), k)


def _random_sphere_points(rng, n, radius=100):
    dirs = rng.normal(size=(n, 3))
    return radius * dirs / np.linalg.norm(dirs, axis=1)[:, None]


def test_linear_irregular_mesh(rng):
    ps = _random_sphere_points(rng, 3000)
    surf = Surface.manual(ps, ConvexHull(ps).simplices)
    data = np.ones(surf.n_points)
    queries = _random_sphere_points(rng, 20000)

    out = core.sample_surface(data, surf, queries, "linear", cores=1)
    assert np.allclose(out, 1), "every point on a closed mesh lies in a triangle"


def test_linear_searches_whole_mesh(sphere_meshes, rng):
    surf = sphere_meshes("lh", "fsaverage5")
    data = rng.random(surf.n_points)
    queries = _random_sphere_points(rng, 20)

    expected = core.sample_surface(data, surf, queries, "linear", cores=1)
    index = AntipodalIndex(surf.points)
    out = core.sample_surface(data, surf, queries, "linear", index=index)
    assert (expected > 0).all()
    assert np.allclose(out, expected)
