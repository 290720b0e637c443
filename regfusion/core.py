"""
Core numerical routines: nearest neighbour search, evaluation of surface
and volume data at arbitrary coordinates, and mesh resolution matching.
"""

import multiprocessing as mp
from enum import Enum

import numpy as np
from scipy.interpolate import RegularGridInterpolator
from scipy.spatial import cKDTree
from trimesh.triangles import points_to_barycentric

from .exceptions import InvalidInterpolationMode, InvalidResolution
from .utils import CANONICAL_RESOLUTION, FSAVERAGE_RESOLUTIONS

BAR_FORMAT = "{l_bar}{bar} {elapsed} | {remaining}"

# Tolerance on barycentric weights when testing if a point lies in a triangle
BARY_TOL = 1e-6

# Numbers of nearest vertices whose triangles are searched, in turn, for
# linear interpolation on a mesh
LINEAR_NEIGHBOURS = (3, 8, 16, 32)


class Interp(Enum):
    """Interpolation mode for evaluating data at arbitrary coordinates"""

    NEAREST = "nearest"
    LINEAR = "linear"

    @classmethod
    def cast(cls, value):
        """Interp from an Interp or a string (case insensitive)"""

        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidInterpolationMode(
                f"Invalid interpolation option {value!r}. "
                "Use either nearest or linear."
            ) from None


class SpatialIndex(object):
    """
    Nearest point lookup over a fixed reference set of 3D points.
    Subclasses must implement nearest(); an index must not be modified
    after construction so that it can be queried concurrently.
    """

    def nearest(self, points, k=1):
        """
        Args:
            points: n x 3 query coordinates
            k: number of neighbours to return

        Returns:
            integer array into the reference points, shape (n,) for k = 1,
                else (n, k) ordered by increasing distance
        """
        raise NotImplementedError


class KDTreeIndex(SpatialIndex):
    """
    SpatialIndex backed by a scipy cKDTree.

    Args:
        points: p x 3 reference points
        cores: number of workers used for queries (default max)
    """

    def __init__(self, points, cores=mp.cpu_count()):
        points = np.asarray(points, dtype=np.float64)
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError("Reference points must be p x 3")
        self.n_points = points.shape[0]
        self.cores = cores
        self._tree = cKDTree(points)

    def nearest(self, points, k=1):
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        _, idx = self._tree.query(points, k=k, workers=self.cores)
        return np.asarray(idx, dtype=np.int64)


class GridInterpolator(object):
    """
    Evaluate a 3D array at continuous array-index coordinates.
    Subclasses must implement __call__().
    """

    def __call__(self, points):
        """
        Args:
            points: n x 3 array-index coordinates (0 is the first voxel)

        Returns:
            array of n values
        """
        raise NotImplementedError


class RegularGridSampler(GridInterpolator):
    """
    GridInterpolator backed by scipy's RegularGridInterpolator over the
    integer voxel grid.

    In nearest mode a coordinate exactly halfway between two voxels
    resolves to the lower index (scipy's rule; MATLAB interpn may differ
    on such ties).

    Args:
        array: 3D data array
        interp: Interp mode (trilinear or nearest)
        fill_value: value returned for coordinates outside the grid
    """

    def __init__(self, array, interp=Interp.LINEAR, fill_value=np.nan):
        array = np.asarray(array, dtype=np.float64)
        if array.ndim != 3:
            raise ValueError("Grid sampling requires a 3D array")
        interp = Interp.cast(interp)
        grid = tuple(np.arange(s) for s in array.shape)
        self._interpolator = RegularGridInterpolator(
            grid, array, method=interp.value, bounds_error=False, fill_value=fill_value
        )

    def __call__(self, points):
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return self._interpolator(points)


def resolution_tag(n_vertices):
    """fsaverage mesh name for a vertex count, eg 10242 -> fsaverage5"""

    try:
        return FSAVERAGE_RESOLUTIONS[int(n_vertices)]
    except (KeyError, TypeError, ValueError):
        raise InvalidResolution(
            f"Invalid number of vertices ({n_vertices}), expected one of "
            f"{sorted(FSAVERAGE_RESOLUTIONS)}"
        ) from None


def upsample_to_canonical(
    data, low_points, high_points, cores=mp.cpu_count(), index_factory=KDTreeIndex
):
    """
    Upsample per-vertex data from a lower resolution mesh onto the canonical
    mesh. Each canonical vertex takes the value of its nearest neighbour on
    the low resolution mesh, so label values are never blended.

    Args:
        data: per-vertex values on the low resolution mesh
        low_points: vertices of the low resolution mesh, matching data
        high_points: vertices of the canonical (163842) mesh
        cores: workers for the nearest neighbour search
        index_factory: callable (points, cores) -> SpatialIndex

    Returns:
        array of len(high_points), same dtype as data
    """

    data = np.asarray(data).ravel()
    resolution_tag(data.size)
    if low_points.shape[0] != data.size:
        raise InvalidResolution(
            f"Data has {data.size} values but source mesh has "
            f"{low_points.shape[0]} vertices"
        )
    if high_points.shape[0] != CANONICAL_RESOLUTION:
        raise InvalidResolution(
            f"Target mesh has {high_points.shape[0]} vertices, "
            f"expected {CANONICAL_RESOLUTION}"
        )

    if data.size == high_points.shape[0]:
        return data.copy()

    index = index_factory(low_points, cores)
    return data[index.nearest(high_points)]


def _locate(points, faces, triangles, normals, offsets):
    """
    Project each point along the ray from the origin onto the plane of its
    paired face and test if the projection lies in that face.

    Returns:
        (inside, weights): bool array over the pairs, barycentric weights
            of the pairs that are inside
    """

    denom = (normals[faces] * points).sum(-1)
    ok = np.abs(denom) > 0
    scale = np.zeros_like(denom)
    scale[ok] = offsets[faces[ok]] / denom[ok]
    ok &= scale > 0

    inside = np.zeros(faces.size, dtype=bool)
    if not ok.any():
        return inside, np.empty((0, 3))

    projected = points[ok] * scale[ok, None]
    weights = points_to_barycentric(triangles[faces[ok]], projected)
    hit = (weights >= -BARY_TOL).all(-1)
    inside[np.flatnonzero(ok)[hit]] = True
    return inside, weights[hit]


def _linear_on_mesh(data, surface, points, index):
    """
    Barycentric interpolation on a triangle mesh centred at the origin.
    Each query point is projected along the ray from the origin onto the
    planes of the triangles surrounding its nearest vertices; the first
    triangle that contains the projection is used. Points left unresolved
    are retried over successively wider neighbourhoods, and finally against
    every triangle of the mesh. Points that fall in no triangle evaluate to
    zero.
    """

    n = points.shape[0]
    out = np.zeros(n, dtype=np.float64)
    if not n:
        return out

    triangles = surface.points[surface.tris].astype(np.float64)
    normals = np.cross(
        triangles[:, 1] - triangles[:, 0], triangles[:, 2] - triangles[:, 0]
    )
    offsets = (normals * triangles[:, 0]).sum(-1)
    vertex_faces = surface.vertex_faces

    found = np.zeros(n, dtype=bool)
    for k in LINEAR_NEIGHBOURS:
        todo = np.flatnonzero(~found)
        if not todo.size:
            return out

        k = min(k, surface.n_points)
        nearest = index.nearest(points[todo], k=k).reshape(todo.size, k)
        candidates = np.concatenate(
            [vertex_faces[nearest[:, c]] for c in range(k)], axis=1
        )

        for col in range(candidates.shape[1]):
            sub = np.flatnonzero(~found[todo] & (candidates[:, col] >= 0))
            if not sub.size:
                continue

            idx, faces = todo[sub], candidates[sub, col]
            inside, weights = _locate(
                points[idx], faces, triangles, normals, offsets
            )
            idx, faces = idx[inside], faces[inside]
            out[idx] = (data[surface.tris[faces]] * weights).sum(-1)
            found[idx] = True

    all_faces = np.arange(surface.n_tris)
    for idx in np.flatnonzero(~found):
        queries = np.broadcast_to(points[idx], (all_faces.size, 3))
        inside, weights = _locate(queries, all_faces, triangles, normals, offsets)
        if inside.any():
            face = all_faces[inside][0]
            out[idx] = (data[surface.tris[face]] * weights[0]).sum()

    return out


def sample_surface(data, surface, points, interp, index=None, cores=mp.cpu_count()):
    """
    Evaluate per-vertex surface data at arbitrary coordinates.

    Args:
        data: per-vertex values, length surface.n_points
        surface: Surface on which data is defined
        points: n x 3 coordinates, in the same space as surface
        interp: Interp mode. Nearest returns the value of the closest
            vertex unmodified (suitable for labels), linear blends the
            three vertices of the enclosing triangle.
        index: optional SpatialIndex over surface.points, built if None
        cores: workers for the nearest neighbour search

    Returns:
        array of n values
    """

    interp = Interp.cast(interp)
    data = np.asarray(data).ravel()
    if data.size != surface.n_points:
        raise InvalidResolution(
            f"Data has {data.size} values but surface has "
            f"{surface.n_points} vertices"
        )

    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    if index is None:
        index = KDTreeIndex(surface.points, cores)

    if interp is Interp.NEAREST:
        return data[index.nearest(points)]
    return _linear_on_mesh(data, surface, points, index)


def sample_volume(
    data, coords, interp, fill_value=np.nan, sampler_factory=RegularGridSampler
):
    """
    Evaluate a 3D array at continuous array-index coordinates.

    Args:
        data: 3D array
        coords: n x 3 array-index coordinates (0 is the first voxel)
        interp: Interp mode, trilinear or nearest
        fill_value: value for coordinates outside the grid
        sampler_factory: callable (data, interp, fill_value) -> GridInterpolator

    Returns:
        array of n values
    """

    return sampler_factory(data, Interp.cast(interp), fill_value)(coords)
