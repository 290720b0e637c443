"""regfusion utility functions"""

import os.path as op

import numpy as np

NP_FLOAT = np.float32

# Right hemisphere labels in segmentation form start from here
RH_SEG_START = 1000

SIDES = ["lh", "rh"]

# fsaverage mesh tag for each supported vertex count
FSAVERAGE_RESOLUTIONS = {
    10242: "fsaverage5",
    40962: "fsaverage6",
    163842: "fsaverage",
}

CANONICAL_RESOLUTION = 163842

# Voxels of a mapping table are listed in column-major order over the
# storage-order grid (see classes.volume)
VOXEL_ORDER = "F"


def _splitExts(fname):
    """Split all extensions off a filename, eg:
    'file.ext1.ext2' -> ('file', '.ext1.ext2')
    """

    fname = op.split(fname)[1]
    ext = ""
    while "." in fname:
        fname, e = op.splitext(fname)
        ext = e + ext

    return fname, ext


def affine_transform(points, affine):
    """Apply affine transformation to set of points.

    Args:
        points: n x 3 matrix of points to transform
        affine: 4 x 4 matrix for transformation

    Returns:
        transformed copy of points, always n x 3
    """

    points = np.asanyarray(points)
    if len(points.shape) != 2:
        if points.size != 3:
            raise RuntimeError("Points must be n x 3 or 3-vector")
        points = points[None, :]

    # Add 1s on the 4th column, transpose and multiply,
    # then re-transpose and drop 4th column
    transfd = np.ones((points.shape[0], 4))
    transfd[:, 0:3] = points
    transfd = np.matmul(affine, transfd.T)
    return transfd[0:3, :].T


def swap_storage_axes(coords):
    """Swap the first two columns of an n x 3 coordinate array.

    Converts between the (i, j, k) voxel axes of an affine and the array
    axes of a volume held in storage order (rows and columns swapped).
    The operation is its own inverse.
    """

    coords = np.array(coords, copy=True)
    coords[:, [0, 1]] = coords[:, [1, 0]]
    return coords


def world_to_array(points, world2vox):
    """Convert world (RAS) coordinates into continuous array indices.

    Args:
        points: n x 3 world coordinates
        world2vox: 4 x 4 inverse of the volume's vox2world affine

    Returns:
        n x 3 array, coordinates along the storage-order array axes
    """

    return swap_storage_axes(affine_transform(points, world2vox))

