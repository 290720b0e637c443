"""
Volume: voxel data together with the ImageSpace (voxel grid and affine) in
which it is defined.

Arrays are held in storage order: the first two array axes are swapped with
respect to the (i, j, k) voxel axes of the vox2world affine. This is the
row/column layout of FreeSurfer's MRIread, against which the projection
mappings were generated, and voxels are enumerated in column-major order
over this layout.
"""

import nibabel
import numpy as np
import regtricks as rt

from ..utils import VOXEL_ORDER


def to_storage_order(data):
    """Swap the first two axes of an (i, j, k, ...) array"""
    return np.swapaxes(np.asanyarray(data), 0, 1)


class Volume(object):
    """
    Voxel data (3D, or 4D with frames in the last dimension) and its grid.

    Args:
        data: array in storage order, sized (j, i, k) or (j, i, k, frames)
            for an ImageSpace of size (i, j, k)
        space: regtricks ImageSpace

    Attributes:
        data: storage order array
        space: ImageSpace, vox2world and world2vox map (i, j, k) voxel
            coordinates to and from world (RAS) mm
    """

    def __init__(self, data, space):
        data = np.asanyarray(data)
        if data.ndim not in (3, 4):
            raise ValueError(f"Volume data must be 3D or 4D, got {data.ndim}D")

        expected = tuple(int(s) for s in np.asarray(space.size)[[1, 0, 2]])
        if tuple(data.shape[:3]) != expected:
            raise ValueError(
                f"Data shape {data.shape[:3]} does not match storage order "
                f"grid {expected} of reference space"
            )

        self.data = data
        self.space = space

    def __repr__(self):
        return f"Volume {self.data.shape} ({self.n_frames} frames) in\n{self.space}"

    @classmethod
    def load(cls, path):
        """Load a NIFTI/MGH image from path"""

        space = rt.ImageSpace(str(path))
        data = nibabel.load(str(path)).get_fdata()
        return cls(to_storage_order(data), space)

    @classmethod
    def from_ijk(cls, data, space):
        """Create from an array indexed along the affine's (i, j, k) axes"""
        return cls(to_storage_order(data), space)

    @property
    def ijk_data(self):
        """Data indexed along the (i, j, k) axes of the affine"""
        return to_storage_order(self.data)

    @property
    def shape(self):
        """Storage order grid shape (3D)"""
        return tuple(self.data.shape[:3])

    @property
    def n_vox(self):
        return int(np.prod(self.shape))

    @property
    def n_frames(self):
        return self.data.shape[3] if self.data.ndim == 4 else 1

    def frames(self):
        """Iterator over the 3D frames of the volume"""

        if self.data.ndim == 3:
            yield self.data
        else:
            for f in range(self.data.shape[3]):
                yield self.data[..., f]

    def flat(self):
        """Flattened 3D data, voxels in mapping order"""

        if self.data.ndim != 3:
            raise ValueError("Only 3D volumes can be flattened")
        return self.data.reshape(-1, order=VOXEL_ORDER)

    def make_like(self, flat_data):
        """New Volume on this grid from data flattened in mapping order"""

        flat_data = np.asanyarray(flat_data)
        if flat_data.size != self.n_vox:
            raise ValueError(
                f"Data has {flat_data.size} values, grid has {self.n_vox} voxels"
            )
        return Volume(flat_data.reshape(self.shape, order=VOXEL_ORDER), self.space)

    def save(self, path):
        """Save as NIFTI/MGH at path, in the affine's (i, j, k) layout"""
        self.space.save_image(self.ijk_data, str(path))
