"""
MappingTable: precomputed coordinate correspondences, one per target element
"""

import numpy as np

from ..exceptions import InsufficientMapping


class MappingTable(object):
    """
    Dense array of 3D coordinates, one per element of the target
    representation (a voxel, or a mesh vertex), expressed in the space of
    the source representation.

    A coordinate of exactly (0, 0, 0) marks an element with no valid
    correspondence. This is exposed as the boolean ``valid`` flag; note that
    a genuine correspondence at the origin cannot be distinguished from the
    sentinel.

    Args:
        coords: N x 3 array, or 3 x N as stored in MATLAB mapping files
        name (str): optional, for messages
    """

    def __init__(self, coords, name=None):
        coords = np.array(coords, dtype=np.float64)
        if coords.ndim != 2 or 3 not in coords.shape:
            raise ValueError(f"Mapping must be N x 3, got shape {coords.shape}")
        if coords.shape[1] != 3:
            coords = coords.T

        coords.setflags(write=False)
        self.coords = coords
        self.valid = np.abs(coords).sum(1) != 0
        self.valid.setflags(write=False)
        self.name = name

    def __repr__(self):
        name = f" {self.name}" if self.name else ""
        return (
            f"MappingTable{name} with {len(self)} entries "
            f"({self.n_valid} valid)"
        )

    def __len__(self):
        return self.coords.shape[0]

    @classmethod
    def cast(cls, mapping):
        """MappingTable from a MappingTable or array"""
        if isinstance(mapping, cls):
            return mapping
        return cls(mapping)

    @property
    def n_valid(self):
        return int(self.valid.sum())

    @property
    def valid_coords(self):
        """Coordinates of the valid entries only, M x 3"""
        return self.coords[self.valid]

    def head(self, n):
        """
        MappingTable of the first n entries. Mappings defined for the
        highest mesh resolution can be reused for coarser meshes in this
        way, as the fsaverage vertex orderings are nested.
        """

        n = int(n)
        if n > len(self):
            raise InsufficientMapping(
                f"Mapping{' ' + self.name if self.name else ''} has "
                f"{len(self)} coordinates, {n} required"
            )
        return MappingTable(self.coords[:n], self.name)
