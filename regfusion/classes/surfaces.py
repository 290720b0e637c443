"""
Surface class: points and triangles of a triangulated mesh
"""

import copy
import functools
import os.path as op
from textwrap import dedent

import nibabel
import numpy as np
import pyvista
import trimesh

from ..utils import NP_FLOAT


class Surface(object):
    """
    Encapsulates a surface's points and triangles. Create either by passing
    a file path (as below) or use the class method Surface.manual() to
    directly pass points and triangles.

    Args:
        path (str): path to file (GIFTI/FS binary/pyvista compatible)
        name (str): optional, eg lh.sphere
    """

    def __init__(self, path, name=None):

        if not op.exists(path):
            raise FileNotFoundError("File {} does not exist".format(path))

        surfExt = op.splitext(path)[-1]

        # GIFTI via nibabel
        if surfExt == ".gii":
            try:
                gft = nibabel.load(path).darrays
                ps, ts = gft[0].data, gft[1].data
            except Exception as e:
                raise RuntimeError(
                    f"Could not load {path} as .gii. Is it a surface GIFTI (.surf.gii)?"
                ) from e

        # VTK and friends via pyvista
        elif surfExt in [".vtk", ".ply", ".stl", ".obj"]:
            ps, ts = _read_pyvista(path)

        else:
            # FS files don't have a proper extension (binary)
            try:
                ps, ts = nibabel.freesurfer.io.read_geometry(path)
            except Exception:
                ps, ts = _read_pyvista(path)

        self.points, self.tris = _check_points_tris(ps, ts)
        self.name = name if name is not None else op.split(path)[1]

    def __repr__(self):
        return dedent(
            f"""\
            Surface {self.name} with {self.n_points} points and {self.tris.shape[0]} triangles.
            min (X,Y,Z):  {self.points.min(0)}
            mean (X,Y,Z): {self.points.mean(0)}
            max (X,Y,Z):  {self.points.max(0)}
            """
        )

    @classmethod
    def manual(cls, ps, ts, name="<manually created surface>"):
        """Manual surface constructor using points and triangles arrays"""

        s = cls.__new__(cls)
        s.points, s.tris = _check_points_tris(
            copy.deepcopy(np.asarray(ps)), copy.deepcopy(np.asarray(ts))
        )
        s.name = name
        return s

    @property
    def n_points(self):
        return self.points.shape[0]

    @property
    def n_tris(self):
        return self.tris.shape[0]

    @functools.cached_property
    def vertex_faces(self):
        """
        Triangles incident on each vertex, as an array of size
        (n_points, max valence), padded with -1
        """

        return self.to_trimesh().vertex_faces

    def to_trimesh(self):
        """Return trimesh object for this surface (vertex order preserved)"""

        return trimesh.Trimesh(vertices=self.points, faces=self.tris, process=False)

    def save(self, path):
        """
        Save surface as .surf.gii, .vtk or FreeSurfer binary (any other
        extension) at path.
        """

        if path.endswith(".vtk"):
            faces = 3 * np.ones((self.tris.shape[0], 4), dtype=int)
            faces[:, 1:] = self.tris
            pyvista.PolyData(self.points, faces).save(path)

        elif path.endswith(".gii"):
            ps = nibabel.gifti.GiftiDataArray(
                self.points,
                intent="NIFTI_INTENT_POINTSET",
                datatype="NIFTI_TYPE_FLOAT32",
            )
            ts = nibabel.gifti.GiftiDataArray(
                self.tris, intent="NIFTI_INTENT_TRIANGLE", datatype="NIFTI_TYPE_INT32"
            )
            nibabel.save(nibabel.gifti.GiftiImage(darrays=[ps, ts]), path)

        else:
            nibabel.freesurfer.write_geometry(path, self.points, self.tris)


def _read_pyvista(path):
    try:
        poly = pyvista.read(path).triangulate()
    except Exception as e:
        raise RuntimeError(f"Could not load surface {path} via pyvista") from e

    ts = np.asarray(poly.faces)
    # faces are returned as a single vector eg [3 a b c 3 a b c]
    if ts.size % 4 or (ts.reshape(-1, 4)[:, 0] != 3).any():
        raise ValueError(f"{path} does not appear to be triangle data")
    return np.asarray(poly.points), ts.reshape(-1, 4)[:, 1:]


def _check_points_tris(ps, ts):
    if ps.ndim != 2 or ps.shape[1] != 3:
        raise RuntimeError("Points matrices should be p x 3")

    if ts.ndim != 2 or ts.shape[1] != 3:
        raise RuntimeError("Triangles matrices should be t x 3")

    if (ts.min() < 0) or (ts.max() > ps.shape[0] - 1):
        raise RuntimeError("Incorrect points/triangle indexing")

    return ps.astype(NP_FLOAT), ts.astype(np.int32)
