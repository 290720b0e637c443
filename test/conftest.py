import os.path as op
import sys

sys.path.insert(0, op.abspath(op.join(__file__, "../..")))

import numpy as np
import pytest
import trimesh

from regfusion.classes import Surface

# icosphere subdivisions that give the fsaverage vertex counts
SUBDIVISIONS = {"fsaverage5": 5, "fsaverage6": 6, "fsaverage": 7}


def make_sphere(average, radius=100):
    ico = trimesh.creation.icosphere(
        subdivisions=SUBDIVISIONS[average], radius=radius
    )
    return Surface.manual(ico.vertices, ico.faces, name=average)


class SphereMeshes(object):
    """In-memory mesh provider, same sphere for both hemispheres"""

    def __init__(self):
        self.surfaces = {avg: make_sphere(avg) for avg in SUBDIVISIONS}
        self.calls = []

    def __call__(self, hemi, average, variant="sphere"):
        self.calls.append((hemi, average, variant))
        return self.surfaces[average]


@pytest.fixture(scope="session")
def sphere_meshes():
    return SphereMeshes()


@pytest.fixture
def rng():
    return np.random.default_rng(42)
