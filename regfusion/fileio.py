"""
Loading and saving of mappings, surface data and fsaverage meshes
"""

import os.path as op

import h5py
import nibabel
import numpy as np
import scipy.io

from .classes import AssetConfig, MappingTable, Surface
from .utils import NP_FLOAT, _splitExts


def _load_mat_variables(path, keys):
    """
    Read named variables from a MATLAB .mat file. v7.3 files are HDF5, and
    scipy cannot read them, so h5py is used instead. Note that h5py returns
    MATLAB arrays transposed.
    """

    try:
        mat = scipy.io.loadmat(path, variable_names=keys)
        missing = [k for k in keys if k not in mat]
        if missing:
            raise KeyError(f"{path} does not contain variables {missing}")
        return {k: mat[k] for k in keys}

    except NotImplementedError:
        with h5py.File(path, "r") as f:
            missing = [k for k in keys if k not in f]
            if missing:
                raise KeyError(f"{path} does not contain variables {missing}")
            return {k: f[k][()].T for k in keys}


def _load_arrays(path, keys):
    _, ext = _splitExts(path)
    if ext.endswith(".mat"):
        return _load_mat_variables(path, keys)

    if ext.endswith(".npz"):
        with np.load(path) as f:
            missing = [k for k in keys if k not in f]
            if missing:
                raise KeyError(f"{path} does not contain arrays {missing}")
            return {k: f[k] for k in keys}

    if ext.endswith(".npy"):
        if len(keys) != 1:
            raise ValueError(f".npy files hold a single array, {keys} requested")
        return {keys[0]: np.load(path)}

    raise ValueError(f"Unrecognised mapping file format: {path}")


def load_mapping(path, key="ras"):
    """
    Load a single MappingTable, eg a vol2surf mapping file containing
    the variable 'ras'.

    Args:
        path (str): .mat, .npz or .npy file
        key (str): variable name within the file (ignored for .npy)

    Returns:
        MappingTable
    """

    path = str(path)
    if not op.isfile(path):
        raise FileNotFoundError(f"Mapping file {path} does not exist")
    arrays = _load_arrays(path, [key])
    return MappingTable(arrays[key], name=op.split(path)[1])


def load_surf2vol_mapping(path):
    """
    Load both hemispheres of a surf2vol mapping file, containing the
    variables 'lh_coord' and 'rh_coord'.

    Returns:
        dict of MappingTables keyed 'lh', 'rh'
    """

    path = str(path)
    if not op.isfile(path):
        raise FileNotFoundError(f"Mapping file {path} does not exist")
    arrays = _load_arrays(path, ["lh_coord", "rh_coord"])
    fname = op.split(path)[1]
    return {
        side: MappingTable(arrays[f"{side}_coord"], name=f"{side} {fname}")
        for side in ["lh", "rh"]
    }


def load_surface_data(path):
    """
    Load per-vertex data from file: FreeSurfer morphometry (eg lh.thickness),
    MGH, GIFTI (first data array), .npy or whitespace separated text.

    Returns:
        1D array
    """

    path = str(path)
    if not op.isfile(path):
        raise FileNotFoundError(f"Surface data file {path} does not exist")

    _, ext = _splitExts(path)
    if ext.endswith((".mgh", ".mgz")):
        data = np.asanyarray(nibabel.load(path).dataobj)
    elif ext.endswith(".gii"):
        data = nibabel.load(path).darrays[0].data
    elif ext.endswith(".npy"):
        data = np.load(path)
    elif ext.endswith(".txt"):
        data = np.loadtxt(path)
    else:
        data = nibabel.freesurfer.read_morph_data(path)

    data = np.squeeze(np.asarray(data))
    if data.ndim > 1:
        raise ValueError(f"Surface data in {path} has shape {data.shape}, expected 1D")
    return np.atleast_1d(data)


def save_surface_data(data, path):
    """
    Save per-vertex data. Format is set by extension: .mgh/.mgz (data may
    be frames x vertices), .func.gii (1D only) or .npy.
    """

    data = np.asarray(data)
    path = str(path)
    _, ext = _splitExts(path)

    if ext.endswith((".mgh", ".mgz")):
        # MGH stores surface data as vertices x 1 x 1 x frames
        arr = np.atleast_2d(data).T.astype(NP_FLOAT)
        arr = arr.reshape(arr.shape[0], 1, 1, arr.shape[1])
        if arr.shape[3] == 1:
            arr = arr[..., 0]
        nibabel.save(nibabel.MGHImage(arr, np.eye(4)), path)

    elif ext.endswith(".gii"):
        if data.ndim != 1:
            data = np.squeeze(data)
        if data.ndim != 1:
            raise ValueError("Only single frame data can be saved as GIFTI")
        gii = nibabel.GiftiImage()
        gii.add_gifti_data_array(nibabel.gifti.GiftiDataArray(data.astype(NP_FLOAT)))
        nibabel.save(gii, path)

    elif ext.endswith(".npy"):
        np.save(path, data)

    else:
        raise ValueError(f"Unrecognised surface data format: {path}")


class FsaverageMeshes(object):
    """
    Mesh provider for fsaverage surfaces on disk. Call with
    (hemi, average, variant), eg ('lh', 'fsaverage5', 'sphere'), to load a
    Surface. Meshes are read afresh on every call.

    Args:
        config: AssetConfig defining subjects_dir
    """

    def __init__(self, config=None):
        if config is None:
            config = AssetConfig.from_environment()
        self.config = config

    def __call__(self, hemi, average, variant="sphere"):
        path = self.config.mesh_path(hemi, average, variant)
        return Surface(path, name=f"{hemi}.{variant} ({average})")
