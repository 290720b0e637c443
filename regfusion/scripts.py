import logging
import multiprocessing as mp
import os

import numpy as np

from regfusion import fileio, projection
from regfusion.classes import AssetConfig, MappingTable, Volume

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _cast_volume(vol):
    if isinstance(vol, Volume):
        return vol
    logger.info(f"Loading volume {vol}")
    return Volume.load(vol)


def _cast_surface_data(data):
    if isinstance(data, np.ndarray):
        return data
    logger.info(f"Loading surface data {data}")
    return fileio.load_surface_data(data)


def _cast_config(config):
    if config is None:
        return AssetConfig.from_environment()
    return config


def vol2fsaverage(
    *,
    input=None,
    interp="linear",
    lh_map=None,
    rh_map=None,
    average="fsaverage",
    config=None,
    fill_value=np.nan,
):
    """
    Project a volume in template space (default MNI152) onto fsaverage.

    Args:
        input (str/Volume): 3D or 4D volume to project
        interp (str): 'linear' (default) or 'nearest'
        lh_map/rh_map (str/MappingTable/np.array): mapping from fsaverage
            vertices to template RAS coordinates. Defaults to the RF-ANTs
            MNI152 mapping for the configured FreeSurfer version.
        average (str): fsaverage, fsaverage6 or fsaverage5

    Other parameters:
        config (AssetConfig): locations of default mappings, default from
            environment
        fill_value (float): value of vertices that map outside the volume

    Returns:
        (lh, rh) np.arrays sized (frames x vertices)
    """

    if input is None:
        raise ValueError("Input volume must be provided")

    volume = _cast_volume(input)

    maps = {}
    for side, m in zip(["lh", "rh"], [lh_map, rh_map]):
        if m is None:
            m = _cast_config(config).default_vol2surf_mapping(side)
        if isinstance(m, (str, os.PathLike)):
            logger.info(f"Using {side} mapping {m}")
            m = fileio.load_mapping(m, "ras")
        maps[side] = MappingTable.cast(m)

    return projection.vol2surf(
        volume,
        interp,
        maps["lh"],
        maps["rh"],
        n_vertices=average,
        fill_value=fill_value,
    )


def fsaverage2vol(
    *,
    lh_input=None,
    rh_input=None,
    interp="nearest",
    map=None,
    mask=None,
    config=None,
    cores=mp.cpu_count(),
):
    """
    Project data on fsaverage (or fsaverage5/6) into template space
    (default MNI152).

    Args:
        lh_input/rh_input (str/np.array): per-vertex data for each hemisphere
        interp (str): 'nearest' (default, use for labels) or 'linear'
        map (str/dict): surf2vol mapping file with lh_coord and rh_coord,
            or dict of MappingTables keyed lh/rh. Defaults to the RF-ANTs
            MNI152 mapping for the configured FreeSurfer version.
        mask (str/Volume): cortical mask in template space, which also sets
            the output grid. A custom mask must be supplied with a custom map.

    Other parameters:
        config (AssetConfig): locations of fsaverage meshes and default
            assets, default from environment
        cores (int): number of cores to use, default max

    Returns:
        (combined, segmented) Volumes
    """

    if (lh_input is None) or (rh_input is None):
        raise ValueError("Both lh_input and rh_input must be provided")

    config = _cast_config(config)
    lh_data = _cast_surface_data(lh_input)
    rh_data = _cast_surface_data(rh_input)

    if map is None:
        map = config.default_surf2vol_mapping()
        if mask is None:
            mask = config.default_cortex_mask()
    elif mask is None:
        raise ValueError("Custom mask must be supplied if non-default map is used")

    if isinstance(map, (str, os.PathLike)):
        logger.info(f"Using mapping {map}")
        map = fileio.load_surf2vol_mapping(map)
    mask = _cast_volume(mask)

    result = projection.surf2vol(
        lh_data, rh_data, interp, map, mask, fileio.FsaverageMeshes(config), cores
    )

    return Volume(result.combined, mask.space), Volume(result.segmented, mask.space)
