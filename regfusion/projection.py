"""
Projection between the fsaverage surface and volumetric template spaces,
using precomputed Registration Fusion mappings
"""

import logging
import multiprocessing as mp

import numpy as np
from tqdm import tqdm

from .classes import MappingTable, Volume
from .core import (
    BAR_FORMAT,
    Interp,
    KDTreeIndex,
    RegularGridSampler,
    resolution_tag,
    sample_surface,
    sample_volume,
    upsample_to_canonical,
)
from .exceptions import InvalidResolution, InvalidShape
from .utils import (
    CANONICAL_RESOLUTION,
    FSAVERAGE_RESOLUTIONS,
    RH_SEG_START,
    SIDES,
    VOXEL_ORDER,
    world_to_array,
)

logger = logging.getLogger(__name__)


class VolumeProjection(object):
    """
    Result of surf2vol. Unpacks as (combined, segmented).

    Attributes:
        combined: L + R projected data, shaped as the mask grid
        segmented: as combined, but with non-zero R values offset by
            RH_SEG_START so that hemispheres remain distinguishable
        mismatch: dict keyed lh/rh, number of voxels where the non-zero
            pattern of the projected data disagreed with the cortical mask
            (before masking)
    """

    def __init__(self, combined, segmented, mismatch):
        self.combined = combined
        self.segmented = segmented
        self.mismatch = mismatch

    def __iter__(self):
        return iter((self.combined, self.segmented))

    def __repr__(self):
        return (
            f"VolumeProjection {self.combined.shape}, mask mismatch "
            f"lh = {self.mismatch['lh']}, rh = {self.mismatch['rh']}"
        )


def _check_row(data, name):
    """Flatten surface data, which must be a single row of values"""

    arr = np.asarray(data)
    if (arr.ndim not in (1, 2)) or (arr.ndim == 2 and arr.shape[0] != 1):
        raise InvalidShape(f"{name} should be a row vector, got shape {arr.shape}")
    return arr.ravel()


def _flat_mask(mask):
    """Flattened mask (mapping order) and its grid shape"""

    if isinstance(mask, Volume):
        return mask.flat(), mask.shape
    mask = np.asarray(mask)
    if mask.ndim != 3:
        raise InvalidShape(f"Cortical mask must be 3D, got shape {mask.shape}")
    return mask.reshape(-1, order=VOXEL_ORDER), mask.shape


def mask_mismatch(values, mask):
    """
    Number of voxels where the non-zero pattern of values disagrees with
    the binary cortical mask
    """
    return int(((np.asarray(values) != 0) != (np.asarray(mask) != 0)).sum())


def apply_cortical_mask(values, mask):
    """Copy of values with all voxels outside the cortical mask set to zero"""

    values = np.array(values, copy=True)
    mask = np.asarray(mask)
    if values.shape != mask.shape:
        raise InvalidShape(
            f"Data shape {values.shape} does not match mask shape {mask.shape}"
        )
    values[mask == 0] = 0
    return values


def surf2vol(
    lh_data,
    rh_data,
    interp,
    mapping,
    mask,
    meshes,
    cores=mp.cpu_count(),
    index_factory=KDTreeIndex,
):
    """
    Project a pair of fsaverage surface inputs into a volume.

    Every voxel with a valid mapping coordinate takes the value of the
    surface data at that point on the fsaverage sphere. Voxels outside
    the cortical mask are then zeroed, and the hemispheres are combined.

    Args:
        lh_data, rh_data: single row of per-vertex values for each
            hemisphere, on fsaverage5, fsaverage6 or fsaverage. Lower
            resolutions are upsampled to fsaverage by nearest neighbour.
        interp: 'nearest' (use for labels) or 'linear'
        mapping: dict keyed lh/rh of MappingTables (or N x 3 arrays) giving
            the fsaverage sphere coordinate for every voxel of the mask
        mask: cortical mask, Volume or storage order 3D array. Also sets
            the output grid.
        meshes: mesh provider, callable (hemi, average, variant) -> Surface
            (see fileio.FsaverageMeshes)
        cores: workers for nearest neighbour searches
        index_factory: callable (points, cores) -> SpatialIndex, used for
            every nearest neighbour search (default KDTreeIndex)

    Returns:
        VolumeProjection, which unpacks as (combined, segmented) arrays
            shaped as the mask grid
    """

    interp = Interp.cast(interp)
    inputs = {
        "lh": _check_row(lh_data, "lh_data"),
        "rh": _check_row(rh_data, "rh_data"),
    }
    for data in inputs.values():
        resolution_tag(data.size)

    mask_flat, shape = _flat_mask(mask)
    n_vox = mask_flat.size

    tables = {}
    for side in SIDES:
        table = MappingTable.cast(mapping[side])
        if len(table) != n_vox:
            raise ValueError(
                f"{side} mapping has {len(table)} entries but mask has {n_vox} voxels"
            )
        tables[side] = table

    if any(d.size != CANONICAL_RESOLUTION for d in inputs.values()):
        logger.info("Upsampling input data to fsaverage space...")

    projected = {}
    for side in SIDES:
        data = inputs[side]
        sphere = meshes(side, "fsaverage", "sphere")
        if data.size != CANONICAL_RESOLUTION:
            orig = meshes(side, resolution_tag(data.size), "sphere")
            data = upsample_to_canonical(
                data, orig.points, sphere.points, cores, index_factory
            )

        table = tables[side]
        values = np.zeros(n_vox, dtype=np.float64)
        if table.n_valid:
            index = index_factory(sphere.points, cores)
            values[table.valid] = sample_surface(
                data, sphere, table.valid_coords, interp, index=index
            )
        projected[side] = values

    mismatch = {s: mask_mismatch(projected[s], mask_flat) for s in SIDES}
    logger.info(f"Total error for lh = {mismatch['lh']}, rh = {mismatch['rh']}")
    lh, rh = [apply_cortical_mask(projected[s], mask_flat) for s in SIDES]

    combined = (lh + rh).reshape(shape, order=VOXEL_ORDER)
    rh[rh != 0] += RH_SEG_START
    segmented = (lh + rh).reshape(shape, order=VOXEL_ORDER)

    return VolumeProjection(combined, segmented, mismatch)


def _cast_n_vertices(n_vertices):
    if isinstance(n_vertices, str):
        tags = {v: k for k, v in FSAVERAGE_RESOLUTIONS.items()}
        if n_vertices not in tags:
            raise InvalidResolution(
                f"Unrecognised mesh {n_vertices}, expected one of {list(tags)}"
            )
        return tags[n_vertices]

    n_vertices = int(n_vertices)
    if n_vertices < 1:
        raise InvalidResolution(
            f"Number of vertices must be positive, got {n_vertices}"
        )
    return n_vertices


def vol2surf(
    volume,
    interp,
    lh_map,
    rh_map,
    n_vertices=CANONICAL_RESOLUTION,
    fill_value=np.nan,
    sampler_factory=RegularGridSampler,
):
    """
    Project a volume onto the fsaverage surface of each hemisphere.

    Each vertex takes the value of the volume at its mapped world (RAS)
    coordinate. No masking is applied and hemispheres are not combined.

    Args:
        volume: Volume, 3D or 4D (frames in last dimension)
        interp: 'linear' (trilinear) or 'nearest'
        lh_map, rh_map: MappingTables (or N x 3 arrays) of world
            coordinates, one per vertex. Only the first n_vertices entries
            are used.
        n_vertices: int, or fsaverage mesh name, eg 'fsaverage5'
        fill_value: value for vertices that map outside the voxel grid
        sampler_factory: callable (array, interp, fill_value) ->
            GridInterpolator, built once per frame (default RegularGridSampler)

    Returns:
        (lh, rh) arrays, each sized (frames x n_vertices)
    """

    interp = Interp.cast(interp)
    n_vertices = _cast_n_vertices(n_vertices)

    outputs = []
    for side, mapping in zip(SIDES, [lh_map, rh_map]):
        table = MappingTable.cast(mapping).head(n_vertices)
        coords = world_to_array(table.coords, volume.space.world2vox)

        out = np.empty((volume.n_frames, n_vertices), dtype=np.float64)
        frames = tqdm(
            volume.frames(),
            total=volume.n_frames,
            desc=f"{side} frames",
            bar_format=BAR_FORMAT,
            ascii=True,
            disable=volume.n_frames < 2,
        )
        for idx, frame in enumerate(frames):
            out[idx, :] = sample_volume(
                frame, coords, interp, fill_value, sampler_factory
            )
        outputs.append(out)

    return tuple(outputs)
