"""
AssetConfig: locations of the fsaverage meshes and of the default mapping
and cortical mask files shipped with Registration Fusion.
"""

import os
import os.path as op
import re
from textwrap import dedent

TEMPLATE_NAMES = {
    "MNI152": "FSL_MNI152",
    "Colin27": "SPM_Colin27",
}

METHODS = ["RF_ANTs", "RF_M3Z"]


def read_fs_version(freesurfer_home):
    """
    FreeSurfer major.minor version (eg '5.3') from the build-stamp.txt file
    in a FreeSurfer installation directory.
    """

    stamp = op.join(freesurfer_home, "build-stamp.txt")
    if not op.isfile(stamp):
        raise RuntimeError(f"Could not find FreeSurfer build stamp at {stamp}")

    with open(stamp, "r") as f:
        line = f.readline()

    match = re.search(r"\d\.\d", line)
    if not match:
        raise RuntimeError(f"Could not parse FreeSurfer version from {line!r}")
    return match.group(0)


class AssetConfig(object):
    """
    Explicit configuration for resolving default input files. Nothing in
    the projection functions reads the environment; scripts construct one
    of these (see AssetConfig.from_environment) and pass it down.

    Args:
        subjects_dir (str): directory holding the fsaverage subjects
        asset_dir (str): directory holding the final_warps_FS<ver> and
            liberal_cortex_masks_FS<ver> directories
        fs_version (str): FreeSurfer version used to select asset folders,
            eg '5.3'
        freesurfer_home (str): optional, FreeSurfer installation directory.
            Used to default subjects_dir and fs_version.
    """

    def __init__(
        self, subjects_dir=None, asset_dir=None, fs_version=None, freesurfer_home=None
    ):
        self.freesurfer_home = freesurfer_home
        if subjects_dir is None and freesurfer_home:
            subjects_dir = op.join(freesurfer_home, "subjects")
        if fs_version is None and freesurfer_home:
            fs_version = read_fs_version(freesurfer_home)

        self.subjects_dir = subjects_dir
        self.asset_dir = asset_dir
        self.fs_version = fs_version

    @classmethod
    def from_environment(cls, environ=None):
        """
        Config from FREESURFER_HOME, SUBJECTS_DIR and REGFUSION_ASSET_DIR
        """

        env = os.environ if environ is None else environ
        return cls(
            subjects_dir=env.get("SUBJECTS_DIR"),
            asset_dir=env.get("REGFUSION_ASSET_DIR"),
            freesurfer_home=env.get("FREESURFER_HOME"),
        )

    def __repr__(self):
        return dedent(
            f"""\
            AssetConfig
            subjects_dir:    {self.subjects_dir}
            asset_dir:       {self.asset_dir}
            fs_version:      {self.fs_version}
            freesurfer_home: {self.freesurfer_home}"""
        )

    def _require(self, *attrs):
        missing = [a for a in attrs if getattr(self, a) is None]
        if missing:
            raise RuntimeError(
                f"AssetConfig must define {', '.join(missing)} to resolve default paths"
            )

    def mesh_path(self, hemi, average, variant="sphere"):
        """Path of an fsaverage surface, eg <subjects_dir>/fsaverage5/surf/lh.sphere"""

        self._require("subjects_dir")
        return op.join(self.subjects_dir, average, "surf", f"{hemi}.{variant}")

    def warps_dir(self):
        self._require("asset_dir", "fs_version")
        return op.join(self.asset_dir, f"final_warps_FS{self.fs_version}")

    def masks_dir(self):
        self._require("asset_dir", "fs_version")
        return op.join(self.asset_dir, f"liberal_cortex_masks_FS{self.fs_version}")

    def default_vol2surf_mapping(self, hemi, template="MNI152", method="RF_ANTs"):
        """Average mapping from a volumetric template to fsaverage, per hemisphere"""

        _check_template_method(template, method)
        fname = f"{hemi}.avgMapping_allSub_{method}_{template}_orig_to_fsaverage.mat"
        return op.join(self.warps_dir(), fname)

    def default_surf2vol_mapping(self, template="MNI152", method="RF_ANTs"):
        """Average mapping from fsaverage to a volumetric template (both hemispheres)"""

        _check_template_method(template, method)
        fname = (
            f"allSub_fsaverage_to_{TEMPLATE_NAMES[template]}_FS4.5.0_"
            f"{method}_avgMapping.prop.mat"
        )
        return op.join(self.warps_dir(), fname)

    def default_cortex_mask(self, template="MNI152"):
        """Liberal cortical mask in a volumetric template space"""

        _check_template_method(template, METHODS[0])
        fname = f"{TEMPLATE_NAMES[template]}_FS4.5.0_cortex_estimate.nii.gz"
        return op.join(self.masks_dir(), fname)


def _check_template_method(template, method):
    if template not in TEMPLATE_NAMES:
        raise ValueError(
            f"Template must be one of {list(TEMPLATE_NAMES)}, got {template}"
        )
    if method not in METHODS:
        raise ValueError(f"Method must be one of {METHODS}, got {method}")
