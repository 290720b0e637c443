"""
CommonParser: a subclass of the library ArgumentParser object pre-configured
to parse arguments that are common to the regfusion commands
"""

import argparse
import multiprocessing as mp


class CommonParser(argparse.ArgumentParser):
    """
    Preconfigured subclass of ArgumentParser to parse arguments that
    are common across regfusion commands. To use, instantiate an object
    with the names of the arguments the command accepts, then call
    parse_args as normal.
    """

    def __init__(self, args_to_add, **kwargs):
        from ..__main__ import suffix

        super().__init__(
            prog="regfusion",
            epilog=suffix,
            usage="regfusion -command-name <options>",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            **kwargs
        )

        general = self.add_argument_group("general arguments")
        if "input" in args_to_add:
            general.add_argument(
                "-input",
                required=True,
                help="path to volume in template space (3D or 4D NIFTI/MGH)",
            )

        if "lh_input" in args_to_add:
            general.add_argument(
                "-lh_input",
                required=True,
                help="""path to left hemisphere data on fsaverage, fsaverage6 or
                fsaverage5 (morph, .mgh, .gii, .npy or .txt)""",
            )

        if "rh_input" in args_to_add:
            general.add_argument(
                "-rh_input",
                required=True,
                help="path to right hemisphere data, as for -lh_input",
            )

        if "interp" in args_to_add:
            general.add_argument(
                "-interp",
                choices=["nearest", "linear"],
                help="""interpolation method (default linear for volume to surface,
                nearest for surface to volume)""",
            )

        if "out" in args_to_add:
            general.add_argument("-out", required=True, help="path to save output at")

        mapgroup = self.add_argument_group("mappings and masks")
        if "lh_map" in args_to_add:
            mapgroup.add_argument(
                "-lh_map",
                help="left hemisphere vertex to RAS mapping (default RF-ANTs MNI152)",
            )

        if "rh_map" in args_to_add:
            mapgroup.add_argument(
                "-rh_map",
                help="right hemisphere vertex to RAS mapping (default RF-ANTs MNI152)",
            )

        if "map" in args_to_add:
            mapgroup.add_argument(
                "-map",
                help="""voxel to fsaverage sphere mapping with lh_coord and rh_coord
                (default RF-ANTs MNI152)""",
            )

        if "mask" in args_to_add:
            mapgroup.add_argument(
                "-mask",
                help="""cortical mask in template space, required with a custom -map
                (default liberal MNI152 cortex mask)""",
            )

        if "average" in args_to_add:
            mapgroup.add_argument(
                "-average",
                choices=["fsaverage", "fsaverage6", "fsaverage5"],
                default="fsaverage",
                help="output mesh resolution (default fsaverage)",
            )

        misc = self.add_argument_group("other arguments")
        if "fill_value" in args_to_add:
            misc.add_argument(
                "-fill_value",
                type=float,
                default=float("nan"),
                metavar="X",
                help="value for vertices that map outside the volume (default NaN)",
            )

        if "cores" in args_to_add:
            misc.add_argument(
                "-cores",
                type=int,
                default=mp.cpu_count(),
                metavar="N",
                help="number of CPU cores to use (default is max available)",
            )
