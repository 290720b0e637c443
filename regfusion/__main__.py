import argparse
import inspect
import sys
from pathlib import Path
from textwrap import dedent

from regfusion import fileio, scripts
from regfusion._version import __version__
from regfusion.classes import CommonParser
from regfusion.utils import _splitExts

suffix = f"""
version {__version__}
Registration Fusion projection between volumetric templates and fsaverage
"""

SURF_OUT_EXTS = [".mgh", ".mgz", ".func.gii", ".npy"]


def _commands():
    return [
        (name, func)
        for name, func in inspect.getmembers(scripts, inspect.isfunction)
        if func.__module__ == scripts.__name__ and not name.startswith("_")
    ]


def _save_surface_outputs(result, out, input_path):
    """Write lh.<name>.mgh and rh.<name>.mgh (or another format) into out"""

    out = Path(out)
    ext = ".mgh"
    for e in SURF_OUT_EXTS:
        if out.name.endswith(e):
            ext = e
            out = out.parent
            break

    out.mkdir(parents=True, exist_ok=True)
    name = _splitExts(str(input_path))[0]
    for side, data in zip(["lh", "rh"], result):
        fileio.save_surface_data(data, out / f"{side}.{name}{ext}")


def _save_volume_outputs(result, out):
    """Write <out>.nii.gz and <out>_seg.nii.gz"""

    out = Path(out)
    stem, ext = _splitExts(str(out))
    if not ext:
        ext = ".nii.gz"
    out.parent.mkdir(parents=True, exist_ok=True)
    combined, segmented = result
    combined.save(out.parent / f"{stem}{ext}")
    segmented.save(out.parent / f"{stem}_seg{ext}")


def main():
    parser = argparse.ArgumentParser(
        prog="regfusion",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=suffix,
        usage="regfusion -command-name <options>",
        description=dedent(
            "Registration Fusion projection tools. Run any command with -h for help."
        ),
    )

    for fname, _ in _commands():
        parser.add_argument(f"-{fname.replace('_', '-')}", action="store_true")

    if len(sys.argv) < 2:
        parser.print_help()
        return
    else:
        args = parser.parse_args(sys.argv[1:2])

    func_name = None
    for name, flag in vars(args).items():
        if flag:
            func_name = name
            func = getattr(scripts, name)
            break

    if func_name is None:
        parser.print_help()
        return

    arg_names = inspect.signature(func).parameters.keys()
    parser = CommonParser([*arg_names, "out"])
    func_args = parser.parse_args(sys.argv[2:])
    kwargs = {k: v for k, v in vars(func_args).items() if v is not None}

    out = kwargs.pop("out")
    result = func(**kwargs)

    if func_name == "vol2fsaverage":
        _save_surface_outputs(result, out, kwargs["input"])
        return

    if func_name == "fsaverage2vol":
        _save_volume_outputs(result, out)
        return

    raise RuntimeError("Did not capture command's result")


if __name__ == "__main__":
    main()
