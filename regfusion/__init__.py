from regfusion import core, exceptions, fileio, projection, utils
from regfusion._version import __version__
from regfusion.classes import AssetConfig, MappingTable, Surface, Volume
from regfusion.core import Interp
from regfusion.projection import apply_cortical_mask, surf2vol, vol2surf
