from .common_parser import CommonParser
from .config import AssetConfig
from .mapping import MappingTable
from .surfaces import Surface
from .volume import Volume

__all__ = ["AssetConfig", "CommonParser", "MappingTable", "Surface", "Volume"]
