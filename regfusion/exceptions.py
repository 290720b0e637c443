"""Errors raised by the projection functions"""


class RegFusionError(ValueError):
    """Base class for invalid projection inputs"""


class InvalidShape(RegFusionError):
    """Surface data is not a single row of per-vertex values"""


class InvalidResolution(RegFusionError):
    """Vertex count does not match any fsaverage mesh resolution"""


class InvalidInterpolationMode(RegFusionError):
    """Interpolation mode is neither nearest nor linear"""


class InsufficientMapping(RegFusionError):
    """Mapping holds fewer coordinates than the vertices requested"""
