"""wallmask — soft occlusion masks for retextured wall previews.

Given an RGBA crop of a wall photo, ``build_occlusion_mask`` returns an
RGBA raster of the same size whose alpha marks how strongly each pixel
belongs to a foreground object (0 = wall, 255 = object).
"""

import logging

from .cache import OcclusionMaskCache
from .pipeline import (
    OcclusionMaskBuilder,
    OcclusionMaskResult,
    build_occlusion_mask,
    build_occlusion_mask_safe,
)
from .raster import (
    RasterFormatError,
    RasterShapeError,
    WallMaskError,
    ensure_rgba,
    rgba_from_buffer,
)
from .schema import OcclusionMaskConfig

logger = logging.getLogger(__name__)

__version__ = "0.1.0"

__all__ = [
    "OcclusionMaskBuilder",
    "OcclusionMaskCache",
    "OcclusionMaskConfig",
    "OcclusionMaskResult",
    "RasterFormatError",
    "RasterShapeError",
    "WallMaskError",
    "build_occlusion_mask",
    "build_occlusion_mask_safe",
    "ensure_rgba",
    "rgba_from_buffer",
]
