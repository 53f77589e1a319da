"""Raster adapters and error types.

Pipeline stages operate on numpy arrays:

* RGBA raster — (H, W, 4) uint8, interleaved R, G, B, A.
* mask — (H, W) uint8 in [0, 255].
* float raster — (H, W) float64 (gradient magnitude).
"""

from __future__ import annotations

import numpy as np


class WallMaskError(Exception):
    """Base class for occlusion mask errors."""


class RasterFormatError(WallMaskError, ValueError):
    """The input pixel buffer is not a supported RGBA/RGB layout."""


class RasterShapeError(WallMaskError, ValueError):
    """Two rasters combined by a stage have different dimensions."""


def ensure_rgba(image: np.ndarray) -> np.ndarray:
    """Return ``image`` as a (H, W, 4) uint8 array.

    An (H, W, 3) RGB array gets an opaque alpha channel.  Anything else is
    rejected with :class:`RasterFormatError`.
    """
    arr = np.asarray(image)
    if arr.dtype != np.uint8:
        raise RasterFormatError(f"Expected uint8 pixels, got {arr.dtype}")
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise RasterFormatError(
            f"Expected (H, W, 4) RGBA or (H, W, 3) RGB, got shape {arr.shape}"
        )
    if arr.shape[2] == 3:
        alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
        arr = np.concatenate([arr, alpha], axis=2)
    return arr


def rgba_from_buffer(data: bytes | bytearray | memoryview, width: int, height: int) -> np.ndarray:
    """Wrap a flat interleaved RGBA byte buffer as an (H, W, 4) array.

    Parameters
    ----------
    data : bytes-like
        ``width * height * 4`` bytes, row-major.
    width, height : int
        Raster dimensions.  Zero is allowed and yields an empty array.
    """
    if width < 0 or height < 0:
        raise RasterFormatError(f"Negative raster size {width}x{height}")
    expected = width * height * 4
    buf = np.frombuffer(data, dtype=np.uint8)
    if buf.size != expected:
        raise RasterFormatError(
            f"RGBA buffer for {width}x{height} needs {expected} bytes, got {buf.size}"
        )
    return buf.reshape(height, width, 4).copy()


def check_same_shape(*masks: np.ndarray) -> tuple[int, int]:
    """Return the common (H, W) of ``masks`` or raise :class:`RasterShapeError`."""
    shape = masks[0].shape[:2]
    for m in masks[1:]:
        if m.shape[:2] != shape:
            raise RasterShapeError(f"Raster size mismatch: {m.shape[:2]} vs {shape}")
    return shape


def is_degenerate(image: np.ndarray) -> bool:
    """True when the raster has zero width or zero height."""
    return image.shape[0] == 0 or image.shape[1] == 0


def empty_rgba(h: int = 1, w: int = 1) -> np.ndarray:
    return np.zeros((h, w, 4), dtype=np.uint8)


def mask_to_rgba(mask: np.ndarray) -> np.ndarray:
    """Replicate a single-channel mask into R, G, B and A."""
    return np.repeat(mask[:, :, np.newaxis], 4, axis=2).astype(np.uint8)
