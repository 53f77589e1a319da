"""Shared raster primitives: luma, square dilation, separable Gaussian blur.

All neighbourhood operations clamp sample coordinates to the raster edge
(``cv2.BORDER_REPLICATE``) so masks neither erode nor darken at the border.
"""

from __future__ import annotations

import cv2
import numpy as np

# ITU-R BT.709 luma weights
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float64)


def to_luma(rgba: np.ndarray) -> np.ndarray:
    """(H, W, 3|4) uint8 → (H, W) float64 luma in [0, 255]."""
    return rgba[:, :, :3].astype(np.float64) @ LUMA_WEIGHTS


def round_half_up(values: np.ndarray) -> np.ndarray:
    """Round to the nearest integer, ties away from zero for positive input."""
    return np.floor(np.asarray(values, dtype=np.float64) + 0.5)


def dilate(mask: np.ndarray, radius: int) -> np.ndarray:
    """Grey dilation with a (2r+1)x(2r+1) square structuring element.

    Parameters
    ----------
    mask : np.ndarray
        (H, W) uint8.
    radius : int
        Half-size of the square. 0 returns a copy.

    Returns
    -------
    np.ndarray
        (H, W) uint8, each pixel the maximum of its clamped neighbourhood.
    """
    if radius < 0:
        raise ValueError(f"Dilation radius must be >= 0, got {radius}")
    src = np.ascontiguousarray(mask, dtype=np.uint8)
    if radius == 0 or src.size == 0:
        return src.copy()
    size = radius * 2 + 1
    kernel = np.ones((size, size), dtype=np.uint8)
    return cv2.dilate(src, kernel, borderType=cv2.BORDER_REPLICATE)


def gaussian_kernel(radius: int, sigma: float) -> np.ndarray:
    """1D Gaussian of length 2r+1, weights exp(-i²/2σ²) normalised to sum 1."""
    if radius < 0:
        raise ValueError(f"Blur radius must be >= 0, got {radius}")
    if sigma <= 0:
        raise ValueError(f"Blur sigma must be > 0, got {sigma}")
    offsets = np.arange(-radius, radius + 1, dtype=np.float64)
    kernel = np.exp(-(offsets * offsets) / (2.0 * sigma * sigma))
    return kernel / kernel.sum()


def gaussian_blur(mask: np.ndarray, radius: int, sigma: float) -> np.ndarray:
    """Separable Gaussian blur: horizontal pass, then vertical pass.

    Intermediate values stay in float64; the result is rounded per pixel
    and returned as (H, W) uint8.  Radius 0 returns a copy.
    """
    kernel = gaussian_kernel(radius, sigma)
    src = np.ascontiguousarray(mask)
    if radius == 0 or src.size == 0:
        return src.astype(np.uint8, copy=True)
    blurred = cv2.sepFilter2D(
        src.astype(np.float64),
        cv2.CV_64F,
        kernel,
        kernel,
        borderType=cv2.BORDER_REPLICATE,
    )
    return np.clip(round_half_up(blurred), 0, 255).astype(np.uint8)
