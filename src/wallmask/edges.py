"""Edge pipeline stages: Sobel gradient, adaptive threshold, interior fill.

Edge detection only finds object outlines.  ``fill_closed_regions`` turns
closed outlines into solid regions by flooding the open background from
the raster border; whatever the flood cannot reach is enclosed.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass

import cv2
import numpy as np

logger = logging.getLogger(__name__)


def sobel_magnitude(gray: np.ndarray) -> tuple[np.ndarray, float]:
    """Euclidean Sobel gradient magnitude.

    Parameters
    ----------
    gray : np.ndarray
        (H, W) luma, any numeric dtype.

    Returns
    -------
    tuple[np.ndarray, float]
        (H, W) float64 magnitude and its maximum.  The outermost rows and
        columns have no full 3x3 neighbourhood and are left at 0.
    """
    h, w = gray.shape[:2]
    magnitude = np.zeros((h, w), dtype=np.float64)
    if h < 3 or w < 3:
        return magnitude, 0.0

    src = np.ascontiguousarray(gray, dtype=np.float64)
    gx = cv2.Sobel(src, cv2.CV_64F, 1, 0, ksize=3)
    gy = cv2.Sobel(src, cv2.CV_64F, 0, 1, ksize=3)
    magnitude[1:-1, 1:-1] = np.hypot(gx[1:-1, 1:-1], gy[1:-1, 1:-1])
    return magnitude, float(magnitude.max())


@dataclass(frozen=True)
class EdgeThreshold:
    """Binary edge mask plus the statistics that produced it."""

    mask: np.ndarray
    threshold: float
    mean: float
    std: float


def adaptive_threshold(
    magnitude: np.ndarray,
    max_magnitude: float,
    lo: float = 35.0,
    hi: float = 180.0,
) -> EdgeThreshold:
    """Binarize gradient magnitude at ``clamp(mean + std, lo, hi)``.

    Magnitudes are first normalized to [0, 255] by ``max_magnitude``.  A
    zero maximum (perfectly flat image) gives an all-zero normalized map,
    so the result is an all-zero mask.
    """
    if max_magnitude > 0:
        normalized = magnitude * (255.0 / max_magnitude)
    else:
        normalized = np.zeros_like(magnitude, dtype=np.float64)

    if normalized.size:
        mean = float(normalized.mean())
        std = float(normalized.std())
    else:
        mean = std = 0.0
    threshold = min(hi, max(lo, mean + std))

    mask = np.where(normalized >= threshold, 255, 0).astype(np.uint8)
    logger.debug(
        "Edge threshold %.1f (mean %.2f, std %.2f), %d edge pixels",
        threshold, mean, std, np.count_nonzero(mask),
    )
    return EdgeThreshold(mask=mask, threshold=threshold, mean=mean, std=std)


def fill_closed_regions(mask: np.ndarray) -> np.ndarray:
    """Mark everything not connected to the border through zero pixels.

    Breadth-first flood from every zero pixel on the four borders across
    4-connected zero pixels.  Each pixel is queued at most once.

    Parameters
    ----------
    mask : np.ndarray
        (H, W) uint8, non-zero = edge/wall, 0 = open or enclosed.

    Returns
    -------
    np.ndarray
        (H, W) uint8: 0 where the flood reached, 255 elsewhere (edge
        pixels and enclosed interiors).
    """
    h, w = mask.shape[:2]
    total = h * w
    if total == 0:
        return np.zeros((h, w), dtype=np.uint8)

    # 1 = zero pixel not yet queued; cleared when queued so each pixel
    # enters the worklist at most once.
    free = bytearray((np.ascontiguousarray(mask).reshape(-1) == 0).astype(np.uint8).tobytes())
    reached = bytearray(total)
    queue: deque[int] = deque()
    append = queue.append
    popleft = queue.popleft

    cols = np.arange(w)
    rows = np.arange(h) * w
    seeds = np.unique(np.concatenate([cols, (h - 1) * w + cols, rows, rows + w - 1]))
    for idx in seeds.tolist():
        if free[idx]:
            free[idx] = 0
            reached[idx] = 1
            append(idx)

    last_row = total - w
    while queue:
        idx = popleft()
        x = idx % w
        if x > 0:
            n = idx - 1
            if free[n]:
                free[n] = 0
                reached[n] = 1
                append(n)
        if x < w - 1:
            n = idx + 1
            if free[n]:
                free[n] = 0
                reached[n] = 1
                append(n)
        if idx >= w:
            n = idx - w
            if free[n]:
                free[n] = 0
                reached[n] = 1
                append(n)
        if idx < last_row:
            n = idx + w
            if free[n]:
                free[n] = 0
                reached[n] = 1
                append(n)

    out = np.frombuffer(bytes(reached), dtype=np.uint8).reshape(h, w)
    return np.where(out == 1, 0, 255).astype(np.uint8)
