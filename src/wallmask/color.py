"""Colour pipeline: wall-colour estimate and colour-distance segmentation."""

from __future__ import annotations

import logging
import math

import numpy as np

logger = logging.getLogger(__name__)

NEUTRAL_GRAY = (128, 128, 128)


def _border_samples(
    rgba: np.ndarray, border_fraction: float, samples_per_edge: int,
) -> np.ndarray:
    """Collect (N, 3) colour samples on the inner edge of the border band.

    Left/right columns first (interleaved per row), then top/bottom rows
    (interleaved per column).
    """
    h, w = rgba.shape[:2]
    band = max(1, math.floor(min(w, h) * border_fraction))
    chunks: list[np.ndarray] = []

    if band <= w - 1:
        step_y = max(1, (h - 2 * band) // samples_per_edge)
        ys = np.arange(band, h - band, step_y)
        if ys.size:
            pair = np.stack([rgba[ys, band, :3], rgba[ys, w - 1 - band, :3]], axis=1)
            chunks.append(pair.reshape(-1, 3))

    if band <= h - 1:
        step_x = max(1, (w - 2 * band) // samples_per_edge)
        xs = np.arange(band, w - band, step_x)
        if xs.size:
            pair = np.stack([rgba[band, xs, :3], rgba[h - 1 - band, xs, :3]], axis=1)
            chunks.append(pair.reshape(-1, 3))

    if not chunks:
        return np.empty((0, 3), dtype=np.uint8)
    return np.concatenate(chunks, axis=0)


def estimate_wall_color(
    rgba: np.ndarray,
    border_fraction: float = 0.08,
    samples_per_edge: int = 16,
) -> tuple[int, int, int]:
    """Estimate the dominant wall colour from samples near the crop border.

    Returns the sample with the median R+G+B brightness rather than a
    channel mean, so a few samples landing on an object that touches the
    border do not drag the estimate.  Returns neutral grey when the crop is
    too small to yield any sample.
    """
    samples = _border_samples(rgba, border_fraction, samples_per_edge)
    if len(samples) == 0:
        logger.debug("No wall samples for %s crop, using neutral grey", rgba.shape[:2])
        return NEUTRAL_GRAY

    brightness = samples.astype(np.int32).sum(axis=1)
    order = np.argsort(brightness, kind="stable")
    r, g, b = (int(c) for c in samples[order[len(samples) // 2]])
    logger.debug("Wall colour (%d, %d, %d) from %d samples", r, g, b, len(samples))
    return r, g, b


def color_distance_mask(
    rgba: np.ndarray,
    wall_color: tuple[int, int, int],
    threshold: float = 58.0,
) -> np.ndarray:
    """255 where the Euclidean RGB distance to ``wall_color`` is >= threshold."""
    diff = rgba[:, :, :3].astype(np.float64) - np.asarray(wall_color, dtype=np.float64)
    dist = np.sqrt((diff * diff).sum(axis=2))
    return np.where(dist >= threshold, 255, 0).astype(np.uint8)
