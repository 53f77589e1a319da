"""Occlusion mask pipeline.

Fuses two foreground detectors into one soft mask:

1. **edge** — Sobel → adaptive threshold → seal gaps → fill enclosed
   interiors → dilate → blur.  Sharp boundaries (TV, outlets, trim).
2. **color** — pixels far from the estimated wall colour → dilate → blur.
   Soft or colourful objects the edge detector misses.

Colour detections only count near edge-detected objects: they are scaled
by a heavily dilated and blurred copy of the edge mask (the *gate*), so
lighting gradients on plain wall do not show up as objects.  The fused
mask is gamma-boosted and replicated into R, G, B and A.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from .color import color_distance_mask, estimate_wall_color
from .edges import adaptive_threshold, fill_closed_regions, sobel_magnitude
from .filters import dilate, gaussian_blur, round_half_up, to_luma
from .raster import (
    check_same_shape,
    empty_rgba,
    ensure_rgba,
    is_degenerate,
    mask_to_rgba,
)
from .schema import OcclusionMaskConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SoftenStage:
    """Dilate by ``dilate_radius`` then Gaussian-blur a mask."""

    name: str
    dilate_radius: int
    blur_radius: int
    blur_sigma: float

    def __call__(self, mask: np.ndarray) -> np.ndarray:
        return gaussian_blur(
            dilate(mask, self.dilate_radius), self.blur_radius, self.blur_sigma,
        )


def fuse_masks(edge: np.ndarray, color: np.ndarray, gate: np.ndarray) -> np.ndarray:
    """``max(edge, round(color * gate / 255))`` per pixel, as uint8."""
    check_same_shape(edge, color, gate)
    gated = round_half_up(color.astype(np.float64) * gate.astype(np.float64) / 255.0)
    return np.maximum(edge.astype(np.float64), gated).clip(0, 255).astype(np.uint8)


def apply_gamma(mask: np.ndarray, gamma: float) -> np.ndarray:
    """``round((v / 255) ** gamma * 255)`` per pixel, clipped to [0, 255]."""
    boosted = np.power(mask.astype(np.float64) / 255.0, gamma) * 255.0
    return np.clip(round_half_up(boosted), 0, 255).astype(np.uint8)


@dataclass
class OcclusionMaskResult:
    """Final mask plus diagnostics from a single run."""

    rgba: np.ndarray
    edge_threshold: float = 0.0
    wall_color: tuple[int, int, int] = (128, 128, 128)
    stages: dict[str, np.ndarray] = field(default_factory=dict)

    @property
    def alpha(self) -> np.ndarray:
        """(H, W) occlusion strength consumed by the compositor."""
        return self.rgba[:, :, 3]


class OcclusionMaskBuilder:
    """Runs the edge/colour fusion pipeline with a fixed configuration.

    Stateless between calls; one builder may be shared across threads.
    """

    def __init__(self, config: OcclusionMaskConfig | None = None):
        self.config = config or OcclusionMaskConfig()
        c = self.config
        self.edge_stage = SoftenStage(
            "edge", c.edge_dilation_radius, c.edge_blur_radius, c.edge_blur_sigma,
        )
        self.color_stage = SoftenStage(
            "color", c.color_dilation_radius, c.color_blur_radius, c.color_blur_sigma,
        )
        self.gate_stage = SoftenStage(
            "gate", c.region_dilation_radius, c.region_blur_radius, c.region_blur_sigma,
        )

    def run(self, image: np.ndarray, keep_stages: bool = False) -> OcclusionMaskResult:
        """Build the occlusion mask for one RGBA (or RGB) crop.

        Parameters
        ----------
        image : np.ndarray
            (H, W, 4) or (H, W, 3) uint8.
        keep_stages : bool
            Keep every intermediate mask in ``result.stages`` for debug
            visualization.

        Returns
        -------
        OcclusionMaskResult
            ``rgba`` has the input's (H, W); a zero-area input yields a
            1x1 all-zero raster instead.
        """
        arr = np.asarray(image)
        if arr.ndim >= 2 and is_degenerate(arr):
            logger.warning("Degenerate %dx%d crop, returning empty mask", arr.shape[1], arr.shape[0])
            return OcclusionMaskResult(rgba=empty_rgba())
        rgba = ensure_rgba(arr)

        c = self.config
        stages: dict[str, np.ndarray] = {}

        # Colour pipeline
        wall_color = estimate_wall_color(rgba, c.wall_border_fraction, c.wall_samples_per_edge)
        color_raw = color_distance_mask(rgba, wall_color, c.color_distance_threshold)
        color_soft = self.color_stage(color_raw)

        # Edge pipeline
        magnitude, max_magnitude = sobel_magnitude(to_luma(rgba))
        edges = adaptive_threshold(magnitude, max_magnitude, c.threshold_min, c.threshold_max)
        sealed = dilate(edges.mask, c.seal_radius)
        filled = fill_closed_regions(sealed)
        source = np.maximum(sealed, filled)
        edge_soft = self.edge_stage(source)

        gate = self.gate_stage(source)
        combined = fuse_masks(edge_soft, color_soft, gate)
        final = apply_gamma(combined, c.mask_gamma)

        if keep_stages:
            stages.update(
                color_raw=color_raw,
                color=color_soft,
                edges=edges.mask,
                sealed=sealed,
                filled=filled,
                edge=edge_soft,
                gate=gate,
                combined=combined,
            )

        logger.debug(
            "Occlusion mask %dx%d: threshold %.1f, wall %s, coverage %.1f%%",
            rgba.shape[1], rgba.shape[0], edges.threshold, wall_color,
            100.0 * np.count_nonzero(final) / final.size,
        )
        return OcclusionMaskResult(
            rgba=mask_to_rgba(final),
            edge_threshold=edges.threshold,
            wall_color=wall_color,
            stages=stages,
        )


def build_occlusion_mask(
    image: np.ndarray, config: OcclusionMaskConfig | None = None,
) -> np.ndarray:
    """Return an RGBA raster whose alpha is the per-pixel occlusion strength."""
    return OcclusionMaskBuilder(config).run(image).rgba


def build_occlusion_mask_safe(
    image: np.ndarray, config: OcclusionMaskConfig | None = None,
) -> np.ndarray:
    """Like :func:`build_occlusion_mask`, but never raises.

    Any failure is logged and answered with an all-zero mask ("no
    occlusion") so the preview can keep rendering the plain tile texture.
    """
    try:
        return build_occlusion_mask(image, config)
    except Exception as exc:
        logger.error("Occlusion mask failed: %s: %s", type(exc).__name__, exc, exc_info=True)
        shape = getattr(image, "shape", ())
        if len(shape) >= 2 and shape[0] > 0 and shape[1] > 0:
            return empty_rgba(int(shape[0]), int(shape[1]))
        return empty_rgba()
