"""Tunable parameters for the occlusion mask pipeline.

Defaults reproduce the calibrated behaviour; every threshold, radius and
sigma is exposed so it can be re-tuned against a labelled photo set.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OcclusionMaskConfig(BaseModel):
    """Occlusion mask parameters.

    The config is frozen (hashable) so it can be part of a cache key.
    """

    model_config = ConfigDict(frozen=True)

    # -- Edge pipeline --------------------------------------------------------

    threshold_min: float = Field(
        default=35.0,
        ge=0.0,
        le=255.0,
        description=(
            "Lower clamp for the adaptive gradient threshold (0-255 scale). "
            "Keeps low-contrast photos from turning every wall texture "
            "ripple into an edge."
        ),
    )

    threshold_max: float = Field(
        default=180.0,
        ge=0.0,
        le=255.0,
        description=(
            "Upper clamp for the adaptive gradient threshold. Keeps "
            "high-contrast photos from losing all but the strongest edges."
        ),
    )

    seal_radius: int = Field(
        default=3,
        ge=0,
        le=64,
        description="Dilation radius that closes small gaps in edge contours before the interior fill.",
    )

    edge_dilation_radius: int = Field(
        default=2,
        ge=0,
        le=64,
        description="Dilation radius applied to the filled edge mask.",
    )

    edge_blur_radius: int = Field(default=3, ge=0, le=64)
    edge_blur_sigma: float = Field(default=2.0, gt=0.0, le=64.0)

    # -- Colour pipeline ------------------------------------------------------

    color_distance_threshold: float = Field(
        default=58.0,
        ge=0.0,
        le=442.0,
        description=(
            "Minimum Euclidean RGB distance from the wall colour for a pixel "
            "to count as an object. Higher = less patchiness on plain wall."
        ),
    )

    wall_border_fraction: float = Field(
        default=0.08,
        gt=0.0,
        le=0.5,
        description="Depth of the border band sampled for the wall colour, as a fraction of min(width, height).",
    )

    wall_samples_per_edge: int = Field(
        default=16,
        ge=1,
        le=1024,
        description="Approximate number of wall-colour samples taken along each edge.",
    )

    color_dilation_radius: int = Field(default=2, ge=0, le=64)
    color_blur_radius: int = Field(default=2, ge=0, le=64)
    color_blur_sigma: float = Field(default=1.2, gt=0.0, le=64.0)

    # -- Object-region gate ---------------------------------------------------

    region_dilation_radius: int = Field(
        default=10,
        ge=0,
        le=128,
        description="Dilation radius of the edge mask that bounds where colour detections may contribute.",
    )

    region_blur_radius: int = Field(default=8, ge=0, le=128)
    region_blur_sigma: float = Field(default=4.0, gt=0.0, le=128.0)

    # -- Tone mapping ---------------------------------------------------------

    mask_gamma: float = Field(
        default=0.7,
        gt=0.0,
        le=8.0,
        description="Gamma applied to the fused mask (< 1 brightens mid-tones at soft object edges).",
    )

    @model_validator(mode="after")
    def _check_threshold_range(self) -> "OcclusionMaskConfig":
        if self.threshold_min > self.threshold_max:
            raise ValueError(
                f"threshold_min ({self.threshold_min}) must not exceed "
                f"threshold_max ({self.threshold_max})"
            )
        return self
