import numpy as np
import pytest

import wallmask.pipeline as pipeline
from wallmask import (
    OcclusionMaskBuilder,
    OcclusionMaskConfig,
    RasterFormatError,
    RasterShapeError,
    build_occlusion_mask,
    build_occlusion_mask_safe,
    rgba_from_buffer,
)
from wallmask.pipeline import SoftenStage, apply_gamma, fuse_masks


class TestEndToEnd:
    def test_red_square_scenario(self, red_square_scene):
        out = build_occlusion_mask(red_square_scene)
        assert out.shape == (40, 40, 4)
        alpha = out[:, :, 3]
        for y, x in [(5, 5), (5, 34), (34, 5), (34, 34)]:
            assert alpha[y, x] < 20
        assert alpha[19, 19] > 150

    def test_channels_are_replicated(self, red_square_scene):
        out = build_occlusion_mask(red_square_scene)
        for ch in range(3):
            assert np.array_equal(out[:, :, ch], out[:, :, 3])

    def test_uniform_wall_gives_empty_mask(self, gray_wall):
        out = build_occlusion_mask(gray_wall)
        assert not out.any()

    def test_random_input_is_bounded_below_by_edge_mask(self, rng):
        img = rng.integers(0, 256, size=(37, 29, 4), dtype=np.uint8)
        result = OcclusionMaskBuilder().run(img, keep_stages=True)
        alpha = result.alpha
        assert result.rgba.shape == img.shape
        assert alpha.max() > 0
        assert np.all(result.stages["combined"] >= result.stages["edge"])
        assert np.all(alpha >= apply_gamma(result.stages["edge"], 0.7))
        assert np.array_equal(alpha, apply_gamma(result.stages["combined"], 0.7))

    def test_color_branch_raises_mask_beside_edges(self, color_strip_scene):
        default = OcclusionMaskBuilder().run(color_strip_scene, keep_stages=True)
        no_color = OcclusionMaskBuilder(
            OcclusionMaskConfig(color_distance_threshold=442),
        ).run(color_strip_scene, keep_stages=True)

        assert default.wall_color == (200, 200, 200)
        # The strip has no gradient edge and lies outside the edge mask's reach
        assert default.stages["edge"][24, 42] == 0
        assert default.stages["color"][24, 42] == 255
        assert default.stages["gate"][24, 42] > 0
        assert no_color.alpha[24, 42] == 0
        assert default.alpha[24, 42] > no_color.alpha[24, 42]
        assert default.alpha[24, 42] > 100

    def test_color_outside_gate_is_suppressed(self, color_strip_scene):
        # Shrinking the gate to the edge mask's own reach cuts off the strip.
        config = OcclusionMaskConfig(region_dilation_radius=0, region_blur_radius=0)
        result = OcclusionMaskBuilder(config).run(color_strip_scene, keep_stages=True)
        assert result.stages["color"][24, 42] == 255
        assert result.stages["gate"][24, 42] == 0
        assert result.alpha[24, 42] == 0

    @pytest.mark.parametrize("shape", [(1, 1), (1, 17), (17, 1), (2, 3), (5, 64), (33, 20)])
    def test_dimensions_preserved(self, shape, rng):
        img = rng.integers(0, 256, size=shape + (4,), dtype=np.uint8)
        assert build_occlusion_mask(img).shape == shape + (4,)

    def test_rgb_input_is_accepted(self, red_square_scene):
        rgb = np.ascontiguousarray(red_square_scene[:, :, :3])
        assert np.array_equal(build_occlusion_mask(rgb), build_occlusion_mask(red_square_scene))

    def test_deterministic(self, red_square_scene):
        a = build_occlusion_mask(red_square_scene)
        b = build_occlusion_mask(red_square_scene.copy())
        assert np.array_equal(a, b)

    def test_input_is_not_modified(self, red_square_scene):
        before = red_square_scene.copy()
        build_occlusion_mask(red_square_scene)
        assert np.array_equal(before, red_square_scene)

    @pytest.mark.parametrize("shape", [(0, 10, 4), (10, 0, 4), (0, 0, 4)])
    def test_degenerate_input_returns_empty_raster(self, shape):
        out = build_occlusion_mask(np.zeros(shape, dtype=np.uint8))
        assert out.shape == (1, 1, 4)
        assert not out.any()

    @pytest.mark.parametrize(
        "empty",
        [
            np.zeros((0, 5, 4), dtype=np.float32),
            np.zeros((5, 0, 2), dtype=np.uint8),
            np.zeros((0, 0), dtype=np.uint8),
        ],
    )
    def test_degenerate_input_wins_over_format_check(self, empty):
        out = build_occlusion_mask(empty)
        assert out.shape == (1, 1, 4)
        assert not out.any()

    def test_flat_buffer_input(self, red_square_scene):
        img = rgba_from_buffer(red_square_scene.tobytes(), 40, 40)
        assert np.array_equal(img, red_square_scene)
        assert build_occlusion_mask(img)[19, 19, 3] > 150

    def test_flat_buffer_wrong_length(self):
        with pytest.raises(RasterFormatError):
            rgba_from_buffer(b"\x00" * 15, 2, 2)

    @pytest.mark.parametrize(
        "bad",
        [
            np.zeros((4, 4), dtype=np.uint8),
            np.zeros((4, 4, 2), dtype=np.uint8),
            np.zeros((4, 4, 4), dtype=np.float32),
        ],
    )
    def test_unsupported_format_raises(self, bad):
        with pytest.raises(RasterFormatError):
            build_occlusion_mask(bad)


class TestStages:
    def test_keep_stages(self, red_square_scene):
        result = OcclusionMaskBuilder().run(red_square_scene, keep_stages=True)
        assert set(result.stages) == {
            "color_raw", "color", "edges", "sealed", "filled", "edge", "gate", "combined",
        }
        for mask in result.stages.values():
            assert mask.shape == (40, 40)
        assert result.wall_color == (230, 230, 230)
        assert 35.0 <= result.edge_threshold <= 180.0
        assert np.array_equal(result.alpha, result.rgba[:, :, 3])

    def test_stages_empty_by_default(self, red_square_scene):
        assert OcclusionMaskBuilder().run(red_square_scene).stages == {}

    def test_square_interior_is_filled(self, red_square_scene):
        stages = OcclusionMaskBuilder().run(red_square_scene, keep_stages=True).stages
        assert stages["filled"][19, 19] == 255
        assert stages["filled"][2, 2] == 0

    def test_soften_stage(self):
        mask = np.zeros((15, 15), dtype=np.uint8)
        mask[7, 7] = 255
        stage = SoftenStage("probe", dilate_radius=2, blur_radius=0, blur_sigma=1.0)
        out = stage(mask)
        assert np.count_nonzero(out) == 25

    def test_fuse_gates_color_by_region(self):
        edge = np.array([[0, 100]], dtype=np.uint8)
        color = np.array([[255, 255]], dtype=np.uint8)
        gate = np.array([[0, 51]], dtype=np.uint8)
        assert fuse_masks(edge, color, gate).tolist() == [[0, 100]]
        gate = np.array([[128, 255]], dtype=np.uint8)
        assert fuse_masks(edge, color, gate).tolist() == [[128, 255]]

    def test_fuse_rounds_half_up(self):
        # 3 * 85 / 255 = 1.0; 1 * 128 / 255 = 0.502 -> 1
        edge = np.zeros((1, 2), dtype=np.uint8)
        color = np.array([[3, 1]], dtype=np.uint8)
        gate = np.array([[85, 128]], dtype=np.uint8)
        assert fuse_masks(edge, color, gate).tolist() == [[1, 1]]

    def test_fuse_rejects_mismatched_shapes(self):
        with pytest.raises(RasterShapeError):
            fuse_masks(
                np.zeros((2, 2), dtype=np.uint8),
                np.zeros((2, 3), dtype=np.uint8),
                np.zeros((2, 2), dtype=np.uint8),
            )

    def test_gamma_brightens_midtones(self):
        mask = np.array([[0, 64, 128, 255]], dtype=np.uint8)
        out = apply_gamma(mask, 0.7)
        assert out[0, 0] == 0 and out[0, 3] == 255
        assert out[0, 1] > 64 and out[0, 2] > 128
        assert out[0, 2] == int(np.floor((128 / 255) ** 0.7 * 255 + 0.5))

    def test_gamma_one_is_identity(self, rng):
        mask = rng.integers(0, 256, size=(9, 9), dtype=np.uint8)
        assert np.array_equal(apply_gamma(mask, 1.0), mask)


class TestSafeBuild:
    def test_failure_falls_back_to_no_occlusion(self, red_square_scene, monkeypatch):
        def boom(mask):
            raise RuntimeError("stage failed")

        monkeypatch.setattr(pipeline, "fill_closed_regions", boom)
        out = build_occlusion_mask_safe(red_square_scene)
        assert out.shape == (40, 40, 4)
        assert not out.any()

    def test_bad_format_falls_back(self):
        out = build_occlusion_mask_safe(np.zeros((6, 5, 4), dtype=np.float64))
        assert out.shape == (6, 5, 4)
        assert not out.any()

    def test_success_matches_plain_build(self, red_square_scene):
        assert np.array_equal(
            build_occlusion_mask_safe(red_square_scene),
            build_occlusion_mask(red_square_scene),
        )

    def test_custom_config_is_used(self, red_square_scene):
        config = OcclusionMaskConfig(mask_gamma=1.0)
        out = build_occlusion_mask_safe(red_square_scene, config)
        assert np.array_equal(out, build_occlusion_mask(red_square_scene, config))
