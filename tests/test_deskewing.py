"""Tests for skew detection and correction."""

import math

import numpy as np
import pytest

import preprocessing.deskewing as deskewing
from preprocessing import PixelFormat, ProcessingFailure, RasterImage, deskew_image
from preprocessing.deskewing import (
    coarse_angles,
    fine_angles,
    median_binarize,
    projection_variance,
    rotate_image,
    rotated_canvas_size,
    skew_confidence,
)


class TestAngleSweeps:
    def test_coarse_sweep(self):
        angles = coarse_angles()
        assert len(angles) == 41
        assert angles[0] == -10.0
        assert angles[-1] == 10.0
        assert 0.0 in angles

    def test_fine_sweep(self):
        angles = fine_angles(2.0)
        assert len(angles) == 11
        assert angles[0] == pytest.approx(1.5)
        assert angles[-1] == pytest.approx(2.5)


class TestMedianBinarize:
    def test_above_median_is_white(self):
        gray = np.array([[10, 20, 30, 40, 50]], dtype=np.uint8)
        assert median_binarize(gray).tolist() == [[0, 0, 0, 255, 255]]

    def test_empty_raises(self):
        with pytest.raises(ProcessingFailure, match="Empty image"):
            median_binarize(np.zeros((0, 0), dtype=np.uint8))


class TestProjectionVariance:
    def test_all_dark_is_flat_at_zero_degrees(self):
        binary = np.zeros((20, 30), dtype=np.uint8)
        assert projection_variance(binary, 0.0) == 0.0
        assert projection_variance(binary, 5.0) > 0.0

    def test_no_dark_pixels(self):
        binary = np.full((20, 30), 255, dtype=np.uint8)
        assert projection_variance(binary, 3.0) == 0.0


class TestDetectSkewAngle:
    """Angle search driven by a stand-in projection score."""

    @pytest.fixture
    def gray(self):
        return np.arange(20 * 30, dtype=np.uint8).reshape(20, 30)

    def test_refines_around_coarse_best(self, monkeypatch, gray):
        scored = []

        def score(binary, angle):
            scored.append(angle)
            return abs(angle - 3.2)

        monkeypatch.setattr(deskewing, "projection_variance", score)
        assert deskewing.detect_skew_angle(gray) == pytest.approx(3.2)
        # 41 coarse angles, then 11 fine angles centred on the coarse best 3.0
        assert len(scored) == 52
        assert scored[41] == pytest.approx(2.5)
        assert scored[-1] == pytest.approx(3.5)

    def test_flat_score_keeps_first_angle(self, monkeypatch, gray):
        monkeypatch.setattr(deskewing, "projection_variance", lambda binary, angle: 1.0)
        assert deskewing.detect_skew_angle(gray) == -10.0

    def test_ties_keep_earlier_angle(self, monkeypatch, gray):
        monkeypatch.setattr(
            deskewing, "projection_variance", lambda binary, angle: abs(abs(angle) - 2.0)
        )
        assert deskewing.detect_skew_angle(gray) == -2.0

    def test_fine_sweep_may_pass_the_coarse_range(self, monkeypatch, gray):
        monkeypatch.setattr(
            deskewing, "projection_variance", lambda binary, angle: -abs(angle + 7.0)
        )
        assert deskewing.detect_skew_angle(gray) == pytest.approx(10.5)


class TestRotation:
    def test_zero_rotation_is_identity(self):
        pixels = np.random.randint(0, 256, (17, 23, 3), dtype=np.uint8)
        rotated = rotate_image(RasterImage.from_array(pixels), 0.0)
        assert np.array_equal(rotated.pixels, pixels)

    def test_canvas_grows_to_fit_corners(self):
        width, height = rotated_canvas_size(100, 50, math.radians(5.0))
        assert (width, height) == (104, 59)

    def test_quarter_turn_swaps_dimensions(self):
        assert rotated_canvas_size(100, 40, math.radians(90.0)) == (40, 100)

    def test_uncovered_corners_are_transparent(self):
        pixels = np.full((50, 100, 4), 255, dtype=np.uint8)
        rotated = rotate_image(RasterImage.from_array(pixels), 5.0)
        assert rotated.format == PixelFormat.RGBA8
        assert rotated.pixels[0, 0].tolist() == [0, 0, 0, 0]
        center = rotated.pixels[rotated.height // 2, rotated.width // 2]
        assert center.tolist() == [255, 255, 255, 255]

    @pytest.mark.parametrize("dtype,shape", [(np.uint16, (10, 10)), (np.uint16, (10, 10, 3))])
    def test_sixteen_bit_rejected(self, dtype, shape):
        image = RasterImage.from_array(np.zeros(shape, dtype=dtype))
        with pytest.raises(ProcessingFailure, match="Unsupported image format"):
            rotate_image(image, 3.0)


class TestSkewConfidence:
    def test_straight_large_image_is_certain(self):
        assert skew_confidence(1000, 1000, 0.0) == pytest.approx(1.0)

    def test_angle_and_size_contribute(self):
        assert skew_confidence(100, 50, 5.0) == pytest.approx(0.7 * 0.5 + 0.3 * 0.05)

    def test_max_angle_leaves_size_term(self):
        assert skew_confidence(10, 10, -10.0) == pytest.approx(0.3 * 100 / 100_000)


class TestDeskewImage:
    """Tests for the deskew_image function."""

    def test_horizontal_lines_are_not_rotated(self, lined_card):
        result = deskew_image(lined_card)
        assert abs(result.metrics.skew_angle_degrees) < 1.0
        assert result.metrics.confidence == 0.0
        assert result.image.dimensions == lined_card.dimensions
        assert np.array_equal(result.image.pixels, lined_card.pixels)
        assert result.image.pixels is not lined_card.pixels

    def test_uniform_image_reports_zero_angle(self):
        result = deskew_image(RasterImage.gray(np.full((30, 40), 180)))
        assert result.metrics.skew_angle_degrees == 0.0
        assert result.metrics.confidence == 0.0

    def test_detected_skew_is_corrected(self, monkeypatch):
        monkeypatch.setattr(deskewing, "detect_skew_angle", lambda gray: 5.0)
        image = RasterImage.from_array(np.full((50, 100, 3), 200, dtype=np.uint8))

        result = deskew_image(image)

        assert result.metrics.skew_angle_degrees == 5.0
        assert result.metrics.confidence == pytest.approx(skew_confidence(100, 50, 5.0))
        assert result.image.format == PixelFormat.RGB8
        assert result.image.dimensions == (104, 59)

    def test_rotates_by_negated_angle(self, monkeypatch):
        calls = []

        def fake_rotate(image, angle):
            calls.append(angle)
            return image

        monkeypatch.setattr(deskewing, "detect_skew_angle", lambda gray: -2.5)
        monkeypatch.setattr(deskewing, "rotate_image", fake_rotate)
        deskew_image(RasterImage.gray(np.zeros((10, 10))))
        assert calls == [2.5]

    def test_small_angle_is_not_corrected(self, monkeypatch):
        monkeypatch.setattr(deskewing, "detect_skew_angle", lambda gray: 0.4)
        image = RasterImage.gray(np.zeros((10, 12)))
        result = deskew_image(image)
        assert result.image.dimensions == (12, 10)
        assert result.metrics.skew_angle_degrees == 0.4
        assert result.metrics.confidence == 0.0

    def test_sixteen_bit_without_skew_passes_through(self):
        pixels = np.full((30, 40), 50000, dtype=np.uint16)
        result = deskew_image(RasterImage.from_array(pixels))
        assert result.image.format == PixelFormat.GRAY16
        assert np.array_equal(result.image.pixels, pixels)
        assert result.metrics.confidence == 0.0

    def test_sixteen_bit_with_skew_cannot_be_rotated(self, monkeypatch):
        monkeypatch.setattr(deskewing, "detect_skew_angle", lambda gray: 3.0)
        image = RasterImage.from_array(np.zeros((10, 10, 3), dtype=np.uint16))
        with pytest.raises(ProcessingFailure, match="Unsupported image format"):
            deskew_image(image)

    def test_pure_function_no_mutation(self, lined_card):
        original = lined_card.copy_pixels()
        deskew_image(lined_card)
        assert np.array_equal(lined_card.pixels, original)

    @pytest.mark.slow
    def test_large_card(self):
        pixels = np.full((900, 1200), 250, dtype=np.uint8)
        for y in range(50, 850, 40):
            pixels[y:y + 8, 100:1100] = 30
        result = deskew_image(RasterImage.gray(pixels))
        assert -10.5 <= result.metrics.skew_angle_degrees <= 10.5
        assert 0.0 <= result.metrics.confidence <= 1.0
