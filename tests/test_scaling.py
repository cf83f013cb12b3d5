"""Tests for OCR-oriented image scaling."""

import numpy as np
import pytest

from preprocessing import ImageScaler, InvalidTargetHeight, RasterImage
from preprocessing.scaling import scale_bounds


def _white(width, height):
    return RasterImage.gray(np.full((height, width), 255))


def _with_dark_ratio(width, height, ratio):
    pixels = np.full(width * height, 255, dtype=np.uint8)
    pixels[: int(width * height * ratio)] = 0
    return RasterImage.gray(pixels.reshape(height, width))


class TestTargetHeight:
    def test_default(self):
        assert ImageScaler().target_char_height == 28

    @pytest.mark.parametrize("height", range(20, 36))
    def test_accepts_supported_range(self, height):
        assert ImageScaler.with_target_height(height).target_char_height == height

    @pytest.mark.parametrize("height", [19, 36, 0, -28])
    def test_rejects_out_of_range(self, height):
        with pytest.raises(InvalidTargetHeight, match=f"Invalid target height: {height}"):
            ImageScaler.with_target_height(height)

    @pytest.mark.parametrize("height", [28.0, True, "28"])
    def test_rejects_non_integers(self, height):
        with pytest.raises(InvalidTargetHeight):
            ImageScaler(height)

    def test_repr(self):
        assert repr(ImageScaler(30)) == "ImageScaler(target_char_height=30)"


class TestScaleBounds:
    def test_buckets(self):
        assert scale_bounds(99_999) == (0.8, 4.0)
        assert scale_bounds(100_000) == (0.5, 3.0)
        assert scale_bounds(2_000_000) == (0.5, 3.0)
        assert scale_bounds(2_000_001) == (0.3, 2.0)


class TestBasicScale:
    """Tests for estimate_text_height() and scale()."""

    def test_estimate_is_a_fifteenth_of_height(self):
        assert ImageScaler().estimate_text_height(_white(10, 300)) == 20

    def test_estimate_is_clamped(self):
        scaler = ImageScaler()
        assert scaler.estimate_text_height(_white(10, 60)) == 10
        assert scaler.estimate_text_height(_white(10, 3000)) == 150

    def test_scale_to_target(self):
        result = ImageScaler(30).scale(_white(200, 300))
        assert result.metrics.estimated_text_height == 20
        assert result.metrics.scale_factor == 1.5
        assert result.metrics.original_dimensions == (200, 300)
        assert result.metrics.new_dimensions == (300, 450)
        assert result.image.dimensions == (300, 450)

    def test_scale_factor_floor(self):
        result = ImageScaler(20).scale(_white(10, 3000))
        assert result.metrics.scale_factor == 0.5
        assert result.image.dimensions == (5, 1500)

    def test_scale_factor_ceiling(self):
        result = ImageScaler(35).scale(_white(10, 30))
        assert result.metrics.scale_factor == 3.0
        assert result.image.dimensions == (30, 90)


class TestAdvancedEstimate:
    """Tests for estimate_text_height_advanced()."""

    def test_sparse_ink_suggests_larger_text(self):
        # 10% of 300, times 1.2 for a blank page
        assert ImageScaler().estimate_text_height_advanced(_white(400, 300)) == 36

    def test_dense_ink_suggests_smaller_text(self):
        image = RasterImage.gray(np.zeros((300, 400)))
        assert ImageScaler().estimate_text_height_advanced(image) == 24

    def test_moderate_ink_is_unadjusted(self):
        image = _with_dark_ratio(400, 300, 0.3)
        assert ImageScaler().estimate_text_height_advanced(image) == 30

    def test_wide_and_tall_buckets(self):
        scaler = ImageScaler()
        # wide: 12% of 200 * 1.2
        assert scaler.estimate_text_height_advanced(_white(400, 200)) == 28
        # tall: 8% of 400 * 1.2
        assert scaler.estimate_text_height_advanced(_white(200, 400)) == 38

    def test_single_pixel_is_clamped(self):
        assert ImageScaler().estimate_text_height_advanced(_white(1, 1)) == 10

    def test_huge_estimate_is_clamped(self):
        # 8% of 2000 * 1.2 = 192
        image = _white(2, 2000)
        assert ImageScaler().estimate_text_height_advanced(image) == 150


class TestScaleForOcr:
    """Tests for scale_for_ocr()."""

    @pytest.mark.parametrize(
        "width,height",
        [(50, 40), (30, 200), (400, 300), (900, 200), (1, 1)],
    )
    def test_factor_within_bucket_bounds(self, width, height):
        image = _white(width, height)
        result = ImageScaler().scale_for_ocr(image)
        low, high = scale_bounds(image.pixel_count)
        assert low <= result.metrics.scale_factor <= high
        assert 10 <= result.metrics.estimated_text_height <= 150

    def test_small_image_adjustments(self):
        # estimate 10 -> 2.8, x1.2 for tiny text, x1.1 for a small image
        result = ImageScaler().scale_for_ocr(_white(50, 40))
        assert result.metrics.estimated_text_height == 10
        assert result.metrics.scale_factor == pytest.approx(2.8 * 1.2 * 1.1)
        assert result.image.dimensions == (184, 147)

    def test_dimensions_follow_factor(self):
        image = _with_dark_ratio(400, 300, 0.3)
        result = ImageScaler().scale_for_ocr(image)
        factor = result.metrics.scale_factor
        assert result.metrics.new_dimensions == (int(400 * factor), int(300 * factor))

    def test_pure_function_no_mutation(self):
        arr = np.random.randint(0, 256, (60, 80), dtype=np.uint8)
        original = arr.copy()
        ImageScaler().scale_for_ocr(RasterImage.from_array(arr))
        assert np.array_equal(arr, original)

    @pytest.mark.slow
    def test_large_image_is_reduced(self):
        result = ImageScaler().scale_for_ocr(_white(2000, 1100))
        assert result.metrics.estimated_text_height == 142
        assert result.metrics.scale_factor == 0.3
        assert result.image.dimensions == (600, 330)
