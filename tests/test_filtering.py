"""Tests for noise reduction and 3x3 morphology."""

import numpy as np
import pytest

from preprocessing import (
    InvalidParameter,
    MorphologicalOperation,
    PixelFormat,
    RasterImage,
    apply_morphological_operation,
    reduce_noise,
)
from preprocessing.filtering import dilate, erode, gaussian_kernel


class TestGaussianKernel:
    def test_normalized_and_symmetric(self):
        kernel = gaussian_kernel(1.5)
        assert kernel.sum() == pytest.approx(1.0)
        assert np.allclose(kernel, kernel[::-1])

    def test_radius_is_three_sigma(self):
        assert len(gaussian_kernel(1.0)) == 7
        assert len(gaussian_kernel(0.1)) == 3


class TestReduceNoise:
    """Tests for the reduce_noise function."""

    @pytest.mark.parametrize("sigma", [0.0, -1.0, 5.01, 10.0])
    def test_sigma_out_of_range_raises(self, sigma):
        image = RasterImage.gray(np.zeros((5, 5)))
        with pytest.raises(InvalidParameter, match="Invalid sigma value"):
            reduce_noise(image, sigma)

    def test_sigma_upper_bound_is_inclusive(self):
        result = reduce_noise(RasterImage.gray(np.zeros((5, 5))), 5.0)
        assert result.metrics.sigma == 5.0

    def test_format_preserved(self):
        rgb = RasterImage.from_array(np.random.randint(0, 256, (12, 9, 3), dtype=np.uint8))
        result = reduce_noise(rgb, 1.0)
        assert result.image.format == PixelFormat.RGB8
        assert result.image.dimensions == (9, 12)

    def test_constant_image_unchanged(self):
        image = RasterImage.gray(np.full((10, 10), 140))
        assert np.all(reduce_noise(image, 2.0).image.pixels == 140)

    def test_spike_is_spread(self):
        pixels = np.zeros((11, 11), dtype=np.uint8)
        pixels[5, 5] = 255
        blurred = reduce_noise(RasterImage.gray(pixels), 1.0).image.pixels
        assert blurred[5, 5] < 255
        assert blurred[5, 6] > 0
        assert blurred[5, 5] == blurred.max()

    def test_pure_function_no_mutation(self):
        arr = np.random.randint(0, 256, (20, 20), dtype=np.uint8)
        original = arr.copy()
        reduce_noise(RasterImage.from_array(arr), 1.0)
        assert np.array_equal(arr, original)


class TestErodeDilate:
    def test_erode_leaves_black_border(self):
        eroded = erode(np.full((6, 6), 200, dtype=np.uint8))
        assert np.all(eroded[1:-1, 1:-1] == 200)
        assert np.all(eroded[0, :] == 0)
        assert np.all(eroded[-1, :] == 0)
        assert np.all(eroded[:, 0] == 0)
        assert np.all(eroded[:, -1] == 0)

    def test_dilate_grows_speck_to_kernel(self):
        pixels = np.zeros((9, 9), dtype=np.uint8)
        pixels[4, 4] = 255
        dilated = dilate(pixels)
        assert np.all(dilated[3:6, 3:6] == 255)
        assert dilated.sum() == 9 * 255

    def test_tiny_images_come_back_black(self):
        assert np.all(erode(np.full((2, 5), 255, dtype=np.uint8)) == 0)
        assert np.all(dilate(np.full((5, 2), 255, dtype=np.uint8)) == 0)


class TestApplyMorphologicalOperation:
    """Tests for the apply_morphological_operation function."""

    def test_opening_removes_isolated_speck(self):
        pixels = np.zeros((10, 10), dtype=np.uint8)
        pixels[5, 5] = 255
        result = apply_morphological_operation(RasterImage.gray(pixels), MorphologicalOperation.OPENING)
        assert np.all(result.image.pixels == 0)

    def test_opening_keeps_large_block(self):
        pixels = np.zeros((20, 20), dtype=np.uint8)
        pixels[5:15, 5:15] = 255
        result = apply_morphological_operation(RasterImage.gray(pixels), MorphologicalOperation.OPENING)
        assert np.array_equal(result.image.pixels, pixels)

    def test_closing_fills_dark_gap(self):
        pixels = np.full((20, 20), 255, dtype=np.uint8)
        pixels[10, 10] = 0
        result = apply_morphological_operation(RasterImage.gray(pixels), MorphologicalOperation.CLOSING)
        out = result.image.pixels
        assert out[10, 10] == 255
        assert np.all(out[2:-2, 2:-2] == 255)

    def test_closing_border_band_is_two_pixels(self):
        pixels = np.full((20, 20), 255, dtype=np.uint8)
        result = apply_morphological_operation(RasterImage.gray(pixels), MorphologicalOperation.CLOSING)
        out = result.image.pixels
        assert np.all(out[:2, :] == 0)
        assert np.all(out[:, -2:] == 0)
        assert out[2, 2] == 255

    def test_erosion_and_dilation_dispatch(self):
        pixels = np.full((6, 6), 100, dtype=np.uint8)
        image = RasterImage.gray(pixels)
        eroded = apply_morphological_operation(image, MorphologicalOperation.EROSION).image.pixels
        dilated = apply_morphological_operation(image, MorphologicalOperation.DILATION).image.pixels
        assert np.array_equal(eroded, erode(pixels))
        assert np.array_equal(dilated, dilate(pixels))

    def test_accepts_operation_name(self):
        result = apply_morphological_operation(RasterImage.gray(np.zeros((5, 5))), "dilation")
        assert result.metrics.operation == MorphologicalOperation.DILATION
        assert result.metrics.kernel_size == 3

    def test_color_input_gives_gray8(self):
        rgb = RasterImage.from_array(np.full((8, 8, 3), 255, dtype=np.uint8))
        result = apply_morphological_operation(rgb, MorphologicalOperation.EROSION)
        assert result.image.format == PixelFormat.GRAY8
        assert result.image.pixels.shape == (8, 8)

    def test_metrics_serialize_operation_name(self):
        result = apply_morphological_operation(RasterImage.gray(np.zeros((5, 5))), MorphologicalOperation.OPENING)
        assert result.to_dict()["operation"] == "opening"
