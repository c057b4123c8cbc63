"""Tests for image export.

This module tests the preview/export functionality including:
- Float to 8-bit conversion
- PNG export through Pillow
- RMSE computation
"""

import numpy as np
import pytest
from PIL import Image as PILImage


class TestImageToUint8:
    def test_output_type_and_shape(self):
        from pathtrace.preview.export import image_to_uint8

        result = image_to_uint8(np.zeros((4, 6, 3), dtype=np.float32))
        assert result.dtype == np.uint8
        assert result.shape == (4, 6, 3)

    def test_known_values(self):
        from pathtrace.preview.export import image_to_uint8

        image = np.array([[[0.0, 0.5, 1.0]]], dtype=np.float32)
        assert image_to_uint8(image).tolist() == [[[0, 127, 255]]]

    def test_out_of_range_values_clamped(self):
        from pathtrace.preview.export import image_to_uint8

        image = np.array([[[-0.5, 1.5, 100.0]]], dtype=np.float32)
        assert image_to_uint8(image).tolist() == [[[0, 255, 255]]]


class TestSavePng:
    def test_save_png_from_array(self, tmp_path):
        from pathtrace.preview.export import save_png_from_array

        image = np.zeros((5, 7, 3), dtype=np.float32)
        image[0, 0] = (1.0, 0.0, 0.0)
        image[4, 6] = (0.0, 0.0, 1.0)
        path = tmp_path / "image.png"

        save_png_from_array(image, str(path))

        with PILImage.open(path) as img:
            assert img.size == (7, 5)
            assert img.mode == "RGB"
            pixels = np.asarray(img)
        # Row 0 of the array is the top row of the file
        assert tuple(pixels[0, 0]) == (255, 0, 0)
        assert tuple(pixels[4, 6]) == (0, 0, 255)

    @pytest.mark.parametrize("shape", [(5, 7), (5, 7, 4)])
    def test_rejects_wrong_shape(self, tmp_path, shape):
        from pathtrace.preview.export import save_png_from_array

        with pytest.raises(ValueError, match="shape"):
            save_png_from_array(np.zeros(shape, dtype=np.float32), str(tmp_path / "bad.png"))

    def test_save_png_from_renderer(self, tmp_path):
        from pathtrace.camera.thin_lens import ThinLensCamera, setup_camera
        from pathtrace.core.config import RenderConfig
        from pathtrace.core.progressive import ProgressiveRenderer
        from pathtrace.preview.export import save_png

        setup_camera(ThinLensCamera(lookfrom=(0.0, 0.0, 0.0), lookat=(0.0, 0.0, -1.0)))
        renderer = ProgressiveRenderer(RenderConfig(width=6, height=3, samples_per_pixel=1))
        renderer.render()
        path = tmp_path / "sky.png"

        save_png(renderer, str(path))

        with PILImage.open(path) as img:
            assert img.size == (6, 3)


class TestComputeRmse:
    def test_identical_images(self):
        from pathtrace.preview.export import compute_rmse

        image = np.random.default_rng(0).random((8, 8, 3))
        assert compute_rmse(image, image) == 0.0

    def test_constant_difference(self):
        from pathtrace.preview.export import compute_rmse

        a = np.zeros((4, 4, 3))
        b = np.full((4, 4, 3), 0.25)
        assert compute_rmse(a, b) == pytest.approx(0.25)

    def test_shape_mismatch_raises(self):
        from pathtrace.preview.export import compute_rmse

        with pytest.raises(ValueError, match="shapes must match"):
            compute_rmse(np.zeros((4, 4, 3)), np.zeros((4, 5, 3)))
