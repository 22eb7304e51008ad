"""
==============================================================================
Frame Preprocessor Tests
==============================================================================

Pixel math of the contrast and grayscale variants.

==============================================================================
"""

import numpy as np
import pytest

from erp_barcode.scanner import FramePreprocessor, FrameVariant, enhance_contrast, to_grayscale


def bgr(*pixel) -> np.ndarray:
    return np.array([[pixel]], dtype=np.uint8)


class TestEnhanceContrast:

    @pytest.mark.parametrize("value, expected", [
        (128, 128),
        (200, 236),
        (50, 11),
        (250, 255),
        (0, 0),
    ])
    def test_stretch_around_mid_grey(self, value: int, expected: int):
        out = enhance_contrast(bgr(value, value, value), 1.5)
        assert out.tolist() == [[[expected] * 3]]

    def test_alpha_untouched(self):
        image = np.array([[[200, 50, 128, 77]]], dtype=np.uint8)
        out = enhance_contrast(image, 1.5)
        assert out.shape == (1, 1, 4)
        assert out[0, 0, 3] == 77

    def test_input_not_modified(self):
        image = bgr(200, 200, 200)
        enhance_contrast(image)
        assert image.tolist() == [[[200, 200, 200]]]

    def test_factor_one_is_identity(self):
        image = np.random.default_rng(3).integers(0, 256, (4, 5, 3), dtype=np.uint8)
        assert np.array_equal(enhance_contrast(image, 1.0), image)


class TestToGrayscale:

    def test_red_pixel_uses_red_weight(self):
        # BGR order: pure red is (0, 0, 255)
        assert to_grayscale(bgr(0, 0, 255)).tolist() == [[[76, 76, 76]]]

    def test_weighted_sum_rounds(self):
        # 0.114*10 + 0.587*20 + 0.299*30 = 21.85
        assert to_grayscale(bgr(10, 20, 30)).tolist() == [[[22, 22, 22]]]

    def test_white_stays_white(self):
        assert to_grayscale(bgr(255, 255, 255)).tolist() == [[[255, 255, 255]]]

    def test_idempotent(self):
        image = np.random.default_rng(5).integers(0, 256, (6, 7, 3), dtype=np.uint8)
        once = to_grayscale(image)
        assert np.array_equal(to_grayscale(once), once)

    def test_alpha_kept(self):
        out = to_grayscale(np.array([[[10, 20, 30, 9]]], dtype=np.uint8))
        assert out.tolist() == [[[22, 22, 22, 9]]]

    def test_rejects_single_channel(self):
        with pytest.raises(ValueError):
            to_grayscale(np.zeros((2, 2), dtype=np.uint8))


class TestFramePreprocessor:

    def test_variant_order(self):
        image = bgr(200, 100, 50)
        candidates = FramePreprocessor(1.5).variants(image)
        assert [c.variant for c in candidates] == [
            FrameVariant.IDENTITY,
            FrameVariant.CONTRAST,
            FrameVariant.GRAYSCALE,
        ]
        assert candidates[0].image is image
        assert candidates[1].image.tolist() == enhance_contrast(image, 1.5).tolist()
        assert candidates[2].image.tolist() == to_grayscale(image).tolist()
