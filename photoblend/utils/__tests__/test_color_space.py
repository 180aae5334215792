"""
Tests for sRGB <-> Lab conversion
"""

import numpy as np
import pytest

from photoblend.utils.color_space import lab_to_srgb, luminance, srgb_to_lab


class TestSrgbToLab:
    def test_black(self):
        lab = srgb_to_lab(np.array([0, 0, 0]))
        assert lab[0] == pytest.approx(0.0, abs=1e-9)
        assert lab[1] == pytest.approx(0.0, abs=1e-9)
        assert lab[2] == pytest.approx(0.0, abs=1e-9)

    def test_white(self):
        lab = srgb_to_lab(np.array([255, 255, 255]))
        assert lab[0] == pytest.approx(100.0, abs=0.01)

    def test_primaries(self):
        red, green, blue = srgb_to_lab(np.array([[255, 0, 0], [0, 255, 0], [0, 0, 255]]))
        assert red[0] == pytest.approx(53.2, abs=0.5)
        assert red[1] > 70
        assert green[1] < -70
        assert blue[2] < -100

    def test_keeps_leading_shape(self):
        assert srgb_to_lab(np.zeros((3, 5, 3), dtype=np.uint8)).shape == (3, 5, 3)


class TestLabToSrgb:
    def test_round_trip_within_one_level(self):
        rng = np.random.default_rng(3)
        rgb = rng.integers(0, 256, size=(500, 3), dtype=np.uint8)
        back = lab_to_srgb(srgb_to_lab(rgb))
        assert back.dtype == np.uint8
        assert np.abs(back.astype(int) - rgb.astype(int)).max() <= 1

    def test_out_of_gamut_is_clamped(self):
        out = lab_to_srgb(np.array([[150.0, 0.0, 0.0], [-20.0, 0.0, 0.0]]))
        assert tuple(out[0]) == (255, 255, 255)
        assert tuple(out[1]) == (0, 0, 0)


class TestLuminance:
    def test_weights(self):
        rgba = np.array([[[255, 0, 0, 255], [0, 255, 0, 255], [0, 0, 255, 255]]], dtype=np.uint8)
        lum = luminance(rgba)
        assert lum.dtype == np.float32
        assert lum[0, 0] == pytest.approx(0.2126 * 255, rel=1e-5)
        assert lum[0, 1] == pytest.approx(0.7152 * 255, rel=1e-5)
        assert lum[0, 2] == pytest.approx(0.0722 * 255, rel=1e-5)
