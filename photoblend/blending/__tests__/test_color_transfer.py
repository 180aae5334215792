"""
Tests for the color transfer engine
"""

import math

import numpy as np
import pytest

from photoblend.analysis.region_stats import RegionStats, sample_stats
from photoblend.blending.color_transfer import REFERENCE_STATS, effective_strength, transfer
from photoblend.jobs.errors import ErrorKind, InvalidStrengthError
from photoblend.utils.color_space import srgb_to_lab


def create_random_tile(width: int = 32, height: int = 32, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    tile = np.zeros((height, width, 4), dtype=np.uint8)
    tile[..., :3] = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    tile[..., 3] = 255
    return tile


def mean_lab(rgba: np.ndarray) -> np.ndarray:
    return srgb_to_lab(rgba[..., :3].reshape(-1, 3)).mean(axis=0)


class TestEffectiveStrength:
    @pytest.mark.parametrize("strength,expected", [
        (0.0, 0.3),
        (-5.0, 0.3),
        (0.3, 0.3),
        (0.5, 0.5),
        (1.0, 1.0),
        (2.5, 1.0),
    ])
    def test_clamps(self, strength, expected):
        assert effective_strength(strength) == pytest.approx(expected)

    @pytest.mark.parametrize("strength", [math.nan, math.inf, -math.inf])
    def test_rejects_non_finite(self, strength):
        with pytest.raises(InvalidStrengthError) as exc:
            effective_strength(strength)
        assert exc.value.kind == ErrorKind.INVALID_STRENGTH


class TestTransfer:
    def test_identity_against_reference_stats(self):
        tile = create_random_tile()
        out = transfer(tile, REFERENCE_STATS, 1.0)
        diff = np.abs(out[..., :3].astype(int) - tile[..., :3].astype(int))
        assert diff.max() <= 1

    def test_moves_toward_target(self):
        tile = create_random_tile()
        blue = np.zeros((16, 16, 4), dtype=np.uint8)
        blue[..., 2] = 255
        blue[..., 3] = 255
        target = sample_stats(blue, np.full((16, 16), 255, dtype=np.uint8))
        target_lab = np.array([target.mean_l, target.mean_a, target.mean_b])

        out = transfer(tile, target, 1.0)
        assert np.abs(mean_lab(out) - target_lab).sum() < np.abs(mean_lab(tile) - target_lab).sum()

    def test_strength_clamped_not_rejected(self):
        tile = create_random_tile()
        target = RegionStats(60.0, 10.0, -10.0, 15.0, 8.0, 8.0)
        assert np.array_equal(transfer(tile, target, 5.0), transfer(tile, target, 1.0))
        assert np.array_equal(transfer(tile, target, 0.0), transfer(tile, target, 0.3))

    def test_mean_follows_target(self):
        tile = create_random_tile(64, 64)
        target = RegionStats(55.0, 5.0, 12.0, 12.0, 6.0, 6.0)
        out = transfer(tile, target, 0.5)
        out_mean = mean_lab(out)
        # Pattern is kept but centered near the target color
        assert out_mean[0] == pytest.approx(55.0, abs=6.0)
        assert out[..., :3].std() > 0

    def test_unqualified_pixels_keep_rgb_and_lose_alpha(self):
        tile = create_random_tile(8, 8)
        mask = np.zeros((8, 8), dtype=np.uint8)
        mask[:, 4:] = 255

        out = transfer(tile, RegionStats(30.0, 20.0, 20.0, 5.0, 5.0, 5.0), 1.0, mask_alpha=mask)
        assert np.array_equal(out[:, :4, :3], tile[:, :4, :3])
        assert not out[:, :4, 3].any()
        assert np.all(out[:, 4:, 3] == 255)

    def test_threshold(self):
        tile = create_random_tile(4, 4)
        mask = np.full((4, 4), 4, dtype=np.uint8)
        out = transfer(tile, REFERENCE_STATS, 1.0, mask_alpha=mask, threshold=5)
        assert not out[..., 3].any()

    def test_input_not_modified(self):
        tile = create_random_tile()
        before = tile.copy()
        transfer(tile, RegionStats(20.0, 40.0, -40.0, 5.0, 5.0, 5.0), 1.0)
        assert np.array_equal(tile, before)

    def test_non_finite_strength(self):
        with pytest.raises(InvalidStrengthError):
            transfer(create_random_tile(), REFERENCE_STATS, math.nan)
