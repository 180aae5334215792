"""
Tests for feathering and compositing
"""

import io

import numpy as np
import pytest
from PIL import Image

from photoblend.blending.compositor import composite, encode_png, feather_alpha
from photoblend.jobs.errors import EncodingFailureError, ErrorKind


def create_solid(width: int, height: int, color: tuple, alpha: int = 255) -> np.ndarray:
    img = np.zeros((height, width, 4), dtype=np.uint8)
    img[..., :3] = color
    img[..., 3] = alpha
    return img


def neutral_maps(width: int, height: int):
    return (
        np.ones((height, width), dtype=np.float32),
        np.zeros((height, width), dtype=np.float32),
    )


class TestFeatherAlpha:
    def test_full_mask_stays_opaque(self):
        feather = feather_alpha(np.full((20, 20), 255, dtype=np.uint8), 2.0)
        assert feather.dtype == np.float32
        assert np.allclose(feather, 1.0)

    def test_empty_mask_stays_transparent(self):
        assert not feather_alpha(np.zeros((20, 20), dtype=np.uint8), 2.0).any()

    def test_edge_is_soft(self):
        mask = np.zeros((20, 40), dtype=np.uint8)
        mask[:, 20:] = 255
        feather = feather_alpha(mask, 2.0)
        assert 0.0 < feather[10, 20] < 1.0
        assert 0.0 < feather[10, 19] < 1.0
        assert feather[10, 35] == pytest.approx(1.0)
        assert feather[10, 2] == pytest.approx(0.0)

    def test_zero_radius_is_hard(self):
        mask = np.zeros((4, 4), dtype=np.uint8)
        mask[1:3, 1:3] = 255
        assert np.array_equal(feather_alpha(mask, 0), mask / 255.0)


class TestComposite:
    def test_empty_mask_returns_photo(self):
        photo = create_solid(10, 10, (10, 20, 30))
        tinted = create_solid(10, 10, (200, 200, 200))
        shading, occlusion = neutral_maps(10, 10)

        out = composite(photo, tinted, shading, occlusion, np.zeros((10, 10), dtype=np.uint8))
        assert np.array_equal(out, photo)

    def test_full_mask_replaces_photo(self):
        photo = create_solid(10, 10, (10, 20, 30))
        tinted = create_solid(10, 10, (200, 150, 100))
        shading, occlusion = neutral_maps(10, 10)
        mask = np.full((10, 10), 255, dtype=np.uint8)

        out = composite(photo, tinted, shading, occlusion, mask, feather_radius=0)
        assert np.array_equal(out[..., :3], tinted[..., :3])
        assert np.all(out[..., 3] == 255)

    def test_shading_saturates_at_255(self):
        photo = create_solid(4, 4, (0, 0, 0))
        tinted = create_solid(4, 4, (200, 200, 200))
        shading = np.full((4, 4), 1.3, dtype=np.float32)
        occlusion = np.zeros((4, 4), dtype=np.float32)
        mask = np.full((4, 4), 255, dtype=np.uint8)

        out = composite(photo, tinted, shading, occlusion, mask, feather_radius=0)
        assert np.all(out[..., :3] == 255)

    def test_shade_before_occlusion(self):
        photo = create_solid(4, 4, (0, 0, 0))
        tinted = create_solid(4, 4, (250, 250, 250))
        shading = np.full((4, 4), 1.3, dtype=np.float32)
        occlusion = np.full((4, 4), 0.5, dtype=np.float32)
        mask = np.full((4, 4), 255, dtype=np.uint8)

        out = composite(photo, tinted, shading, occlusion, mask, feather_radius=0)
        # min(255, 250 * 1.3) * 0.5 = 127.5; the reverse order would give 162.5
        assert np.all(np.abs(out[..., :3].astype(int) - 128) <= 1)

    def test_feathered_edge_blends(self):
        photo = create_solid(40, 20, (0, 0, 0))
        tinted = create_solid(40, 20, (255, 255, 255))
        shading, occlusion = neutral_maps(40, 20)
        mask = np.zeros((20, 40), dtype=np.uint8)
        mask[:, 20:] = 255

        out = composite(photo, tinted, shading, occlusion, mask, feather_radius=2.0)
        assert 0 < out[10, 20, 0] < 255
        assert out[10, 35, 0] == 255
        assert out[10, 5, 0] == 0
        # Outside the hard mask the layer never shows, even inside the blur
        assert out[10, 19, 0] == 0

    def test_feather_follows_mask_not_photo_alpha(self):
        photo = create_solid(40, 20, (0, 0, 0))
        photo[:, :20, 3] = 0
        tinted = create_solid(40, 20, (255, 255, 255))
        shading, occlusion = neutral_maps(40, 20)
        mask = np.full((20, 40), 255, dtype=np.uint8)
        coverage = np.minimum(mask, photo[..., 3])

        out = composite(photo, tinted, shading, occlusion, mask, feather_radius=2.0, coverage=coverage)
        # Transparent photo pixels inside the polygon get no layer
        assert tuple(out[10, 5]) == (0, 0, 0, 0)
        # No soft edge where the photo turns opaque
        assert np.all(out[10, 20:23] >= 254)

    def test_shape_mismatch(self):
        photo = create_solid(4, 4, (0, 0, 0))
        shading, occlusion = neutral_maps(4, 4)
        with pytest.raises(ValueError):
            composite(photo, create_solid(5, 5, (0, 0, 0)), shading, occlusion, np.zeros((4, 4), np.uint8))


class TestEncodePng:
    def test_encodes_png(self):
        data = encode_png(create_solid(6, 4, (1, 2, 3)))
        assert data[:8] == b"\x89PNG\r\n\x1a\n"
        img = Image.open(io.BytesIO(data))
        assert img.size == (6, 4)
        assert img.mode == "RGBA"

    def test_failure_is_typed(self):
        with pytest.raises(EncodingFailureError) as exc:
            encode_png(np.zeros((2, 2, 7), dtype=np.uint8))
        assert exc.value.kind == ErrorKind.ENCODING_FAILURE
