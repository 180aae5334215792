"""
Tests for shading and occlusion maps
"""

import numpy as np
import pytest

from photoblend.analysis.base import MapBuilderPipeline, PhotoMap
from photoblend.analysis.shading import (
    OcclusionMapBuilder,
    ShadingMapBuilder,
    build_occlusion_map,
    build_shading_map,
)
from photoblend.materials.cache import LayerCache


def create_solid_photo(width: int, height: int, color: tuple) -> np.ndarray:
    photo = np.zeros((height, width, 4), dtype=np.uint8)
    photo[..., :3] = color
    photo[..., 3] = 255
    return photo


def create_split_photo(width: int, height: int) -> np.ndarray:
    """Left half black, right half white."""
    photo = create_solid_photo(width, height, (0, 0, 0))
    photo[:, width // 2:, :3] = 255
    return photo


class TestShadingMap:
    def test_uniform_photo_is_neutral(self):
        shade = build_shading_map(create_solid_photo(40, 30, (128, 128, 128)))
        assert shade.shape == (30, 40)
        assert shade.dtype == np.float32
        assert np.allclose(shade, 1.0, atol=1e-4)

    def test_black_photo_clamps_low(self):
        shade = build_shading_map(create_solid_photo(20, 20, (0, 0, 0)))
        assert np.allclose(shade, 0.7)

    def test_range_is_clamped(self):
        rng = np.random.default_rng(7)
        photo = create_solid_photo(64, 64, (0, 0, 0))
        photo[..., :3] = rng.integers(0, 256, size=(64, 64, 3), dtype=np.uint8)
        photo[:32] //= 8

        shade = build_shading_map(photo)
        assert shade.min() >= 0.7 - 1e-6
        assert shade.max() <= 1.3 + 1e-6

    def test_bright_side_brighter(self):
        shade = build_shading_map(create_split_photo(80, 40), blur_radius=3.0)
        assert shade[:, 70].mean() > shade[:, 10].mean()
        assert shade[:, 70].max() == pytest.approx(1.3)
        assert shade[:, 10].min() == pytest.approx(0.7)


class TestOcclusionMap:
    def test_uniform_photo_has_no_occlusion(self):
        occ = build_occlusion_map(create_solid_photo(20, 20, (90, 90, 90)))
        assert occ.shape == (20, 20)
        assert np.allclose(occ, 0.0)

    def test_strong_edge_reaches_budget(self):
        occ = build_occlusion_map(create_split_photo(20, 20))
        assert occ.max() == pytest.approx(0.15)
        assert occ[10, 2] == 0.0
        assert occ[10, 17] == 0.0

    def test_borders_are_zero(self):
        occ = build_occlusion_map(create_split_photo(20, 20))
        assert not occ[0].any()
        assert not occ[-1].any()
        assert not occ[:, 0].any()
        assert not occ[:, -1].any()

    def test_custom_budget(self):
        occ = build_occlusion_map(create_split_photo(20, 20), max_darkening=0.3)
        assert occ.max() == pytest.approx(0.3)


class TestMapBuilderPipeline:
    def test_builds_named_maps(self):
        pipeline = MapBuilderPipeline([ShadingMapBuilder(), OcclusionMapBuilder()])
        maps = pipeline.build_all(create_solid_photo(16, 16, (200, 100, 50)))

        assert set(maps) == {"shading", "occlusion"}
        assert isinstance(maps["shading"], PhotoMap)
        assert maps["occlusion"].values.shape == (16, 16)
        assert maps["shading"].to_dict()["shape"] == [16, 16]

    def test_cached_maps_are_reused_and_read_only(self):
        cache = LayerCache(max_items=8)
        pipeline = MapBuilderPipeline([ShadingMapBuilder(), OcclusionMapBuilder()], cache=cache)
        photo = create_split_photo(16, 16)

        first = pipeline.build_all(photo, "photo-1")
        second = pipeline.build_all(photo, "photo-1")

        assert first["shading"] is second["shading"]
        assert len(cache) == 2
        with pytest.raises(ValueError):
            first["shading"].values[0, 0] = 5.0

    def test_different_parameters_are_cached_separately(self):
        cache = LayerCache(max_items=8)
        photo = create_split_photo(16, 16)
        MapBuilderPipeline([OcclusionMapBuilder(0.1)], cache=cache).build_all(photo, "p")
        MapBuilderPipeline([OcclusionMapBuilder(0.2)], cache=cache).build_all(photo, "p")
        assert len(cache) == 2
