"""
Physically scaled, repeating material pattern.
"""

import math
from typing import Optional

import numpy as np
from loguru import logger

from ..config import get_settings
from ..geometry.calibration import resolve_pixels_per_meter
from ..geometry.polygon import MaskBounds
from ..jobs.errors import MaterialUnavailableError
from ..jobs.models import Material
from ..utils.image_processing import resize_rgba, to_rgba

MIN_TILE_PX = 32


def tile_size_px(
    physical_repeat_meters: float,
    pixels_per_meter: float,
    tile_scale: float = 1.0,
    min_px: int = MIN_TILE_PX,
) -> int:
    """
    Edge length of one texture repeat in photo pixels.

    ``max(min_px, floor(repeat * ppm * scale))``
    """
    if not physical_repeat_meters or physical_repeat_meters <= 0:
        raise MaterialUnavailableError(
            f"physical_repeat_meters must be positive, got {physical_repeat_meters}"
        )
    if not tile_scale or tile_scale <= 0:
        raise MaterialUnavailableError(f"tile_scale must be positive, got {tile_scale}")
    if pixels_per_meter <= 0:
        raise MaterialUnavailableError(f"pixels_per_meter must be positive, got {pixels_per_meter}")

    return max(min_px, int(math.floor(physical_repeat_meters * pixels_per_meter * tile_scale)))


def build_tile(
    material: Material,
    pixels_per_meter: Optional[float],
    texture: Optional[np.ndarray] = None,
    min_px: Optional[int] = None,
) -> np.ndarray:
    """
    Resample the material's reference texture to one square tile.

    Args:
        material: Material with repeat size and scale
        pixels_per_meter: Photo calibration; None falls back to the default scale
        texture: Decoded texture overriding ``material.reference_texture``
        min_px: Smallest tile edge

    Returns:
        (S, S, 4) uint8 tile
    """
    settings = get_settings()
    texture = material.reference_texture if texture is None else texture
    if texture is None:
        raise MaterialUnavailableError(
            f"No texture available for material {material.material_id or material.texture_url}"
        )
    if texture.ndim < 2 or texture.shape[0] == 0 or texture.shape[1] == 0:
        raise MaterialUnavailableError(f"Texture has invalid shape {texture.shape}")

    ppm, calibrated = resolve_pixels_per_meter(pixels_per_meter, settings.default_pixels_per_meter)
    size = tile_size_px(
        material.physical_repeat_meters,
        ppm,
        material.tile_scale,
        settings.min_tile_px if min_px is None else min_px,
    )

    if not calibrated:
        logger.info(f"[TILE] Uncalibrated photo, tile size {size}px is indicative only")

    return resize_rgba(to_rgba(texture), size, size)


def fill_region(tile: np.ndarray, bounds: MaskBounds) -> np.ndarray:
    """
    Repeat the tile over the bounding box.

    The pattern phase is anchored at photo origin (0, 0), so the pixel at photo
    (x, y) always comes from tile (x mod S, y mod S).

    Returns:
        (bounds.height, bounds.width, 4) uint8
    """
    th, tw = tile.shape[:2]
    ys = np.arange(bounds.y0, bounds.y1) % th
    xs = np.arange(bounds.x0, bounds.x1) % tw
    return tile[ys[:, None], xs[None, :]]
