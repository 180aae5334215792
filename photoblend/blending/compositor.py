"""
Final compositing of the re-colored material onto the photo.

Order of operations matters: shade, then occlude, then feather, then paint
the layer over the photo.
"""

from typing import Optional

import numpy as np
from loguru import logger
from PIL import Image, ImageFilter

from ..analysis.region_stats import ALPHA_THRESHOLD
from ..jobs.errors import EncodingFailureError
from ..utils.image_processing import encode_png_bytes


def feather_alpha(mask_alpha: np.ndarray, radius: float = 2.0) -> np.ndarray:
    """
    Soft edge factor in [0, 1] from a blurred copy of the rasterized mask.

    Returns:
        float32 (H, W)
    """
    mask = Image.fromarray(np.ascontiguousarray(mask_alpha, dtype=np.uint8))
    if radius > 0:
        mask = mask.filter(ImageFilter.GaussianBlur(radius=radius))
    return np.asarray(mask, dtype=np.float32) / 255.0


def composite(
    photo: np.ndarray,
    tinted: np.ndarray,
    shading: np.ndarray,
    occlusion: np.ndarray,
    mask_alpha: np.ndarray,
    feather_radius: float = 2.0,
    threshold: int = ALPHA_THRESHOLD,
    coverage: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Put the material layer back into the scene.

    Args:
        photo: (H, W, 4) uint8 source photo
        tinted: (H, W, 4) uint8 re-colored material layer
        shading: (H, W) float lighting factors
        occlusion: (H, W) float darkening amounts
        mask_alpha: (H, W) uint8 rasterized polygon, source of the feather
        feather_radius: Gaussian radius for the soft edge
        threshold: Coverage below this is outside the region
        coverage: (H, W) uint8 mask clipped to photo alpha; defaults to mask_alpha

    Returns:
        (H, W, 4) uint8 composite
    """
    h, w = photo.shape[:2]
    for name, arr in (("tinted", tinted), ("shading", shading), ("occlusion", occlusion), ("mask", mask_alpha)):
        if arr.shape[:2] != (h, w):
            raise ValueError(f"{name} shape {arr.shape[:2]} does not match photo {(h, w)}")
    if coverage is None:
        coverage = mask_alpha
    elif coverage.shape[:2] != (h, w):
        raise ValueError(f"coverage shape {coverage.shape[:2]} does not match photo {(h, w)}")

    inside = coverage >= threshold

    # Shade, then occlude
    rgb = tinted[..., :3].astype(np.float32)
    rgb = np.minimum(255.0, rgb * shading[..., None])
    rgb = rgb * (1.0 - occlusion[..., None])

    layer = np.zeros((h, w, 4), dtype=np.uint8)
    layer[..., :3] = np.clip(np.rint(rgb), 0, 255).astype(np.uint8)

    # Feather (destination-in): keep the layer's alpha only where the soft mask allows
    feather = feather_alpha(mask_alpha, feather_radius)
    alpha = np.where(inside, tinted[..., 3].astype(np.float32), 0.0) * feather
    layer[..., 3] = np.clip(np.rint(alpha), 0, 255).astype(np.uint8)

    result = Image.alpha_composite(
        Image.fromarray(np.ascontiguousarray(photo, dtype=np.uint8)),
        Image.fromarray(layer),
    )
    return np.asarray(result, dtype=np.uint8).copy()


def encode_png(raster: np.ndarray) -> bytes:
    """Encode the composite; any failure is reported as EncodingFailureError."""
    try:
        return encode_png_bytes(raster)
    except (OSError, ValueError, TypeError) as e:
        logger.error(f"[ENCODE] PNG encoding failed: {e}")
        raise EncodingFailureError(f"PNG encoding failed: {e}") from e
