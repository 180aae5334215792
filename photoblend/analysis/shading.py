"""
Shading and occlusion maps.

The shading map carries the photo's low-frequency lighting (bright patches stay
bright on the material); the occlusion map darkens along strong edges such as
corners and skirting lines.
"""

from typing import Optional

import cv2
import numpy as np

from .base import BaseMapBuilder, PhotoMap
from ..config import get_settings
from ..utils.color_space import luminance


def build_shading_map(
    photo_rgba: np.ndarray,
    blur_radius: float = 10.0,
    low: float = 0.7,
    high: float = 1.3,
    exponent: float = 0.85,
) -> np.ndarray:
    """
    Relative lighting factor per pixel.

    Luminance is blurred, divided by its global mean and compressed with a power
    curve, then clamped to [low, high].

    Returns:
        float32 (H, W)
    """
    lum = luminance(photo_rgba)
    # The lighting layer is quantized to 8 bits before blurring
    lum = np.clip(np.rint(lum), 0, 255).astype(np.float32)

    if blur_radius > 0:
        blurred = cv2.GaussianBlur(lum, (0, 0), sigmaX=blur_radius, sigmaY=blur_radius)
    else:
        blurred = lum

    mean = float(blurred.mean()) if blurred.size else 0.0
    ratio = blurred / (mean if mean else 1.0)

    shade = np.power(ratio, exponent)
    return np.clip(shade, low, high).astype(np.float32)


def build_occlusion_map(photo_rgba: np.ndarray, max_darkening: float = 0.15) -> np.ndarray:
    """
    Edge-based darkening in [0, max_darkening].

    3x3 Sobel gradient magnitude of the luminance, clamped to 255 and rescaled.
    Border pixels get no darkening.

    Returns:
        float32 (H, W)
    """
    lum = luminance(photo_rgba)

    gx = cv2.Sobel(lum, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(lum, cv2.CV_32F, 0, 1, ksize=3)
    magnitude = np.minimum(np.sqrt(gx * gx + gy * gy), 255.0)

    # Only interior pixels have a full 3x3 neighbourhood
    magnitude[0, :] = 0
    magnitude[-1, :] = 0
    magnitude[:, 0] = 0
    magnitude[:, -1] = 0

    return (magnitude / 255.0 * max_darkening).astype(np.float32)


class ShadingMapBuilder(BaseMapBuilder):

    def __init__(
        self,
        blur_radius: Optional[float] = None,
        low: Optional[float] = None,
        high: Optional[float] = None,
        exponent: Optional[float] = None,
    ):
        super().__init__("shading")
        settings = get_settings()
        self.blur_radius = settings.shading_blur_radius if blur_radius is None else blur_radius
        self.low = settings.shading_min if low is None else low
        self.high = settings.shading_max if high is None else high
        self.exponent = settings.shading_exponent if exponent is None else exponent

    def cache_params(self) -> tuple:
        return (self.blur_radius, self.low, self.high, self.exponent)

    def build(self, photo_rgba: np.ndarray) -> PhotoMap:
        values = build_shading_map(
            photo_rgba,
            blur_radius=self.blur_radius,
            low=self.low,
            high=self.high,
            exponent=self.exponent,
        )
        return PhotoMap(
            name=self.name,
            values=values,
            metadata={"blur_radius": self.blur_radius, "range": [self.low, self.high]},
        )


class OcclusionMapBuilder(BaseMapBuilder):

    def __init__(self, max_darkening: Optional[float] = None):
        super().__init__("occlusion")
        if max_darkening is None:
            max_darkening = get_settings().occlusion_max_darkening
        self.max_darkening = max_darkening

    def cache_params(self) -> tuple:
        return (self.max_darkening,)

    def build(self, photo_rgba: np.ndarray) -> PhotoMap:
        return PhotoMap(
            name=self.name,
            values=build_occlusion_map(photo_rgba, self.max_darkening),
            metadata={"max_darkening": self.max_darkening},
        )
