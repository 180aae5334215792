"""
Perceptual color statistics of the photo inside the mask.
"""

from dataclasses import dataclass

import numpy as np

from ..jobs.errors import EmptyRegionError
from ..utils.color_space import srgb_to_lab

ALPHA_THRESHOLD = 5

# Variance floor, keeps std strictly positive on flat regions
_VARIANCE_EPS = 1e-6


@dataclass(frozen=True)
class RegionStats:
    """Mean and standard deviation of L*, a*, b* over a region."""
    mean_l: float
    mean_a: float
    mean_b: float
    std_l: float
    std_a: float
    std_b: float

    @classmethod
    def zero(cls) -> "RegionStats":
        return cls(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

    def to_dict(self) -> dict:
        return {
            "mean": [self.mean_l, self.mean_a, self.mean_b],
            "std": [self.std_l, self.std_a, self.std_b],
        }


def qualifying_pixels(photo_rgba: np.ndarray, mask_alpha: np.ndarray, threshold: int) -> np.ndarray:
    """Boolean map of pixels both inside the mask and visible in the photo."""
    coverage = np.minimum(mask_alpha, photo_rgba[..., 3])
    return coverage >= threshold


def sample_stats(
    photo_rgba: np.ndarray,
    mask_alpha: np.ndarray,
    threshold: int = ALPHA_THRESHOLD,
) -> RegionStats:
    """
    Compute Lab mean/std over the photo pixels covered by the mask.

    Args:
        photo_rgba: (H, W, 4) uint8 photo
        mask_alpha: (H, W) uint8 rasterized mask, same size as the photo
        threshold: minimum alpha (0-255) for a pixel to count

    Raises:
        EmptyRegionError: no pixel qualifies; ``detail`` holds ``RegionStats.zero()``
    """
    if photo_rgba.shape[:2] != mask_alpha.shape[:2]:
        raise ValueError(
            f"Mask shape {mask_alpha.shape[:2]} does not match photo shape {photo_rgba.shape[:2]}"
        )

    selected = qualifying_pixels(photo_rgba, mask_alpha, threshold)
    count = int(np.count_nonzero(selected))
    if count == 0:
        raise EmptyRegionError(
            "Mask covers no photo pixels above the alpha threshold",
            detail=RegionStats.zero(),
        )

    lab = srgb_to_lab(photo_rgba[selected][:, :3])
    mean = lab.mean(axis=0)
    std = np.sqrt(((lab - mean) ** 2).mean(axis=0) + _VARIANCE_EPS)

    return RegionStats(
        mean_l=float(mean[0]),
        mean_a=float(mean[1]),
        mean_b=float(mean[2]),
        std_l=float(std[0]),
        std_a=float(std[1]),
        std_b=float(std[2]),
    )
