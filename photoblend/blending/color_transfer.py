"""
Statistical re-coloring of the tiled material toward the photo region.

Each qualifying pixel is moved in L*a*b* so the material takes on the mean
color and contrast of the area it replaces, while keeping its own pattern.
"""

import math
from typing import Optional

import numpy as np

from ..analysis.region_stats import ALPHA_THRESHOLD, RegionStats
from ..jobs.errors import InvalidStrengthError
from ..utils.color_space import lab_to_srgb, srgb_to_lab

MIN_STRENGTH = 0.3
MAX_STRENGTH = 1.0

# Nominal material statistics the normalizing divisors assume:
# L centered at 50 with spread 20, a/b centered at 0 with spread 10.
REFERENCE_STATS = RegionStats(
    mean_l=50.0, mean_a=0.0, mean_b=0.0,
    std_l=20.0, std_a=10.0, std_b=10.0,
)


def effective_strength(strength: float) -> float:
    """
    Clamp strength into [0.3, 1.0].

    Out-of-range numbers are clamped silently; NaN and infinities are rejected.
    """
    try:
        value = float(strength)
    except (TypeError, ValueError) as e:
        raise InvalidStrengthError(f"Strength must be a number, got {strength!r}") from e
    if not math.isfinite(value):
        raise InvalidStrengthError(f"Strength must be finite, got {strength!r}")
    return max(MIN_STRENGTH, min(MAX_STRENGTH, value))


def transfer(
    tiled_rgba: np.ndarray,
    target_stats: RegionStats,
    strength: float,
    mask_alpha: Optional[np.ndarray] = None,
    threshold: int = ALPHA_THRESHOLD,
) -> np.ndarray:
    """
    Re-color the tiled material toward ``target_stats``.

    Args:
        tiled_rgba: (H, W, 4) uint8 material layer
        target_stats: Lab statistics of the photo region
        strength: Blend strength, clamped to [0.3, 1.0]
        mask_alpha: (H, W) coverage; pixels below ``threshold`` are left
            unchanged in RGB and made transparent. None treats every pixel
            as covered.

    Returns:
        New (H, W, 4) uint8 array; the input is not modified.
    """
    k = effective_strength(strength)
    out = tiled_rgba.copy()

    if mask_alpha is None:
        selected = np.ones(tiled_rgba.shape[:2], dtype=bool)
    else:
        selected = mask_alpha >= threshold

    if not selected.any():
        out[..., 3] = 0
        return out

    lab = srgb_to_lab(tiled_rgba[selected][:, :3])

    lab[:, 0] = (lab[:, 0] - REFERENCE_STATS.mean_l) * (k * (target_stats.std_l / REFERENCE_STATS.std_l)) + target_stats.mean_l
    lab[:, 1] = (lab[:, 1] - REFERENCE_STATS.mean_a) * (k * (target_stats.std_a / REFERENCE_STATS.std_a)) + target_stats.mean_a
    lab[:, 2] = (lab[:, 2] - REFERENCE_STATS.mean_b) * (k * (target_stats.std_b / REFERENCE_STATS.std_b)) + target_stats.mean_b

    rgb = lab_to_srgb(lab)
    out[selected, :3] = rgb
    out[selected, 3] = 255
    out[~selected, 3] = 0
    return out
