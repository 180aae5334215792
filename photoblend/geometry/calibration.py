"""
Pixels-per-meter calibration from reference measurements.

A user marks two points on the photo and types the real distance between them.
Several such samples are combined into one global scale with outlier rejection.
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from loguru import logger

from .coords import Point
from ..jobs.errors import CalibrationError

DEFAULT_PIXELS_PER_METER = 100.0

MIN_REFERENCE_METERS = 0.25
MIN_REFERENCE_PIXELS = 10.0
OUTLIER_SIGMA = 2.5


@dataclass(frozen=True)
class CalibrationSample:
    a: Point
    b: Point
    meters: float
    ppm: float
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


@dataclass
class Calibration:
    ppm: float
    samples: List[CalibrationSample]
    stdev_pct: float = 0.0

    @property
    def confidence(self) -> str:
        return get_confidence_level(self.stdev_pct)


def compute_pixels_per_meter(a: Point, b: Point, meters: float) -> float:
    if not math.isfinite(meters):
        raise CalibrationError(f"Reference length must be a finite number, got {meters}")
    if meters < MIN_REFERENCE_METERS:
        raise CalibrationError(
            f"Reference length must be at least {MIN_REFERENCE_METERS}m for accuracy"
        )

    distance_px = math.hypot(b.x - a.x, b.y - a.y)
    if not math.isfinite(distance_px):
        raise CalibrationError("Calibration points must have finite coordinates")
    if distance_px < MIN_REFERENCE_PIXELS:
        raise CalibrationError(
            f"Calibration points must be at least {MIN_REFERENCE_PIXELS:g} pixels apart"
        )

    return distance_px / meters


def create_calibration_sample(a: Point, b: Point, meters: float) -> CalibrationSample:
    return CalibrationSample(a=a, b=b, meters=meters, ppm=compute_pixels_per_meter(a, b, meters))


def compute_global_calibration(samples: List[CalibrationSample]) -> Calibration:
    """
    Average the samples' scales, dropping outliers.

    Samples farther than 2.5 standard deviations from the mean are removed and
    the average is recomputed on the rest until nothing more is dropped.
    """
    if not samples:
        raise CalibrationError("At least one sample is required")

    if len(samples) == 1:
        return Calibration(ppm=samples[0].ppm, samples=list(samples), stdev_pct=0.0)

    ppms = [s.ppm for s in samples]
    mean = sum(ppms) / len(ppms)
    stdev = math.sqrt(sum((p - mean) ** 2 for p in ppms) / len(ppms))
    stdev_pct = (stdev / mean) * 100 if mean else 0.0

    kept = [s for s in samples if abs(s.ppm - mean) <= OUTLIER_SIGMA * stdev]
    if 0 < len(kept) < len(samples):
        logger.info(f"[CALIBRATION] Dropped {len(samples) - len(kept)} outlier sample(s)")
        return compute_global_calibration(kept)

    return Calibration(ppm=mean, samples=list(samples), stdev_pct=stdev_pct)


def get_confidence_level(stdev_pct: Optional[float]) -> str:
    if not stdev_pct or stdev_pct < 1.5:
        return "high"
    if stdev_pct <= 3:
        return "medium"
    return "low"


def resolve_pixels_per_meter(
    pixels_per_meter: Optional[float],
    default: float = DEFAULT_PIXELS_PER_METER,
) -> Tuple[float, bool]:
    """
    Pick the scale to render with.

    Returns:
        (pixels_per_meter, calibrated). Uncalibrated renders use ``default``
        and are indicative only.
    """
    if pixels_per_meter is None or not math.isfinite(pixels_per_meter) or pixels_per_meter <= 0:
        logger.warning(
            f"[CALIBRATION] No usable calibration ({pixels_per_meter}), "
            f"using default {default} px/m; scale is indicative only"
        )
        return default, False
    return float(pixels_per_meter), True
