"""Coordinate mapping, polygon masks and scale calibration."""

from .coords import (
    Camera,
    ImageFit,
    Point,
    RoundTripReport,
    screen_to_image,
    image_to_screen,
    debug_round_trip,
    calculate_image_fit,
    zoom_at_point,
)
from .polygon import (
    MaskBounds,
    PolygonMask,
    point_in_polygon,
    rasterize,
    mask_bounds,
    polygon_area,
    polygon_area_m2,
    centroid,
)
from .calibration import (
    DEFAULT_PIXELS_PER_METER,
    Calibration,
    CalibrationSample,
    compute_pixels_per_meter,
    create_calibration_sample,
    compute_global_calibration,
    get_confidence_level,
    resolve_pixels_per_meter,
)

__all__ = [
    # Coordinates
    "Camera",
    "ImageFit",
    "Point",
    "RoundTripReport",
    "screen_to_image",
    "image_to_screen",
    "debug_round_trip",
    "calculate_image_fit",
    "zoom_at_point",
    # Polygon
    "MaskBounds",
    "PolygonMask",
    "point_in_polygon",
    "rasterize",
    "mask_bounds",
    "polygon_area",
    "polygon_area_m2",
    "centroid",
    # Calibration
    "DEFAULT_PIXELS_PER_METER",
    "Calibration",
    "CalibrationSample",
    "compute_pixels_per_meter",
    "create_calibration_sample",
    "compute_global_calibration",
    "get_confidence_level",
    "resolve_pixels_per_meter",
]
