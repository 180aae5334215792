"""
Data model shared by the compositing stages.
"""

from dataclasses import dataclass, field
from functools import cached_property
from typing import Optional

import numpy as np

from ..analysis.region_stats import RegionStats
from ..geometry.polygon import PolygonMask
from ..utils.image_processing import compute_content_hash, to_rgba
from .errors import ErrorKind, MaterialUnavailableError

__all__ = [
    "CanvasSize",
    "SourcePhoto",
    "Material",
    "RegionStats",
    "CompositeRequest",
    "CompositeResult",
]


@dataclass(frozen=True)
class CanvasSize:
    w: int
    h: int

    def __post_init__(self):
        if self.w <= 0 or self.h <= 0:
            raise ValueError(f"Canvas size must be positive, got {self.w}x{self.h}")


@dataclass(frozen=True, eq=False)
class SourcePhoto:
    """Decoded photo as an RGBA uint8 array of shape (H, W, 4)."""
    pixels: np.ndarray
    photo_id: Optional[str] = None

    def __post_init__(self):
        pixels = self.pixels
        if pixels.ndim != 3 or pixels.shape[2] != 4 or pixels.dtype != np.uint8:
            pixels = to_rgba(pixels)
        object.__setattr__(self, "pixels", pixels)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @cached_property
    def identity(self) -> str:
        return compute_content_hash(self.pixels)


@dataclass(frozen=True, eq=False)
class Material:
    """
    A reference texture and its real-world repeat size.

    Either ``reference_texture`` (RGBA array) or ``texture_url`` must be set.
    """
    reference_texture: Optional[np.ndarray] = None
    physical_repeat_meters: float = 0.3
    tile_scale: float = 1.0
    texture_url: Optional[str] = None
    material_id: Optional[str] = None

    def __post_init__(self):
        if self.reference_texture is None and not self.texture_url:
            raise MaterialUnavailableError("Material has neither a texture nor a texture URL")


@dataclass(frozen=True, eq=False)
class CompositeRequest:
    correlation_id: str
    source_photo: SourcePhoto
    material: Material
    mask: PolygonMask
    canvas_size: CanvasSize
    strength: float = 1.0
    pixels_per_meter: Optional[float] = None


@dataclass(frozen=True)
class CompositeResult:
    """Outcome of one request; exactly one per ``correlation_id``."""
    correlation_id: str
    output_raster: Optional[bytes] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    calibrated: bool = True
    metadata: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error_kind is None and self.output_raster is not None

    @classmethod
    def success(cls, correlation_id: str, output_raster: bytes, **kwargs) -> "CompositeResult":
        return cls(correlation_id=correlation_id, output_raster=output_raster, **kwargs)

    @classmethod
    def failure(cls, correlation_id: str, error_kind: ErrorKind, message: str) -> "CompositeResult":
        return cls(correlation_id=correlation_id, error_kind=error_kind, message=message)
