"""
Pydantic schemas for API request/response models.
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class PointSchema(BaseModel):
    x: float
    y: float


class CanvasSizeSchema(BaseModel):
    w: int = Field(..., gt=0)
    h: int = Field(..., gt=0)


class MaterialSchema(BaseModel):
    """A material given either by URL or inline base64 texture."""
    material_id: Optional[str] = None
    texture_url: Optional[str] = None
    texture_base64: Optional[str] = None
    physical_repeat_meters: float = 0.3
    tile_scale: float = 1.0


class CompositeJobRequest(BaseModel):
    """Request to preview a material inside a polygon of a photo."""
    photo_base64: str
    material: MaterialSchema
    polygon: List[PointSchema]
    canvas_size: Optional[CanvasSizeSchema] = None  # defaults to the photo size
    strength: float = 1.0
    pixels_per_meter: Optional[float] = None
    correlation_id: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "photo_base64": "<base64 PNG>",
                "material": {
                    "material_id": "oak-decking",
                    "texture_url": "https://example.com/textures/oak.jpg",
                    "physical_repeat_meters": 0.3,
                    "tile_scale": 1.0,
                },
                "polygon": [{"x": 10, "y": 10}, {"x": 190, "y": 10}, {"x": 190, "y": 190}],
                "strength": 0.8,
                "pixels_per_meter": 120.0,
            }
        }


class CompositeJobResponse(BaseModel):
    success: bool
    correlation_id: str
    status: str  # pending


class CompositeStatusResponse(BaseModel):
    """Polled job status."""
    correlation_id: str
    status: str  # pending, running, complete, failed
    image_base64: Optional[str] = None
    calibrated: Optional[bool] = None
    error_kind: Optional[str] = None
    error: Optional[str] = None


class CalibrationSampleSchema(BaseModel):
    a: PointSchema
    b: PointSchema
    meters: float


class CalibrationRequest(BaseModel):
    samples: List[CalibrationSampleSchema]

    class Config:
        json_schema_extra = {
            "example": {
                "samples": [
                    {"a": {"x": 0, "y": 0}, "b": {"x": 300, "y": 0}, "meters": 2.5},
                    {"a": {"x": 10, "y": 40}, "b": {"x": 10, "y": 160}, "meters": 1.0},
                ]
            }
        }


class CalibrationResponse(BaseModel):
    pixels_per_meter: float
    stdev_pct: float
    confidence: str  # high, medium, low
    samples_used: int
