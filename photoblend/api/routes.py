"""
FastAPI routes for material compositing and calibration.
"""

import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException
from loguru import logger

from .schemas import (
    CalibrationRequest,
    CalibrationResponse,
    CompositeJobRequest,
    CompositeJobResponse,
    CompositeStatusResponse,
)
from ..geometry.calibration import compute_global_calibration, create_calibration_sample
from ..geometry.coords import Point
from ..geometry.polygon import PolygonMask
from ..jobs.errors import CalibrationError, CompositeError
from ..jobs.models import CanvasSize, CompositeRequest, Material, SourcePhoto
from ..jobs.runner import CompositeJobRunner
from ..utils.image_processing import decode_base64_image, encode_image_to_base64

router = APIRouter(tags=["Compositing"])

# In-memory job storage
_composite_jobs: Dict[str, Dict[str, Any]] = {}

_runner: Optional[CompositeJobRunner] = None


def get_runner() -> CompositeJobRunner:
    """Process-wide job runner, created on first use."""
    global _runner
    if _runner is None:
        _runner = CompositeJobRunner()
    return _runner


async def shutdown_runner():
    global _runner
    if _runner is not None:
        await _runner.aclose()
        _runner = None


def _generate_job_id() -> str:
    return f"composite-{uuid.uuid4().hex[:12]}"


def _build_request(correlation_id: str, body: CompositeJobRequest) -> CompositeRequest:
    """Decode and validate the HTTP payload into a pipeline request."""
    try:
        photo = SourcePhoto(pixels=decode_base64_image(body.photo_base64))
    except (ValueError, TypeError) as e:
        raise HTTPException(status_code=400, detail=f"Could not decode photo: {e}")

    texture = None
    if body.material.texture_base64:
        try:
            texture = decode_base64_image(body.material.texture_base64)
        except (ValueError, TypeError) as e:
            raise HTTPException(status_code=400, detail=f"Could not decode texture: {e}")

    try:
        material = Material(
            reference_texture=texture,
            physical_repeat_meters=body.material.physical_repeat_meters,
            tile_scale=body.material.tile_scale,
            texture_url=body.material.texture_url,
            material_id=body.material.material_id,
        )
        mask = PolygonMask(tuple(Point(p.x, p.y) for p in body.polygon))
    except CompositeError as e:
        raise HTTPException(status_code=400, detail=f"{e.kind.value}: {e.message}")

    if body.canvas_size is not None:
        canvas = CanvasSize(body.canvas_size.w, body.canvas_size.h)
    else:
        canvas = CanvasSize(photo.width, photo.height)

    return CompositeRequest(
        correlation_id=correlation_id,
        source_photo=photo,
        material=material,
        mask=mask,
        canvas_size=canvas,
        strength=body.strength,
        pixels_per_meter=body.pixels_per_meter,
    )


async def _process_composite(correlation_id: str, request: CompositeRequest):
    """Background task: run the job and record its single result."""
    job = _composite_jobs.get(correlation_id)
    if job is None:
        return

    job["status"] = "running"
    result = await get_runner().run(request)

    # A newer submission may have reused the id; only the matching job is updated
    if _composite_jobs.get(correlation_id) is not job:
        logger.info(f"[JOB] {correlation_id} superseded, dropping result")
        return

    if result.ok:
        job["status"] = "complete"
        job["image_base64"] = encode_image_to_base64(result.output_raster)
        job["calibrated"] = result.calibrated
    else:
        job["status"] = "failed"
        job["error_kind"] = result.error_kind.value
        job["error"] = result.message


@router.post("/composite", response_model=CompositeJobResponse)
async def submit_composite(body: CompositeJobRequest, background_tasks: BackgroundTasks):
    """
    Queue a material preview job.

    Returns immediately with a correlation id; poll
    ``GET /composite/{correlation_id}`` for the result.
    """
    correlation_id = body.correlation_id or _generate_job_id()
    request = _build_request(correlation_id, body)

    _composite_jobs[correlation_id] = {
        "correlation_id": correlation_id,
        "status": "pending",
        "image_base64": None,
        "calibrated": None,
        "error_kind": None,
        "error": None,
    }
    background_tasks.add_task(_process_composite, correlation_id, request)

    logger.info(f"[API] Queued composite job {correlation_id}")
    return CompositeJobResponse(success=True, correlation_id=correlation_id, status="pending")


@router.get("/composite/{correlation_id}", response_model=CompositeStatusResponse)
async def get_composite_status(correlation_id: str):
    """
    Poll a composite job.

    Returns:
    - status: pending, running, complete, or failed
    - image_base64: PNG of the composite (only when complete)
    - error_kind / error: failure details (only when failed)
    """
    if correlation_id not in _composite_jobs:
        raise HTTPException(status_code=404, detail=f"Job {correlation_id} not found")

    job = _composite_jobs[correlation_id]
    return CompositeStatusResponse(**job)


@router.post("/calibration", response_model=CalibrationResponse)
async def calibrate(body: CalibrationRequest):
    """Combine reference measurements into one pixels-per-meter scale."""
    try:
        samples = [
            create_calibration_sample(Point(s.a.x, s.a.y), Point(s.b.x, s.b.y), s.meters)
            for s in body.samples
        ]
        calibration = compute_global_calibration(samples)
    except CalibrationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return CalibrationResponse(
        pixels_per_meter=calibration.ppm,
        stdev_pct=calibration.stdev_pct,
        confidence=calibration.confidence,
        samples_used=len(calibration.samples),
    )
