"""
Composite job runner.

One ``CompositeRequest`` in, exactly one ``CompositeResult`` out, tagged with the
request's ``correlation_id``. Jobs run to completion; callers that no longer care
about a result simply drop it by id.
"""

import asyncio
import inspect
import math
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Awaitable, Callable, Optional, Union

import numpy as np
from loguru import logger

from ..analysis.base import MapBuilderPipeline
from ..analysis.region_stats import sample_stats
from ..analysis.shading import OcclusionMapBuilder, ShadingMapBuilder
from ..blending.color_transfer import effective_strength, transfer
from ..blending.compositor import composite, encode_png
from ..config import Settings, get_settings
from ..geometry.calibration import resolve_pixels_per_meter
from ..geometry.polygon import mask_bounds, rasterize
from ..materials.cache import LayerCache
from ..materials.texture_client import TextureClient
from ..materials.tiling import build_tile, fill_region, tile_size_px
from ..utils.image_processing import compute_content_hash, resize_rgba
from .errors import CompositeError, EmptyRegionError, ErrorKind
from .models import CompositeRequest, CompositeResult

ResultCallback = Callable[[CompositeResult], Union[None, Awaitable[None]]]


def render_composite(
    request: CompositeRequest,
    texture: np.ndarray,
    *,
    cache: Optional[LayerCache] = None,
    settings: Optional[Settings] = None,
) -> np.ndarray:
    """
    Run the full pipeline synchronously and return the composited RGBA raster.

    Stages: fit photo to canvas, rasterize mask, sample region statistics,
    build shading/occlusion, build and lay out the tile, re-color, composite.

    Raises:
        CompositeError: any stage failure
    """
    settings = settings or get_settings()
    threshold = settings.alpha_threshold
    strength = effective_strength(request.strength)

    width, height = request.canvas_size.w, request.canvas_size.h
    photo = request.source_photo.pixels
    photo_identity = request.source_photo.identity
    if photo.shape[:2] != (height, width):
        photo = resize_rgba(photo, width, height)
        photo_identity = f"{photo_identity}@{width}x{height}"

    # Mask
    mask_alpha = rasterize(request.mask, width, height)
    bounds = mask_bounds(request.mask, width, height)
    if bounds is None:
        raise EmptyRegionError("Mask lies entirely outside the photo")
    coverage = np.minimum(mask_alpha, photo[..., 3])

    # Statistics of the region being replaced
    stats = sample_stats(photo, mask_alpha, threshold)

    # Lighting
    pipeline = MapBuilderPipeline(
        [
            ShadingMapBuilder(
                blur_radius=settings.shading_blur_radius,
                low=settings.shading_min,
                high=settings.shading_max,
                exponent=settings.shading_exponent,
            ),
            OcclusionMapBuilder(max_darkening=settings.occlusion_max_darkening),
        ],
        cache=cache,
    )
    maps = pipeline.build_all(photo, photo_identity)

    # Tile
    ppm, _ = resolve_pixels_per_meter(request.pixels_per_meter, settings.default_pixels_per_meter)
    material = request.material
    size = tile_size_px(material.physical_repeat_meters, ppm, material.tile_scale, settings.min_tile_px)

    def make_tile():
        return build_tile(material, ppm, texture=texture, min_px=settings.min_tile_px)

    if cache is not None:
        tile = cache.get_or_compute(("tile", compute_content_hash(texture), size), make_tile)
    else:
        tile = make_tile()

    layer = np.zeros((height, width, 4), dtype=np.uint8)
    layer[bounds.y0:bounds.y1, bounds.x0:bounds.x1] = fill_region(tile, bounds)

    # Re-color, then put back into the scene
    tinted = transfer(layer, stats, strength, coverage, threshold)
    return composite(
        photo,
        tinted,
        maps["shading"].values,
        maps["occlusion"].values,
        mask_alpha,
        feather_radius=settings.feather_radius,
        threshold=threshold,
        coverage=coverage,
    )


class CompositeJobRunner:
    """
    Runs composite jobs off the event loop.

    Texture fetches are awaited on the loop; rendering and PNG encoding run in a
    worker pool. Jobs share nothing but the read-through cache.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        texture_client: Optional[TextureClient] = None,
        cache: Optional[LayerCache] = None,
        max_workers: Optional[int] = None,
    ):
        self.settings = settings or get_settings()
        self.texture_client = texture_client or TextureClient(timeout=self.settings.fetch_timeout)
        self.cache = cache if cache is not None else LayerCache(
            max_items=self.settings.cache_max_items,
            max_memory_mb=self.settings.cache_max_memory_mb,
        )
        self.max_workers = max_workers or self.settings.max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="photoblend"
        )

    async def run(self, request: CompositeRequest) -> CompositeResult:
        """Run one job to completion. Never raises for pipeline failures."""
        correlation_id = request.correlation_id
        loop = asyncio.get_running_loop()
        started = time.perf_counter()
        logger.info(f"[JOB] {correlation_id} started")

        try:
            texture = await self.texture_client.load(request.material)
            raster = await loop.run_in_executor(
                self._executor,
                lambda: render_composite(request, texture, cache=self.cache, settings=self.settings),
            )
            png = await loop.run_in_executor(self._executor, encode_png, raster)
        except CompositeError as e:
            logger.warning(f"[JOB] {correlation_id} failed: {e.kind.value}: {e.message}")
            return CompositeResult.failure(correlation_id, e.kind, e.message)
        except Exception as e:
            logger.exception(f"[JOB] {correlation_id} crashed: {e}")
            return CompositeResult.failure(correlation_id, ErrorKind.INTERNAL, str(e))

        ppm = request.pixels_per_meter
        calibrated = ppm is not None and math.isfinite(ppm) and ppm > 0
        elapsed = time.perf_counter() - started
        logger.info(f"[JOB] {correlation_id} complete in {elapsed:.2f}s ({len(png)} bytes)")

        return CompositeResult.success(
            correlation_id,
            png,
            calibrated=calibrated,
            metadata={"width": int(raster.shape[1]), "height": int(raster.shape[0]), "elapsed_s": elapsed},
        )

    def submit(self, request: CompositeRequest, callback: Optional[ResultCallback] = None) -> "asyncio.Task[CompositeResult]":
        """
        Schedule a job on the running loop and return its task.

        ``callback`` (sync or async) receives the single result.
        """
        async def _job() -> CompositeResult:
            result = await self.run(request)
            if callback is not None:
                outcome = callback(result)
                if inspect.isawaitable(outcome):
                    await outcome
            return result

        return asyncio.create_task(_job())

    def run_sync(self, request: CompositeRequest) -> CompositeResult:
        """Blocking wrapper for callers without an event loop."""
        async def _once() -> CompositeResult:
            try:
                return await self.run(request)
            finally:
                # The HTTP client is bound to this loop
                await self.texture_client.close()

        return asyncio.run(_once())

    async def aclose(self):
        await self.texture_client.close()
        self._executor.shutdown(wait=False)

    def shutdown(self):
        self._executor.shutdown(wait=True)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
