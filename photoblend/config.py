"""
Runtime configuration for the compositing service.

Values come from environment variables (a local .env file is loaded first).
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return float(value)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def _env_list(name: str, default: List[str]) -> List[str]:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Tunable constants for every stage of the pipeline."""

    # Calibration
    default_pixels_per_meter: float = 100.0

    # Masking
    alpha_threshold: int = 5
    feather_radius: float = 2.0

    # Shading / occlusion
    shading_blur_radius: float = 10.0
    shading_min: float = 0.7
    shading_max: float = 1.3
    shading_exponent: float = 0.85
    occlusion_max_darkening: float = 0.15

    # Tiling
    min_tile_px: int = 32
    default_physical_repeat_m: float = 0.3

    # Jobs
    max_workers: int = 4
    fetch_timeout: float = 30.0

    # Caches
    cache_max_items: int = 32
    cache_max_memory_mb: int = 512

    # Service
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    log_level: str = "INFO"
    log_file: str = ""

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            default_pixels_per_meter=_env_float("PHOTOBLEND_DEFAULT_PPM", 100.0),
            alpha_threshold=_env_int("PHOTOBLEND_ALPHA_THRESHOLD", 5),
            feather_radius=_env_float("PHOTOBLEND_FEATHER_RADIUS", 2.0),
            shading_blur_radius=_env_float("PHOTOBLEND_SHADING_BLUR_RADIUS", 10.0),
            shading_min=_env_float("PHOTOBLEND_SHADING_MIN", 0.7),
            shading_max=_env_float("PHOTOBLEND_SHADING_MAX", 1.3),
            shading_exponent=_env_float("PHOTOBLEND_SHADING_EXPONENT", 0.85),
            occlusion_max_darkening=_env_float("PHOTOBLEND_OCCLUSION_MAX", 0.15),
            min_tile_px=_env_int("PHOTOBLEND_MIN_TILE_PX", 32),
            default_physical_repeat_m=_env_float("PHOTOBLEND_DEFAULT_REPEAT_M", 0.3),
            max_workers=_env_int("PHOTOBLEND_MAX_WORKERS", 4),
            fetch_timeout=_env_float("PHOTOBLEND_FETCH_TIMEOUT", 30.0),
            cache_max_items=_env_int("PHOTOBLEND_CACHE_MAX_ITEMS", 32),
            cache_max_memory_mb=_env_int("PHOTOBLEND_CACHE_MAX_MB", 512),
            cors_origins=_env_list("PHOTOBLEND_CORS_ORIGINS", ["http://localhost:3000"]),
            log_level=os.getenv("PHOTOBLEND_LOG_LEVEL", "INFO"),
            log_file=os.getenv("PHOTOBLEND_LOG_FILE", ""),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read from the environment once."""
    return Settings.from_env()
