"""
Base class for per-photo map builders.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
from loguru import logger

from ..materials.cache import LayerCache
from ..utils.image_processing import compute_content_hash


@dataclass
class PhotoMap:
    """
    A per-pixel scalar map derived from a photo.
    """
    name: str  # Builder name
    values: np.ndarray  # float32 (H, W)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Summary for logging and debugging (no pixel data)."""
        return {
            "name": self.name,
            "shape": list(self.values.shape),
            "min": float(self.values.min()) if self.values.size else None,
            "max": float(self.values.max()) if self.values.size else None,
            "metadata": self.metadata,
        }


class BaseMapBuilder(ABC):
    """
    Abstract base class for map builders.
    Each builder analyzes an RGBA photo and returns a PhotoMap of the same size.
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def build(self, photo_rgba: np.ndarray) -> PhotoMap:
        """
        Build the map for a photo.

        Args:
            photo_rgba: (H, W, 4) uint8 photo

        Returns:
            PhotoMap with values of shape (H, W)
        """
        pass

    def cache_params(self) -> tuple:
        """Parameters that change the output; part of the cache key."""
        return ()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"


class MapBuilderPipeline:
    """
    Runs several builders on one photo, going through a read-through cache when given.
    """

    def __init__(self, builders: List[BaseMapBuilder], cache: Optional[LayerCache] = None):
        self.builders = builders
        self.cache = cache

    def build_all(self, photo_rgba: np.ndarray, photo_identity: Optional[str] = None) -> Dict[str, PhotoMap]:
        """
        Build every map for the photo.

        Returns:
            Dictionary mapping builder name to PhotoMap
        """
        if self.cache is not None and photo_identity is None:
            photo_identity = compute_content_hash(photo_rgba)

        results = {}
        for builder in self.builders:
            if self.cache is None:
                results[builder.name] = builder.build(photo_rgba)
                continue

            key = ("map", builder.name, builder.cache_params(), photo_identity, photo_rgba.shape[:2])
            results[builder.name] = self.cache.get_or_compute(
                key, lambda b=builder: b.build(photo_rgba)
            )

        logger.debug(f"[MAPS] Built {', '.join(results)} for {photo_rgba.shape[1]}x{photo_rgba.shape[0]}")
        return results
