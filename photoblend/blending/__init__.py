"""Color transfer and compositing."""

from .color_transfer import REFERENCE_STATS, effective_strength, transfer
from .compositor import composite, encode_png, feather_alpha

__all__ = [
    "REFERENCE_STATS",
    "effective_strength",
    "transfer",
    "composite",
    "encode_png",
    "feather_alpha",
]
