"""Utility modules."""

from .color_space import (
    srgb_to_lab,
    lab_to_srgb,
    luminance,
)
from .image_processing import (
    load_rgba_from_bytes,
    to_rgba,
    decode_base64_image,
    resize_rgba,
    encode_png_bytes,
    encode_image_to_base64,
    compute_content_hash,
)

__all__ = [
    "srgb_to_lab",
    "lab_to_srgb",
    "luminance",
    "load_rgba_from_bytes",
    "to_rgba",
    "decode_base64_image",
    "resize_rgba",
    "encode_png_bytes",
    "encode_image_to_base64",
    "compute_content_hash",
]
