"""
Raster helpers using OpenCV and Pillow.

Every raster in the pipeline is an RGBA uint8 array of shape (H, W, 4).
"""

import base64
import hashlib
import io

import cv2
import numpy as np
from PIL import Image


def load_rgba_from_bytes(image_bytes: bytes) -> np.ndarray:
    """
    Decode PNG/JPEG/WebP bytes into an RGBA array.

    Raises:
        ValueError: if the bytes are not a decodable image
    """
    nparr = np.frombuffer(image_bytes, np.uint8)
    img = cv2.imdecode(nparr, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ValueError("Could not decode image bytes")
    return to_rgba(img, bgr=True)


def to_rgba(image: np.ndarray, bgr: bool = False) -> np.ndarray:
    """Normalize a gray, RGB(A) or BGR(A) array to RGBA uint8."""
    if image.dtype != np.uint8:
        if image.dtype == np.uint16:
            image = (image >> 8).astype(np.uint8)
        else:
            image = np.clip(image, 0, 255).astype(np.uint8)

    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)

    channels = image.shape[2]
    if channels == 1:
        return cv2.cvtColor(image[:, :, 0], cv2.COLOR_GRAY2RGBA)
    if channels == 3:
        code = cv2.COLOR_BGR2RGBA if bgr else cv2.COLOR_RGB2RGBA
        return cv2.cvtColor(image, code)
    if channels == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA) if bgr else image.copy()

    raise ValueError(f"Unsupported channel count: {channels}")


def decode_base64_image(data: str) -> np.ndarray:
    """Decode a base64 string (optionally a data: URL) into RGBA."""
    if data.startswith("data:"):
        _, _, data = data.partition(",")
    return load_rgba_from_bytes(base64.b64decode(data))


def resize_rgba(image: np.ndarray, width: int, height: int) -> np.ndarray:
    """Resample to an exact size; area filter when shrinking, cubic when growing."""
    h, w = image.shape[:2]
    if (w, h) == (width, height):
        return image
    interpolation = cv2.INTER_AREA if width * height < w * h else cv2.INTER_CUBIC
    return cv2.resize(image, (width, height), interpolation=interpolation)


def encode_png_bytes(image: np.ndarray) -> bytes:
    """Encode an RGBA array as PNG bytes."""
    pil_img = Image.fromarray(np.ascontiguousarray(image, dtype=np.uint8))
    buffer = io.BytesIO()
    pil_img.save(buffer, format="PNG")
    return buffer.getvalue()


def encode_image_to_base64(image_bytes: bytes) -> str:
    return base64.b64encode(image_bytes).decode("utf-8")


def compute_content_hash(image: np.ndarray) -> str:
    """Exact content identity of a raster (shape + bytes), used as a cache key."""
    h = hashlib.sha1()
    h.update(str(image.shape).encode("ascii"))
    h.update(np.ascontiguousarray(image).tobytes())
    return h.hexdigest()
