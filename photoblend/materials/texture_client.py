"""
Fetching and decoding material reference textures.

Only the boundary is handled here: bytes in, RGBA out, or
``MaterialUnavailableError``. Failed fetches are not retried.
"""

import base64
import binascii
from typing import Dict, Optional

import httpx
import numpy as np
from loguru import logger

from ..config import get_settings
from ..jobs.errors import MaterialUnavailableError
from ..jobs.models import Material
from ..utils.image_processing import load_rgba_from_bytes, to_rgba


def decode_texture(data: bytes) -> np.ndarray:
    """
    Decode texture bytes into an RGBA array.

    Raises:
        MaterialUnavailableError: bytes are empty or not an image
    """
    if not data:
        raise MaterialUnavailableError("Texture data is empty")
    try:
        return load_rgba_from_bytes(data)
    except ValueError as e:
        raise MaterialUnavailableError(f"Could not decode texture: {e}") from e


def _decode_data_url(url: str) -> bytes:
    header, sep, payload = url.partition(",")
    if not sep:
        raise MaterialUnavailableError("Malformed data URL")
    try:
        if header.endswith(";base64"):
            return base64.b64decode(payload, validate=True)
        return payload.encode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise MaterialUnavailableError(f"Malformed data URL payload: {e}") from e


class TextureClient:
    """
    Async HTTP client for texture downloads.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            timeout: Request timeout in seconds (or PHOTOBLEND_FETCH_TIMEOUT)
            headers: Extra request headers
            transport: Custom httpx transport (mainly for tests)
        """
        self.timeout = timeout if timeout is not None else get_settings().fetch_timeout
        self.headers = headers or {}
        self.transport = transport

        self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy initialization of HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.headers,
                transport=self.transport,
                follow_redirects=True,
            )
        return self._client

    async def fetch(self, url: str) -> bytes:
        """
        Fetch raw texture bytes.

        ``data:`` URLs are decoded locally without touching the network.
        """
        if url.startswith("data:"):
            return _decode_data_url(url)

        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(f"[FETCH] {url} -> HTTP {e.response.status_code}")
            raise MaterialUnavailableError(
                f"Texture fetch failed: {e.response.status_code}", detail=url
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"[FETCH] {url} -> {type(e).__name__}: {e}")
            raise MaterialUnavailableError(f"Texture fetch failed: {e}", detail=url) from e

        logger.debug(f"[FETCH] {url} -> {len(response.content)} bytes")
        return response.content

    async def load(self, material: Material) -> np.ndarray:
        """Return the material's texture, fetching and decoding it if only a URL is set."""
        if material.reference_texture is not None:
            return to_rgba(material.reference_texture)
        return decode_texture(await self.fetch(material.texture_url))

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
