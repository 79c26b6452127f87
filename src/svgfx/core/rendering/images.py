"""
Image Store
===========

In-memory image resources for a render pass. Images are handed over by the
embedding application (resource fetching is not done here) or given inline
as data URLs, and are embedded into the output as base64 PNG data URLs.
"""

from typing import Any, Dict, Optional, Tuple, Union
import base64
import binascii
import io
from urllib.parse import unquote_to_bytes

from PIL import Image, UnidentifiedImageError  # type: ignore

from svgfx.config.logging import get_logger
from svgfx.config.settings import Settings, get_settings

logger = get_logger(__name__)


class ImageStoreError(Exception):
    """Exception raised when an image cannot be accepted by the store."""

    pass


def split_data_url(url: str) -> Optional[Tuple[str, bytes]]:
    """
    Decode a ``data:`` URL.

    Returns:
        (media type, payload) or None if the URL is not a valid data URL
    """
    if not url.startswith("data:") or "," not in url:
        return None

    header, payload = url[5:].split(",", 1)
    params = header.split(";")
    media_type = params[0] or "text/plain"
    try:
        if "base64" in params[1:]:
            return media_type, base64.b64decode(payload, validate=False)
        return media_type, unquote_to_bytes(payload)
    except (binascii.Error, ValueError):
        return None


def svg_data_url(data: Union[bytes, str]) -> str:
    """Base64 ``data:image/svg+xml`` URL for an SVG payload."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return "data:image/svg+xml;base64," + base64.b64encode(data).decode("ascii")


class ImageStore:
    """URL to image bytes mapping with PNG re-encoding."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="image_store")  # structlog.BoundLoggerBase
        self._images: Dict[str, bytes] = {}
        self._data_urls: Dict[str, str] = {}

    def add(self, url: str, data: bytes) -> None:
        """
        Register image bytes under a URL.

        Raises:
            ImageStoreError: If the payload exceeds the configured size limit
        """
        if len(data) > self.settings.max_image_bytes:
            raise ImageStoreError(
                f"Image {url!r} is {len(data)} bytes, limit is {self.settings.max_image_bytes}"
            )
        self._images[url] = data
        self._data_urls.pop(url, None)

    def get_bytes(self, url: str) -> Optional[bytes]:
        """Raw bytes for a URL; data URLs are decoded on the fly."""
        if url in self._images:
            return self._images[url]
        decoded = split_data_url(url)
        if decoded is not None:
            return decoded[1]
        return None

    def size(self, url: str) -> Optional[Tuple[int, int]]:
        """Intrinsic pixel size, if the image is a decodable raster."""
        data = self.get_bytes(url)
        if data is None:
            return None
        try:
            with Image.open(io.BytesIO(data)) as image:
                return image.size
        except (UnidentifiedImageError, OSError):
            return None

    def data_url(self, url: str) -> Optional[str]:
        """
        Embeddable data URL for an image.

        Rasters are re-encoded to PNG; SVG payloads are embedded as is.
        Returns None when the image is unknown or cannot be decoded.
        """
        if url in self._data_urls:
            return self._data_urls[url]

        data = self.get_bytes(url)
        if data is None:
            self.logger.warning("Image not found in store", url=url[:80])
            return None

        encoded = self._encode_png(data)
        if encoded is None:
            decoded = split_data_url(url)
            is_svg = decoded is not None and decoded[0] == "image/svg+xml"
            if is_svg or data.lstrip().startswith((b"<svg", b"<?xml")):
                encoded = svg_data_url(data)
            else:
                self.logger.warning("Image could not be decoded", url=url[:80], size=len(data))
                return None

        self._data_urls[url] = encoded
        return encoded

    def _encode_png(self, data: bytes) -> Optional[str]:
        try:
            image = Image.open(io.BytesIO(data))  # type: ignore[attr-defined]
            image.load()
        except (UnidentifiedImageError, OSError):
            return None

        if image.mode not in ("RGB", "RGBA", "L", "LA"):  # type: ignore[attr-defined]
            image = image.convert("RGBA")  # type: ignore[attr-defined]

        output = io.BytesIO()
        image.save(output, format="PNG", optimize=True)  # type: ignore[attr-defined]
        png_bytes = output.getvalue()

        self.logger.debug(
            "Image re-encoded", original_size=len(data), png_size=len(png_bytes), size=image.size
        )
        return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and self.get_bytes(url) is not None

    def __len__(self) -> int:
        return len(self._images)
