"""Resolves image references (data URIs or URLs) into bytes."""

import base64
import binascii
from dataclasses import dataclass

import httpx

from meal_analyzer.domain.errors import InvalidImageError
from meal_analyzer.domain.providers import ImagePayload
from meal_analyzer.services.providers import ImageLoader, check_image_reference


@dataclass
class HttpxImageLoader(ImageLoader):
    """Decodes data URIs inline and downloads http(s) URLs with httpx."""

    http_client: httpx.AsyncClient
    timeout_seconds: float = 15.0

    @classmethod
    def create(cls, timeout_seconds: float = 15.0) -> "HttpxImageLoader":
        """Create a loader with a managed httpx session."""
        return cls(http_client=httpx.AsyncClient(), timeout_seconds=timeout_seconds)

    async def load(self, reference: str) -> ImagePayload:
        """Return the bytes and MIME type behind an image reference."""
        check_image_reference(reference)
        if reference.startswith("data:"):
            return decode_data_url(reference)
        response = await self.http_client.get(
            reference, timeout=self.timeout_seconds, follow_redirects=True
        )
        response.raise_for_status()
        content_type = response.headers.get("content-type", "").split(";")[0]
        content_type = content_type.strip().lower()
        if not content_type.startswith("image/"):
            content_type = detect_mime_type(response.content)
        return ImagePayload(data=response.content, mime_type=content_type)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def decode_data_url(data_url: str) -> ImagePayload:
    """Decode a base64 ``data:`` URL."""
    check_image_reference(data_url)
    header, _, encoded = data_url.partition(",")
    try:
        data = base64.b64decode(encoded, validate=True)
    except binascii.Error as exc:
        raise InvalidImageError("Image data URL contains invalid base64") from exc
    mime_type = header[len("data:") : -len(";base64")].strip().lower()
    if not mime_type.startswith("image/"):
        mime_type = detect_mime_type(data)
    return ImagePayload(data=data, mime_type=mime_type)


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
