"""Domain models for AI provider selection."""

from dataclasses import dataclass
from enum import StrEnum

GEMINI_MODELS: tuple[str, ...] = (
    "gemini-3-flash-preview",
    "gemini-2.5-flash",
    "gemini-2.5-flash-preview-09-2025",
    "gemini-2.5-flash-lite",
    "gemini-2.5-flash-lite-preview-09-2025",
)


class ProviderName(StrEnum):
    """Supported vision backends."""

    OPENAI = "openai"
    GOOGLE = "google"


@dataclass(frozen=True)
class ProviderSettings:
    """Per-user backend preference and credentials."""

    provider: ProviderName | None
    openai_api_key: str | None
    google_api_key: str | None
    gemini_model: str | None = None


@dataclass(frozen=True)
class ImagePayload:
    """Image bytes with their MIME type."""

    data: bytes
    mime_type: str
