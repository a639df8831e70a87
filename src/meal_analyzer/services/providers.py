"""Provider adapter interface and per-user backend resolution."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from meal_analyzer.domain.errors import InvalidImageError, NoCredentialError
from meal_analyzer.domain.providers import (
    GEMINI_MODELS,
    ImagePayload,
    ProviderName,
    ProviderSettings,
)

_logger = logging.getLogger(__name__)

_IMAGE_SCHEMES = ("http://", "https://")


def check_image_reference(reference: str) -> None:
    """Reject references that are neither a base64 data URI nor an http(s) URL."""
    if reference.startswith("data:"):
        header, separator, _ = reference.partition(",")
        if not separator or not header.endswith(";base64"):
            raise InvalidImageError("Image data URL must be base64 encoded")
        return
    if not reference.startswith(_IMAGE_SCHEMES):
        raise InvalidImageError(
            "Unsupported image reference; expected a data URI or URL"
        )


@dataclass(frozen=True)
class UserContent:
    """User turn sent to a backend: prompt text plus zero or more images."""

    text: str
    images: list[str] = field(default_factory=list)


class ProviderAdapter(Protocol):
    """Interface every vision/language backend implements."""

    async def complete(self, system_context: str, content: UserContent) -> str:
        """Return the raw response text, expected to be a JSON object."""


class ImageLoader(Protocol):
    """Interface for turning image references into bytes."""

    async def load(self, reference: str) -> ImagePayload:
        """Return the image bytes behind a data URI or URL."""


class ProviderSettingsRepository(Protocol):
    """Persistence interface for per-user provider settings."""

    def get_provider_settings(self, user_id: str) -> ProviderSettings | None:
        """Return the user's provider settings, if any."""

    def set_preferred_provider(self, user_id: str, provider: ProviderName) -> None:
        """Update the user's preferred backend."""

    def set_gemini_model(self, user_id: str, model: str) -> None:
        """Update the user's preferred Gemini model."""


@dataclass
class ProviderSettingsService:
    """Service for changing a user's backend preferences."""

    repository: ProviderSettingsRepository

    def set_preferred_provider(self, user_id: str, provider: ProviderName) -> None:
        """Persist the user's preferred backend."""
        self.repository.set_preferred_provider(user_id, provider)

    def set_gemini_model(self, user_id: str, model: str) -> None:
        """Persist the user's Gemini model; only known models are accepted."""
        if model not in GEMINI_MODELS:
            raise ValueError(f"Unsupported Gemini model: {model}")
        self.repository.set_gemini_model(user_id, model)


@dataclass
class ProviderResolver:
    """Builds the adapter for a user's preferred backend."""

    repository: ProviderSettingsRepository
    openai_factory: Callable[[str], ProviderAdapter]
    gemini_factory: Callable[[str, str], ProviderAdapter]
    default_provider: ProviderName = ProviderName.OPENAI
    default_gemini_model: str = "gemini-2.5-flash"

    def resolve(self, user_id: str) -> ProviderAdapter:
        """Return an adapter for the user or raise NoCredentialError."""
        settings = self.repository.get_provider_settings(user_id)
        provider = (settings.provider if settings else None) or self.default_provider
        if provider is ProviderName.GOOGLE:
            api_key = settings.google_api_key if settings else None
            if not api_key:
                raise NoCredentialError(provider.value)
            return self.gemini_factory(api_key, self.gemini_model_for(settings))
        api_key = settings.openai_api_key if settings else None
        if not api_key:
            raise NoCredentialError(provider.value)
        return self.openai_factory(api_key)

    def gemini_model_for(self, settings: ProviderSettings | None) -> str:
        """Return the user's Gemini model, or the default for unknown ids."""
        model = settings.gemini_model if settings else None
        if model in GEMINI_MODELS:
            return model
        if model:
            _logger.warning(
                "Unknown Gemini model %s; using %s", model, self.default_gemini_model
            )
        return self.default_gemini_model
