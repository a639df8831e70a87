"""Google Gemini provider adapter."""

from dataclasses import dataclass

import httpx
from google import genai
from google.genai import errors, types

from meal_analyzer.domain.errors import (
    AnalysisError,
    InvalidCredentialError,
    RateLimitedError,
    TransientBackendError,
)
from meal_analyzer.services.providers import ImageLoader, ProviderAdapter, UserContent

_INVALID_KEY_REASONS = {"API_KEY_INVALID", "API_KEY_EXPIRED"}
_HTTP_UNAUTHORIZED = 401
_HTTP_FORBIDDEN = 403
_HTTP_TOO_MANY_REQUESTS = 429


@dataclass
class GeminiProvider(ProviderAdapter):
    """Provider adapter backed by the google-genai async client."""

    client: genai.Client
    model: str
    image_loader: ImageLoader

    @classmethod
    def create(
        cls, api_key: str, model: str, image_loader: ImageLoader
    ) -> "GeminiProvider":
        """Create an adapter for a user's API key."""
        return cls(
            client=genai.Client(api_key=api_key),
            model=model,
            image_loader=image_loader,
        )

    async def complete(self, system_context: str, content: UserContent) -> str:
        """Send images and prompt text and return the JSON response text."""
        parts: list[types.Part] = []
        for reference in content.images:
            try:
                image = await self.image_loader.load(reference)
            except httpx.HTTPError as exc:
                raise TransientBackendError(f"Failed to load image: {exc}") from exc
            parts.append(
                types.Part.from_bytes(data=image.data, mime_type=image.mime_type)
            )
        parts.append(types.Part.from_text(text=content.text))

        config = types.GenerateContentConfig(
            system_instruction=system_context,
            response_mime_type="application/json",
        )
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=[types.Content(role="user", parts=parts)],
                config=config,
            )
        except errors.APIError as exc:
            raise _translate_error(exc) from exc

        text = response.text
        if not text:
            raise TransientBackendError("Empty response from Gemini")
        return text


def _translate_error(exc: errors.APIError) -> AnalysisError:
    """Map a google-genai error onto the pipeline's error taxonomy."""
    if exc.code in {_HTTP_UNAUTHORIZED, _HTTP_FORBIDDEN}:
        return InvalidCredentialError()
    if _INVALID_KEY_REASONS & _error_reasons(exc):
        return InvalidCredentialError()
    if exc.code == _HTTP_TOO_MANY_REQUESTS:
        return RateLimitedError()
    return TransientBackendError(f"Gemini request failed: {exc.code} {exc.status}")


def _error_reasons(exc: errors.APIError) -> set[str]:
    """Collect ``ErrorInfo`` reasons from a Google API error payload."""
    details = exc.details if isinstance(exc.details, dict) else {}
    error = details.get("error", details)
    if not isinstance(error, dict):
        return set()
    reasons: set[str] = set()
    for detail in error.get("details") or []:
        if isinstance(detail, dict) and isinstance(detail.get("reason"), str):
            reasons.add(detail["reason"])
    return reasons
