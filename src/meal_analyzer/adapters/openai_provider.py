"""OpenAI Chat Completions provider adapter."""

from dataclasses import dataclass

import openai
from openai import AsyncOpenAI

from meal_analyzer.domain.errors import (
    AnalysisError,
    InvalidCredentialError,
    QuotaExceededError,
    RateLimitedError,
    TransientBackendError,
)
from meal_analyzer.services.providers import ProviderAdapter, UserContent


@dataclass
class OpenAIProvider(ProviderAdapter):
    """Provider adapter backed by OpenAI chat completions in JSON mode."""

    client: AsyncOpenAI
    model: str = "gpt-5.2"
    max_completion_tokens: int = 2000

    @classmethod
    def create(
        cls, api_key: str, model: str = "gpt-5.2", max_completion_tokens: int = 2000
    ) -> "OpenAIProvider":
        """Create an adapter for a user's API key."""
        return cls(
            client=AsyncOpenAI(api_key=api_key),
            model=model,
            max_completion_tokens=max_completion_tokens,
        )

    async def complete(self, system_context: str, content: UserContent) -> str:
        """Send one system + user turn and return the response text."""
        user_content: str | list[dict[str, object]] = content.text
        if content.images:
            user_content = [
                {"type": "text", "text": content.text},
                *(
                    {
                        "type": "image_url",
                        "image_url": {"url": image, "detail": "high"},
                    }
                    for image in content.images
                ),
            ]
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_context},
                    {"role": "user", "content": user_content},
                ],
                max_completion_tokens=self.max_completion_tokens,
                response_format={"type": "json_object"},
            )
        except openai.APIError as exc:
            raise _translate_error(exc) from exc

        text = response.choices[0].message.content if response.choices else None
        if not text:
            raise TransientBackendError("OpenAI returned an empty response")
        return text


def _translate_error(exc: openai.APIError) -> AnalysisError:
    """Map an OpenAI SDK error onto the pipeline's error taxonomy."""
    if isinstance(exc, openai.AuthenticationError | openai.PermissionDeniedError):
        return InvalidCredentialError()
    if isinstance(exc, openai.RateLimitError):
        if exc.code == "insufficient_quota":
            return QuotaExceededError()
        return RateLimitedError()
    if isinstance(exc, openai.APIConnectionError):
        return TransientBackendError(
            "Unable to connect to OpenAI. Please check your internet connection."
        )
    return TransientBackendError(f"OpenAI request failed: {exc.message}")
