"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from meal_analyzer.adapters.gemini_provider import GeminiProvider
from meal_analyzer.adapters.image_loader import HttpxImageLoader
from meal_analyzer.adapters.openai_provider import OpenAIProvider
from meal_analyzer.adapters.supabase_provider_settings_repository import (
    SupabaseProviderSettingsRepository,
)
from meal_analyzer.config import Settings
from meal_analyzer.services.extraction import ExtractionStage
from meal_analyzer.services.formatting import FormattingStage
from meal_analyzer.services.pipeline import AnalysisPipeline
from meal_analyzer.services.providers import (
    ProviderAdapter,
    ProviderResolver,
    ProviderSettingsService,
)
from meal_analyzer.services.single_stage import SingleStageAnalyzer


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    pipeline: AnalysisPipeline
    provider_settings_service: ProviderSettingsService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    settings_repository = SupabaseProviderSettingsRepository(supabase_client)
    image_loader = HttpxImageLoader.create(
        timeout_seconds=resolved_settings.image_fetch_timeout_seconds
    )

    def openai_factory(api_key: str) -> ProviderAdapter:
        return OpenAIProvider.create(
            api_key,
            model=resolved_settings.openai_model,
            max_completion_tokens=resolved_settings.openai_max_completion_tokens,
        )

    def gemini_factory(api_key: str, model: str) -> ProviderAdapter:
        return GeminiProvider.create(api_key, model=model, image_loader=image_loader)

    resolver = ProviderResolver(
        repository=settings_repository,
        openai_factory=openai_factory,
        gemini_factory=gemini_factory,
        default_provider=resolved_settings.default_provider,
        default_gemini_model=resolved_settings.gemini_model,
    )
    pipeline = AnalysisPipeline(
        resolver=resolver,
        extraction=ExtractionStage(),
        formatting=FormattingStage(
            max_attempts=resolved_settings.formatting_attempts,
            base_delay_seconds=resolved_settings.retry_base_delay_seconds,
        ),
        fallback=SingleStageAnalyzer() if resolved_settings.fallback_enabled else None,
        max_attempts=resolved_settings.pipeline_attempts,
        base_delay_seconds=resolved_settings.retry_base_delay_seconds,
    )

    async def close_resources() -> None:
        await image_loader.close()

    return AppContainer(
        settings=resolved_settings,
        pipeline=pipeline,
        provider_settings_service=ProviderSettingsService(settings_repository),
        close_resources=close_resources,
    )
