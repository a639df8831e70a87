"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from meal_analyzer.domain.providers import ProviderName

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    default_provider: ProviderName = ProviderName.OPENAI
    openai_model: str = "gpt-5.2"
    openai_max_completion_tokens: int = 2000
    gemini_model: str = "gemini-2.5-flash"
    pipeline_attempts: int = 3
    formatting_attempts: int = 3
    retry_base_delay_seconds: float = 1.0
    fallback_enabled: bool = True
    image_fetch_timeout_seconds: float = 15.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
