"""Tests for provider resolution and provider settings."""

import pytest

from meal_analyzer.domain.errors import NoCredentialError
from meal_analyzer.domain.providers import ProviderName, ProviderSettings
from meal_analyzer.services.providers import ProviderResolver, ProviderSettingsService
from tests.conftest import InMemoryProviderSettingsRepository, ScriptedProvider


def _resolver(
    settings: ProviderSettings | None,
) -> tuple[ProviderResolver, list[tuple[str, ...]]]:
    created: list[tuple[str, ...]] = []
    repository = InMemoryProviderSettingsRepository()
    if settings is not None:
        repository.settings["user-1"] = settings

    def openai_factory(api_key: str) -> ScriptedProvider:
        created.append(("openai", api_key))
        return ScriptedProvider()

    def gemini_factory(api_key: str, model: str) -> ScriptedProvider:
        created.append(("google", api_key, model))
        return ScriptedProvider()

    resolver = ProviderResolver(
        repository=repository,
        openai_factory=openai_factory,
        gemini_factory=gemini_factory,
    )
    return resolver, created


def test_resolve_uses_openai_by_default() -> None:
    resolver, created = _resolver(ProviderSettings(None, "sk-user", None))

    resolver.resolve("user-1")

    assert created == [("openai", "sk-user")]


def test_resolve_uses_gemini_with_selected_model() -> None:
    resolver, created = _resolver(
        ProviderSettings(
            ProviderName.GOOGLE, None, "g-key", gemini_model="gemini-2.5-flash-lite"
        )
    )

    resolver.resolve("user-1")

    assert created == [("google", "g-key", "gemini-2.5-flash-lite")]


def test_resolve_replaces_unknown_gemini_model() -> None:
    resolver, created = _resolver(
        ProviderSettings(ProviderName.GOOGLE, None, "g-key", gemini_model="gemini-1")
    )

    resolver.resolve("user-1")

    assert created == [("google", "g-key", "gemini-2.5-flash")]


def test_resolve_without_key_for_selected_provider() -> None:
    settings = ProviderSettings(ProviderName.GOOGLE, "sk-user", None)
    resolver, created = _resolver(settings)

    with pytest.raises(NoCredentialError) as excinfo:
        resolver.resolve("user-1")

    assert excinfo.value.provider == "google"
    assert excinfo.value.code == "NO_API_KEY"
    assert created == []


def test_resolve_without_settings() -> None:
    resolver, _ = _resolver(None)

    with pytest.raises(NoCredentialError):
        resolver.resolve("user-1")


def test_settings_service_updates_provider_and_model() -> None:
    repository = InMemoryProviderSettingsRepository()
    service = ProviderSettingsService(repository)

    service.set_preferred_provider("user-1", ProviderName.GOOGLE)
    service.set_gemini_model("user-1", "gemini-3-flash-preview")

    stored = repository.settings["user-1"]
    assert stored.provider is ProviderName.GOOGLE
    assert stored.gemini_model == "gemini-3-flash-preview"


def test_settings_service_rejects_unknown_model() -> None:
    service = ProviderSettingsService(InMemoryProviderSettingsRepository())

    with pytest.raises(ValueError):
        service.set_gemini_model("user-1", "gemini-0")
