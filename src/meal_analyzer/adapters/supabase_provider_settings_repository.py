"""Supabase repository for per-user provider settings."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from meal_analyzer.domain.providers import ProviderName, ProviderSettings
from meal_analyzer.services.providers import ProviderSettingsRepository

_COLUMNS = "preferred_provider, openai_api_key, google_api_key, preferred_gemini_model"


@dataclass
class SupabaseProviderSettingsRepository(ProviderSettingsRepository):
    """Supabase implementation for provider settings."""

    client: Client

    def get_provider_settings(self, user_id: str) -> ProviderSettings | None:
        """Return the stored provider settings for a user."""
        response = (
            self.client.table("user_provider_settings")
            .select(_COLUMNS)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return ProviderSettings(
            provider=_parse_provider(row.get("preferred_provider")),
            openai_api_key=row.get("openai_api_key") or None,
            google_api_key=row.get("google_api_key") or None,
            gemini_model=row.get("preferred_gemini_model") or None,
        )

    def set_preferred_provider(self, user_id: str, provider: ProviderName) -> None:
        """Update the user's preferred backend."""
        self._update(user_id, {"preferred_provider": provider.value})

    def set_gemini_model(self, user_id: str, model: str) -> None:
        """Update the user's preferred Gemini model."""
        self._update(user_id, {"preferred_gemini_model": model})

    def _update(self, user_id: str, payload: dict[str, object]) -> None:
        self.client.table("user_provider_settings").update(
            {**payload, "updated_at": datetime.now(tz=UTC).isoformat()}
        ).eq("user_id", user_id).execute()


def _parse_provider(value: object) -> ProviderName | None:
    if not isinstance(value, str):
        return None
    try:
        return ProviderName(value)
    except ValueError:
        return None
