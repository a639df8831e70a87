"""Request models for the HTTP API."""

from pydantic import Field, field_validator

from meal_analyzer.domain.nutrition import Ingredient, WireModel
from meal_analyzer.domain.providers import ProviderName


class AnalyzeRequest(WireModel):
    """Photos (data URIs or URLs) plus optional context."""

    images: list[str] = Field(min_length=1)
    context: str | None = None


class RecalculateIngredient(Ingredient):
    """Ingredient sent for recalculation; the name must be filled in."""

    @field_validator("name")
    @classmethod
    def require_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Ingredient name must not be blank")
        return value


class RecalculateRequest(WireModel):
    """Edited ingredient list plus optional context notes."""

    ingredients: list[RecalculateIngredient] = Field(min_length=1)
    context: str | None = None


class ProviderUpdate(WireModel):
    provider: ProviderName


class GeminiModelUpdate(WireModel):
    model: str
