"""Nutrition record models shared by the extraction and recalculation flows."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

Confidence = Literal["low", "medium", "high"]

_logger = logging.getLogger(__name__)


def new_ingredient_id() -> str:
    """Return a fresh opaque ingredient identifier."""
    return uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class WireModel(BaseModel):
    """Base model that reads and writes camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RawIngredient(WireModel):
    """Ingredient as guessed during the first visual pass."""

    name: str
    estimated_quantity: float | None = None
    estimated_unit: str | None = None
    notes: str | None = None


class RawAnalysis(WireModel):
    """Lenient first-pass analysis; numeric fields may be missing."""

    name: str
    description: str = ""
    estimated_calories: float | None = None
    estimated_protein: float | None = None
    estimated_carbs: float | None = None
    estimated_fat: float | None = None
    estimated_fiber: float | None = None
    confidence: Confidence
    detected_ingredients: list[RawIngredient] | None = None
    cooking_method: str | None = None
    portion_size: str | None = None
    additional_notes: str | None = None


class FormattedIngredient(WireModel):
    """Strict ingredient returned by the formatting pass.

    ``id`` is only present when the model echoes back an ingredient it was
    given during a recalculation.
    """

    id: str | None = None
    name: str = Field(min_length=1)
    quantity: float = Field(gt=0, allow_inf_nan=False)
    unit: str = Field(min_length=1)
    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)
    fiber: float | None = Field(default=None, ge=0)


class FormattedBreakdown(WireModel):
    """Ingredient list as returned by the formatting pass."""

    ingredients: list[FormattedIngredient]
    context_notes: str | None = None


class FormattedRecord(WireModel):
    """Strict nutrition output demanded from the model."""

    name: str
    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)
    fiber: float | None = Field(default=None, ge=0)
    description: str
    confidence: Confidence
    ingredient_breakdown: FormattedBreakdown | None = None


class Ingredient(WireModel):
    """Single line item of an ingredient breakdown."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_ingredient_id, min_length=1)
    name: str = ""
    quantity: float = Field(gt=0, allow_inf_nan=False)
    unit: str = Field(min_length=1)
    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)
    fiber: float | None = Field(default=None, ge=0)


class IngredientBreakdown(WireModel):
    """Ordered ingredients backing a record's totals."""

    ingredients: list[Ingredient]
    context_notes: str | None = None
    last_calculated_at: datetime = Field(default_factory=_utcnow)


class NutritionRecord(WireModel):
    """Validated result of one analysis or recalculation."""

    name: str
    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)
    fiber: float = Field(default=0.0, ge=0)
    description: str = ""
    confidence: Confidence
    ingredient_breakdown: IngredientBreakdown | None = None

    def to_payload(self) -> dict[str, object]:
        """Return the camelCase JSON representation."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


@dataclass(frozen=True)
class MacroTotals:
    """Meal-level macro totals."""

    calories: float
    protein: float
    carbs: float
    fat: float
    fiber: float


ZERO_TOTALS = MacroTotals(0.0, 0.0, 0.0, 0.0, 0.0)


def dump_breakdown(breakdown: IngredientBreakdown | None) -> str | None:
    """Serialize a breakdown for storage next to the scalar macro fields."""
    if breakdown is None:
        return None
    return breakdown.model_dump_json(by_alias=True, exclude_none=True)


def load_breakdown(raw: str | None) -> IngredientBreakdown | None:
    """Parse a stored breakdown; anything unusable reads as no breakdown."""
    if raw is None or not raw.strip():
        return None
    try:
        breakdown = IngredientBreakdown.model_validate_json(raw)
    except ValidationError as exc:
        _logger.warning(
            "Ignoring unreadable ingredient breakdown (%s errors)", exc.error_count()
        )
        return None
    if not breakdown.ingredients:
        return None
    return breakdown
