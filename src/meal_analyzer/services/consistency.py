"""Keeps meal totals equal to the sum of their ingredients."""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from meal_analyzer.domain.nutrition import (
    FormattedRecord,
    Ingredient,
    IngredientBreakdown,
    MacroTotals,
    NutritionRecord,
    new_ingredient_id,
)

# Allowed difference between a total and its ingredient sum.
CALORIE_TOLERANCE = 1.0
GRAM_TOLERANCE = 0.1

_TOLERANCES = {
    "calories": CALORIE_TOLERANCE,
    "protein": GRAM_TOLERANCE,
    "carbs": GRAM_TOLERANCE,
    "fat": GRAM_TOLERANCE,
    "fiber": GRAM_TOLERANCE,
}

_logger = logging.getLogger(__name__)


def round_calories(value: float) -> float:
    """Round calories to a whole number."""
    return float(round(value))


def round_grams(value: float) -> float:
    """Round a gram amount to one decimal place."""
    return round(value, 1)


def sum_ingredients(ingredients: Iterable[Ingredient]) -> MacroTotals:
    """Sum ingredient macros; missing fiber counts as zero."""
    calories = protein = carbs = fat = fiber = 0.0
    for ingredient in ingredients:
        calories += ingredient.calories
        protein += ingredient.protein
        carbs += ingredient.carbs
        fat += ingredient.fat
        fiber += ingredient.fiber or 0.0
    return MacroTotals(
        calories=calories, protein=protein, carbs=carbs, fat=fat, fiber=fiber
    )


def totals_of(record: NutritionRecord) -> MacroTotals:
    """Return the meal-level totals of a record."""
    return MacroTotals(
        calories=record.calories,
        protein=record.protein,
        carbs=record.carbs,
        fat=record.fat,
        fiber=record.fiber,
    )


def find_drift(record: NutritionRecord) -> dict[str, float]:
    """Return fields whose total is out of tolerance with the ingredient sum."""
    breakdown = record.ingredient_breakdown
    if breakdown is None or not breakdown.ingredients:
        return {}
    expected = sum_ingredients(breakdown.ingredients)
    actual = totals_of(record)
    drift: dict[str, float] = {}
    for field_name, tolerance in _TOLERANCES.items():
        # Rounded so float noise like 0.1000000001 does not count as drift.
        delta = abs(getattr(actual, field_name) - getattr(expected, field_name))
        delta = round(delta, 6)
        if delta > tolerance:
            drift[field_name] = delta
    return drift


def is_consistent(record: NutritionRecord) -> bool:
    """Return True when the record's totals match its ingredients."""
    return not find_drift(record)


def enforce_consistency(record: NutritionRecord) -> NutritionRecord:
    """Replace drifting totals with the rounded ingredient sums."""
    drift = find_drift(record)
    breakdown = record.ingredient_breakdown
    if not drift or breakdown is None:
        return record
    _logger.warning("Repairing totals that drift from ingredient sum: %s", drift)
    expected = sum_ingredients(breakdown.ingredients)
    return record.model_copy(
        update={
            "calories": round_calories(expected.calories),
            "protein": round_grams(expected.protein),
            "carbs": round_grams(expected.carbs),
            "fat": round_grams(expected.fat),
            "fiber": round_grams(expected.fiber),
        }
    )


def finalize_record(
    formatted: FormattedRecord,
    *,
    known_ids: set[str] | None = None,
    context_notes: str | None = None,
    calculated_at: datetime | None = None,
) -> NutritionRecord:
    """Turn a validated model response into a consistent NutritionRecord.

    Echoed ingredient ids are kept only when they belong to ``known_ids``;
    every other ingredient gets a fresh id. ``context_notes`` overrides the
    notes returned by the model when given.
    """
    known = known_ids or set()
    breakdown: IngredientBreakdown | None = None
    formatted_breakdown = formatted.ingredient_breakdown
    if formatted_breakdown is not None and formatted_breakdown.ingredients:
        seen: set[str] = set()
        ingredients: list[Ingredient] = []
        for item in formatted_breakdown.ingredients:
            reusable = item.id is not None and item.id in known and item.id not in seen
            ingredient_id = item.id if reusable and item.id else new_ingredient_id()
            seen.add(ingredient_id)
            ingredients.append(
                Ingredient(
                    id=ingredient_id,
                    name=item.name,
                    quantity=item.quantity,
                    unit=item.unit,
                    calories=item.calories,
                    protein=item.protein,
                    carbs=item.carbs,
                    fat=item.fat,
                    fiber=item.fiber,
                )
            )
        notes = (context_notes or "").strip() or formatted_breakdown.context_notes
        breakdown = IngredientBreakdown(
            ingredients=ingredients,
            context_notes=notes,
            last_calculated_at=calculated_at or datetime.now(tz=UTC),
        )
    record = NutritionRecord(
        name=formatted.name,
        calories=formatted.calories,
        protein=formatted.protein,
        carbs=formatted.carbs,
        fat=formatted.fat,
        fiber=formatted.fiber or 0.0,
        description=formatted.description,
        confidence=formatted.confidence,
        ingredient_breakdown=breakdown,
    )
    return enforce_consistency(record)
