"""Tests for total/ingredient consistency."""

from datetime import UTC, datetime

from meal_analyzer.domain.nutrition import (
    FormattedRecord,
    Ingredient,
    IngredientBreakdown,
    NutritionRecord,
)
from meal_analyzer.services.consistency import (
    enforce_consistency,
    finalize_record,
    find_drift,
    is_consistent,
    sum_ingredients,
)
from tests.conftest import FORMATTED_RECORD

CHICKEN: dict[str, object] = {
    "name": "Grilled chicken breast",
    "quantity": 150,
    "unit": "g",
    "calories": 220,
    "protein": 46.5,
    "carbs": 0,
    "fat": 4.8,
}
GREENS: dict[str, object] = {
    "name": "Mixed greens",
    "quantity": 100,
    "unit": "g",
    "calories": 30,
    "protein": 2.9,
    "carbs": 5.5,
    "fat": 0.4,
    "fiber": 2.5,
}


def _record(
    calories: float, protein: float, ingredients: list[Ingredient]
) -> NutritionRecord:
    return NutritionRecord(
        name="Plate",
        calories=calories,
        protein=protein,
        carbs=0.0,
        fat=0.0,
        fiber=0.0,
        confidence="high",
        ingredient_breakdown=IngredientBreakdown(ingredients=ingredients),
    )


def _ingredient(calories: float, protein: float) -> Ingredient:
    return Ingredient(
        name="Item",
        quantity=1,
        unit="piece",
        calories=calories,
        protein=protein,
        carbs=0.0,
        fat=0.0,
    )


def test_sum_ingredients_counts_missing_fiber_as_zero() -> None:
    with_fiber = _ingredient(50, 2.5).model_copy(update={"fiber": 1.2})

    totals = sum_ingredients([_ingredient(100, 1.0), with_fiber])

    assert totals.calories == 150
    assert totals.protein == 3.5
    assert totals.fiber == 1.2


def test_totals_within_tolerance_are_consistent() -> None:
    record = _record(151, 3.6, [_ingredient(100, 1.0), _ingredient(50, 2.5)])

    assert is_consistent(record)


def test_drift_beyond_tolerance_is_reported() -> None:
    record = _record(160, 3.7, [_ingredient(100, 1.0), _ingredient(50, 2.5)])

    drift = find_drift(record)

    assert set(drift) == {"calories", "protein"}


def test_enforce_consistency_repairs_totals_from_ingredients() -> None:
    record = _record(400, 9.0, [_ingredient(100.4, 1.04), _ingredient(50, 2.5)])

    repaired = enforce_consistency(record)

    assert repaired.calories == 150
    assert repaired.protein == 3.5
    assert is_consistent(repaired)


def test_enforce_consistency_keeps_consistent_record() -> None:
    record = _record(150, 3.5, [_ingredient(100, 1.0), _ingredient(50, 2.5)])

    assert enforce_consistency(record) is record


def test_record_without_breakdown_is_consistent() -> None:
    record = NutritionRecord(
        name="Coffee", calories=5, protein=0, carbs=0, fat=0, confidence="low"
    )

    assert is_consistent(record)
    assert enforce_consistency(record) is record


def test_finalize_record_assigns_ids_and_timestamp() -> None:
    formatted = FormattedRecord.model_validate(FORMATTED_RECORD)
    stamp = datetime(2026, 1, 2, tzinfo=UTC)

    record = finalize_record(formatted, calculated_at=stamp)

    breakdown = record.ingredient_breakdown
    assert breakdown is not None
    ids = [ingredient.id for ingredient in breakdown.ingredients]
    assert len(set(ids)) == 3
    assert breakdown.last_calculated_at == stamp
    assert breakdown.context_notes == "Dressing estimated from visible coverage"
    assert record.calories == 450


def test_finalize_record_keeps_only_known_echoed_ids() -> None:
    payload = {
        **FORMATTED_RECORD,
        "calories": 250,
        "protein": 49.4,
        "carbs": 5.5,
        "fat": 5.2,
        "ingredientBreakdown": {
            "ingredients": [
                {**CHICKEN, "id": "known-1"},
                {**GREENS, "id": "invented"},
            ]
        },
    }
    formatted = FormattedRecord.model_validate(payload)

    record = finalize_record(formatted, known_ids={"known-1"}, context_notes="  raw  ")

    breakdown = record.ingredient_breakdown
    assert breakdown is not None
    assert breakdown.ingredients[0].id == "known-1"
    assert breakdown.ingredients[1].id not in {"known-1", "invented"}
    assert breakdown.context_notes == "raw"


def test_finalize_record_drops_empty_breakdown() -> None:
    payload = {
        **FORMATTED_RECORD,
        "fiber": None,
        "ingredientBreakdown": {"ingredients": []},
    }

    record = finalize_record(FormattedRecord.model_validate(payload))

    assert record.ingredient_breakdown is None
    assert record.fiber == 0.0

