"""Client-side editing of an ingredient breakdown.

Quantity edits are resolved locally by linear scaling. Renames, unit
changes, additions and removals are structural: they only flag the
breakdown as needing a recalculation, which re-runs the formatting pass.
"""

import logging
import math
from collections.abc import Awaitable, Callable

from meal_analyzer.domain.nutrition import (
    Ingredient,
    IngredientBreakdown,
    MacroTotals,
    NutritionRecord,
)
from meal_analyzer.services.consistency import (
    round_calories,
    round_grams,
    sum_ingredients,
)

TotalsListener = Callable[[MacroTotals], None]
Recalculator = Callable[[list[Ingredient], str, str | None], Awaitable[NutritionRecord]]

_logger = logging.getLogger(__name__)


def scale_ingredient(ingredient: Ingredient, new_quantity: float) -> Ingredient:
    """Scale an ingredient's macros linearly to a new quantity."""
    if not (math.isfinite(new_quantity) and new_quantity > 0):
        raise ValueError("Quantity must be a positive finite number")
    ratio = new_quantity / ingredient.quantity
    return ingredient.model_copy(
        update={
            "quantity": new_quantity,
            "calories": ingredient.calories * ratio,
            "protein": ingredient.protein * ratio,
            "carbs": ingredient.carbs * ratio,
            "fat": ingredient.fat * ratio,
            "fiber": (
                ingredient.fiber * ratio if ingredient.fiber is not None else None
            ),
        }
    )


class BreakdownEditor:
    """Editable copy of a breakdown that keeps its totals in sync.

    The editor never shares ingredient objects with the breakdown it was
    built from. ``on_totals_change`` fires only when a recomputed total
    differs field by field from the previous one.
    """

    def __init__(
        self,
        breakdown: IngredientBreakdown | None,
        on_totals_change: TotalsListener | None = None,
    ) -> None:
        self._breakdown = breakdown.model_copy(deep=True) if breakdown else None
        self._on_totals_change = on_totals_change
        self._needs_recalculation = False
        self._totals: MacroTotals | None = None
        if self._breakdown is not None and not self._breakdown.ingredients:
            self._breakdown = None
        self.recompute_totals()

    @property
    def breakdown(self) -> IngredientBreakdown | None:
        """Return a copy of the current breakdown, or None once collapsed."""
        if self._breakdown is None:
            return None
        return self._breakdown.model_copy(deep=True)

    @property
    def ingredients(self) -> list[Ingredient]:
        if self._breakdown is None:
            return []
        return list(self._breakdown.ingredients)

    @property
    def context_notes(self) -> str | None:
        if self._breakdown is None:
            return None
        return self._breakdown.context_notes

    @property
    def needs_recalculation(self) -> bool:
        return self._needs_recalculation

    @property
    def totals(self) -> MacroTotals | None:
        """Return the last computed totals."""
        return self._totals

    def recompute_totals(self) -> MacroTotals | None:
        """Recompute totals from the ingredients.

        Returns the previous totals object unchanged, without notifying,
        when nothing differs.
        """
        if self._breakdown is None:
            return self._totals
        totals = sum_ingredients(self._breakdown.ingredients)
        if totals == self._totals:
            return self._totals
        self._totals = totals
        if self._on_totals_change is not None:
            self._on_totals_change(totals)
        return totals

    def change_quantity(self, ingredient_id: str, quantity: float) -> Ingredient:
        """Scale one ingredient to a new quantity; a local edit."""
        current = self._get(ingredient_id)
        updated = scale_ingredient(current, quantity)
        self._replace(updated)
        return updated

    def rename(self, ingredient_id: str, name: str) -> Ingredient:
        """Rename an ingredient; a structural edit."""
        current = self._get(ingredient_id)
        if current.name == name:
            return current
        updated = current.model_copy(update={"name": name})
        self._replace(updated, structural=True)
        return updated

    def change_unit(self, ingredient_id: str, unit: str) -> Ingredient:
        """Change an ingredient's unit; a structural edit."""
        if not unit.strip():
            raise ValueError("Unit must not be empty")
        current = self._get(ingredient_id)
        if current.unit == unit:
            return current
        updated = current.model_copy(update={"unit": unit})
        self._replace(updated, structural=True)
        return updated

    def add_ingredient(
        self, name: str = "", quantity: float = 1.0, unit: str = "g"
    ) -> Ingredient:
        """Append a blank ingredient awaiting recalculation."""
        ingredient = Ingredient(
            name=name,
            quantity=quantity,
            unit=unit,
            calories=0.0,
            protein=0.0,
            carbs=0.0,
            fat=0.0,
        )
        if self._breakdown is None:
            self._breakdown = IngredientBreakdown(ingredients=[ingredient])
        else:
            self._set_ingredients([*self._breakdown.ingredients, ingredient])
        self._needs_recalculation = True
        self.recompute_totals()
        return ingredient

    def remove_ingredient(self, ingredient_id: str) -> None:
        """Remove an ingredient; removing the last one drops the breakdown."""
        self._get(ingredient_id)
        remaining = [
            ingredient
            for ingredient in self._current().ingredients
            if ingredient.id != ingredient_id
        ]
        if not remaining:
            self._breakdown = None
            self._needs_recalculation = False
            return
        self._set_ingredients(remaining)
        self._needs_recalculation = True
        self.recompute_totals()

    def set_context_notes(self, notes: str | None) -> None:
        """Update the free-text notes sent along with a recalculation."""
        if self._breakdown is None:
            return
        cleaned = (notes or "").strip() or None
        self._breakdown = self._breakdown.model_copy(update={"context_notes": cleaned})

    def recalculation_request(self) -> tuple[list[Ingredient], str | None]:
        """Return the ingredients and context to send for a recalculation."""
        return self.ingredients, self.context_notes

    def apply_recalculation(self, record: NutritionRecord) -> None:
        """Replace the whole breakdown and totals with a recalculated record."""
        notes = self.context_notes
        breakdown = record.ingredient_breakdown
        if breakdown is None or not breakdown.ingredients:
            self._breakdown = None
            self._needs_recalculation = False
            totals = MacroTotals(
                calories=record.calories,
                protein=record.protein,
                carbs=record.carbs,
                fat=record.fat,
                fiber=record.fiber,
            )
            if totals != self._totals:
                self._totals = totals
                if self._on_totals_change is not None:
                    self._on_totals_change(totals)
            return
        self._breakdown = breakdown.model_copy(
            deep=True, update={"context_notes": notes or breakdown.context_notes}
        )
        self._needs_recalculation = False
        self.recompute_totals()

    async def recalculate(
        self, recalculator: Recalculator, user_id: str
    ) -> NutritionRecord:
        """Re-run the formatting pass for the current ingredients.

        The editor is left untouched when the recalculation fails. Callers
        must not start a second recalculation while one is in flight.
        """
        ingredients, notes = self.recalculation_request()
        if not ingredients:
            raise ValueError("There are no ingredients to recalculate")
        record = await recalculator(ingredients, user_id, notes)
        self.apply_recalculation(record)
        _logger.info(
            "Applied recalculation with %s ingredients", len(self.ingredients)
        )
        return record

    def to_record(self, base: NutritionRecord) -> NutritionRecord:
        """Return ``base`` updated with the edited breakdown and totals."""
        update: dict[str, object] = {"ingredient_breakdown": self.breakdown}
        if self._totals is not None:
            update.update(
                calories=round_calories(self._totals.calories),
                protein=round_grams(self._totals.protein),
                carbs=round_grams(self._totals.carbs),
                fat=round_grams(self._totals.fat),
                fiber=round_grams(self._totals.fiber),
            )
        return base.model_copy(update=update)

    def _get(self, ingredient_id: str) -> Ingredient:
        if self._breakdown is not None:
            for ingredient in self._breakdown.ingredients:
                if ingredient.id == ingredient_id:
                    return ingredient
        raise KeyError(ingredient_id)

    def _replace(self, updated: Ingredient, *, structural: bool = False) -> None:
        self._set_ingredients(
            [
                updated if ingredient.id == updated.id else ingredient
                for ingredient in self._current().ingredients
            ]
        )
        if structural:
            self._needs_recalculation = True
        self.recompute_totals()

    def _set_ingredients(self, ingredients: list[Ingredient]) -> None:
        self._breakdown = self._current().model_copy(
            update={"ingredients": ingredients}
        )

    def _current(self) -> IngredientBreakdown:
        if self._breakdown is None:
            raise LookupError("The ingredient breakdown has been removed")
        return self._breakdown

