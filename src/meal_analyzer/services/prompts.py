"""Prompt text for the analysis and formatting passes."""

import json

from meal_analyzer.domain.nutrition import Ingredient, RawAnalysis

EXTRACTION_SYSTEM_PROMPT = (
    "You are an expert nutritionist and food analyst. "
    "You analyze food photos and respond with a single JSON object."
)

FORMATTING_SYSTEM_PROMPT = (
    "You are a data formatting specialist for nutrition data. "
    "You respond with a single JSON object that passes strict validation."
)

SINGLE_STAGE_SYSTEM_PROMPT = (
    "You are an expert nutritionist. You analyze food photos and respond with "
    "a single JSON object that passes strict validation."
)

_RAW_ANALYSIS_FORMAT = """{
  "name": "Food name",
  "description": "Detailed description",
  "estimatedCalories": number,
  "estimatedProtein": number,
  "estimatedCarbs": number,
  "estimatedFat": number,
  "estimatedFiber": number (optional),
  "confidence": "low" | "medium" | "high",
  "detectedIngredients": [
    {
      "name": "Ingredient name",
      "estimatedQuantity": number,
      "estimatedUnit": "g" | "tbsp" | "cup" | "piece" | etc.,
      "notes": "Any relevant notes"
    }
  ] (optional),
  "cookingMethod": "string" (optional),
  "portionSize": "string" (optional),
  "additionalNotes": "string" (optional)
}"""

_RECORD_FORMAT = """{
  "name": "string",
  "calories": number (sum of ingredient calories),
  "protein": number (sum of ingredient protein),
  "carbs": number (sum of ingredient carbs),
  "fat": number (sum of ingredient fat),
  "fiber": number (sum of ingredient fiber),
  "description": "string",
  "confidence": "low" | "medium" | "high",
  "ingredientBreakdown": {
    "ingredients": [
      {
        "name": "string",
        "quantity": number (positive),
        "unit": "string",
        "calories": number (non-negative),
        "protein": number (non-negative),
        "carbs": number (non-negative),
        "fat": number (non-negative),
        "fiber": number (optional, non-negative)
      }
    ],
    "contextNotes": "string" (optional)
  }
}"""

_CONSISTENCY_RULES = """1. Assign a definitive quantity and unit to every ingredient.
2. Calculate calories, protein, carbs, fat and fiber for every ingredient.
3. ENSURE CONSISTENCY: the meal totals MUST equal the sum of the ingredient values.
4. If there is any discrepancy, adjust the meal totals to match the ingredient sum.
5. Use standard units (g, ml, tbsp, cup, piece, etc.).
6. Round calories to whole numbers and macros to 1 decimal place."""


def _context_line(context: str | None) -> str:
    cleaned = (context or "").strip()
    if not cleaned:
        return ""
    return f'\n\nUser context: "{cleaned}"'


def build_extraction_prompt(context: str | None = None) -> str:
    """Prompt for the comprehensive first pass over the photos."""
    return (
        "Analyze these food images comprehensively.\n\n"
        "Focus on:\n"
        "1. Food identification (name, type, cuisine)\n"
        "2. Visual assessment (portion size, cooking method, presentation)\n"
        "3. Ingredient detection (all visible components with estimated "
        "quantities and units)\n"
        "4. Nutritional estimation (calories, protein, carbs, fat, fiber)\n"
        "5. Confidence assessment (how certain you are)\n\n"
        "Be thorough. Don't worry about exact figures; rough estimates are "
        "fine and any field you cannot estimate may be omitted."
        f"{_context_line(context)}\n\n"
        f"Return your analysis as a JSON object with this structure:\n"
        f"{_RAW_ANALYSIS_FORMAT}"
    )


def build_formatting_prompt(analysis: RawAnalysis, context: str | None = None) -> str:
    """Prompt that turns a raw analysis into the strict record."""
    analysis_json = json.dumps(
        analysis.model_dump(by_alias=True, exclude_none=True), indent=2
    )
    return (
        "Format this food analysis into the required structure.\n\n"
        f"ANALYSIS DATA:\n{analysis_json}"
        f"{_context_line(context)}\n\n"
        f"CRITICAL REQUIREMENTS:\n{_CONSISTENCY_RULES}\n\n"
        f"OUTPUT FORMAT (JSON):\n{_RECORD_FORMAT}\n\n"
        'Do not include "id" or "lastCalculatedAt" fields.\n'
        "Calculate ingredient values first, then set the meal totals to match "
        "exactly."
    )


def build_recalculation_prompt(
    ingredients: list[Ingredient], context: str | None = None
) -> str:
    """Prompt that recomputes macros for an edited ingredient list."""
    ingredients_json = json.dumps(
        [
            {
                "id": ingredient.id,
                "name": ingredient.name,
                "quantity": ingredient.quantity,
                "unit": ingredient.unit,
            }
            for ingredient in ingredients
        ],
        indent=2,
    )
    return (
        "Recalculate the nutrition for this meal from its ingredient list. "
        "Keep every ingredient, its name, quantity and unit as given, and "
        'echo back each ingredient\'s "id" unchanged.\n\n'
        f"INGREDIENTS:\n{ingredients_json}"
        f"{_context_line(context)}\n\n"
        f"CRITICAL REQUIREMENTS:\n{_CONSISTENCY_RULES}\n\n"
        f"OUTPUT FORMAT (JSON):\n{_RECORD_FORMAT}\n\n"
        'Include the "id" of each ingredient. Do not include "lastCalculatedAt".'
    )


def build_single_stage_prompt(context: str | None = None) -> str:
    """Prompt for the one-call fallback analysis."""
    return (
        "Analyze these food images. Identify every visible ingredient with "
        "its quantity and unit, estimate its nutrition, and total the meal."
        f"{_context_line(context)}\n\n"
        f"REQUIREMENTS:\n{_CONSISTENCY_RULES}\n\n"
        f"Return ONLY a JSON object with this structure:\n{_RECORD_FORMAT}"
    )
