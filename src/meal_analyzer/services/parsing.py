"""Parse-then-validate helpers for raw model output."""

import json
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from meal_analyzer.domain.errors import SchemaValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_model_output(text: str, model: type[ModelT]) -> ModelT:
    """Decode a JSON object from response text and validate it."""
    try:
        payload = json.loads(_strip_code_fence(text))
    except json.JSONDecodeError as exc:
        raise SchemaValidationError(f"Response is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise SchemaValidationError("Response JSON is not an object")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise SchemaValidationError(
            f"Response failed {model.__name__} validation "
            f"({exc.error_count()} errors): {exc.errors()[0]['msg']}"
        ) from exc


def _strip_code_fence(text: str) -> str:
    """Drop a surrounding markdown code fence, if the model added one."""
    cleaned = text.strip()
    if not cleaned.startswith("```"):
        return cleaned
    cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
    if cleaned.rstrip().endswith("```"):
        cleaned = cleaned.rstrip()[:-3]
    return cleaned.strip()
