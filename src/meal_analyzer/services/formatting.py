"""Second pass: strict formatting, validation and consistency of a record."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from meal_analyzer.domain.errors import AnalysisError, FormattingFailedError
from meal_analyzer.domain.nutrition import (
    FormattedRecord,
    Ingredient,
    NutritionRecord,
    RawAnalysis,
)
from meal_analyzer.services.consistency import finalize_record
from meal_analyzer.services.parsing import parse_model_output
from meal_analyzer.services.prompts import (
    FORMATTING_SYSTEM_PROMPT,
    build_formatting_prompt,
    build_recalculation_prompt,
)
from meal_analyzer.services.providers import ProviderAdapter, UserContent

_logger = logging.getLogger(__name__)


@dataclass
class FormattingStage:
    """Demands the strict record from the backend, retrying on bad output.

    Attempt ``n`` (after the first) waits ``(n - 1) * base_delay_seconds``.
    Errors that are not retryable, such as credential failures, propagate
    immediately.
    """

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def format(
        self,
        adapter: ProviderAdapter,
        analysis: RawAnalysis,
        context: str | None = None,
    ) -> NutritionRecord:
        """Format a raw analysis into a validated record."""
        prompt = build_formatting_prompt(analysis, context)
        return await self._run(adapter, prompt, known_ids=set(), context_notes=None)

    async def reformat(
        self,
        adapter: ProviderAdapter,
        ingredients: list[Ingredient],
        context: str | None = None,
    ) -> NutritionRecord:
        """Recompute a record from an edited ingredient list."""
        prompt = build_recalculation_prompt(ingredients, context)
        return await self._run(
            adapter,
            prompt,
            known_ids={ingredient.id for ingredient in ingredients},
            context_notes=context,
        )

    async def _run(
        self,
        adapter: ProviderAdapter,
        prompt: str,
        *,
        known_ids: set[str],
        context_notes: str | None,
    ) -> NutritionRecord:
        last_error: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                await self.sleep(self.base_delay_seconds * (attempt - 1))
            try:
                text = await adapter.complete(
                    FORMATTING_SYSTEM_PROMPT, UserContent(text=prompt)
                )
                formatted = parse_model_output(text, FormattedRecord)
            except AnalysisError as exc:
                if not exc.retryable:
                    raise
                last_error = exc
            except Exception as exc:  # noqa: BLE001
                last_error = exc
            else:
                return finalize_record(
                    formatted, known_ids=known_ids, context_notes=context_notes
                )
            _logger.warning(
                "Formatting attempt %s/%s failed: %s",
                attempt,
                self.max_attempts,
                last_error,
            )
        raise FormattingFailedError(self.max_attempts, last_error) from last_error
