"""Single-call analysis used when the two-stage pipeline gives up."""

from dataclasses import dataclass

from meal_analyzer.domain.nutrition import FormattedRecord, NutritionRecord
from meal_analyzer.services.consistency import finalize_record
from meal_analyzer.services.parsing import parse_model_output
from meal_analyzer.services.prompts import (
    SINGLE_STAGE_SYSTEM_PROMPT,
    build_single_stage_prompt,
)
from meal_analyzer.services.providers import ProviderAdapter, UserContent


@dataclass
class SingleStageAnalyzer:
    """Asks for the strict record directly from the photos in one call."""

    system_prompt: str = SINGLE_STAGE_SYSTEM_PROMPT

    async def analyze(
        self,
        adapter: ProviderAdapter,
        images: list[str],
        context: str | None = None,
    ) -> NutritionRecord:
        """Return a validated record from a single backend call."""
        content = UserContent(
            text=build_single_stage_prompt(context), images=list(images)
        )
        text = await adapter.complete(self.system_prompt, content)
        return finalize_record(parse_model_output(text, FormattedRecord))
