"""First pass: low-constraint visual analysis of food photos."""

import logging
from dataclasses import dataclass

from meal_analyzer.domain.nutrition import RawAnalysis
from meal_analyzer.services.parsing import parse_model_output
from meal_analyzer.services.prompts import (
    EXTRACTION_SYSTEM_PROMPT,
    build_extraction_prompt,
)
from meal_analyzer.services.providers import ProviderAdapter, UserContent

_logger = logging.getLogger(__name__)


@dataclass
class ExtractionStage:
    """Asks the backend for a best-effort analysis of the photos.

    Only the lenient RawAnalysis shape is enforced here. There is no retry
    loop: a malformed response fails the surrounding pipeline attempt.
    """

    system_prompt: str = EXTRACTION_SYSTEM_PROMPT

    async def extract(
        self,
        adapter: ProviderAdapter,
        images: list[str],
        context: str | None = None,
    ) -> RawAnalysis:
        """Return the raw analysis for one or more images."""
        if not images:
            raise ValueError("At least one image is required")
        content = UserContent(
            text=build_extraction_prompt(context), images=list(images)
        )
        text = await adapter.complete(self.system_prompt, content)
        analysis = parse_model_output(text, RawAnalysis)
        _logger.info(
            "Extraction identified %s with %s ingredients (confidence=%s)",
            analysis.name,
            len(analysis.detected_ingredients or []),
            analysis.confidence,
        )
        return analysis
