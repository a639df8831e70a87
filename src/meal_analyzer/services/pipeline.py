"""Pipeline orchestrator: extraction, formatting, retries and fallback."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum

from meal_analyzer.domain.errors import (
    AnalysisError,
    FormattingFailedError,
    PipelineExhaustedError,
)
from meal_analyzer.domain.nutrition import Ingredient, NutritionRecord
from meal_analyzer.services.extraction import ExtractionStage
from meal_analyzer.services.formatting import FormattingStage
from meal_analyzer.services.providers import (
    ProviderAdapter,
    ProviderResolver,
    check_image_reference,
)
from meal_analyzer.services.single_stage import SingleStageAnalyzer

_logger = logging.getLogger(__name__)


class PipelineState(StrEnum):
    """States of a single analyze invocation."""

    IDLE = "idle"
    EXTRACTING = "extracting"
    FORMATTING = "formatting"
    RETRY_WAIT = "retry_wait"
    FALLBACK = "fallback"
    DONE = "done"
    FAILED = "failed"


StateListener = Callable[[PipelineState], None]


@dataclass
class _RunTracker:
    listener: StateListener | None
    state: PipelineState = PipelineState.IDLE
    history: list[PipelineState] = field(default_factory=list)

    def advance(self, state: PipelineState) -> None:
        _logger.debug("Pipeline state %s -> %s", self.state, state)
        self.state = state
        self.history.append(state)
        if self.listener is not None:
            self.listener(state)


@dataclass
class AnalysisPipeline:
    """Runs Extraction then Formatting as one attempt, with bounded retries.

    Credential and quota errors abort at once. When every attempt fails the
    single-stage fallback, if configured, gets one try before the pipeline
    raises PipelineExhaustedError.
    """

    resolver: ProviderResolver
    extraction: ExtractionStage
    formatting: FormattingStage
    fallback: SingleStageAnalyzer | None = None
    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    on_state: StateListener | None = None

    async def analyze(
        self, images: list[str], user_id: str, context: str | None = None
    ) -> NutritionRecord:
        """Analyze food photos into a validated nutrition record."""
        if not images:
            raise ValueError("At least one image is required")
        for reference in images:
            check_image_reference(reference)
        run = _RunTracker(self.on_state)
        try:
            adapter = self.resolver.resolve(user_id)
        except AnalysisError:
            run.advance(PipelineState.FAILED)
            raise

        last_error: Exception | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                run.advance(PipelineState.EXTRACTING)
                analysis = await self.extraction.extract(adapter, images, context)
                run.advance(PipelineState.FORMATTING)
                record = await self.formatting.format(adapter, analysis, context)
            except AnalysisError as exc:
                if not exc.retryable:
                    run.advance(PipelineState.FAILED)
                    raise
                last_error = exc
            except Exception as exc:  # noqa: BLE001
                last_error = exc
            else:
                run.advance(PipelineState.DONE)
                return record
            _logger.warning(
                "Food analysis attempt %s/%s failed for user %s: %s",
                attempt,
                self.max_attempts,
                user_id,
                last_error,
            )
            run.advance(PipelineState.RETRY_WAIT)
            if attempt < self.max_attempts:
                await self.sleep(self.base_delay_seconds * attempt)

        return await self._fall_back(adapter, images, context, run, last_error)

    async def recalculate(
        self,
        ingredients: list[Ingredient],
        user_id: str,
        context: str | None = None,
    ) -> NutritionRecord:
        """Recompute a record from edited ingredients, without images."""
        if not ingredients:
            raise ValueError("At least one ingredient is required")
        adapter = self.resolver.resolve(user_id)
        try:
            return await self.formatting.reformat(adapter, ingredients, context)
        except FormattingFailedError as exc:
            _logger.error("Recalculation failed for user %s: %s", user_id, exc)
            raise PipelineExhaustedError(exc.attempts, exc.last_error) from exc

    async def _fall_back(  # noqa: PLR0913
        self,
        adapter: ProviderAdapter,
        images: list[str],
        context: str | None,
        run: _RunTracker,
        last_error: Exception | None,
    ) -> NutritionRecord:
        if self.fallback is None:
            run.advance(PipelineState.FAILED)
            _logger.error("Food analysis exhausted %s attempts", self.max_attempts)
            raise PipelineExhaustedError(self.max_attempts, last_error) from last_error

        run.advance(PipelineState.FALLBACK)
        _logger.warning(
            "Two-stage analysis exhausted %s attempts; trying single-stage fallback",
            self.max_attempts,
        )
        try:
            record = await self.fallback.analyze(adapter, images, context)
        except AnalysisError as exc:
            run.advance(PipelineState.FAILED)
            if not exc.retryable:
                raise
            raise PipelineExhaustedError(
                self.max_attempts, last_error, fallback_error=exc
            ) from exc
        except Exception as exc:
            run.advance(PipelineState.FAILED)
            raise PipelineExhaustedError(
                self.max_attempts, last_error, fallback_error=exc
            ) from exc
        run.advance(PipelineState.DONE)
        return record
