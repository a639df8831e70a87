"""Tests for container wiring."""

import asyncio

from meal_analyzer.containers import build_container
from meal_analyzer.services.single_stage import SingleStageAnalyzer


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)
    assert container.pipeline is not None
    assert container.provider_settings_service is not None
    assert isinstance(container.pipeline.fallback, SingleStageAnalyzer)
    asyncio.run(container.close_resources())


def test_build_container_applies_retry_settings(settings) -> None:
    tuned = settings.model_copy(
        update={
            "pipeline_attempts": 5,
            "formatting_attempts": 2,
            "retry_base_delay_seconds": 0.5,
            "fallback_enabled": False,
        }
    )

    container = build_container(tuned)

    assert container.pipeline.max_attempts == 5
    assert container.pipeline.base_delay_seconds == 0.5
    assert container.pipeline.formatting.max_attempts == 2
    assert container.pipeline.fallback is None
    asyncio.run(container.close_resources())
