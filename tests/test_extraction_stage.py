"""Tests for the extraction stage."""

import asyncio

import pytest

from meal_analyzer.domain.errors import SchemaValidationError
from meal_analyzer.services.extraction import ExtractionStage
from meal_analyzer.services.prompts import EXTRACTION_SYSTEM_PROMPT
from tests.conftest import IMAGE_DATA_URL, RAW_ANALYSIS, ScriptedProvider, as_json


def test_extract_returns_raw_analysis() -> None:
    provider = ScriptedProvider(responses=[as_json(RAW_ANALYSIS)])

    analysis = asyncio.run(
        ExtractionStage().extract(provider, [IMAGE_DATA_URL], "lunch at work")
    )

    assert analysis.name == "Grilled Chicken Salad"
    system_context, content = provider.calls[0]
    assert system_context == EXTRACTION_SYSTEM_PROMPT
    assert content.images == [IMAGE_DATA_URL]
    assert 'User context: "lunch at work"' in content.text


def test_extract_accepts_fenced_json() -> None:
    provider = ScriptedProvider(responses=[f"```json\n{as_json(RAW_ANALYSIS)}\n```"])

    analysis = asyncio.run(ExtractionStage().extract(provider, [IMAGE_DATA_URL]))

    assert analysis.confidence == "high"


def test_extract_does_not_retry_malformed_output() -> None:
    provider = ScriptedProvider(responses=["not json", as_json(RAW_ANALYSIS)])

    with pytest.raises(SchemaValidationError):
        asyncio.run(ExtractionStage().extract(provider, [IMAGE_DATA_URL]))

    assert len(provider.calls) == 1


def test_extract_requires_images() -> None:
    with pytest.raises(ValueError):
        asyncio.run(ExtractionStage().extract(ScriptedProvider(), []))
