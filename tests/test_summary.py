"""Tests for intake/summary.py."""

from unittest.mock import AsyncMock

import pytest

from intake.models import Answer, ChatMessage, ModelResponse
from intake.providers.base import OracleUnavailable
from intake.summary import build_summary_prompt, parse_summary_tags, summarize
from tests.conftest import MockProvider

SAMPLE_SUMMARY = """The finance team loses hours every week checking invoices by hand.
They want a model that flags mismatches automatically.

Success means cutting review time in half within a quarter.

---
Business Unit: Finance
Category (tag): Document processing
Urgency (high/med/low): High
---"""


def test_summary_prompt_contains_answer_texts(sample_prompts_config):
    answers = {"problem": Answer("manual invoice checks", 4), "ai_fit": None}
    prompt = build_summary_prompt(answers, [], sample_prompts_config.summary)
    assert '"problem": "manual invoice checks"' in prompt
    assert "ai_fit" not in prompt
    assert "quality" not in prompt


def test_summary_prompt_uses_trailing_window(sample_prompts_config):
    chat = [ChatMessage(role="user", text=f"line-{i}") for i in range(5)]
    prompt = build_summary_prompt({}, chat, sample_prompts_config.summary, window=2)
    assert "line-2" not in prompt
    assert "user: line-3" in prompt
    assert "user: line-4" in prompt


def test_parse_summary_tags():
    assert parse_summary_tags(SAMPLE_SUMMARY) == {
        "business_unit": "Finance",
        "category": "Document processing",
        "urgency": "high",
    }


def test_parse_summary_tags_markdown_bold_and_medium():
    summary = "Text.\n---\n**Business Unit:** Operations\n**Category:** Forecasting\n**Urgency:** Medium\n---"
    tags = parse_summary_tags(summary)
    assert tags["business_unit"] == "Operations"
    assert tags["category"] == "Forecasting"
    assert tags["urgency"] == "med"


def test_parse_summary_tags_missing_block():
    assert parse_summary_tags("Just two paragraphs, no tags.") == {
        "business_unit": "",
        "category": "",
        "urgency": "",
    }


def test_parse_summary_tags_unknown_urgency():
    assert parse_summary_tags("Urgency: whenever")["urgency"] == ""


async def test_summarize_returns_text_without_json_mode(sample_prompts_config):
    provider = MockProvider("openai", f"  {SAMPLE_SUMMARY}\n")
    summary = await summarize({"problem": Answer("invoices", 4)}, [], provider, sample_prompts_config)
    assert summary == SAMPLE_SUMMARY
    _, kwargs = provider.generate.call_args
    assert kwargs.get("json_mode", False) is False


async def test_summarize_blank_reply_is_unavailable(sample_prompts_config):
    provider = MockProvider("openai")
    provider.generate = AsyncMock(return_value=ModelResponse("openai", "gpt-4o", "   "))
    with pytest.raises(OracleUnavailable, match="empty"):
        await summarize({}, [], provider, sample_prompts_config)


async def test_summarize_propagates_provider_failure(sample_prompts_config):
    provider = MockProvider("openai")
    provider.generate = AsyncMock(side_effect=OracleUnavailable("openai", "401 Unauthorized", 401))
    with pytest.raises(OracleUnavailable):
        await summarize({}, [], provider, sample_prompts_config)
