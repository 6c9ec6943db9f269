"""Narrative summary of a finished interview, generated by the same model service."""

import json
import logging
import re

from config.config_loader import PromptsConfig
from intake.models import AnswerState, ChatMessage
from intake.providers.base import AIProvider, OracleUnavailable

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY_WINDOW = 10

_TAG_PATTERNS = {
    "business_unit": re.compile(r"^\s*\**business unit\**\s*:\s*(.*)$", re.IGNORECASE | re.MULTILINE),
    "category": re.compile(r"^\s*\**category(?: \(tag\))?\**\s*:\s*(.*)$", re.IGNORECASE | re.MULTILINE),
    "urgency": re.compile(r"^\s*\**urgency(?: \(high/med/low\))?\**\s*:\s*(.*)$", re.IGNORECASE | re.MULTILINE),
}

_URGENCY_ALIASES = {"high": "high", "med": "med", "medium": "med", "low": "low"}


def _format_history(chat: list[ChatMessage], window: int) -> str:
    recent = chat[-window:] if window > 0 else []
    if not recent:
        return "(no conversation recorded)"
    return "\n".join(f"{m.role}: {m.text}" for m in recent)


def build_summary_prompt(
    answers: AnswerState,
    chat: list[ChatMessage],
    template: str,
    window: int = DEFAULT_SUMMARY_WINDOW,
) -> str:
    """Render the summary prompt from answer texts and the trailing chat window."""
    texts = {k: a.text for k, a in answers.items() if a is not None}
    return template.format(
        answers=json.dumps(texts, indent=2, ensure_ascii=False),
        history=_format_history(chat, window),
    )


def parse_summary_tags(summary: str) -> dict[str, str]:
    """Pull Business Unit / Category / Urgency out of the trailing block.

    Missing fields come back as empty strings. Urgency is normalized to
    high, med or low.
    """
    tags: dict[str, str] = {}
    for name, pattern in _TAG_PATTERNS.items():
        matches = pattern.findall(summary)
        tags[name] = matches[-1].strip().strip("*").strip() if matches else ""
    urgency = tags["urgency"].lower().split()
    tags["urgency"] = _URGENCY_ALIASES.get(urgency[0].strip(".,;"), "") if urgency else ""
    return tags


async def summarize(
    answers: AnswerState,
    chat: list[ChatMessage],
    provider: AIProvider,
    prompts: PromptsConfig,
    window: int = DEFAULT_SUMMARY_WINDOW,
) -> str:
    """Generate the narrative summary.

    Raises:
        OracleUnavailable: If the provider call fails or returns blank text.
    """
    prompt = build_summary_prompt(answers, chat, prompts.summary, window)

    logger.info("Running summary via %s", provider.name())

    reply = await provider.generate(prompt)
    summary = reply.content.strip()
    if not summary:
        raise OracleUnavailable(provider.name(), "Summary reply was empty")
    return summary
