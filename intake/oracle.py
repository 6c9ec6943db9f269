"""Oracle client: build the extraction prompt, call the model, parse its JSON reply."""

import json
import logging
import math
from abc import ABC, abstractmethod

from config.config_loader import PromptsConfig
from intake.models import (
    Answer,
    AnswerState,
    ChatMessage,
    ExtractionRequest,
    ExtractionResult,
    Question,
)
from intake.providers.base import AIProvider

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_WINDOW = 6
FALLBACK_RESPONSE = "Sorry, I didn't quite catch that. Could you tell me a bit more?"

_MIN_QUALITY = 1
_MAX_QUALITY = 5


class Oracle(ABC):
    """Narrow capability the orchestrator depends on."""

    @abstractmethod
    async def extract(self, request: ExtractionRequest) -> ExtractionResult:
        """Extract answers from the latest message and propose the next turn.

        Raises:
            OracleUnavailable: If the backing service cannot be reached.
        """
        ...


def _is_answered(answer: Answer | None) -> bool:
    return answer is not None and bool(answer.text.strip())


def _format_catalog(questions: list[Question], answers: AnswerState) -> str:
    answered: list[str] = []
    unanswered: list[str] = []
    for q in questions:
        answer = answers.get(q.key)
        if _is_answered(answer):
            answered.append(
                f'- {q.id} | {q.key} | {q.text} | ANSWERED (quality {answer.quality}): "{answer.text}"'
            )
        else:
            unanswered.append(f"- {q.id} | {q.key} | {q.text} | UNANSWERED")
    return "\n".join(["Answered:", *(answered or ["(none)"]), "Unanswered:", *(unanswered or ["(none)"])])


def _format_history(history: list[ChatMessage], window: int) -> str:
    recent = history[-window:] if window > 0 else []
    if not recent:
        return "(no previous messages)"
    return "\n".join(f"{m.role}: {m.text}" for m in recent)


def build_extraction_prompt(
    request: ExtractionRequest,
    template: str,
    history_window: int = DEFAULT_HISTORY_WINDOW,
) -> str:
    """Render the extraction prompt for one turn."""
    return template.format(
        catalog=_format_catalog(request.questions, request.answers),
        history=_format_history(request.history, history_window),
        message=request.message,
    )


def fallback_result(questions: list[Question]) -> ExtractionResult:
    """Well-formed result used when the oracle reply cannot be used."""
    return ExtractionResult(
        extracted_answers={},
        response=FALLBACK_RESPONSE,
        current_focus=questions[0].id,
        all_answered=False,
    )


def _extract_json_object(raw: str) -> dict | None:
    """Return the outermost JSON object in raw, tolerating prose or code fences."""
    text = raw.strip()
    if not text:
        return None
    candidate = text
    if not candidate.startswith("{"):
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end == -1 or end <= start:
            return None
        candidate = text[start:end + 1]
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    return payload


def _coerce_quality(raw: object) -> int | None:
    # bool is an int subclass; JSON true/false is not a score
    if isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        try:
            raw = float(raw.strip())
        except ValueError:
            return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and math.isfinite(raw):
        return round(raw)
    return None


def _parse_answer(key: str, value: object) -> Answer | None:
    if not isinstance(value, dict):
        logger.debug("Dropping extracted %s: not an object", key)
        return None
    text = value.get("text")
    if not isinstance(text, str) or not text.strip():
        logger.debug("Dropping extracted %s: missing text", key)
        return None
    quality = _coerce_quality(value.get("quality"))
    if quality is None:
        logger.debug("Dropping extracted %s: quality %r is not a number", key, value.get("quality"))
        return None
    quality = max(_MIN_QUALITY, min(_MAX_QUALITY, quality))
    return Answer(text=text.strip(), quality=quality)


def parse_extraction_reply(raw: str, questions: list[Question]) -> ExtractionResult:
    """Parse the oracle's reply into an ExtractionResult.

    A reply that is not the demanded object never raises: the fallback
    result is returned instead. Unknown keys are kept here and filtered by
    the merger.
    """
    payload = _extract_json_object(raw)
    extracted_raw = payload.get("extractedAnswers") if payload is not None else None
    response = payload.get("response") if payload is not None else None
    if not isinstance(extracted_raw, dict) or not isinstance(response, str) or not response.strip():
        logger.warning("Malformed oracle reply, using fallback: %.200s", raw)
        return fallback_result(questions)

    extracted: dict[str, Answer] = {}
    for key, value in extracted_raw.items():
        answer = _parse_answer(str(key), value)
        if answer is not None:
            extracted[str(key)] = answer

    focus = payload.get("currentFocus")
    return ExtractionResult(
        extracted_answers=extracted,
        response=response.strip(),
        current_focus=focus if isinstance(focus, str) else "",
        all_answered=payload.get("allAnswered") is True,
    )


class LLMOracle(Oracle):
    """Oracle backed by a language-model provider in JSON mode."""

    def __init__(
        self,
        provider: AIProvider,
        prompts: PromptsConfig,
        history_window: int = DEFAULT_HISTORY_WINDOW,
    ) -> None:
        self._provider = provider
        self._prompts = prompts
        self._history_window = history_window

    async def extract(self, request: ExtractionRequest) -> ExtractionResult:
        prompt = build_extraction_prompt(request, self._prompts.extraction, self._history_window)
        logger.debug("Extraction prompt via %s:\n%s", self._provider.name(), prompt)
        reply = await self._provider.generate(prompt, json_mode=True)
        return parse_extraction_reply(reply.content, request.questions)
