"""Turn orchestration: validate payload, extract, merge, recompute completion, resolve focus."""

import logging
from typing import Any

from intake.answers import all_answered, merge_answers, select_focus
from intake.models import (
    Answer,
    AnswerState,
    ChatMessage,
    ExtractionRequest,
    ExtractionResult,
    Question,
    TurnResult,
)
from intake.oracle import Oracle, fallback_result

logger = logging.getLogger(__name__)

_ROLES = ("user", "assistant")


class InvalidRequest(ValueError):
    """Raised when a turn payload is malformed or missing required fields."""


def _require_str(item: dict, name: str, where: str) -> str:
    value = item.get(name)
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequest(f"{where}: '{name}' must be a non-empty string")
    return value


def parse_questions(raw: Any) -> list[Question]:
    if not isinstance(raw, list) or not raw:
        raise InvalidRequest("'questions' must be a non-empty list")
    questions: list[Question] = []
    ids: set[str] = set()
    keys: set[str] = set()
    for i, item in enumerate(raw):
        where = f"questions[{i}]"
        if not isinstance(item, dict):
            raise InvalidRequest(f"{where} must be an object")
        question = Question(
            id=_require_str(item, "id", where),
            key=_require_str(item, "key", where),
            text=_require_str(item, "text", where),
        )
        if question.id in ids or question.key in keys:
            raise InvalidRequest(f"{where}: duplicate id or key ({question.id}/{question.key})")
        ids.add(question.id)
        keys.add(question.key)
        questions.append(question)
    return questions


def parse_answers(raw: Any) -> AnswerState:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise InvalidRequest("'answers' must be an object")
    answers: AnswerState = {}
    for key, value in raw.items():
        if value is None:
            answers[str(key)] = None
            continue
        if not isinstance(value, dict):
            raise InvalidRequest(f"answers.{key} must be an object or null")
        text = value.get("text")
        quality = value.get("quality")
        if not isinstance(text, str):
            raise InvalidRequest(f"answers.{key}.text must be a string")
        # bool is an int subclass; reject it explicitly
        if isinstance(quality, bool) or not isinstance(quality, int) or not 1 <= quality <= 5:
            raise InvalidRequest(f"answers.{key}.quality must be an integer 1..5")
        answers[str(key)] = Answer(text=text, quality=quality)
    return answers


def parse_history(raw: Any) -> list[ChatMessage]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InvalidRequest("'chat' must be a list")
    history: list[ChatMessage] = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict) or item.get("role") not in _ROLES or not isinstance(item.get("text"), str):
            raise InvalidRequest(f"chat[{i}] must be {{role: user|assistant, text: string}}")
        history.append(ChatMessage(role=item["role"], text=item["text"]))
    return history


def parse_turn_request(payload: Any) -> ExtractionRequest:
    """Validate a wire payload {questions, answers, chat, message}.

    Raises:
        InvalidRequest: On any malformed or missing required field.
    """
    if not isinstance(payload, dict):
        raise InvalidRequest("Request body must be a JSON object")
    message = payload.get("message")
    if not isinstance(message, str):
        raise InvalidRequest("'message' must be a string")
    return ExtractionRequest(
        questions=parse_questions(payload.get("questions")),
        answers=parse_answers(payload.get("answers")),
        history=parse_history(payload.get("chat")),
        message=message,
    )


async def process_turn(request: ExtractionRequest, oracle: Oracle) -> TurnResult:
    """Run one interview turn.

    The oracle's allAnswered is advisory and always recomputed on the merged
    state. No retries: OracleUnavailable propagates to the caller.
    """
    questions = request.questions

    if request.message.strip():
        extraction = await oracle.extract(request)
    else:
        logger.info("Empty message, skipping extraction")
        extraction = fallback_result(questions)

    catalog_keys = {q.key for q in questions}
    accepted = {k: a for k, a in extraction.extracted_answers.items() if k in catalog_keys}
    merged = merge_answers(request.answers, extraction.extracted_answers, questions)

    complete = all_answered(merged, questions)
    if complete != extraction.all_answered:
        logger.debug("Oracle reported allAnswered=%s, recomputed %s", extraction.all_answered, complete)

    focus = select_focus(extraction.current_focus, merged, questions)

    logger.info(
        "Turn processed: %d extracted, focus=%s, allAnswered=%s",
        len(accepted),
        focus,
        complete,
    )

    return TurnResult(
        extraction=ExtractionResult(
            extracted_answers=accepted,
            response=extraction.response,
            current_focus=focus,
            all_answered=complete,
        ),
        answers=merged,
    )
