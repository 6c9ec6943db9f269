"""Answer state rules: merge extracted answers, decide completion, pick the next focus."""

import logging

from intake.models import Answer, AnswerState, Question

logger = logging.getLogger(__name__)

# An answer at or above this quality no longer needs re-asking
QUALITY_THRESHOLD = 3


def merge_answers(
    prior: AnswerState,
    extracted: dict[str, Answer],
    questions: list[Question],
) -> AnswerState:
    """Return a new AnswerState with extracted answers applied.

    Extracted answers replace prior ones unconditionally (last write wins).
    Keys outside the catalog are dropped. Neither input is mutated.
    """
    catalog_keys = {q.key for q in questions}
    merged: AnswerState = dict(prior)
    for key, answer in extracted.items():
        if key not in catalog_keys:
            logger.warning("Ignoring extracted answer for unknown key: %s", key)
            continue
        merged[key] = answer
    return merged


def is_satisfied(answer: Answer | None) -> bool:
    """True when the answer has text and meets the quality threshold."""
    return answer is not None and bool(answer.text.strip()) and answer.quality >= QUALITY_THRESHOLD


def all_answered(answers: AnswerState, questions: list[Question]) -> bool:
    return all(is_satisfied(answers.get(q.key)) for q in questions)


def select_focus(proposed: str, answers: AnswerState, questions: list[Question]) -> str:
    """Resolve the question id the next turn should address.

    The oracle's proposal wins whenever it names a catalog id, including an
    answered question it wants to clarify. Otherwise the first question in
    catalog order that is not yet satisfied, or the first question when
    everything is.
    """
    if any(q.id == proposed for q in questions):
        return proposed
    for q in questions:
        if not is_satisfied(answers.get(q.key)):
            return q.id
    return questions[0].id
