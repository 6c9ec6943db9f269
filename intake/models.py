"""Pure dataclasses for the intake interview engine. No logic beyond wire conversion."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

ChatRole = Literal["user", "assistant"]


@dataclass(frozen=True)
class Question:
    id: str    # focus token shown to clients
    key: str   # storage field name in AnswerState
    text: str


@dataclass(frozen=True)
class Answer:
    text: str
    quality: int  # 1..5, confidence in the extraction

    def to_dict(self) -> dict:
        return {"text": self.text, "quality": self.quality}


# key -> Answer; a missing key or None means unanswered
AnswerState = dict[str, Answer | None]


@dataclass(frozen=True)
class ChatMessage:
    role: ChatRole
    text: str


@dataclass
class ExtractionRequest:
    questions: list[Question]
    answers: AnswerState
    history: list[ChatMessage]
    message: str


@dataclass
class ExtractionResult:
    extracted_answers: dict[str, Answer]
    response: str
    current_focus: str
    all_answered: bool

    def to_dict(self) -> dict:
        return {
            "extractedAnswers": {k: a.to_dict() for k, a in self.extracted_answers.items()},
            "response": self.response,
            "currentFocus": self.current_focus,
            "allAnswered": self.all_answered,
        }


@dataclass
class TurnResult:
    extraction: ExtractionResult
    answers: AnswerState

    def to_dict(self) -> dict:
        payload = self.extraction.to_dict()
        payload["answers"] = answers_to_dict(self.answers)
        return payload


@dataclass
class ModelResponse:
    provider: str          # "openai", "claude", "gemini"
    model: str             # actual model string used
    content: str


@dataclass
class SessionRecord:
    session_id: str
    created_at: datetime
    answers: AnswerState
    summary: str
    tags: dict[str, str] = field(default_factory=dict)


def answers_to_dict(answers: AnswerState) -> dict[str, dict | None]:
    """Wire form of an AnswerState; unanswered keys map to None."""
    return {k: (a.to_dict() if a is not None else None) for k, a in answers.items()}
