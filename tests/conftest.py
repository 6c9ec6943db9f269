"""Shared pytest fixtures."""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from config.config_loader import AppConfig, DefaultsConfig, ModelConfig, PromptsConfig
from intake.models import (
    Answer,
    ChatMessage,
    ExtractionRequest,
    ExtractionResult,
    ModelResponse,
    Question,
)
from intake.oracle import Oracle
from intake.providers.base import AIProvider


@pytest.fixture
def sample_model_config() -> ModelConfig:
    return ModelConfig(
        name="test_model",
        sdk="openai",
        model="test-model-1",
        api_key_env="TEST_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
        base_url=None,
    )


@pytest.fixture
def sample_prompts_config() -> PromptsConfig:
    return PromptsConfig(
        extraction="Catalog:\n{catalog}\n\nHistory:\n{history}\n\nMessage:\n{message}",
        summary="Answers JSON:{answers}\n\nRecent conversation:\n{history}",
    )


@pytest.fixture
def one_question() -> list[Question]:
    return [Question(id="q1", key="problem", text="What problem?")]


@pytest.fixture
def catalog() -> list[Question]:
    return [
        Question(id="q1", key="problem", text="What problem are you trying to solve?"),
        Question(id="q2", key="ai_fit", text="Why do you think this is a good fit for AI?"),
        Question(id="q3", key="business_unit", text="Which business unit owns this?"),
    ]


@pytest.fixture
def sample_app_config(tmp_path: Path, sample_prompts_config: PromptsConfig, catalog) -> AppConfig:
    model_cfg = ModelConfig(
        name="openai",
        sdk="openai",
        model="gpt-4o",
        api_key_env="OPENAI_API_KEY",
        timeout_sec=30,
        max_tokens=1024,
    )
    return AppConfig(
        defaults=DefaultsConfig(oracle="openai", summarizer="openai", store_dir=tmp_path / "records"),
        models={"openai": model_cfg},
        prompts=sample_prompts_config,
        questions=catalog,
    )


@pytest.fixture
def sample_history() -> list[ChatMessage]:
    return [
        ChatMessage(role="assistant", text="What problem are you trying to solve?"),
        ChatMessage(role="user", text="Invoices take forever to check."),
    ]


def oracle_reply(extracted: dict, response: str = "Thanks! Next question.", focus: str = "q1",
                 all_answered: bool = False) -> str:
    """JSON reply in the shape the extraction prompt demands."""
    return json.dumps({
        "extractedAnswers": extracted,
        "response": response,
        "currentFocus": focus,
        "allAnswered": all_answered,
    })


class MockProvider(AIProvider):
    """Test double AIProvider."""

    def __init__(self, provider_name: str = "mock", response_content: str = "Mock response") -> None:
        self._name = provider_name
        self._response_content = response_content
        # Shadow the class method with an AsyncMock at the instance level.
        self.generate = AsyncMock(  # type: ignore[assignment]
            return_value=ModelResponse(
                provider=provider_name,
                model="mock-model",
                content=response_content,
            )
        )

    def name(self) -> str:
        return self._name

    def model_string(self) -> str:
        return "mock-model"

    async def generate(self, prompt: str, *, json_mode: bool = False) -> ModelResponse:  # type: ignore[override]
        """Default implementation; replaced by AsyncMock in __init__."""
        return ModelResponse(self._name, "mock-model", self._response_content)


class FakeOracle(Oracle):
    """Returns a canned ExtractionResult and records the requests it saw."""

    def __init__(self, result: ExtractionResult | None = None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.requests: list[ExtractionRequest] = []

    async def extract(self, request: ExtractionRequest) -> ExtractionResult:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.result


def extraction(extracted: dict[str, tuple[str, int]], focus: str = "q1", all_answered: bool = False,
               response: str = "Got it.") -> ExtractionResult:
    return ExtractionResult(
        extracted_answers={k: Answer(text=t, quality=q) for k, (t, q) in extracted.items()},
        response=response,
        current_focus=focus,
        all_answered=all_answered,
    )


@pytest.fixture
def mock_provider() -> MockProvider:
    return MockProvider()
