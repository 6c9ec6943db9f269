"""Anthropic Claude provider using anthropic SDK with native async."""

import asyncio
import logging
import time

import anthropic as anthropic_sdk

from config.config_loader import ModelConfig
from intake.models import ModelResponse
from intake.providers.base import AIProvider, OracleUnavailable, status_code_of

logger = logging.getLogger(__name__)

# Messages API has no JSON switch; the instruction rides along with the prompt.
_JSON_SYSTEM = "Respond with a single JSON object only. No prose, no code fences."


class AnthropicProvider(AIProvider):
    """Anthropic Claude provider via anthropic SDK."""

    def __init__(self, config: ModelConfig, api_key: str) -> None:
        self._config = config
        if not api_key.strip():
            raise OracleUnavailable(config.name, f"Missing API key: {config.api_key_env}")
        self._client = anthropic_sdk.AsyncAnthropic(api_key=api_key.strip())

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def generate(self, prompt: str, *, json_mode: bool = False) -> ModelResponse:
        extra: dict = {}
        if json_mode:
            extra["system"] = _JSON_SYSTEM

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.messages.create(
                    model=self._config.model,
                    max_tokens=self._config.max_tokens,
                    messages=[{"role": "user", "content": prompt}],
                    **extra,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise OracleUnavailable(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            raise OracleUnavailable(
                self._config.name, f"API call failed: {exc}", status_code_of(exc)
            ) from exc

        latency = time.monotonic() - start

        if not response.content:
            raise OracleUnavailable(self._config.name, "Empty response content")

        text_blocks = [b.text for b in response.content if b.type == "text"]
        if not text_blocks:
            raise OracleUnavailable(self._config.name, "No text blocks in response")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.input_tokens + response.usage.output_tokens

        logger.info("Anthropic call: %.2fs, %s tokens, json_mode=%s", latency, token_count, json_mode)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content="\n".join(text_blocks),
        )
