"""Gemini provider using google-genai SDK with native async."""

import asyncio
import logging
import time

from google import genai
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from intake.models import ModelResponse
from intake.providers.base import AIProvider, OracleUnavailable, status_code_of

logger = logging.getLogger(__name__)


class GeminiProvider(AIProvider):
    """Google Gemini provider via google-genai SDK."""

    def __init__(self, config: ModelConfig, api_key: str) -> None:
        self._config = config
        if not api_key.strip():
            raise OracleUnavailable(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key.strip())

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def generate(self, prompt: str, *, json_mode: bool = False) -> ModelResponse:
        gen_config = genai_types.GenerateContentConfig(
            max_output_tokens=self._config.max_tokens,
            response_mime_type="application/json" if json_mode else None,
        )

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._config.model,
                    contents=prompt,
                    config=gen_config,
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

        if not response.text:
            raise OracleUnavailable(self._config.name, "Empty response text")

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count

        logger.info("Gemini call: %.2fs, %s tokens, json_mode=%s", latency, token_count, json_mode)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content=response.text,
        )
