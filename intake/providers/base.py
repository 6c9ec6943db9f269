"""Abstract base for the language-model services that back the oracle."""

from abc import ABC, abstractmethod

from intake.models import ModelResponse


class OracleUnavailable(Exception):
    """Raised when a provider call fails, times out, or returns nothing usable."""

    def __init__(self, provider_name: str, message: str, status_code: int | None = None) -> None:
        self.provider_name = provider_name
        self.status_code = status_code
        super().__init__(f"[{provider_name}] {message}")


def status_code_of(exc: BaseException) -> int | None:
    """Pull the HTTP status off an SDK exception, if it carries one."""
    for attr in ("status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


class AIProvider(ABC):
    """Abstract base for all AI model providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'openai', 'claude')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def generate(self, prompt: str, *, json_mode: bool = False) -> ModelResponse:
        """Generate a completion for the given prompt.

        Args:
            prompt: The full prompt text to send.
            json_mode: Ask the service for a single JSON object, where the
                SDK supports it.

        Returns:
            ModelResponse dataclass with content and metadata.

        Raises:
            OracleUnavailable: On API failure, timeout, or empty response.
        """
        ...
