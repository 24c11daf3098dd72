"""Abstract base for all AI model providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

_RATE_LIMIT_MARKERS = ("429", "quota", "RESOURCE_EXHAUSTED")


class ProviderError(Exception):
    """Raised when a provider call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class RateLimitError(ProviderError):
    """Provider refused the call for rate or quota reasons. Retryable."""


def is_rate_limit(exc: BaseException) -> bool:
    """Recognise HTTP 429 / quota exhaustion across SDK error shapes."""
    if isinstance(exc, RateLimitError):
        return True
    for attr in ("status_code", "code", "status"):
        if getattr(exc, attr, None) == 429:
            return True
    message = str(exc)
    return any(marker in message for marker in _RATE_LIMIT_MARKERS)


@dataclass(frozen=True)
class GenerationRequest:
    """One capability call: instruction, input, and output constraints."""

    system: str
    contents: str
    schema: dict[str, Any] | None = None    # JSON schema for structured output
    search: bool = False                    # ground the answer with web search
    temperature: float | None = None


@dataclass
class ModelResponse:
    provider: str
    model: str
    content: str
    latency_sec: float
    token_count: int | None


class AIProvider(ABC):
    """Abstract base for all AI model providers."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'gemini', 'openai')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        """Return the actual model identifier string."""
        ...

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> ModelResponse:
        """Run one generation call.

        Args:
            request: System instruction, contents and output constraints.

        Returns:
            ModelResponse with the raw text content and metadata.

        Raises:
            RateLimitError: When the API signals rate limiting.
            ProviderError: On any other API failure, timeout, or empty response.
        """
        ...
