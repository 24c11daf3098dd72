"""OpenAI provider using openai SDK with native async.

Also serves OpenAI-compatible endpoints when ``base_url`` is configured.
"""

import asyncio
import logging
import os
import time

from openai import AsyncOpenAI, RateLimitError as OpenAIRateLimitError

from config.config_loader import ModelConfig
from cedasim.providers.base import (
    AIProvider,
    GenerationRequest,
    ModelResponse,
    ProviderError,
    RateLimitError,
)

logger = logging.getLogger(__name__)


class OpenAIProvider(AIProvider):
    """OpenAI provider via openai SDK.

    Chat completions have no built-in web search, so search-grounded requests
    run as plain prompts and rely on the model's own knowledge.
    """

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = AsyncOpenAI(api_key=api_key, base_url=config.base_url)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    async def generate(self, request: GenerationRequest) -> ModelResponse:
        messages = []
        if request.system:
            messages.append({"role": "system", "content": request.system})
        messages.append({"role": "user", "content": request.contents})

        kwargs = {}
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature
        if request.schema is not None and not request.search:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "response", "schema": request.schema},
            }

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._config.model,
                    messages=messages,
                    max_tokens=self._config.max_tokens,
                    **kwargs,
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except OpenAIRateLimitError as exc:
            raise RateLimitError(self._config.name, f"Rate limited: {exc}") from exc
        except Exception as exc:
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message.content:
            raise ProviderError(self._config.name, "Empty response content")

        token_count: int | None = None
        if response.usage:
            token_count = response.usage.total_tokens

        logger.info("OpenAI call: %.2fs, %s tokens", latency, token_count)

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content=choice.message.content,
            latency_sec=latency,
            token_count=token_count,
        )
