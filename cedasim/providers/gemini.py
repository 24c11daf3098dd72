"""Gemini provider using google-genai SDK with native async."""

import asyncio
import logging
import os
import time

from google import genai
from google.genai import types as genai_types

from config.config_loader import ModelConfig
from cedasim.providers.base import (
    AIProvider,
    GenerationRequest,
    ModelResponse,
    ProviderError,
    RateLimitError,
    is_rate_limit,
)

logger = logging.getLogger(__name__)


class GeminiProvider(AIProvider):
    """Google Gemini provider via google-genai SDK.

    Search-grounded requests attach the Google Search tool and return free
    text; schema requests ask for JSON matching the given schema. The API
    does not allow both on one call.
    """

    def __init__(self, config: ModelConfig) -> None:
        self._config = config
        api_key = os.environ.get(config.api_key_env, "").strip()
        if not api_key:
            raise ProviderError(config.name, f"Missing API key: {config.api_key_env}")
        self._client = genai.Client(api_key=api_key)

    def name(self) -> str:
        return self._config.name

    def model_string(self) -> str:
        return self._config.model

    def _build_config(self, request: GenerationRequest) -> genai_types.GenerateContentConfig:
        kwargs = {
            "system_instruction": request.system or None,
            "max_output_tokens": self._config.max_tokens,
        }
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature
        if request.search:
            kwargs["tools"] = [genai_types.Tool(google_search=genai_types.GoogleSearch())]
        elif request.schema is not None:
            kwargs["response_mime_type"] = "application/json"
            kwargs["response_json_schema"] = request.schema
        return genai_types.GenerateContentConfig(**kwargs)

    async def generate(self, request: GenerationRequest) -> ModelResponse:
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._config.model,
                    contents=request.contents,
                    config=self._build_config(request),
                ),
                timeout=self._config.timeout_sec,
            )
        except TimeoutError as exc:
            raise ProviderError(self._config.name, f"Request timed out after {self._config.timeout_sec}s") from exc
        except Exception as exc:
            if is_rate_limit(exc):
                raise RateLimitError(self._config.name, f"Rate limited: {exc}") from exc
            raise ProviderError(self._config.name, f"API call failed: {exc}") from exc

        latency = time.monotonic() - start

        if not response.text:
            raise ProviderError(self._config.name, "Empty response text")

        token_count: int | None = None
        if response.usage_metadata:
            token_count = response.usage_metadata.total_token_count

        logger.info(
            "Gemini call: %.2fs, %s tokens%s",
            latency,
            token_count,
            " (search)" if request.search else "",
        )

        return ModelResponse(
            provider=self._config.name,
            model=self._config.model,
            content=response.text,
            latency_sec=latency,
            token_count=token_count,
        )
