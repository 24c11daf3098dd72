"""Shared plumbing for capability agents: retrying calls and JSON decoding."""

import json
import logging
from typing import Any

from config.config_loader import PromptsConfig, RetryConfig
from cedasim.extraction import extract_json
from cedasim.models import EvidenceItem
from cedasim.providers.base import AIProvider, GenerationRequest
from cedasim.retry import with_rate_limit_retry

logger = logging.getLogger(__name__)

_LANGUAGE_NAMES = {
    "ja": "Japanese",
    "zh": "Chinese",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "pt": "Portuguese",
    "it": "Italian",
    "ru": "Russian",
    "vi": "Vietnamese",
}


def language_instruction(language: str) -> str:
    if language == "ko":
        return "IMPORTANT: Output ALL text content values in KOREAN (한국어)."
    if language == "en":
        return "IMPORTANT: Output ALL text content values in ENGLISH."
    name = _LANGUAGE_NAMES.get(language)
    if name:
        return f"IMPORTANT: Output ALL text content values in {name} language."
    return f"IMPORTANT: Output ALL text content values in the language code: {language}."


def focus_block(focus_topic: str | None, template: str) -> str:
    if not focus_topic:
        return ""
    return f"<focus>\n{template.format(topic=focus_topic)}\n</focus>"


def evidence_json(evidence: tuple[EvidenceItem, ...] | list[EvidenceItem]) -> str:
    return json.dumps([e.to_prompt_dict() for e in evidence], ensure_ascii=False)


class BaseAgent:
    """One capability: builds a request, calls the provider with rate-limit retry."""

    def __init__(
        self,
        provider: AIProvider,
        prompts: PromptsConfig,
        language: str = "en",
        retry: RetryConfig | None = None,
    ) -> None:
        self._provider = provider
        self._prompts = prompts
        self._language = language
        self._retry = retry or RetryConfig()

    @property
    def language(self) -> str:
        return self._language

    def _lang(self) -> str:
        return language_instruction(self._language)

    async def _call_text(self, request: GenerationRequest) -> str:
        response = await with_rate_limit_retry(
            lambda: self._provider.generate(request),
            retries=self._retry.retries,
            delay_sec=self._retry.initial_delay_sec,
            backoff_factor=self._retry.backoff_factor,
        )
        return response.content

    async def _call_json(self, request: GenerationRequest) -> dict[str, Any]:
        """Call and decode the JSON object in the reply.

        Raises ExtractionError if the reply is not a JSON object; it is not
        retried.
        """
        return extract_json(await self._call_text(request))
