"""Best-effort JSON extraction from model text wrapped in prose or fences."""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?")


class ExtractionError(ValueError):
    """Model text could not be turned into the expected JSON object."""


def extract_json(text: str) -> dict[str, Any]:
    """Parse the outermost ``{...}`` block of ``text``.

    Raises:
        ExtractionError: On empty text, no object, or invalid JSON.
    """
    if not text or not text.strip():
        raise ExtractionError("Empty response text")

    clean = _FENCE.sub("", text)
    first = clean.find("{")
    last = clean.rfind("}")
    if first != -1 and last > first:
        clean = clean[first:last + 1]

    try:
        parsed = json.loads(clean)
    except json.JSONDecodeError as exc:
        logger.debug("JSON parse failed for text: %.200s", text)
        raise ExtractionError(
            "Failed to parse response. The model returned unstructured text instead of JSON."
        ) from exc

    if not isinstance(parsed, dict):
        raise ExtractionError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed
