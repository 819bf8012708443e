"""
JSON Parsing Utilities.

Extracts JSON objects from model replies that may wrap the payload in
Markdown code fences or surround it with prose. Fenced blocks are tried
first (``json`` fences, then bare fences), then the outermost braces.
"""

import json
import logging
import re
from typing import Any, Dict, List, Tuple

logger = logging.getLogger(__name__)

_JSON_FENCE = re.compile(r"```json\s*\n([\s\S]*?)\n?\s*```")
_BARE_FENCE = re.compile(r"```\s*\n([\s\S]*?)\n?\s*```")


class JsonParsingError(Exception):
    """Raised when no JSON object can be recovered from a text."""

    def __init__(self, message, original_error=None, partial_data=None, position=None):
        super().__init__(message)
        self.original_error = original_error
        self.partial_data = partial_data
        self.position = position
        self.message = message


def extract_json_block(text: str) -> str:
    """
    Return the most likely JSON substring of ``text``.

    Strategies:
    1. ```json ... ``` fence.
    2. Bare ``` ... ``` fence.
    3. First ``{`` through last ``}``.

    Falls back to the stripped text itself.
    """
    for pattern in (_JSON_FENCE, _BARE_FENCE):
        match = pattern.search(text)
        if match:
            return match.group(1).strip()

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start : end + 1]
    return text.strip()


def parse_json_object(text: str) -> Dict[str, Any]:
    """Extract and decode a JSON object, raising JsonParsingError otherwise."""
    candidate = extract_json_block(text)
    try:
        obj = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse JSON candidate: %s", e)
        raise JsonParsingError(
            f"Failed to parse JSON: {e}",
            original_error=e,
            partial_data=candidate[:200],
            position=e.pos,
        ) from e

    if not isinstance(obj, dict):
        raise JsonParsingError(
            f"Expected a JSON object, got {type(obj).__name__}",
            partial_data=candidate[:200],
        )
    return obj


def string_list(value: Any) -> List[str]:
    """Coerce a decoded JSON value into a list of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(item) for item in value if item is not None]
    return [str(value)]


def split_fields(data: Dict[str, Any], known: Tuple[str, ...]) -> Dict[str, Any]:
    """Keep only ``known`` keys of ``data``."""
    return {key: data[key] for key in known if key in data}
