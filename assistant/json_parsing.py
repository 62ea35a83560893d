"""Tolerant parsing of JSON replies from the language model.

Models wrap JSON in prose or code fences often enough that a plain
``json.loads`` is not sufficient. The chain is: parse the whole reply,
then the first brace-delimited object inside it, then give up with {}.
"""

import json
from typing import Any, Dict, Optional

__all__ = ["parse_llm_json", "find_json_object"]

_DECODER = json.JSONDecoder()


def find_json_object(text: str) -> Optional[Dict[str, Any]]:
    """First decodable JSON object embedded in ``text``.

    Tries each "{" in turn, so stray braces in surrounding prose do not
    hide a valid object further on.
    """
    start = text.find("{")
    while start != -1:
        try:
            value, _ = _DECODER.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    return None


def parse_llm_json(raw: Optional[str]) -> Dict[str, Any]:
    """Parse a model reply into a dict, never raising.

    Returns:
        The parsed object, or {} when nothing usable is found.
    """
    if not raw:
        return {}

    text = raw.strip()
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        parsed = None

    if isinstance(parsed, dict):
        return parsed

    embedded = find_json_object(text)
    return embedded if embedded is not None else {}
