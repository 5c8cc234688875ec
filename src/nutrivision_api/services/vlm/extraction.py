"""Recover a JSON object from free-form model output."""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

# ``` or ```json fenced block; the interior is captured lazily
_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


def _loads(text: str) -> Any:
    return json.loads(text)


def _from_fenced_block(text: str) -> Any:
    match = _FENCED_BLOCK.search(text)
    if match is None or not match.group(1).strip():
        raise ValueError("no fenced code block")
    return json.loads(match.group(1).strip())


def _from_outer_braces(text: str) -> Any:
    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        raise ValueError("no brace-delimited object")
    return json.loads(text[start : end + 1])


_STRATEGIES = (
    ("direct", _loads),
    ("fenced block", _from_fenced_block),
    ("outer braces", _from_outer_braces),
)


def extract_json(raw_text: str | None) -> dict[str, Any]:
    """
    Best-effort JSON recovery from a model response.

    Tries, in order: the whole text, the first fenced code block, and the
    span from the first `{` to the last `}`. The first strategy that yields
    a JSON object wins. When none does, the text is wrapped as
    `{"text": raw_text}`; this is logged but never raised.

    Args:
        raw_text: Message content returned by the model

    Returns:
        The recovered object, or `{"text": raw_text}`
    """
    text = raw_text or ""

    for name, strategy in _STRATEGIES:
        try:
            parsed = strategy(text)
        except (ValueError, TypeError):
            # json.JSONDecodeError is a ValueError
            continue
        if isinstance(parsed, dict):
            logger.debug(f"Recovered JSON from model output ({name})")
            return parsed

    logger.warning(
        f"Failed to parse JSON from model output, using raw content ({len(text)} chars)"
    )
    return {"text": raw_text}
