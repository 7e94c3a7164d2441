"""
Utilities for pulling structured data out of LLM responses.
"""

import json
import logging
from typing import Any, List, Optional, Tuple

from errors import ExtractionError

logger = logging.getLogger(__name__)


def parse_llm_json_array(raw: str) -> List[Any]:
    """
    Extract the JSON array from a (possibly messy) LLM response.

    Two phases:
      1. Locate the first ``[`` and the last ``]`` — this skips markdown
         fences, preambles and trailing remarks around the payload.
      2. Strictly parse the enclosed substring; it must be a JSON array.

    The array length is not checked here; short or long replies are the
    reconciler's concern.

    Raises ``ExtractionError`` when no array can be located or parsed.
    """
    bounds = _find_bracket_span(raw, "[", "]")
    if bounds is None:
        logger.warning("LLM response did not contain a JSON array: %s", raw[:200])
        raise ExtractionError("Model reply did not contain a JSON array")

    start, end = bounds
    json_str = raw[start : end + 1]
    try:
        parsed = json.loads(json_str)
    except (json.JSONDecodeError, RecursionError) as exc:
        logger.warning("Failed to parse LLM JSON: %s - %s", exc, json_str[:200])
        raise ExtractionError(f"Model reply is not a valid JSON array: {exc}") from exc

    if not isinstance(parsed, list):
        raise ExtractionError("Model reply is not a valid JSON array")
    return parsed


def _find_bracket_span(
    text: str, open_char: str, close_char: str
) -> Optional[Tuple[int, int]]:
    """Indices of the first ``open_char`` and last ``close_char``, if ordered."""
    start = text.find(open_char)
    end = text.rfind(close_char)
    if start == -1 or end == -1 or end <= start:
        return None
    return start, end
