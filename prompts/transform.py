"""
Prompts for the document transformation pipeline.

Every prompt here is a pure function of its inputs: the same rows, mode and
instruction always produce byte-identical text.
"""

from __future__ import annotations

import json
from typing import List, Optional

from dto.document import ProcessingMode, RowRecord

# Keys the model must return for every row in structured mode, in output order.
STRUCTURED_KEYS = ("Module", "Summarized Problem", "Severity")

SEVERITY_LEVELS = ("Critical", "High", "Medium", "Low")


def serialise_rows(rows: List[RowRecord]) -> str:
    """Pretty-printed JSON array, one object per row, key order preserved."""
    return json.dumps(rows, indent=2, ensure_ascii=False)


def get_structured_rows_prompt(rows: List[RowRecord]) -> str:
    keys = ", ".join(f'"{k}"' for k in STRUCTURED_KEYS)
    severities = ", ".join(SEVERITY_LEVELS)
    return f"""You are a data-cleaning assistant for Problem analysis reported by Customer.
You will be given a JSON array of rows. Each row has fields "Title" and "Problem" (and may include Case Code or Model No.).
For each row produce an object with exactly these keys: {keys}.
- Remove ALL tokens inside square brackets [] before summarizing.
- Translate non-English text to English.
- Summarized Problem must be one concise English sentence merging Title and Problem.
- Severity must be one of: {severities}.

Rules:
1) Return ONLY a single valid JSON array of objects in the same order as input.
2) The array must contain exactly {len(rows)} objects, one per input row.
3) Each object must contain EXACT keys: {keys}.
4) No commentary or extra fields.

Input:
{serialise_rows(rows)}

Return only the JSON array."""


def get_freeform_prompt(instruction: str, payload: str) -> str:
    return f"{instruction}\n\n{payload}"


def build_rows_prompt(
    rows: List[RowRecord],
    mode: ProcessingMode,
    instruction: Optional[str] = None,
) -> str:
    """Prompt for a tabular document."""
    if mode is ProcessingMode.STRUCTURED:
        return get_structured_rows_prompt(rows)
    return get_freeform_prompt(instruction or "", serialise_rows(rows))


def build_text_prompt(
    text: str,
    mode: ProcessingMode,
    instruction: Optional[str] = None,
) -> str:
    """
    Prompt for a plain-text document.

    The structured schema only applies to rows, so structured mode sends the
    text on its own.
    """
    if mode is ProcessingMode.FREEFORM:
        return get_freeform_prompt(instruction or "", text)
    return text
