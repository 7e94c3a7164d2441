from __future__ import annotations

import json

from dto.document import ProcessingMode
from prompts.transform import (
    STRUCTURED_KEYS,
    build_rows_prompt,
    build_text_prompt,
    serialise_rows,
)

ROWS = [
    {"Case Code": "C-001", "Title": "[HW] Screen flicker", "Problem": "Flickers"},
    {"Case Code": "C-002", "Title": "Batería", "Problem": "Se agota"},
]


def test_structured_prompt_is_deterministic():
    first = build_rows_prompt(ROWS, ProcessingMode.STRUCTURED)
    second = build_rows_prompt([dict(r) for r in ROWS], ProcessingMode.STRUCTURED)

    assert first == second


def test_structured_prompt_states_schema_and_embeds_rows():
    prompt = build_rows_prompt(ROWS, ProcessingMode.STRUCTURED)

    for key in STRUCTURED_KEYS:
        assert f'"{key}"' in prompt
    assert "Critical, High, Medium, Low" in prompt
    assert "exactly 2 objects" in prompt
    assert "Return ONLY a single valid JSON array" in prompt
    assert serialise_rows(ROWS) in prompt
    assert prompt.endswith("Return only the JSON array.")


def test_serialised_rows_preserve_order_and_unicode():
    text = serialise_rows(ROWS)

    assert json.loads(text) == ROWS
    assert "Batería" in text
    assert text.index("C-001") < text.index("C-002")


def test_freeform_rows_prompt_is_instruction_then_rows():
    prompt = build_rows_prompt(ROWS, ProcessingMode.FREEFORM, "Add a Priority column")

    assert prompt == "Add a Priority column\n\n" + serialise_rows(ROWS)


def test_freeform_instruction_ignored_in_structured_mode():
    assert build_rows_prompt(ROWS, ProcessingMode.STRUCTURED, "ignored") == build_rows_prompt(
        ROWS, ProcessingMode.STRUCTURED
    )


def test_text_prompt_freeform():
    assert build_text_prompt("hello", ProcessingMode.FREEFORM, "Summarise:") == "Summarise:\n\nhello"


def test_text_prompt_structured_sends_text_only():
    assert build_text_prompt("hello", ProcessingMode.STRUCTURED, "ignored") == "hello"
