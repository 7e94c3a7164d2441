"""
Row reconciliation — merges model-derived fields back onto the original
rows.

Alignment is purely positional: the i-th element of the model's array
belongs to the i-th input row.  The merge is additive; an original column
is never overwritten.  Anything the model got wrong for a single row (a
missing element, a non-object element, an absent or non-scalar field, an
unknown severity) leaves that field as ``""`` and the row in place.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

from dto.document import CellValue, ProcessingMode, ReconciledTable, RowRecord
from prompts.transform import SEVERITY_LEVELS, STRUCTURED_KEYS

logger = logging.getLogger(__name__)

# Alternate key spellings the model sometimes uses.
_KEY_ALIASES: Dict[str, Tuple[str, ...]] = {
    "Summarized Problem": ("SummarizedProblem",),
}

_SEVERITY_LOOKUP = {level.lower(): level for level in SEVERITY_LEVELS}

_MISSING = object()


def _as_cell(value: Any) -> Any:
    """Return *value* if it can sit in a spreadsheet cell, else ``_MISSING``."""
    if isinstance(value, float) and not math.isfinite(value):
        return _MISSING
    if isinstance(value, (str, int, float)):
        return value
    return _MISSING


def _structured_field(record: Dict[str, Any], key: str) -> Any:
    for candidate in (key,) + _KEY_ALIASES.get(key, ()):
        value = _as_cell(record.get(candidate))
        if value is not _MISSING:
            break
    else:
        return _MISSING

    if key == "Severity":
        if not isinstance(value, str):
            return _MISSING
        return _SEVERITY_LOOKUP.get(value.strip().lower(), _MISSING)
    return value


def _freeform_columns(extracted: Sequence[Any], original: Sequence[str]) -> List[str]:
    """Keys of the extracted objects in first-seen order, minus original columns."""
    taken = set(original)
    added: List[str] = []
    for record in extracted:
        if not isinstance(record, dict):
            continue
        for key in record:
            if key not in taken:
                taken.add(key)
                added.append(key)
    return added


def reconcile_rows(
    columns: Sequence[str],
    rows: List[RowRecord],
    extracted: Sequence[Any],
    mode: ProcessingMode,
) -> ReconciledTable:
    """
    Merge *extracted* (the parsed model array) onto *rows* by index.

    Returns a ``ReconciledTable`` with exactly ``len(rows)`` rows, in input
    order, whose columns are the original columns followed by the mode's
    added columns.
    """
    if mode is ProcessingMode.STRUCTURED:
        added_columns = [k for k in STRUCTURED_KEYS if k not in columns]
    else:
        added_columns = _freeform_columns(extracted, columns)

    if len(extracted) != len(rows):
        logger.warning(
            "  Model returned %d record(s) for %d row(s)", len(extracted), len(rows)
        )

    merged: List[RowRecord] = []
    degraded = 0
    for i, row in enumerate(rows):
        record: Optional[Any] = extracted[i] if i < len(extracted) else None
        out: Dict[str, CellValue] = dict(row)
        row_degraded = not isinstance(record, dict)

        for key in added_columns:
            value = _MISSING
            if isinstance(record, dict):
                if mode is ProcessingMode.STRUCTURED:
                    value = _structured_field(record, key)
                else:
                    value = _as_cell(record.get(key))
            if value is _MISSING:
                row_degraded = True
                value = ""
            out[key] = value

        if row_degraded and added_columns:
            degraded += 1
        merged.append(out)

    if degraded:
        logger.info("  %d of %d row(s) have incomplete model fields", degraded, len(rows))

    return ReconciledTable(
        columns=list(columns) + added_columns,
        rows=merged,
        added_columns=added_columns,
        degraded_rows=degraded,
    )
