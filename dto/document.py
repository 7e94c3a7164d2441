"""
DTOs describing an uploaded document as it moves through the pipeline.

    Document
      ├─ format: "tabular" | "text"
      ├─ rows:   List[RowRecord]   (tabular only, ordered)
      └─ text:   str               (text only)
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel

CellValue = Union[str, int, float, bool]
RowRecord = Dict[str, CellValue]


class DocumentFormat(str, Enum):
    TABULAR = "tabular"
    TEXT = "text"


class ProcessingMode(str, Enum):
    STRUCTURED = "structured"
    FREEFORM = "freeform"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ProcessingMode":
        """Accept the enum values plus the legacy form values ``voc`` / ``custom``."""
        normalised = (value or "").strip().lower()
        if normalised in ("", "custom", cls.FREEFORM.value):
            return cls.FREEFORM
        if normalised in ("voc", cls.STRUCTURED.value):
            return cls.STRUCTURED
        raise ValueError(f"Unknown processing mode: {value!r}")


class Document(BaseModel):
    filename: str
    format: DocumentFormat
    columns: List[str] = []
    rows: List[RowRecord] = []
    text: Optional[str] = None


class ReconciledTable(BaseModel):
    """Rows after the model's fields have been merged back in."""

    columns: List[str]
    rows: List[RowRecord]
    added_columns: List[str] = []
    degraded_rows: int = 0
