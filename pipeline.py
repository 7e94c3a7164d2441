"""
Document transformation pipeline.

Two pipelines share the same model gateway:

  tabular:  bytes → rows → prompt → model → JSON array → reconcile → .xlsx
  text:     text → prompt → model → reply (verbatim)

``process_document`` dispatches on the upload's extension.  Each call owns
its own Document; nothing is cached or shared between calls.  Spreadsheet
decoding/encoding runs in a worker thread so the event loop stays free to
serve other requests while this one waits on the model.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel

from ai.response_parser import parse_llm_json_array
from ai.service import AIService
from dto.document import Document, DocumentFormat, ProcessingMode
from errors import DecodeError, UnsupportedFormat
from extractors.rows import read_rows
from prompts.transform import build_rows_prompt, build_text_prompt
from reconcile import reconcile_rows
from utils.sheet_file import write_rows

logger = logging.getLogger(__name__)

TABULAR_EXTENSIONS = frozenset({".xls", ".xlsx"})
TEXT_EXTENSIONS = frozenset({".txt", ".md", ".json", ".csv", ".log"})
ACCEPTED_EXTENSIONS = TABULAR_EXTENSIONS | TEXT_EXTENSIONS


class TextResult(BaseModel):
    text: str
    input_length: int


class TabularResult(BaseModel):
    filename: str
    content: bytes
    rows: int
    degraded_rows: int = 0


# -------------------------------------------------------------------
# Format detection
# -------------------------------------------------------------------


def detect_format(filename: str) -> DocumentFormat:
    ext = Path(filename).suffix.lower()
    if ext in TABULAR_EXTENSIONS:
        return DocumentFormat.TABULAR
    if ext in TEXT_EXTENSIONS:
        return DocumentFormat.TEXT
    raise UnsupportedFormat(
        f"Unsupported file type {ext or '(none)'!r}; expected one of "
        + ", ".join(sorted(ACCEPTED_EXTENSIONS))
    )


def decode_text(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"File is not valid UTF-8 text: {exc}") from exc


def output_filename(filename: str) -> str:
    return f"processed-{Path(filename).stem}.xlsx"


# -------------------------------------------------------------------
# Pipelines
# -------------------------------------------------------------------


async def process_text(
    text: str,
    mode: ProcessingMode,
    service: AIService,
    instruction: Optional[str] = None,
) -> TextResult:
    """Single-stage pipeline: the model's reply is returned untouched."""
    prompt = build_text_prompt(text, mode, instruction)
    reply = await service.get_decision(prompt)
    return TextResult(text=reply, input_length=len(text))


async def process_tabular(
    data: bytes,
    filename: str,
    mode: ProcessingMode,
    service: AIService,
    instruction: Optional[str] = None,
) -> TabularResult:
    """
    Run the full spreadsheet pipeline and return the encoded workbook.

    ``DecodeError``, ``ExtractionError`` and gateway errors propagate; no
    output is produced in those cases.  Rows the model answered badly are
    kept with empty fields.
    """
    logger.info("Decoding workbook: %s", filename)
    columns, rows = await asyncio.to_thread(read_rows, data)
    document = Document(
        filename=filename,
        format=DocumentFormat.TABULAR,
        columns=columns,
        rows=rows,
    )

    prompt = build_rows_prompt(document.rows, mode, instruction)
    logger.info("  Prompt built (%s mode): %d chars", mode.value, len(prompt))

    reply = await service.get_decision(prompt)
    extracted = parse_llm_json_array(reply)
    logger.info("  Extracted %d record(s) from model reply", len(extracted))

    table = reconcile_rows(document.columns, document.rows, extracted, mode)
    content = await asyncio.to_thread(write_rows, table.columns, table.rows)

    return TabularResult(
        filename=output_filename(filename),
        content=content,
        rows=len(table.rows),
        degraded_rows=table.degraded_rows,
    )


async def process_document(
    data: bytes,
    filename: str,
    mode: ProcessingMode,
    service: AIService,
    instruction: Optional[str] = None,
) -> Union[TextResult, TabularResult]:
    """Dispatch an uploaded file to the tabular or text pipeline."""
    if detect_format(filename) is DocumentFormat.TABULAR:
        return await process_tabular(data, filename, mode, service, instruction)
    return await process_text(decode_text(data), mode, service, instruction)
