"""
Helper to create a single-sheet .xlsx file in memory from row records.

The output is byte-reproducible: openpyxl stamps the current time into the
workbook's core properties and ``zipfile`` stamps it onto every archive
entry, so both are pinned to a fixed timestamp.
"""

from __future__ import annotations

import datetime
import io
import logging
import zipfile
from typing import List, Sequence

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.writer.excel import ExcelWriter

from dto.document import RowRecord

logger = logging.getLogger(__name__)

SHEET_NAME = "Data"

_FIXED_TIMESTAMP = datetime.datetime(2000, 1, 1)
_FIXED_ZIP_DATE = (1980, 1, 1, 0, 0, 0)


def _repack(archive_bytes: bytes) -> bytes:
    """Rewrite every zip entry with a fixed modification time."""
    out = io.BytesIO()
    with zipfile.ZipFile(io.BytesIO(archive_bytes)) as src, zipfile.ZipFile(
        out, "w", zipfile.ZIP_DEFLATED
    ) as dst:
        for info in src.infolist():
            entry = zipfile.ZipInfo(info.filename, date_time=_FIXED_ZIP_DATE)
            entry.compress_type = zipfile.ZIP_DEFLATED
            entry.external_attr = 0o600 << 16
            dst.writestr(entry, src.read(info.filename))
    return out.getvalue()


def _write_cell(ws, row: int, col: int, value) -> None:
    if isinstance(value, str):
        value = ILLEGAL_CHARACTERS_RE.sub("", value)
    cell = ws.cell(row=row, column=col, value=value)
    # Text that merely looks like a formula stays text.
    if isinstance(value, str) and value.startswith("="):
        cell.data_type = "s"


def write_rows(columns: Sequence[str], rows: List[RowRecord]) -> bytes:
    """
    Serialise *rows* into a single-sheet workbook and return the .xlsx bytes.

    The header row is *columns*; each record contributes one data row in
    order, with missing keys written as empty strings.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_NAME

    for c, name in enumerate(columns, start=1):
        _write_cell(ws, 1, c, name)
    for r, row in enumerate(rows, start=2):
        for c, name in enumerate(columns, start=1):
            _write_cell(ws, r, c, row.get(name, ""))

    wb.properties.creator = "ollama-web-processor"
    wb.properties.created = _FIXED_TIMESTAMP
    wb.properties.modified = _FIXED_TIMESTAMP

    buf = io.BytesIO()
    # ExcelWriter directly, since save_workbook() overwrites ``modified``.
    archive = zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED, allowZip64=True)
    ExcelWriter(wb, archive).save()

    xlsx_bytes = _repack(buf.getvalue())
    logger.info(
        "  Wrote sheet '%s': %d row(s), %d bytes",
        SHEET_NAME,
        len(rows),
        len(xlsx_bytes),
    )
    return xlsx_bytes
