"""
Row extraction — turns an uploaded spreadsheet into an ordered list of
row records (``column name -> cell value``).

Only the first worksheet is read.  The first non-blank row is the header;
every following non-blank row becomes one record.  Cells are normalised so
that every record carries every column:

  - empty / missing cells       → ``""``
  - integral floats (``3.0``)   → ``int``
  - dates, times, datetimes     → ISO-8601 strings
  - unnamed header cells        → ``__EMPTY``, ``__EMPTY_1``, …
  - duplicate header names      → ``Name``, ``Name_1``, …

``.xlsx`` workbooks are read with openpyxl, legacy ``.xls`` with xlrd.  The
container is sniffed from the leading bytes rather than trusted from the
file extension.
"""

from __future__ import annotations

import datetime
import io
import logging
from typing import Any, Dict, Iterable, List, Sequence, Tuple

import openpyxl
import xlrd

from dto.document import CellValue, RowRecord
from errors import DecodeError

logger = logging.getLogger(__name__)

_ZIP_MAGIC = b"PK\x03\x04"
_OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

_EMPTY_HEADER = "__EMPTY"


# ---------------------------------------------------------------------------
# Cell normalisation
# ---------------------------------------------------------------------------


def normalise_cell(value: Any) -> CellValue:
    """Map a raw cell value onto the small set of types a RowRecord holds."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else value
    if isinstance(value, str):
        return value
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    return str(value)


def _header_names(raw_header: Sequence[CellValue]) -> List[str]:
    names: List[str] = []
    seen: Dict[str, int] = {}
    for value in raw_header:
        base = str(value) if value != "" else _EMPTY_HEADER
        if base in seen:
            seen[base] += 1
            name = f"{base}_{seen[base]}"
            while name in seen:
                seen[base] += 1
                name = f"{base}_{seen[base]}"
        else:
            name = base
        seen[name] = 0
        names.append(name)
    return names


def _is_blank(row: Sequence[CellValue]) -> bool:
    return all(v == "" for v in row)


def rows_to_records(raw_rows: Iterable[Sequence[Any]]) -> Tuple[List[str], List[RowRecord]]:
    """
    Convert a grid of raw cell values into ``(columns, records)``.

    Trailing columns that are empty in the header and in every data row
    (typically formatted-but-empty cells) are dropped.
    """
    grid = [[normalise_cell(v) for v in row] for row in raw_rows]
    grid = [row for row in grid if not _is_blank(row)]
    if not grid:
        return [], []

    width = max(len(row) for row in grid)
    while width > 0 and all(len(row) < width or row[width - 1] == "" for row in grid):
        width -= 1

    padded = [list(row[:width]) + [""] * (width - len(row[:width])) for row in grid]
    columns = _header_names(padded[0])
    records: List[RowRecord] = [dict(zip(columns, row)) for row in padded[1:]]
    return columns, records


# ---------------------------------------------------------------------------
# Container readers
# ---------------------------------------------------------------------------


def _read_xlsx(data: bytes) -> List[Tuple[Any, ...]]:
    try:
        wb = openpyxl.load_workbook(io.BytesIO(data), data_only=True)
    except Exception as exc:
        raise DecodeError(f"Could not read .xlsx workbook: {exc}") from exc

    try:
        if not wb.worksheets:
            raise DecodeError("Workbook contains no worksheets")
        ws = wb.worksheets[0]
        logger.debug("  Reading sheet '%s' (%d rows)", ws.title, ws.max_row)
        return list(ws.iter_rows(values_only=True))
    finally:
        wb.close()


def _read_xls(data: bytes) -> List[List[Any]]:
    try:
        book = xlrd.open_workbook(file_contents=data)
    except Exception as exc:
        raise DecodeError(f"Could not read .xls workbook: {exc}") from exc

    if book.nsheets == 0:
        raise DecodeError("Workbook contains no worksheets")
    sheet = book.sheet_by_index(0)
    logger.debug("  Reading sheet '%s' (%d rows)", sheet.name, sheet.nrows)

    rows: List[List[Any]] = []
    for r in range(sheet.nrows):
        row: List[Any] = []
        for cell in sheet.row(r):
            if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
                row.append(None)
            elif cell.ctype == xlrd.XL_CELL_DATE:
                row.append(xlrd.xldate.xldate_as_datetime(cell.value, book.datemode))
            elif cell.ctype == xlrd.XL_CELL_BOOLEAN:
                row.append(bool(cell.value))
            elif cell.ctype == xlrd.XL_CELL_ERROR:
                row.append(xlrd.error_text_from_code.get(cell.value, ""))
            else:
                row.append(cell.value)
        rows.append(row)
    return rows


def read_rows(data: bytes) -> Tuple[List[str], List[RowRecord]]:
    """
    Decode spreadsheet bytes into ``(columns, records)`` from the first sheet.

    Raises ``DecodeError`` if *data* is not a readable .xlsx / .xls container.
    """
    if data.startswith(_ZIP_MAGIC):
        raw_rows = _read_xlsx(data)
    elif data.startswith(_OLE_MAGIC):
        raw_rows = _read_xls(data)
    else:
        raise DecodeError("Upload is not a spreadsheet (.xlsx or .xls) file")

    columns, records = rows_to_records(raw_rows)
    logger.info("  -> %d row(s), %d column(s)", len(records), len(columns))
    return columns, records
