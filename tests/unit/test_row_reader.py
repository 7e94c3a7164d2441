from __future__ import annotations

import datetime
from pathlib import Path

import pytest

from errors import DecodeError
from extractors.rows import normalise_cell, read_rows, rows_to_records

FIXTURES = Path(__file__).resolve().parent.parent / "fixtures"


def test_reads_first_sheet_in_order(make_xlsx, case_grid):
    columns, rows = read_rows(make_xlsx(case_grid))

    assert columns == ["Case Code", "Model NO.", "Title", "Problem"]
    assert [r["Case Code"] for r in rows] == ["C-001", "C-002", "C-003"]
    assert list(rows[0].keys()) == columns


def test_empty_cells_become_empty_strings(make_xlsx):
    columns, rows = read_rows(make_xlsx([["a", "b", "c"], [1, None, "x"], [None, 2, None]]))

    assert rows == [{"a": 1, "b": "", "c": "x"}, {"a": "", "b": 2, "c": ""}]


def test_blank_rows_are_skipped(make_xlsx):
    columns, rows = read_rows(make_xlsx([[None, None], ["id", "name"], [1, "Alice"], [None, None], [2, "Bob"]]))

    assert columns == ["id", "name"]
    assert [r["name"] for r in rows] == ["Alice", "Bob"]


def test_unnamed_and_duplicate_headers():
    columns, rows = rows_to_records([["Name", None, "Name", None], ["a", "b", "c", "d"]])

    assert columns == ["Name", "__EMPTY", "Name_1", "__EMPTY_1"]
    assert rows[0] == {"Name": "a", "__EMPTY": "b", "Name_1": "c", "__EMPTY_1": "d"}


def test_trailing_empty_columns_are_dropped():
    columns, rows = rows_to_records([["a", None, None], [1, None, None]])

    assert columns == ["a"]
    assert rows == [{"a": 1}]


def test_short_rows_are_padded():
    columns, rows = rows_to_records([["a", "b", "c"], [1]])

    assert rows == [{"a": 1, "b": "", "c": ""}]


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, ""),
        (3.0, 3),
        (2.5, 2.5),
        (True, True),
        ("text", "text"),
        (datetime.datetime(2024, 5, 1, 9, 30), "2024-05-01T09:30:00"),
        (datetime.date(2024, 5, 1), "2024-05-01"),
    ],
)
def test_normalise_cell(raw, expected):
    assert normalise_cell(raw) == expected


def test_header_only_sheet_has_no_rows(make_xlsx):
    columns, rows = read_rows(make_xlsx([["a", "b"]]))

    assert columns == ["a", "b"]
    assert rows == []


def test_non_spreadsheet_bytes_raise_decode_error():
    with pytest.raises(DecodeError):
        read_rows(b"Case Code,Title\nC-001,Crash\n")


def test_corrupt_xlsx_raises_decode_error():
    with pytest.raises(DecodeError):
        read_rows(b"PK\x03\x04" + b"\x00" * 64)


def test_corrupt_xls_raises_decode_error():
    with pytest.raises(DecodeError):
        read_rows(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 64)


def test_reads_legacy_xls_workbook():
    # cases.xls: one "Cases" sheet, Opened column formatted m/d/yy,
    # C-1 has no Note cell at all.
    columns, rows = read_rows((FIXTURES / "cases.xls").read_bytes())

    assert columns == ["Case Code", "Opened", "Note", "Urgent", "Count"]
    assert rows == [
        {
            "Case Code": "C-1",
            "Opened": "2024-05-01T00:00:00",
            "Note": "",
            "Urgent": True,
            "Count": 3,
        },
        {
            "Case Code": "C-2",
            "Opened": "2024-05-02T00:00:00",
            "Note": "follow up",
            "Urgent": False,
            "Count": 2.5,
        },
    ]
