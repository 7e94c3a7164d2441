from __future__ import annotations

import json

import pytest
from tenacity import wait_none

import cli
from ai.service import AIService
from dto.document import ProcessingMode
from errors import ExtractionError, ServiceUnreachable
from extractors.rows import read_rows


class FlakyService(AIService):
    """Fails with ServiceUnreachable a fixed number of times, then answers."""

    def __init__(self, failures: int, reply: str):
        self.failures = failures
        self.reply = reply
        self.calls = 0

    async def get_decision(self, prompt: str) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise ServiceUnreachable("Connection refused")
        return self.reply

    async def is_available(self) -> bool:
        return True


@pytest.mark.asyncio
async def test_no_retry_by_default():
    service = FlakyService(failures=1, reply="ok")

    with pytest.raises(ServiceUnreachable):
        await cli.run_with_retries(b"hi", "note.txt", ProcessingMode.FREEFORM, service, "Echo")

    assert service.calls == 1


@pytest.mark.asyncio
async def test_retries_unreachable_service():
    service = FlakyService(failures=2, reply="ok")

    result = await cli.run_with_retries(
        b"hi", "note.txt", ProcessingMode.FREEFORM, service, "Echo", retries=2, wait=wait_none()
    )

    assert result.text == "ok"
    assert service.calls == 3


@pytest.mark.asyncio
async def test_extraction_errors_are_not_retried(make_xlsx):
    service = FlakyService(failures=0, reply="no array here")

    with pytest.raises(ExtractionError):
        await cli.run_with_retries(
            make_xlsx([["a"], [1]]),
            "sheet.xlsx",
            ProcessingMode.STRUCTURED,
            service,
            retries=3,
            wait=wait_none(),
        )

    assert service.calls == 1


def test_main_writes_processed_workbook(tmp_path, monkeypatch, make_xlsx, case_grid):
    reply = json.dumps(
        [{"Module": "Display", "Summarized Problem": "Screen flickers.", "Severity": "Medium"}]
    )
    monkeypatch.setattr(cli, "get_decision_service", lambda **kwargs: FlakyService(0, reply))
    source = tmp_path / "cases.xlsx"
    source.write_bytes(make_xlsx(case_grid))

    assert cli.main([str(source), "--mode", "structured"]) == 0

    columns, rows = read_rows((tmp_path / "processed-cases.xlsx").read_bytes())
    assert columns[-3:] == ["Module", "Summarized Problem", "Severity"]
    assert len(rows) == 3
    assert rows[0]["Severity"] == "Medium"
    assert rows[2]["Module"] == ""


def test_main_writes_text_reply(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "get_decision_service", lambda **kwargs: FlakyService(0, "short summary"))
    source = tmp_path / "notes.md"
    source.write_text("# Notes\nlong text", encoding="utf-8")
    output = tmp_path / "out.txt"

    assert cli.main([str(source), "--prompt", "Summarise", "-o", str(output)]) == 0
    assert output.read_text(encoding="utf-8") == "short summary"


def test_main_requires_prompt_in_freeform_mode(tmp_path):
    source = tmp_path / "notes.txt"
    source.write_text("text", encoding="utf-8")

    assert cli.main([str(source)]) == 2


def test_main_reports_failure(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "get_decision_service", lambda **kwargs: FlakyService(5, "x"))
    source = tmp_path / "notes.txt"
    source.write_text("text", encoding="utf-8")

    assert cli.main([str(source), "-p", "Summarise"]) == 1
    assert not (tmp_path / "processed-notes.txt").exists()
