"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import io
from typing import Any, List, Optional, Sequence

import openpyxl
import pytest
from fastapi.testclient import TestClient

from ai.service import AIService
from config import Settings, get_settings
from server import create_app, get_ai_service


class FakeAIService(AIService):
    """In-memory stand-in for the model gateway; records every prompt."""

    def __init__(
        self,
        reply: str = "",
        error: Optional[Exception] = None,
        available: bool = True,
    ):
        self.reply = reply
        self.error = error
        self.available = available
        self.prompts: List[str] = []

    async def get_decision(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply

    async def is_available(self) -> bool:
        return self.available


def build_xlsx(grid: Sequence[Sequence[Any]]) -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    for row in grid:
        ws.append(list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture
def make_xlsx():
    """Factory: list of rows (header first) -> .xlsx bytes."""
    return build_xlsx


@pytest.fixture
def fake_service() -> FakeAIService:
    return FakeAIService()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def case_grid() -> List[List[Any]]:
    return [
        ["Case Code", "Model NO.", "Title", "Problem"],
        ["C-001", "X100", "[HW] Screen flicker", "Display flickers after boot"],
        ["C-002", "X200", "Battery", "La batería se agota rápido"],
        ["C-003", "X100", "[SW][UI] Crash", "App crashes on launch"],
    ]


@pytest.fixture
def test_client(fake_service: FakeAIService, settings: Settings) -> TestClient:
    """FastAPI test client wired to the fake model service."""
    app = create_app(settings)
    app.dependency_overrides[get_ai_service] = lambda: fake_service
    app.dependency_overrides[get_settings] = lambda: settings
    return TestClient(app)
