"""
Response DTOs for the HTTP API.

Field names are serialised in camelCase to match the browser client.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TextProcessResponse(_ApiModel):
    success: bool = True
    result: str
    input_length: int


class TabularProcessResponse(_ApiModel):
    success: bool = True
    download_url: str
    filename: str
    rows: int
    degraded_rows: int = 0


class ErrorResponse(_ApiModel):
    success: bool = False
    error: str


class HealthResponse(_ApiModel):
    status: str = "ok"
    ollama: str
