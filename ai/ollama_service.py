"""
AIService implementation backed by a local Ollama server.

Uses the non-streaming ``/api/generate`` endpoint:

    request:  {"model": "<id>", "prompt": "<text>", "stream": false}
    reply:    {"model": "<id>", "response": "<text>", "done": true, ...}

Transport failures are split in two:
  - the server is down, slow or busy      → ServiceUnreachable
  - the server answered with garbage      → MalformedServiceResponse

No retries here; inference can take minutes, so the timeout is generous and
configurable.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ai.service import AIService
from errors import MalformedServiceResponse, ServiceUnreachable

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "http://localhost:11434"
_DEFAULT_MODEL = "qwen3:latest"
_DEFAULT_TIMEOUT_SECONDS = 600.0
_HEALTH_TIMEOUT_SECONDS = 5.0

# Statuses that mean "try again later" rather than "bad reply".
_BUSY_STATUSES = frozenset({429, 502, 503, 504})


class OllamaService(AIService):
    """AIService backed by the Ollama HTTP API."""

    def __init__(
        self,
        model: str = _DEFAULT_MODEL,
        base_url: str = _DEFAULT_BASE_URL,
        timeout: float = _DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def model(self) -> str:
        return self._model

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            transport=self._transport,
        )

    async def get_decision(self, prompt: str) -> str:
        payload = {"model": self._model, "prompt": prompt, "stream": False}
        logger.info(
            "  [Ollama] Sending prompt to %s (%d chars)", self._model, len(prompt)
        )

        try:
            async with self._client(self._timeout) as client:
                response = await client.post("/api/generate", json=payload)
        except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
            raise ServiceUnreachable(
                f"Failed to connect to Ollama at {self._base_url}: {exc}"
            ) from exc
        except httpx.HTTPError as exc:
            raise MalformedServiceResponse(
                f"Invalid response from Ollama: {exc}"
            ) from exc

        if response.status_code in _BUSY_STATUSES:
            raise ServiceUnreachable(
                f"Ollama is busy or unavailable (HTTP {response.status_code})"
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise MalformedServiceResponse("Failed to parse Ollama response") from exc

        if response.is_error:
            detail = body.get("error") if isinstance(body, dict) else None
            raise MalformedServiceResponse(
                f"Ollama returned HTTP {response.status_code}: {detail or response.text[:200]}"
            )

        text = body.get("response") if isinstance(body, dict) else None
        if not isinstance(text, str):
            raise MalformedServiceResponse(
                "Ollama response envelope has no 'response' text"
            )

        logger.info("  [Ollama] Received reply (%d chars)", len(text))
        return text

    async def is_available(self) -> bool:
        try:
            async with self._client(_HEALTH_TIMEOUT_SECONDS) as client:
                response = await client.get("/api/tags")
        except httpx.HTTPError:
            return False
        return response.status_code == 200
