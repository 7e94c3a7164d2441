"""
HTTP entry point.

Usage:
    ollama-web-processor            (or: python server.py)

Endpoints:
    POST /api/process           upload a document (or raw text) for processing
    GET  /api/downloads/{token} fetch a processed spreadsheet
    GET  /api/health            is the Ollama server reachable?

Text documents come back inline.  Spreadsheets are kept in a short-lived
result store and a download URL is returned instead.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import dotenv
from fastapi import APIRouter, Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from ai.factory import get_decision_service
from ai.service import AIService
from config import Settings, get_settings
from dto.document import ProcessingMode
from dto.output import (
    ErrorResponse,
    HealthResponse,
    TabularProcessResponse,
    TextProcessResponse,
)
from errors import InvalidRequest, PayloadTooLarge, ProcessingError
from pipeline import TabularResult, detect_format, process_document, process_text
from store import ResultStore

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

router = APIRouter(prefix="/api")


# -------------------------------------------------------------------
# Dependencies
# -------------------------------------------------------------------


def get_ai_service(settings: Settings = Depends(get_settings)) -> AIService:
    return get_decision_service(settings=settings)


def get_result_store(request: Request) -> ResultStore:
    return request.app.state.result_store


def _parse_mode(processing_type: Optional[str]) -> ProcessingMode:
    try:
        return ProcessingMode.parse(processing_type)
    except ValueError as exc:
        raise InvalidRequest(str(exc)) from exc


# -------------------------------------------------------------------
# Routes
# -------------------------------------------------------------------


@router.post("/process")
async def process(
    file: Optional[UploadFile] = File(None),
    text: Optional[str] = Form(None),
    processing_type: Optional[str] = Form(None, alias="processingType"),
    custom_prompt: str = Form("", alias="customPrompt"),
    service: AIService = Depends(get_ai_service),
    store: ResultStore = Depends(get_result_store),
    settings: Settings = Depends(get_settings),
) -> Dict[str, Any]:
    has_file = file is not None and bool(file.filename)
    if not has_file and not text:
        raise InvalidRequest("No file or text provided")

    mode = _parse_mode(processing_type)
    if mode is ProcessingMode.FREEFORM and not custom_prompt.strip():
        raise InvalidRequest("A custom prompt is required in freeform mode")

    if has_file:
        filename = file.filename
        detect_format(filename)
        data = await file.read(settings.max_upload_bytes + 1)
        if len(data) > settings.max_upload_bytes:
            raise PayloadTooLarge(
                f"File exceeds the {settings.max_upload_bytes} byte upload limit"
            )
        logger.info("Processing upload '%s' (%d bytes, %s mode)", filename, len(data), mode.value)
        result = await process_document(data, filename, mode, service, custom_prompt)
    else:
        if len(text.encode("utf-8")) > settings.max_upload_bytes:
            raise PayloadTooLarge(
                f"Text exceeds the {settings.max_upload_bytes} byte upload limit"
            )
        logger.info("Processing inline text (%d chars, %s mode)", len(text), mode.value)
        result = await process_text(text, mode, service, custom_prompt)

    if isinstance(result, TabularResult):
        token = store.put(result.filename, result.content)
        logger.info(
            "Stored '%s' (%d rows, %d degraded) as %s",
            result.filename,
            result.rows,
            result.degraded_rows,
            token,
        )
        return TabularProcessResponse(
            download_url=f"/api/downloads/{token}",
            filename=result.filename,
            rows=result.rows,
            degraded_rows=result.degraded_rows,
        ).model_dump(by_alias=True)

    return TextProcessResponse(
        result=result.text,
        input_length=result.input_length,
    ).model_dump(by_alias=True)


@router.get("/downloads/{token}")
async def download(token: str, store: ResultStore = Depends(get_result_store)) -> Response:
    entry = store.get(token)
    if entry is None:
        return JSONResponse(
            status_code=404,
            content=ErrorResponse(error="Result not found or expired").model_dump(by_alias=True),
        )
    return Response(
        content=entry.content,
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(entry.filename)}"
        },
    )


@router.get("/health")
async def health(service: AIService = Depends(get_ai_service)) -> Dict[str, Any]:
    reachable = await service.is_available()
    return HealthResponse(
        ollama="connected" if reachable else "disconnected"
    ).model_dump(by_alias=True)


# -------------------------------------------------------------------
# Application
# -------------------------------------------------------------------


async def _processing_error_handler(request: Request, exc: ProcessingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Processing failed: %s", exc.message)
    else:
        logger.warning("Request rejected: %s", exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.message).model_dump(by_alias=True),
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(
        title="Ollama Web Processor",
        description="Transform documents and spreadsheets with a local Ollama model",
    )
    app.state.result_store = ResultStore(ttl_seconds=settings.result_ttl_seconds)
    app.add_exception_handler(ProcessingError, _processing_error_handler)
    app.include_router(router)
    return app


app = create_app()


def main() -> None:
    dotenv.load_dotenv()
    get_settings.cache_clear()
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    )

    import uvicorn

    logger.info("Ollama Web Processor listening on http://%s:%d", settings.host, settings.port)
    logger.info("Using model %s at %s", settings.ollama_model, settings.ollama_base_url)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
