"""
Document processor — CLI entry point.

Usage:
    ollama-process <file> [--mode structured|freeform] [--prompt <text>]
                          [--model <name>] [--output <path>] [--retries N]

Runs the same pipeline as the HTTP service against a local file.
Spreadsheets are written as .xlsx, everything else as the model's raw
reply in a .txt file.

``--retries`` re-submits the whole request when the model server is
unreachable; other failures are never retried.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

import dotenv
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ai.factory import get_decision_service
from ai.service import AIService
from config import get_settings
from dto.document import ProcessingMode
from errors import ProcessingError, ServiceUnreachable
from pipeline import TabularResult, TextResult, process_document

logger = logging.getLogger(__name__)

_MIN_WAIT_SECONDS = 2
_MAX_WAIT_SECONDS = 60


async def run_with_retries(
    data: bytes,
    filename: str,
    mode: ProcessingMode,
    service: AIService,
    instruction: Optional[str] = None,
    retries: int = 0,
    wait=None,
) -> Union[TextResult, TabularResult]:
    """Run the pipeline, re-submitting up to *retries* times on ServiceUnreachable."""
    retrying = AsyncRetrying(
        retry=retry_if_exception_type(ServiceUnreachable),
        stop=stop_after_attempt(retries + 1),
        wait=wait or wait_exponential(multiplier=1, min=_MIN_WAIT_SECONDS, max=_MAX_WAIT_SECONDS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await process_document(data, filename, mode, service, instruction)


def _default_output(input_path: Path, result: Union[TextResult, TabularResult]) -> Path:
    if isinstance(result, TabularResult):
        return input_path.with_name(result.filename)
    return input_path.with_name(f"processed-{input_path.stem}.txt")


def main(argv: Optional[list] = None) -> int:
    dotenv.load_dotenv()
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    )

    parser = argparse.ArgumentParser(
        description="Transform a document or spreadsheet with a local Ollama model.",
    )
    parser.add_argument("file", help="Path to the document (.txt .md .json .csv .log .xls .xlsx)")
    parser.add_argument(
        "-m",
        "--mode",
        default="freeform",
        help="structured (fixed problem-analysis schema) or freeform (default)",
    )
    parser.add_argument("-p", "--prompt", default="", help="Custom instruction for freeform mode")
    parser.add_argument("--model", default=None, help="Ollama model (default: OLLAMA_MODEL)")
    parser.add_argument("-o", "--output", default=None, help="Output file path")
    parser.add_argument(
        "--retries",
        type=int,
        default=0,
        help="Times to re-submit when the Ollama server is unreachable (default: 0)",
    )
    args = parser.parse_args(argv)

    if not os.path.isfile(args.file):
        logger.error("File not found: %s", args.file)
        return 1

    try:
        mode = ProcessingMode.parse(args.mode)
    except ValueError as exc:
        logger.error("%s", exc)
        return 2
    if mode is ProcessingMode.FREEFORM and not args.prompt.strip():
        logger.error("--prompt is required in freeform mode")
        return 2

    input_path = Path(args.file)
    service = get_decision_service(model=args.model, settings=settings)

    try:
        result = asyncio.run(
            run_with_retries(
                input_path.read_bytes(),
                input_path.name,
                mode,
                service,
                args.prompt,
                retries=max(args.retries, 0),
            )
        )
    except ProcessingError as exc:
        logger.error("Processing failed: %s", exc.message)
        return 1

    output_path = Path(args.output) if args.output else _default_output(input_path, result)
    if isinstance(result, TabularResult):
        output_path.write_bytes(result.content)
        logger.info("Wrote %d row(s) (%d degraded) to %s", result.rows, result.degraded_rows, output_path)
    else:
        output_path.write_text(result.text, encoding="utf-8")
        logger.info("Wrote model reply to %s", output_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
