"""
Exception hierarchy for the document processing pipeline.

Every error carries the HTTP status the API layer reports it with, so the
server can translate failures without a lookup table of its own.
"""

from __future__ import annotations


class ProcessingError(Exception):
    """Base class for all pipeline and boundary failures."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DecodeError(ProcessingError):
    """The uploaded bytes are not a readable spreadsheet / UTF-8 text."""

    status_code = 422


class ServiceUnreachable(ProcessingError):
    """The model service refused the connection, timed out, or is busy.

    Retryable by the caller.
    """

    status_code = 503


class MalformedServiceResponse(ProcessingError):
    """The model service answered, but not with a valid reply envelope."""

    status_code = 502


class ExtractionError(ProcessingError):
    """No JSON array could be located in an otherwise successful reply."""

    status_code = 502


class PayloadTooLarge(ProcessingError):
    status_code = 413


class UnsupportedFormat(ProcessingError):
    status_code = 415


class InvalidRequest(ProcessingError):
    """The upload form is incomplete or inconsistent."""

    status_code = 400
