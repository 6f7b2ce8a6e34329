"""Exception types raised by the generation pipeline.

Request-level errors abort a submission before any work starts. Document and
generation errors are scoped to one uploaded file or one generation task and
are collected into the request outcome instead of propagating.
"""
from typing import Optional


class ExamIQError(Exception):
    """Base exception for pipeline errors."""

    status_code: int = 500
    error_code: str = "examiq_error"

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidRequest(ExamIQError):
    """Generation request failed validation; nothing was dispatched."""

    status_code = 422
    error_code = "invalid_request"


class DocumentError(ExamIQError):
    """Base class for per-document extraction failures."""

    status_code = 422
    error_code = "document_error"

    def __init__(self, source_name: str, message: str):
        super().__init__(message, details={"source_name": source_name})
        self.source_name = source_name


class UnsupportedFormat(DocumentError):
    """Document has no declared format or one without an extractor."""

    error_code = "unsupported_format"


class ExtractionFailed(DocumentError):
    """Document could not be decoded or produced no text."""

    error_code = "extraction_failed"


class GenerationError(ExamIQError):
    """Base class for per-task generation failures."""

    status_code = 502
    error_code = "generation_error"


class BackendError(GenerationError):
    """Generative backend call failed (transport, timeout, or provider error).

    ``transient`` marks failures that may succeed when retried, such as
    timeouts, connection resets and rate limits.
    """

    error_code = "backend_error"

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message, details={"transient": transient})
        self.transient = transient


class SchemaViolation(GenerationError):
    """Backend output did not match the task's output contract."""

    error_code = "schema_violation"
