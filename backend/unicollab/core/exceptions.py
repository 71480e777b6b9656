"""
Pipeline error taxonomy.

Every error that may cross a stage boundary derives from PipelineError and
carries the HTTP status and stable error_code the API layer renders.
Stages raise; the coordinator and route handlers decide what the caller sees.

  InputError            400  missing file / user id, user-correctable
  PayloadTooLargeError  413  upload above the configured byte ceiling
  ExtractionError       400  corrupt, scanned or near-empty document
  NotFoundError         404  referenced material or raw text missing
  StorageError          500  object storage upload failed
  PersistenceError      500  relational store read/write failed
  AIProviderError       500  completion provider transport/payload failure
  PipelineTimeoutError  504  end-to-end deadline exceeded

AIParseError is the odd one out: it describes malformed structured output
from a successful provider call and is only ever returned as a value on a
parse result, never raised out of the enrichment client.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for errors rendered by the API exception handler."""

    status_code: int = 500
    error_code:  str = "INTERNAL_ERROR"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, *, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.detail  = detail
        super().__init__(self.message)


class InputError(PipelineError):
    status_code = 400
    error_code = "INVALID_INPUT"
    default_message = "The request is missing required fields."


class PayloadTooLargeError(InputError):
    status_code = 413
    error_code = "FILE_TOO_LARGE"
    default_message = "File too large!"


class ExtractionError(PipelineError):
    status_code = 400
    error_code = "UNREADABLE_DOCUMENT"
    default_message = "PDF is empty or unreadable."


class NotFoundError(PipelineError):
    status_code = 404
    error_code = "NOT_FOUND"
    default_message = "Material text not found."


class StorageError(PipelineError):
    error_code = "STORAGE_ERROR"
    default_message = "Failed to store the document."


class PersistenceError(PipelineError):
    error_code = "PERSISTENCE_ERROR"
    default_message = "Failed to save to the database."


class AIProviderError(PipelineError):
    error_code = "AI_PROVIDER_ERROR"
    default_message = "AI Provider failed."


class PipelineTimeoutError(PipelineError):
    status_code = 504
    error_code = "PIPELINE_TIMEOUT"
    default_message = "Processing took too long. Please retry with a smaller document."


class AIParseError(Exception):
    """Provider reply did not match the expected summary/JSON-array grammar."""

    def __init__(self, reason: str, raw_excerpt: str = "") -> None:
        self.reason      = reason
        self.raw_excerpt = raw_excerpt[:200]
        super().__init__(reason)
