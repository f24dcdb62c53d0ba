"""
Error Taxonomy
Typed failures raised by the analysis client, storage and upload layers.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Cause of a failure, independent of the exception type."""
    RATE_LIMIT = "rate_limit"
    AUTH = "auth"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    SERVICE_UNAVAILABLE = "service_unavailable"
    CONTENT_BLOCKED = "content_blocked"
    MALFORMED_RESPONSE = "malformed_response"
    STORAGE = "storage"
    VALIDATION = "validation"
    UNEXPECTED = "unexpected"


class LegalLensError(Exception):
    """Base class for all application failures."""
    kind = ErrorKind.UNEXPECTED

    def __init__(self, message: str, kind: ErrorKind | None = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind


class AnalysisError(LegalLensError):
    """Classified failure of a primary-path AI call."""


class StorageError(LegalLensError):
    """Persisting a value failed."""
    kind = ErrorKind.STORAGE


class InputValidationError(LegalLensError):
    """Bad input rejected before reaching the AI backend."""
    kind = ErrorKind.VALIDATION


class UploadStateError(LegalLensError):
    """Operation not allowed for the current batch or item status."""
    kind = ErrorKind.VALIDATION


# Checked in order, first match wins
_CLASSIFICATION = [
    (
        ErrorKind.RATE_LIMIT,
        ("429", "quota", "resource exhausted", "rate limit", "rate_limit"),
        "AI usage limit exceeded. Please try again in a few moments.",
    ),
    (
        ErrorKind.AUTH,
        ("401", "403", "key", "permission"),
        "Authentication failed. Please check the system configuration.",
    ),
    (
        ErrorKind.PAYLOAD_TOO_LARGE,
        ("413", "too large"),
        "The document is too large for the AI to process.",
    ),
    (
        ErrorKind.SERVICE_UNAVAILABLE,
        ("503", "529", "overloaded", "unavailable"),
        "AI service is temporarily unavailable. Please retry.",
    ),
    (
        ErrorKind.CONTENT_BLOCKED,
        ("safety", "blocked"),
        "The document was flagged by safety settings and could not be analyzed.",
    ),
    (
        ErrorKind.MALFORMED_RESPONSE,
        ("json", "parse"),
        "Received an invalid response format from AI. Please retry.",
    ),
]

UNEXPECTED_MESSAGE = "An unexpected error occurred during processing."


def classify_error(error: BaseException) -> LegalLensError:
    """Map a raw backend exception to exactly one error kind."""
    if isinstance(error, LegalLensError):
        return error

    raw_message = str(error)
    if not raw_message:
        return AnalysisError(UNEXPECTED_MESSAGE, ErrorKind.UNEXPECTED)

    message = raw_message.lower()
    for kind, needles, user_message in _CLASSIFICATION:
        if any(needle in message for needle in needles):
            return AnalysisError(user_message, kind)

    return AnalysisError(f"Processing failed: {raw_message}", ErrorKind.UNEXPECTED)


_STATUS_CODES = {
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.AUTH: 502,
    ErrorKind.PAYLOAD_TOO_LARGE: 413,
    ErrorKind.SERVICE_UNAVAILABLE: 503,
    ErrorKind.CONTENT_BLOCKED: 422,
    ErrorKind.MALFORMED_RESPONSE: 502,
    ErrorKind.STORAGE: 507,
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNEXPECTED: 500,
}


def status_code_for(kind: ErrorKind) -> int:
    """HTTP status used when an error of this kind reaches a router."""
    return _STATUS_CODES[kind]
