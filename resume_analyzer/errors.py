"""Error kinds raised by the services and their HTTP status mapping."""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    EXTRACTION_FAILED = "extraction_failed"
    SERVICE_NOT_CONFIGURED = "service_not_configured"
    ANALYSIS_FAILED = "analysis_failed"
    PERSISTENCE_FAILED = "persistence_failed"
    INTERNAL = "internal"


STATUS_BY_KIND = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.EXTRACTION_FAILED: 400,
    ErrorKind.SERVICE_NOT_CONFIGURED: 503,
    ErrorKind.ANALYSIS_FAILED: 500,
    ErrorKind.PERSISTENCE_FAILED: 500,
    ErrorKind.INTERNAL: 500,
}


class ServiceError(Exception):
    """Base error carrying a kind and a client-safe message"""

    kind: ErrorKind

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


class InvalidInputError(ServiceError):
    kind = ErrorKind.INVALID_INPUT


class ExtractionError(ServiceError):
    kind = ErrorKind.EXTRACTION_FAILED


class ServiceNotConfiguredError(ServiceError):
    kind = ErrorKind.SERVICE_NOT_CONFIGURED


class AnalysisFailedError(ServiceError):
    kind = ErrorKind.ANALYSIS_FAILED


class PersistenceError(ServiceError):
    """Supabase rejected or failed a write; keeps the PostgREST code and hint"""

    kind = ErrorKind.PERSISTENCE_FAILED

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        code: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        super().__init__(message, details)
        self.code = code
        self.hint = hint


class InternalServerError(ServiceError):
    """Unexpected failure inside a request pipeline"""

    kind = ErrorKind.INTERNAL
