from __future__ import annotations
from typing import Optional


class IngestError(Exception):
    """Base class for pipeline stage failures; `code` names the failure mode."""

    code: str = "UNKNOWN"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def __str__(self) -> str:
        return self.message


class ConversionError(IngestError):
    TIMEOUT = "TIMEOUT"
    SIZE_EXCEEDED = "SIZE_EXCEEDED"
    EXIT_NON_ZERO = "EXIT_NON_ZERO"
    SPAWN_FAILURE = "SPAWN_FAILURE"

    def __init__(
        self,
        code: str,
        message: str,
        exit_code: Optional[int] = None,
        stderr: Optional[str] = None,
    ):
        super().__init__(message, code)
        self.exit_code = exit_code
        self.stderr = stderr


class EmbeddingError(IngestError):
    DIMENSION_MISMATCH = "DIMENSION_MISMATCH"
    SERVICE_FAILURE = "SERVICE_FAILURE"

    def __init__(self, code: str, message: str):
        super().__init__(message, code)


class StorageError(IngestError):
    TRANSACTION_FAILURE = "TRANSACTION_FAILURE"

    def __init__(self, message: str, code: str = TRANSACTION_FAILURE):
        super().__init__(message, code)
