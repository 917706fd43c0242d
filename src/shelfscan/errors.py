"""Error types shared by every component.

Transport problems (httpx errors, non-2xx statuses, undecodable or invalid
payloads) are translated into ``ShelfscanError`` at the fetcher boundary so
callers only ever handle one exception type. Cancellation is not an error and
is never wrapped.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    SEARCH_FAILED = "SEARCH_FAILED"
    SNAPSHOT_LOAD_FAILED = "SNAPSHOT_LOAD_FAILED"
    REFRESH_FAILED = "REFRESH_FAILED"
    CATALOG_UNAVAILABLE = "CATALOG_UNAVAILABLE"
    COMPARISON_FAILED = "COMPARISON_FAILED"
    INVALID_RESPONSE = "INVALID_RESPONSE"


class ShelfscanError(Exception):
    """Raised when a backend or upstream request cannot be completed."""

    def __init__(self, code: ErrorCode, message: str, recoverable: bool = True) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def __repr__(self) -> str:
        return f"ShelfscanError(code={self.code!s}, message={self.message!r})"
