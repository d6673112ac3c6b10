"""
Error taxonomy for the ingest send path.

Every failure raised while delivering a chunk is a ``HumioLogError``. The
flusher only distinguishes retryable from non-retryable failures; producers
never see any of these.
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    SERIALIZATION = "serialization"
    REQUEST = "request"
    TRANSPORT = "transport"
    REJECTED = "rejected"


class HumioLogError(Exception):
    """Base error carrying a category and the underlying cause."""

    category: ErrorCategory = ErrorCategory.TRANSPORT
    retryable: bool = True

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class SerializationError(HumioLogError):
    """The request payload could not be encoded as JSON.

    Retrying cannot help, so the flusher drops the chunk.
    """

    category = ErrorCategory.SERIALIZATION
    retryable = False


class RequestBuildError(HumioLogError):
    """URL, headers or body could not be composed into a request."""

    category = ErrorCategory.REQUEST


class TransportError(HumioLogError):
    """DNS, TCP, TLS or HTTP client failure."""

    category = ErrorCategory.TRANSPORT


class RetryableStatusError(TransportError):
    """Completed response whose status is worth retrying (408, 429, 5xx)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.status_code = status_code


class IngestRejectedError(HumioLogError):
    """Completed response the endpoint will keep refusing (other 4xx)."""

    category = ErrorCategory.REJECTED
    retryable = False

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


__all__ = [
    "ErrorCategory",
    "HumioLogError",
    "IngestRejectedError",
    "RequestBuildError",
    "RetryableStatusError",
    "SerializationError",
    "TransportError",
]
