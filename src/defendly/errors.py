# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

DATASET_TOO_LARGE_PREFIX = "DATASET_TOO_LARGE:"
NOT_FOUND_STATUSES = frozenset({404, 405, 501})


class ErrorCategory(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    DATASET_TOO_LARGE = "DATASET_TOO_LARGE"
    TIMEOUT = "TIMEOUT"
    HTTP_ERROR = "HTTP_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    NONE = "NONE"


class DefendlyError(Exception):
    """Base class for errors raised by the Defendly client."""


class ApiError(DefendlyError):
    """A backend call that did not produce a usable payload."""

    def __init__(self, message: str, status_code: int | None = None, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    @property
    def is_timeout(self) -> bool:
        return False

    @property
    def is_dataset_too_large(self) -> bool:
        return False

    @property
    def is_not_found(self) -> bool:
        """Route-level absence (404/405/501) that allows probing the next candidate."""
        return self.status_code in NOT_FOUND_STATUSES

    @property
    def category(self) -> ErrorCategory:
        return categorize_exception(self)


class ApiTimeoutError(ApiError):
    def __init__(self, message: str = "Request timed out; the server may be slow, try again later"):
        super().__init__(message, status_code=408)

    @property
    def is_timeout(self) -> bool:
        return True


class DatasetTooLargeError(ApiError):
    def __init__(self, response_size: int, limit: int):
        size_mb = response_size / 1024 / 1024
        message = (
            f"{DATASET_TOO_LARGE_PREFIX} Dataset too large ({size_mb:.2f}MB, limit {limit} bytes). "
            "Please use filters or contact support for data export."
        )
        super().__init__(message, status_code=413)
        self.response_size = response_size
        self.limit = limit

    @property
    def is_dataset_too_large(self) -> bool:
        return True


class AuthenticationError(DefendlyError):
    """Login failed or returned no usable token."""


def categorize_exception(exc: BaseException) -> ErrorCategory:
    """
    Map Defendly/httpx exceptions to ErrorCategory.
    """
    import socket

    import httpx

    if isinstance(exc, ApiError):
        if exc.is_dataset_too_large:
            return ErrorCategory.DATASET_TOO_LARGE
        if exc.is_timeout:
            return ErrorCategory.TIMEOUT
        if exc.is_not_found:
            return ErrorCategory.NOT_FOUND
        if exc.status_code is not None:
            return ErrorCategory.HTTP_ERROR
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, httpx.TimeoutException):
        return ErrorCategory.TIMEOUT

    if isinstance(exc, (httpx.ConnectError, httpx.RemoteProtocolError, httpx.NetworkError, httpx.ProxyError)):
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, (socket.gaierror, ConnectionError)):
        return ErrorCategory.CONNECTION_ERROR

    return ErrorCategory.UNKNOWN_ERROR


def error_category_to_reason(category: Optional[ErrorCategory]) -> str:
    """User-facing reason string."""
    mapping = {
        ErrorCategory.NOT_FOUND: "The requested record was not found",
        ErrorCategory.DATASET_TOO_LARGE: "The dataset is too large to load here; narrow the request or export it from the web console",
        ErrorCategory.TIMEOUT: "Request timed out; the server may be slow, try again later",
        ErrorCategory.HTTP_ERROR: "The server rejected the request",
        ErrorCategory.CONNECTION_ERROR: "Network connectivity issue",
        ErrorCategory.UNKNOWN_ERROR: "Unexpected error while talking to the server",
        ErrorCategory.NONE: "",
        None: "",
    }
    return mapping.get(category, "Request failed due to a network error")


__all__ = [
    "ApiError",
    "ApiTimeoutError",
    "AuthenticationError",
    "DATASET_TOO_LARGE_PREFIX",
    "DatasetTooLargeError",
    "DefendlyError",
    "ErrorCategory",
    "NOT_FOUND_STATUSES",
    "categorize_exception",
    "error_category_to_reason",
]
