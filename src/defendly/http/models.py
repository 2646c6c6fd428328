# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP request/response data models used across Defendly."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

Headers = dict[str, str]

RESPONSE_TOO_LARGE = "ResponseTooLarge"
TIMEOUT_ERROR = "TimeoutException"


@dataclass
class HttpRequest:
    """Normalized request representation consumed by HttpClient implementations."""

    url: str
    method: str = "GET"
    headers: Headers | None = None
    body: bytes | str | None = None
    timeout: float | None = None
    max_body_bytes: int | None = None


@dataclass
class HttpResponse:
    """
    Normalized HTTP response.

    `ok` reports transport success only: a 404 that arrived intact is `ok=True` with
    `status_code=404`. Transport failures carry `error_type`/`error_message` instead.
    """

    ok: bool
    status_code: int | None = None
    headers: Headers = field(default_factory=dict)
    text: str = ""
    content: bytes = b""
    url: str | None = None
    error_message: str | None = None
    error_type: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.ok and self.status_code is not None and 200 <= self.status_code < 300

    @property
    def timed_out(self) -> bool:
        return self.error_type == TIMEOUT_ERROR

    @property
    def too_large(self) -> bool:
        return self.error_type == RESPONSE_TOO_LARGE
