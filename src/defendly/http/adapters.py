# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""In-process HttpClient implementations."""

from __future__ import annotations

import json
from typing import Any

from .client import HttpClient
from .models import HttpRequest, HttpResponse


def json_response(payload: Any, status_code: int = 200, headers: dict[str, str] | None = None) -> HttpResponse:
    """Build a successful JSON HttpResponse (handy for stubs and tests)."""
    text = json.dumps(payload)
    merged = {"content-type": "application/json"}
    merged.update(headers or {})
    return HttpResponse(ok=True, status_code=status_code, headers=merged, text=text, content=text.encode("utf-8"))


class StubHttpClient(HttpClient):
    """Deterministic, programmable HttpClient for tests."""

    def __init__(self, responses: dict[str, HttpResponse] | None = None):
        self._responses = responses or {}
        self.requests: list[HttpRequest] = []
        self.closed = False

    def add(self, url: str, response: HttpResponse) -> None:
        self._responses[url] = response

    async def request(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        if request.url in self._responses:
            return self._responses[request.url]
        return HttpResponse(ok=True, status_code=404, text="", url=request.url)

    async def aclose(self) -> None:
        self.closed = True
