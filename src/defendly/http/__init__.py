# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP client exports."""

from .adapters import StubHttpClient, json_response
from .client import HttpClient, create_default_http_client
from .headers import content_length, header_value, normalize_headers
from .httpx_client import HttpxClient
from .models import Headers, HttpRequest, HttpResponse
from .url import build_query, join_url, quote_segment

__all__ = [
    "Headers",
    "HttpClient",
    "HttpxClient",
    "HttpRequest",
    "HttpResponse",
    "StubHttpClient",
    "build_query",
    "content_length",
    "create_default_http_client",
    "header_value",
    "join_url",
    "json_response",
    "normalize_headers",
    "quote_segment",
]
