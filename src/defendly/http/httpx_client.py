# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed HttpClient implementation."""

from __future__ import annotations

import logging

import httpx

from ..config import ApiSettings, load_api_settings
from .client import HttpClient
from .headers import content_length, normalize_headers
from .models import RESPONSE_TOO_LARGE, TIMEOUT_ERROR, HttpRequest, HttpResponse

logger = logging.getLogger(__name__)


class HttpxClient(HttpClient):
    """Asynchronous httpx client wrapper."""

    def __init__(self, settings: ApiSettings | None = None, client: httpx.AsyncClient | None = None):
        self.settings = settings or load_api_settings()
        self._client = client or httpx.AsyncClient(
            timeout=self.settings.timeout,
            verify=self.settings.verify_ssl,
        )

    async def request(self, request: HttpRequest) -> HttpResponse:
        headers = dict(request.headers or {})
        headers.setdefault("User-Agent", self.settings.user_agent)

        max_body_bytes = request.max_body_bytes
        if max_body_bytes is None:
            max_body_bytes = self.settings.max_response_bytes
        timeout = request.timeout if request.timeout is not None else self.settings.timeout

        try:
            async with self._client.stream(
                request.method,
                request.url,
                headers=headers,
                content=request.body,
                timeout=timeout,
            ) as resp:
                response_headers = normalize_headers(resp.headers)
                declared = content_length(response_headers)
                if max_body_bytes > 0 and declared is not None and declared > max_body_bytes:
                    # Reject before reading; closing the stream drops the connection.
                    await resp.aclose()
                    return _too_large(resp, response_headers, declared, max_body_bytes)

                content = bytearray()
                async for chunk in resp.aiter_bytes():
                    if not chunk:
                        continue
                    content.extend(chunk)
                    if max_body_bytes > 0 and len(content) > max_body_bytes:
                        await resp.aclose()
                        return _too_large(resp, response_headers, len(content), max_body_bytes)

                encoding = resp.encoding or "utf-8"
                try:
                    text = bytes(content).decode(encoding, errors="replace")
                except LookupError:
                    text = bytes(content).decode("utf-8", errors="replace")

            return HttpResponse(
                ok=True,
                status_code=resp.status_code,
                headers=response_headers,
                text=text,
                content=bytes(content),
                url=str(resp.url),
                meta={"body_bytes_read": len(content), "body_bytes_limit": max_body_bytes},
            )
        except httpx.TimeoutException as exc:
            return HttpResponse(
                ok=False,
                url=request.url,
                error_message=str(exc) or f"Timed out after {timeout}s",
                error_type=TIMEOUT_ERROR,
            )
        except Exception as exc:  # noqa: BLE001
            return HttpResponse(
                ok=False,
                url=request.url,
                error_message=str(exc),
                error_type=type(exc).__name__,
            )

    async def aclose(self) -> None:
        await self._client.aclose()


def _too_large(resp: httpx.Response, headers: dict[str, str], size: int, limit: int) -> HttpResponse:
    logger.error("Response from %s too large: %d bytes exceeds %d byte limit", resp.url, size, limit)
    return HttpResponse(
        ok=False,
        status_code=resp.status_code,
        headers=headers,
        url=str(resp.url),
        error_message=f"Response of {size} bytes exceeds the {limit} byte limit",
        error_type=RESPONSE_TOO_LARGE,
        meta={"response_size": size, "body_bytes_limit": limit},
    )
