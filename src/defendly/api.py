# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""JSON/binary request helpers for the Defendly REST backend."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from .config import ApiSettings, load_api_settings
from .errors import ApiError, ApiTimeoutError, DatasetTooLargeError
from .http.client import HttpClient, create_default_http_client
from .http.headers import header_value
from .http.models import HttpRequest, HttpResponse
from .http.url import build_query, join_url
from .tokens import TokenStore

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


class ApiClient:
    """
    Thin wrapper that turns HttpResponses into payloads or taxonomy errors.

    Every request carries JSON Accept/Content-Type headers and, when the token store
    holds a live token, `Authorization: Bearer <token>`.
    """

    def __init__(
        self,
        settings: ApiSettings | None = None,
        http_client: HttpClient | None = None,
        token_store: TokenStore | None = None,
    ):
        self.settings = settings or load_api_settings()
        self.http_client = http_client or create_default_http_client(self.settings)
        self.token_store = token_store or TokenStore()

    def build_headers(self, custom: Mapping[str, str] | None = None) -> dict[str, str]:
        headers = {
            "Accept": JSON_CONTENT_TYPE,
            "Content-Type": JSON_CONTENT_TYPE,
            "User-Agent": self.settings.user_agent,
        }
        headers.update(custom or {})
        token = self.token_store.get()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def url_for(self, path: str, params: Mapping[str, Any] | None = None) -> str:
        if not path or not isinstance(path, str):
            raise ValueError("API path is required and must be a string")
        return join_url(self.settings.base_url, build_query(path, params))

    async def request(
        self,
        path: str,
        *,
        method: str = "GET",
        params: Mapping[str, Any] | None = None,
        body: Any = None,
        timeout: float | None = None,
    ) -> Any:
        """Send a JSON request and return the decoded payload (None for unparseable bodies)."""
        url = self.url_for(path, params)
        payload_bytes: bytes | None = None
        if body is not None:
            payload_bytes = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")

        logger.debug("%s %s", method, url)
        response = await self.http_client.request(
            HttpRequest(
                url=url,
                method=method,
                headers=self.build_headers(),
                body=payload_bytes,
                timeout=timeout if timeout is not None else self.settings.timeout,
                max_body_bytes=self.settings.max_response_bytes,
            )
        )
        return self._handle_response(response)

    async def get_json(self, path: str, params: Mapping[str, Any] | None = None, *, timeout: float | None = None) -> Any:
        return await self.request(path, params=params, timeout=timeout)

    async def post_json(self, path: str, body: Any, *, timeout: float | None = None) -> Any:
        return await self.request(path, method="POST", body=body, timeout=timeout)

    async def get_binary(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        *,
        accept: str = "application/pdf",
        timeout: float | None = None,
        timeout_message: str | None = None,
    ) -> bytes:
        """Fetch a binary body; no size ceiling applies."""
        headers = self.build_headers({"Accept": accept})
        headers.pop("Content-Type", None)
        response = await self.http_client.request(
            HttpRequest(
                url=self.url_for(path, params),
                headers=headers,
                timeout=timeout if timeout is not None else self.settings.download_timeout,
                max_body_bytes=0,
            )
        )
        if not response.ok:
            if response.timed_out:
                raise ApiTimeoutError(timeout_message or "Download timed out; the server may be slow, try again later")
            raise ApiError(response.error_message or "Download failed")

        if response.status_code == 401:
            self.token_store.clear()
        if not response.is_success:
            message = f"Failed to download binary: {response.status_code}"
            try:
                error_json = json.loads(response.text)
            except ValueError:
                error_json = None
            if isinstance(error_json, dict):
                message = error_json.get("error") or error_json.get("message") or message
            elif response.text:
                message = response.text
            raise ApiError(message, status_code=response.status_code)
        return response.content

    def _handle_response(self, response: HttpResponse) -> Any:
        if not response.ok:
            if response.timed_out:
                raise ApiTimeoutError("Request timed out; the API server may be slow or unreachable, try again later")
            if response.too_large:
                raise DatasetTooLargeError(
                    int(response.meta.get("response_size") or 0),
                    int(response.meta.get("body_bytes_limit") or self.settings.max_response_bytes),
                )
            raise ApiError(response.error_message or "Request failed before a response was received")

        size = len(response.content)
        if size > self.settings.large_response_warning_bytes:
            logger.warning("Large response from %s: %.2fMB", response.url, size / 1024 / 1024)

        content_type = header_value(response.headers, "content-type").lower()
        payload: Any
        if "json" in content_type:
            try:
                payload = json.loads(response.text)
            except ValueError:
                logger.warning("Could not parse JSON body from %s; treating payload as empty", response.url)
                payload = None
        else:
            payload = response.text

        if response.status_code == 401:
            self.token_store.clear()

        if not response.is_success:
            message = None
            if isinstance(payload, dict):
                message = payload.get("message")
            raise ApiError(
                message or f"Request failed with status {response.status_code}",
                status_code=response.status_code,
                payload=payload,
            )
        return payload

    async def aclose(self) -> None:
        await self.http_client.aclose()


__all__ = ["ApiClient", "JSON_CONTENT_TYPE"]
