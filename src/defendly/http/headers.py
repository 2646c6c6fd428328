# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Case-insensitive header access for stored responses."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def normalize_headers(headers: Any) -> dict[str, str]:
    """Lowercase-keyed copy of a header mapping or an httpx.Headers object."""
    if not headers:
        return {}
    items = headers.items() if hasattr(headers, "items") else headers
    out: dict[str, str] = {}
    for key, value in items:
        name = str(key or "").strip().lower()
        if name:
            out[name] = "" if value is None else str(value)
    return out


def header_value(headers: Mapping[str, Any] | None, name: str, default: str = "") -> str:
    if not headers or not name:
        return default
    wanted = name.lower()
    for key, value in headers.items():
        if str(key).lower() == wanted:
            return default if value is None else str(value).strip()
    return default


def content_length(headers: Mapping[str, Any] | None) -> int | None:
    """Declared Content-Length, or None when absent or malformed."""
    raw = header_value(headers, "content-length")
    if not raw.isdigit():
        return None
    return int(raw)


__all__ = ["content_length", "header_value", "normalize_headers"]
