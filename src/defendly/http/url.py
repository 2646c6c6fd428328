# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""URL helpers for backend routes."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote, urlencode


def build_query(path: str, params: Mapping[str, Any] | None = None) -> str:
    """Append `params` to `path`, skipping None values."""
    if not params:
        return path
    pairs = [(str(key), str(value)) for key, value in params.items() if value is not None]
    if not pairs:
        return path
    return f"{path}?{urlencode(pairs)}"


def quote_segment(value: Any) -> str:
    """Encode a value for use as a single path segment."""
    return quote(str(value), safe="")


def join_url(base_url: str, path: str) -> str:
    """Join the backend base URL with an absolute API path."""
    base = str(base_url or "").rstrip("/")
    raw_path = str(path or "")
    if not raw_path.startswith("/"):
        raw_path = f"/{raw_path}"
    return f"{base}{raw_path}"


__all__ = ["build_query", "join_url", "quote_segment"]
