# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Lenient date parsing and display formatting for scan timestamps."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

PLACEHOLDER = "—"

DISPLAY_DATE_FORMAT = "%m/%d/%Y"
DISPLAY_TIME_FORMAT = "%H:%M"
# fromisoformat before 3.11 rejects "+0000" offsets and odd fraction lengths
_EXTRA_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f",
    f"{DISPLAY_DATE_FORMAT} {DISPLAY_TIME_FORMAT}",
    f"{DISPLAY_DATE_FORMAT} %H:%M:%S",
    DISPLAY_DATE_FORMAT,
)


def _parse_string(raw: str) -> datetime | None:
    text = raw.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _EXTRA_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def parse_datetime(value: Any) -> datetime | None:
    """
    Parse a backend timestamp.

    Tries the raw value, then the value with its first space replaced by `T`
    (upstream occasionally emits `2024-01-02 10:00:00.000+0000`-style strings), and
    gives up with None. Numbers are epoch milliseconds.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    raw = str(value)
    parsed = _parse_string(raw)
    if parsed is None and " " in raw.strip():
        parsed = _parse_string(raw.strip().replace(" ", "T", 1))
    return parsed


def format_date_parts(value: Any) -> tuple[str, str]:
    """(date, time) display strings, both PLACEHOLDER when the value does not parse."""
    parsed = parse_datetime(value)
    if parsed is None:
        return PLACEHOLDER, PLACEHOLDER
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.strftime(DISPLAY_DATE_FORMAT), parsed.strftime(DISPLAY_TIME_FORMAT)


def format_timestamp(value: Any) -> str:
    date_part, time_part = format_date_parts(value)
    if date_part == PLACEHOLDER:
        return PLACEHOLDER
    return f"{date_part} {time_part}".strip()


def sort_key_newest_first(value: Any) -> tuple[int, float]:
    """Sort key putting newest first and unparseable values last."""
    parsed = parse_datetime(value)
    if parsed is None:
        return (1, 0.0)
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return (0, -parsed.timestamp())


def format_duration(start: Any, end: Any) -> str | None:
    """Render the span between two timestamps (`<1m`, `42m`, `2h`, `2h 5m`), None if unparseable."""
    start_dt = parse_datetime(start)
    end_dt = parse_datetime(end)
    if start_dt is None or end_dt is None:
        return None
    if (start_dt.tzinfo is None) != (end_dt.tzinfo is None):
        start_dt = start_dt.astimezone()
        end_dt = end_dt.astimezone()
    minutes = round((end_dt - start_dt).total_seconds() / 60)
    if minutes < 1:
        return "<1m"
    if minutes < 60:
        return f"{minutes}m"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}m" if mins else f"{hours}h"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


__all__ = [
    "PLACEHOLDER",
    "format_date_parts",
    "format_duration",
    "format_timestamp",
    "parse_datetime",
    "sort_key_newest_first",
    "utc_now_iso",
]
