# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Ordered candidate-field resolution for backend payloads.

The backend names the same attribute differently depending on the route that produced
the payload (`scan_id` vs `_id` vs `id`, `scanStart` vs `scan_date`, ...). Every read of
such an attribute goes through `first_present` with an explicit, ordered tuple of
candidate names; the first candidate holding a non-empty value wins.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

SCAN_ID_FIELDS = ("scan_id", "_id", "id")


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value is False


def first_present(data: Any, candidates: Iterable[str], default: Any = None) -> Any:
    """Return the first non-empty value among `candidates`, or `default`."""
    if not isinstance(data, Mapping):
        return default
    for name in candidates:
        value = data.get(name)
        if not _is_empty(value):
            return value
    return default


def dig(data: Any, *path: str, default: Any = None) -> Any:
    """Walk nested mappings, returning `default` as soon as a step is missing."""
    current = data
    for key in path:
        if not isinstance(current, Mapping):
            return default
        current = current.get(key)
        if current is None:
            return default
    return current


def resolve_scan_id(data: Any) -> str | None:
    """Backend scan id from whichever of `scan_id`/`_id`/`id` is present."""
    value = first_present(data, SCAN_ID_FIELDS)
    return None if value is None else str(value)


def candidate_scan_ids(data: Any) -> set[str]:
    """Every id the payload answers to; used to match rows across id schemes."""
    if not isinstance(data, Mapping):
        return set()
    return {str(data[name]) for name in SCAN_ID_FIELDS if not _is_empty(data.get(name))}


__all__ = ["SCAN_ID_FIELDS", "candidate_scan_ids", "dig", "first_present", "resolve_scan_id"]
