# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Utility exports."""

from .dates import (
    PLACEHOLDER,
    format_date_parts,
    format_duration,
    format_timestamp,
    parse_datetime,
    sort_key_newest_first,
    utc_now_iso,
)
from .fields import SCAN_ID_FIELDS, candidate_scan_ids, dig, first_present, resolve_scan_id

__all__ = [
    "PLACEHOLDER",
    "SCAN_ID_FIELDS",
    "candidate_scan_ids",
    "dig",
    "first_present",
    "format_date_parts",
    "format_duration",
    "format_timestamp",
    "parse_datetime",
    "resolve_scan_id",
    "sort_key_newest_first",
    "utc_now_iso",
]
