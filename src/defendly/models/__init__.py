# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Domain models."""

from .scan import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    Pagination,
    ScanDetails,
    ScanPage,
    ScanRecord,
    ScanStatus,
    SeverityCounts,
    is_scan_completed,
    is_terminal_status,
)

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "Pagination",
    "ScanDetails",
    "ScanPage",
    "ScanRecord",
    "ScanStatus",
    "SeverityCounts",
    "is_scan_completed",
    "is_terminal_status",
]
