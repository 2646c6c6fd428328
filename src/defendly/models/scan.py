# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Canonical scan row models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..utils.dates import PLACEHOLDER


class ScanStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    ERROR = "error"
    UNKNOWN = "unknown"


TERMINAL_STATUSES = frozenset({ScanStatus.COMPLETED.value, ScanStatus.FAILED.value, ScanStatus.ERROR.value})
ACTIVE_STATUSES = frozenset({ScanStatus.IN_PROGRESS.value, ScanStatus.PENDING.value, ScanStatus.RUNNING.value})


def is_terminal_status(status: Any) -> bool:
    return str(status or "") in TERMINAL_STATUSES


def is_scan_completed(status: Any) -> bool:
    normalized = str(status or "").strip().lower()
    return "complete" in normalized or normalized in {"success", "finished"}


@dataclass(frozen=True)
class SeverityCounts:
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    info: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.high + self.medium + self.low + self.info

    def to_dict(self) -> dict[str, int]:
        return {
            "critical": self.critical,
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
            "info": self.info,
        }


@dataclass(frozen=True)
class ScanDetails:
    vulnerabilities: int = 0
    severity: SeverityCounts = field(default_factory=SeverityCounts)
    alerts: list[dict[str, Any]] = field(default_factory=list)
    open_ports: int = 0
    endpoints: Any = None
    risk_metrics: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "vulnerabilities": self.vulnerabilities,
            "severity": self.severity.to_dict(),
            "alerts": list(self.alerts),
            "openPorts": self.open_ports,
            "endpoints": self.endpoints,
        }
        data.update(self.risk_metrics)
        return data


@dataclass(frozen=True)
class ScanRecord:
    """
    One row of the scan table.

    `id` is the lookup key; `scan_id` is its `#`-prefixed display form and is never
    used for matching. Every field is populated (placeholders instead of None) except
    the raw `created_at`/`updated_at` passthroughs.
    """

    id: str
    scan_id: str
    target_name: str = PLACEHOLDER
    scan_target: str = PLACEHOLDER
    scan_start: str = PLACEHOLDER
    scan_end: str = PLACEHOLDER
    status: str = ScanStatus.IN_PROGRESS.value
    organization: str = PLACEHOLDER
    details: ScanDetails = field(default_factory=ScanDetails)
    original_scan: Any = None
    type: str = "AI Scan"
    description: str = ""
    created_at: Any = None
    updated_at: Any = None

    @property
    def is_terminal(self) -> bool:
        return is_terminal_status(self.status)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "scanId": self.scan_id,
            "targetName": self.target_name,
            "scanTarget": self.scan_target,
            "scanStart": self.scan_start,
            "scanEnd": self.scan_end,
            "status": self.status,
            "organization": self.organization,
            "type": self.type,
            "description": self.description,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "details": self.details.to_dict(),
        }


@dataclass(frozen=True)
class Pagination:
    page: int = 1
    limit: int = 10
    pages: int = 1
    total: int = 0

    @classmethod
    def from_mapping(cls, data: Any, *, page: int = 1, limit: int = 10) -> Pagination | None:
        if not isinstance(data, dict):
            return None
        return cls(
            page=_as_int(data.get("page"), page),
            limit=_as_int(data.get("limit"), limit),
            pages=_as_int(data.get("pages"), 1),
            total=_as_int(data.get("total"), 0),
        )

    def to_dict(self) -> dict[str, int]:
        return {"page": self.page, "limit": self.limit, "pages": self.pages, "total": self.total}


@dataclass(frozen=True)
class ScanPage:
    """Raw scan payloads for one backend page plus its pagination block."""

    data: list[dict[str, Any]] = field(default_factory=list)
    pagination: Pagination | None = None


def _as_int(value: Any, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed else default
