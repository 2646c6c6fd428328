# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Scan initiation and report downloads."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..api import ApiClient
from ..errors import ApiError
from ..http.url import quote_segment
from ..models.scan import ScanRecord, ScanStatus
from ..utils.dates import utc_now_iso
from ..utils.fields import resolve_scan_id
from .csv_export import build_csv_report
from .directory import ScanDirectory

logger = logging.getLogger(__name__)

INITIATE_PATH = "/api/scans/initiate"
PDF_REPORT_PATH = "/api/reports/pdf/{id}"
PDF_TIMEOUT_MESSAGE = (
    "PDF download timed out. The report may be too large or the server is taking too long to generate it; "
    "try again later."
)


@dataclass
class ScanSubmission:
    """Form data for a new scan."""

    scan_target: str
    project_name: str | None = None
    label: str | None = None
    organization: str | None = None
    schedule: str | None = "now"
    scheduled_date: str | None = None
    scheduled_time: str | None = None
    recurrence: str | None = None
    email: str | None = None
    password: str | None = None
    login_url: str | None = None
    scan_targets: list[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ScanSubmission:
        """Accept the camelCase form shape used by UI callers."""
        targets = data.get("scanTargets") or data.get("scan_targets") or []
        return cls(
            scan_target=str(data.get("scanTarget") or data.get("scan_target") or data.get("url") or ""),
            project_name=data.get("projectName") or data.get("project_name"),
            label=data.get("label"),
            organization=data.get("organization"),
            schedule=data.get("schedule", "now"),
            scheduled_date=data.get("scheduledDate") or data.get("scheduled_date"),
            scheduled_time=data.get("scheduledTime") or data.get("scheduled_time"),
            recurrence=data.get("recurrence"),
            email=data.get("email"),
            password=data.get("password"),
            login_url=data.get("loginUrl") or data.get("login_url"),
            scan_targets=[str(t) for t in targets] if isinstance(targets, list) else [],
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "url": self.scan_target,
            "projectName": self.project_name,
            "label": self.label,
            "organization": self.organization,
            "schedule": self.schedule,
            "scheduledDate": self.scheduled_date,
            "scheduledTime": self.scheduled_time,
            "recurrence": self.recurrence,
        }
        # auth-scan credentials and multi-target lists are only sent when supplied
        if self.email:
            payload["email"] = self.email
        if self.password:
            payload["password"] = self.password
        if self.login_url:
            payload["loginUrl"] = self.login_url
        if len(self.scan_targets) > 1:
            payload["scanTargets"] = list(self.scan_targets)
        return payload


@dataclass(frozen=True)
class InitiatedScan:
    scan_id: str
    status: str
    url: str
    project: str | None
    organization: str | None
    created_at: str
    response: dict[str, Any] = field(default_factory=dict)


class ScanReports:
    def __init__(self, api: ApiClient, directory: ScanDirectory | None = None):
        self.api = api
        self.directory = directory or ScanDirectory(api)

    async def initiate(self, submission: ScanSubmission | Mapping[str, Any]) -> InitiatedScan:
        """Create a scan server-side. Failures propagate."""
        if not isinstance(submission, ScanSubmission):
            submission = ScanSubmission.from_mapping(submission)
        if not submission.scan_target:
            raise ValueError("A scan target URL is required")

        logger.info("Initiating scan for %s", submission.scan_target)
        result = await self.api.post_json(INITIATE_PATH, submission.to_payload())
        response = dict(result) if isinstance(result, Mapping) else {}
        scan_id = resolve_scan_id(response) or str(int(time.time() * 1000))
        return InitiatedScan(
            scan_id=scan_id,
            status=str(response.get("status") or ScanStatus.IN_PROGRESS.value),
            url=submission.scan_target,
            project=submission.project_name,
            organization=submission.organization,
            created_at=utc_now_iso(),
            response=response,
        )

    async def download_pdf(self, scan_id: str) -> bytes:
        if not scan_id:
            raise ValueError("Scan ID is required")
        path = PDF_REPORT_PATH.format(id=quote_segment(scan_id))
        data = await self.api.get_binary(path, timeout_message=PDF_TIMEOUT_MESSAGE)
        logger.info("Downloaded PDF report for %s (%d bytes)", scan_id, len(data))
        return data

    async def download_csv(self, scan: ScanRecord | Mapping[str, Any] | str) -> str:
        """
        CSV of a scan's alerts, built locally.

        Pass a ScanRecord or raw payload to avoid any request; a bare id is looked up
        through the directory first.
        """
        if isinstance(scan, (ScanRecord, Mapping)):
            return build_csv_report(scan)
        if not scan:
            raise ValueError("Scan ID is required")
        payload = await self.directory.get_by_id(scan)
        if payload is None:
            raise ApiError(f"Scan {scan} not found", status_code=404)
        return build_csv_report(payload)


__all__ = ["INITIATE_PATH", "InitiatedScan", "PDF_REPORT_PATH", "ScanReports", "ScanSubmission"]
