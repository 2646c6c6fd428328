# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Client-side CSV export of a scan's alerts."""

from __future__ import annotations

import csv
import html
import re
from collections.abc import Iterable, Mapping
from io import StringIO
from typing import Any

from ..models.scan import ScanRecord
from ..utils.dates import PLACEHOLDER
from .normalizer import severity_label

CSV_COLUMNS = (
    "S.No.",
    "Name of Vulnerability",
    "Severity",
    "CWE Id",
    "Description",
    "Evidence",
    "Solution",
    "Reference",
)

PLACEHOLDER_CWE = "N/A"
PLACEHOLDER_DESCRIPTION = "None Provided"
PLACEHOLDER_SOLUTION = "Manual Remediation Required"
PLACEHOLDER_REFERENCE = "No External Links"
PLACEHOLDER_EVIDENCE = "N/A"

_TAG_RE = re.compile(r"<[^>]*>")
_URL_SPLIT_RE = re.compile(r"(?=https?://)")
_BARE_SCHEME_RE = re.compile(r"^https?://\s*$", re.IGNORECASE)


def strip_html_tags(value: Any) -> str:
    if not value or not isinstance(value, str):
        return ""
    text = _TAG_RE.sub("", value).replace("&nbsp;", " ")
    return html.unescape(text).strip()


def _first_text(alert: Mapping[str, Any], *names: str) -> str:
    for name in names:
        value = alert.get(name)
        if value:
            return strip_html_tags(str(value))
    return ""


def _references(raw: Any) -> str:
    if isinstance(raw, list):
        parts = [str(item) for item in raw]
    elif isinstance(raw, str) and raw.strip():
        parts = [part for part in _URL_SPLIT_RE.split(raw) if part.strip()]
    else:
        parts = []
    cleaned = [strip_html_tags(part) for part in parts]
    cleaned = [ref for ref in cleaned if ref and not _BARE_SCHEME_RE.match(ref)]
    return ", ".join(cleaned) or PLACEHOLDER_REFERENCE


def _evidence(alert: Mapping[str, Any]) -> str:
    items: list[str] = []
    instances = alert.get("instances")
    if isinstance(instances, list):
        for instance in instances:
            if not isinstance(instance, Mapping):
                continue
            text = strip_html_tags(str(instance.get("evidence") or "").strip())
            if text and text not in items:
                items.append(text)
    evidence = "\n".join(items)
    if not evidence and alert.get("evidence"):
        evidence = strip_html_tags(str(alert["evidence"]).strip())
    evidence = evidence.replace(PLACEHOLDER, "").strip()
    return evidence or PLACEHOLDER_EVIDENCE


def alert_row(alert: Any, index: int) -> dict[str, str]:
    data: Mapping[str, Any] = alert if isinstance(alert, Mapping) else {}
    return {
        "S.No.": str(index + 1),
        "Name of Vulnerability": _first_text(data, "name", "alert") or f"Alert #{index + 1}",
        "Severity": severity_label(data),
        "CWE Id": _first_text(data, "cwe_id", "cweid") or PLACEHOLDER_CWE,
        "Description": _first_text(data, "description", "desc") or PLACEHOLDER_DESCRIPTION,
        "Evidence": _evidence(data),
        "Solution": _first_text(data, "solution") or PLACEHOLDER_SOLUTION,
        "Reference": _references(data.get("reference")),
    }


def alerts_to_csv(alerts: Iterable[Any]) -> str:
    """
    Render alerts as CSV text.

    Fields containing a comma, quote or newline are quoted with embedded quotes
    doubled; an empty alert list produces only the header row.
    """
    output = StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_COLUMNS, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writeheader()
    for index, alert in enumerate(alerts):
        writer.writerow(alert_row(alert, index))
    return output.getvalue()


def report_alerts(report: ScanRecord | Mapping[str, Any] | None) -> list[Any]:
    """Alerts of a ScanRecord or raw report payload (`alerts`, else `vulnerabilities`)."""
    if report is None:
        return []
    if isinstance(report, ScanRecord):
        if report.details.alerts:
            return list(report.details.alerts)
        report = report.original_scan if isinstance(report.original_scan, Mapping) else {}
    for key in ("alerts", "vulnerabilities"):
        value = report.get(key)
        if isinstance(value, list):
            return value
    return []


def build_csv_report(report: ScanRecord | Mapping[str, Any] | None) -> str:
    return alerts_to_csv(report_alerts(report))


__all__ = ["CSV_COLUMNS", "alert_row", "alerts_to_csv", "build_csv_report", "report_alerts", "strip_html_tags"]
