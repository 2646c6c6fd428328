# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Scan payload normalization.

Backend scan payloads differ by route and by age of the record. `normalize_scan` folds
all of them into a ScanRecord whose fields are always populated, so callers never
null-check. Severity buckets are recomputed from the `alerts` array on every call;
pre-aggregated `severity` blocks are only consulted when a payload carries no alerts.
"""

from __future__ import annotations

import itertools
import logging
import time
from collections.abc import Mapping
from typing import Any

from ..models.scan import ScanDetails, ScanRecord, SeverityCounts
from ..utils.dates import PLACEHOLDER, format_duration, format_timestamp
from ..utils.fields import dig, first_present, resolve_scan_id

logger = logging.getLogger(__name__)

TARGET_NAME_FIELDS = ("projectName", "label", "targetName")
TARGET_FIELDS = ("scanTarget", "url", "target", "asset")
DESCRIPTION_TARGET_FIELDS = ("url", "target", "asset")
START_FIELDS = ("scanStart", "scan_date", "startDate", "createdAt")
END_FIELDS = ("scanEnd", "endDate", "updatedAt")
VULNERABILITY_COUNT_FIELDS = ("vulnerabilities", "total_vulnerabilities", "vulnerability_count")
RISK_METRIC_FIELDS = (
    "cyber_hygiene_score",
    "threat_intelligence",
    "compliance_readiness",
    "security_misconfigurations",
    "attack_surface_index",
    "vendor_risk_rating",
)
SEVERITY_TEXT_FIELDS = ("severity", "risk", "riskdesc", "threat_level")

RISKCODE_BUCKETS = {"4": "critical", "3": "high", "2": "medium", "1": "low", "0": "info"}
BUCKET_LABELS = {
    "critical": "Critical",
    "high": "High",
    "medium": "Medium",
    "low": "Low",
    "info": "Informational",
}
DEFAULT_STATUS = "in-progress"


_fallback_counter = itertools.count(1)


def _fallback_id() -> str:
    """Millisecond timestamp plus a process-wide counter, unique even within one millisecond."""
    return f"{int(time.time() * 1000)}-{next(_fallback_counter)}"


def _riskcode_bucket(alert: Mapping[str, Any]) -> str | None:
    raw = alert.get("riskcode")
    if raw is None or isinstance(raw, bool):
        return None
    return RISKCODE_BUCKETS.get(str(raw).strip())


def _text_bucket(alert: Mapping[str, Any]) -> str | None:
    raw = first_present(alert, SEVERITY_TEXT_FIELDS)
    if raw is None:
        return None
    text = str(raw).strip().lower()
    if "crit" in text:
        return "critical"
    if "high" in text:
        return "high"
    if "med" in text or "moder" in text:
        return "medium"
    if "info" in text:
        return "info"
    if "low" in text:
        return "low"
    return None


def alert_bucket(alert: Any) -> str:
    """Severity bucket for one alert: riskcode first, then its text label, else `info`."""
    if not isinstance(alert, Mapping):
        return "info"
    return _riskcode_bucket(alert) or _text_bucket(alert) or "info"


def severity_label(alert: Any) -> str:
    """
    Human severity label (Critical/High/Medium/Low/Informational).

    Text fields take precedence here because report readers expect the scanner's own
    wording; alerts without any severity text fall back to the riskcode, then `Low`.
    """
    if not isinstance(alert, Mapping):
        return "Low"
    bucket = _text_bucket(alert)
    if bucket is None and first_present(alert, SEVERITY_TEXT_FIELDS) is None:
        bucket = _riskcode_bucket(alert)
    return BUCKET_LABELS.get(bucket or "low", "Low")


def count_severities(alerts: list[Any]) -> SeverityCounts:
    counts = {"critical": 0, "high": 0, "medium": 0, "low": 0, "info": 0}
    for alert in alerts:
        counts[alert_bucket(alert)] += 1
    return SeverityCounts(**counts)


def _int_or_zero(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _precomputed_severity(raw: Mapping[str, Any]) -> SeverityCounts:
    block = first_present(raw, ("severity",)) or dig(raw, "details", "severity") or {}
    if not isinstance(block, Mapping):
        return SeverityCounts()

    def pick(name: str) -> int:
        return _int_or_zero(block.get(name) or block.get(name.capitalize()))

    return SeverityCounts(
        critical=pick("critical"),
        high=pick("high"),
        medium=pick("medium"),
        low=pick("low"),
        info=pick("info"),
    )


def _organization(raw: Mapping[str, Any], fallback: str | None) -> str:
    org = raw.get("organization")
    if isinstance(org, Mapping) and org.get("name"):
        return str(org["name"])
    if raw.get("organizationName"):
        return str(raw["organizationName"])
    if fallback:
        return fallback
    if isinstance(org, str) and org:
        return org
    return PLACEHOLDER


def build_details(raw: Mapping[str, Any]) -> ScanDetails:
    alerts_raw = raw.get("alerts")
    if isinstance(alerts_raw, list):
        alerts = list(alerts_raw)
        severity = count_severities(alerts)
        vulnerabilities = len(alerts)
    else:
        alerts = []
        severity = _precomputed_severity(raw)
        vulnerabilities = _int_or_zero(first_present(raw, VULNERABILITY_COUNT_FIELDS))

    risk_metrics = {name: raw[name] for name in RISK_METRIC_FIELDS if raw.get(name) is not None}
    return ScanDetails(
        vulnerabilities=vulnerabilities,
        severity=severity,
        alerts=alerts,
        open_ports=_int_or_zero(dig(raw, "attack_surface_index", "metrics", "open_ports_count")),
        endpoints=raw.get("endpoints"),
        risk_metrics=risk_metrics,
    )


def normalize_scan(raw: Any, fallback_organization: str | None = None) -> ScanRecord:
    """Fold an arbitrary backend scan payload into a ScanRecord. Never raises."""
    try:
        return _normalize(raw if isinstance(raw, Mapping) else {}, fallback_organization)
    except Exception:  # noqa: BLE001
        logger.exception("Could not normalize scan payload; emitting placeholder row")
        raw_id = _fallback_id()
        return ScanRecord(id=raw_id, scan_id=f"#{raw_id}", original_scan=raw)


def _normalize(raw: Mapping[str, Any], fallback_organization: str | None) -> ScanRecord:
    raw_id = resolve_scan_id(raw) or _fallback_id()
    description_target = first_present(raw, DESCRIPTION_TARGET_FIELDS, "target")
    status = str(first_present(raw, ("status",), DEFAULT_STATUS)).replace("_", " ")

    return ScanRecord(
        id=raw_id,
        scan_id=f"#{raw_id.replace('#', '', 1)}",
        target_name=str(first_present(raw, TARGET_NAME_FIELDS) or fallback_organization or PLACEHOLDER),
        scan_target=str(first_present(raw, TARGET_FIELDS, PLACEHOLDER)),
        scan_start=format_timestamp(first_present(raw, START_FIELDS)),
        scan_end=format_timestamp(first_present(raw, END_FIELDS)),
        status=status,
        organization=_organization(raw, fallback_organization),
        details=build_details(raw),
        original_scan=dict(raw),
        description=f"Security assessment for {description_target}",
        created_at=raw.get("createdAt"),
        updated_at=raw.get("updatedAt"),
    )


def scan_duration(record: ScanRecord) -> str:
    """Elapsed time between start and end, falling back to raw timestamps."""
    if record.scan_start == PLACEHOLDER or record.scan_end == PLACEHOLDER:
        return PLACEHOLDER

    duration = format_duration(record.scan_start, record.scan_end)
    if duration is not None:
        return duration

    original = record.original_scan if isinstance(record.original_scan, Mapping) else {}
    for start, end in (
        (original.get("createdAt"), original.get("updatedAt")),
        (original.get("scan_date"), original.get("updatedAt")),
        (record.created_at, record.updated_at),
    ):
        if start and end:
            duration = format_duration(start, end)
            if duration is not None:
                return duration
    return PLACEHOLDER


def extract_domain(url: str | None) -> str:
    """Host part of a target URL without scheme or `www.`."""
    if not url:
        return "Unnamed Target"
    domain = str(url)
    for prefix in ("https://", "http://"):
        if domain.startswith(prefix):
            domain = domain[len(prefix):]
            break
    if domain.startswith("www."):
        domain = domain[4:]
    return domain.split("/")[0]


__all__ = [
    "alert_bucket",
    "build_details",
    "count_severities",
    "extract_domain",
    "normalize_scan",
    "scan_duration",
    "severity_label",
]
