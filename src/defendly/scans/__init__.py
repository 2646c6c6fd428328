# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Scan directory, lifecycle, normalization and report exports."""

from .cache import OrgScanCache, org_cache_key
from .csv_export import alerts_to_csv, build_csv_report
from .directory import ScanDirectory, normalize_list_response
from .lifecycle import PollingRegistration, ScanLifecycleController, merge_scans, sort_newest_first
from .normalizer import count_severities, extract_domain, normalize_scan, scan_duration, severity_label
from .reports import InitiatedScan, ScanReports, ScanSubmission
from .routes import RouteCandidate, RouteProber

__all__ = [
    "InitiatedScan",
    "OrgScanCache",
    "PollingRegistration",
    "RouteCandidate",
    "RouteProber",
    "ScanDirectory",
    "ScanLifecycleController",
    "ScanReports",
    "ScanSubmission",
    "alerts_to_csv",
    "build_csv_report",
    "count_severities",
    "extract_domain",
    "merge_scans",
    "normalize_list_response",
    "normalize_scan",
    "org_cache_key",
    "scan_duration",
    "severity_label",
    "sort_newest_first",
]
