# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Defendly scan client.

Async client for the Defendly security-scanning backend: scan directory lookups with
route fallback, scan initiation and polling, organization-scoped caching and report
export. HTTP behavior is abstracted behind an injectable client interface, and
domain objects are modeled with typed dataclasses.
"""

from .api import ApiClient
from .auth import AuthClient, UserProfile
from .config import ApiSettings, load_api_settings
from .errors import (
    ApiError,
    ApiTimeoutError,
    AuthenticationError,
    DatasetTooLargeError,
    DefendlyError,
    ErrorCategory,
)
from .http import HttpClient, HttpRequest, HttpResponse, HttpxClient, create_default_http_client
from .log import setup_logging
from .models import Pagination, ScanPage, ScanRecord, ScanStatus, SeverityCounts
from .organizations import OrganizationClient
from .runtime import Defendly
from .scans import (
    OrgScanCache,
    ScanDirectory,
    ScanLifecycleController,
    ScanReports,
    ScanSubmission,
    normalize_scan,
)
from .tokens import TokenStore
from .version import __version__

__all__ = [
    "ApiClient",
    "ApiError",
    "ApiSettings",
    "ApiTimeoutError",
    "AuthClient",
    "AuthenticationError",
    "DatasetTooLargeError",
    "Defendly",
    "DefendlyError",
    "ErrorCategory",
    "HttpClient",
    "HttpRequest",
    "HttpResponse",
    "HttpxClient",
    "OrgScanCache",
    "OrganizationClient",
    "Pagination",
    "ScanDirectory",
    "ScanLifecycleController",
    "ScanPage",
    "ScanRecord",
    "ScanReports",
    "ScanStatus",
    "ScanSubmission",
    "SeverityCounts",
    "TokenStore",
    "UserProfile",
    "create_default_http_client",
    "load_api_settings",
    "normalize_scan",
    "setup_logging",
    "__version__",
]
