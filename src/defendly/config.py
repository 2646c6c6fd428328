# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for the Defendly scan client."""

import os
from dataclasses import dataclass

from .version import __version__

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_USER_AGENT = f"Defendly/{__version__}"


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class ApiSettings:
    """Backend, polling and cache defaults."""

    base_url: str = DEFAULT_BASE_URL
    timeout: float = 15.0
    scan_list_timeout: float = 60.0
    download_timeout: float = 300.0
    max_response_bytes: int = 10 * 1024 * 1024
    large_response_warning_bytes: int = 5 * 1024 * 1024
    user_agent: str = DEFAULT_USER_AGENT
    verify_ssl: bool = True
    poll_interval: float = 5.0
    poll_start_delay: float = 2.0
    cache_ttl: float = 5 * 60.0
    max_scan_items: int = 10000

    @classmethod
    def from_env(cls) -> "ApiSettings":
        """Create settings from environment variables (evaluated at call time)."""
        max_response_bytes = _int_env("DEFENDLY_MAX_RESPONSE_BYTES", cls.max_response_bytes)
        if max_response_bytes <= 0:
            max_response_bytes = cls.max_response_bytes
        return cls(
            base_url=os.getenv("DEFENDLY_API_BASE_URL", cls.base_url).rstrip("/"),
            timeout=_float_env("DEFENDLY_HTTP_TIMEOUT", cls.timeout),
            scan_list_timeout=_float_env("DEFENDLY_SCAN_LIST_TIMEOUT", cls.scan_list_timeout),
            download_timeout=_float_env("DEFENDLY_DOWNLOAD_TIMEOUT", cls.download_timeout),
            max_response_bytes=max_response_bytes,
            large_response_warning_bytes=_int_env(
                "DEFENDLY_LARGE_RESPONSE_WARNING_BYTES", cls.large_response_warning_bytes
            ),
            user_agent=os.getenv("DEFENDLY_USER_AGENT", cls.user_agent),
            verify_ssl=_bool_env("DEFENDLY_HTTP_VERIFY_SSL", cls.verify_ssl),
            poll_interval=_float_env("DEFENDLY_POLL_INTERVAL", cls.poll_interval),
            poll_start_delay=_float_env("DEFENDLY_POLL_START_DELAY", cls.poll_start_delay),
            cache_ttl=_float_env("DEFENDLY_CACHE_TTL", cls.cache_ttl),
            max_scan_items=_int_env("DEFENDLY_MAX_SCAN_ITEMS", cls.max_scan_items),
        )


def load_api_settings() -> ApiSettings:
    """Load API settings from environment with sensible defaults."""
    return ApiSettings.from_env()
