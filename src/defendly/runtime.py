# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""High-level Defendly facade wiring one HTTP client across all scan services."""

from __future__ import annotations

import logging

from .api import ApiClient
from .auth import AuthClient
from .config import ApiSettings, load_api_settings
from .http.client import HttpClient, create_default_http_client
from .organizations import OrganizationClient
from .scans.cache import OrgScanCache
from .scans.directory import ScanDirectory
from .scans.lifecycle import ScanLifecycleController
from .scans.reports import ScanReports
from .tokens import TokenStore

logger = logging.getLogger(__name__)


class Defendly:
    """
    Session object for one signed-in user.

    Shares a single HttpClient, token store and organization cache between the auth,
    directory and report clients, and tears down every controller it handed out.
    """

    def __init__(
        self,
        http_client: HttpClient | None = None,
        *,
        settings: ApiSettings | None = None,
        token: str | None = None,
    ):
        self.settings = settings or load_api_settings()
        self.http_client = http_client or create_default_http_client(self.settings)
        self.tokens = TokenStore(token)
        self.api = ApiClient(self.settings, self.http_client, self.tokens)
        self.auth = AuthClient(self.api)
        self.organizations = OrganizationClient(self.api)
        self.cache: OrgScanCache = OrgScanCache(self.settings.cache_ttl)
        self.directory = ScanDirectory(self.api, self.cache)
        self.reports = ScanReports(self.api, self.directory)
        self._controllers: list[ScanLifecycleController] = []

    def controller(self, organization_name: str | None = None) -> ScanLifecycleController:
        controller = ScanLifecycleController(self.directory, self.reports, organization_name=organization_name)
        self._controllers.append(controller)
        return controller

    async def aclose(self) -> None:
        for controller in self._controllers:
            await controller.aclose()
        self._controllers = []
        try:
            await self.http_client.aclose()
        except Exception:  # noqa: BLE001
            logger.exception("Closing HTTP client failed")

    async def __aenter__(self) -> Defendly:
        return self

    async def __aexit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        await self.aclose()
