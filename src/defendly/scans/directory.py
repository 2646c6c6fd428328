# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Scan list/detail lookups against the backend."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ..api import ApiClient
from ..errors import ApiError
from ..models.scan import Pagination, ScanPage
from ..utils.fields import candidate_scan_ids
from .cache import OrgScanCache, org_cache_key
from .routes import RouteCandidate, RouteProber

logger = logging.getLogger(__name__)

SCANS_PATH = "/api/scans"
PAGED_SCANS_PATH = "/api/scans/exe"

ORG_SCAN_ROUTES = (
    RouteCandidate("query", SCANS_PATH, {"organizationId": "id"}),
    RouteCandidate("organizationsPath", "/api/organizations/{id}/scans"),
    RouteCandidate("legacy", "/api/scans/organization/{id}"),
)
USER_SCAN_ROUTES = (
    RouteCandidate("usersPath", "/api/users/{id}/scans"),
    RouteCandidate("scansUserPath", "/api/scans/user/{id}"),
    RouteCandidate("scansPath", "/api/scans/{id}"),
    RouteCandidate("query", SCANS_PATH, {"userId": "id"}),
)
SCAN_BY_ID_ROUTES = (
    RouteCandidate("path", "/api/scans/{id}"),
    RouteCandidate("byIdPath", "/api/scans/by-id/{id}"),
    RouteCandidate("idQuery", SCANS_PATH, {"id": "id"}),
    RouteCandidate("scanIdQuery", SCANS_PATH, {"scan_id": "id"}),
)
ORG_NAME_ROUTES = (RouteCandidate("query", SCANS_PATH, {"organization": "name"}),)
ALL_SCAN_ROUTES = (RouteCandidate("all", SCANS_PATH),)

LIST_CONTAINER_KEYS = ("data", "results", "scans")


def normalize_list_response(data: Any) -> list[Any]:
    """Flatten a list-endpoint body: bare array, or `.data`/`.results`/`.scans`; else []."""
    if not data:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, Mapping):
        for key in LIST_CONTAINER_KEYS:
            value = data.get(key)
            if isinstance(value, list):
                return value
    logger.debug("Unexpected list payload shape: %s", type(data).__name__)
    return []


def _accept_list(payload: Any) -> list[Any] | None:
    if isinstance(payload, (list, Mapping)):
        return normalize_list_response(payload)
    return None


class ScanDirectory:
    """
    Read side of the scan API.

    List operations are resilient: any failure yields [] (DatasetTooLargeError excepted,
    it always reaches the caller) unless `raise_errors=True` asks for the ApiError.
    `get_by_id` never raises.
    """

    def __init__(self, api: ApiClient, cache: OrgScanCache | None = None):
        self.api = api
        self.settings = api.settings
        self.cache = cache if cache is not None else OrgScanCache(self.settings.cache_ttl)
        self.prober = RouteProber(api, timeout_for=self.timeout_for)

    def timeout_for(self, path: str) -> float:
        """Scan lists can be large, so they get the long timeout."""
        if "/scans" in path:
            return self.settings.scan_list_timeout
        return self.settings.timeout

    def clear_route_cache(self) -> None:
        self.prober.forget()

    async def _list(self, operation: str, routes, values: Mapping[str, Any], raise_errors: bool) -> list[Any]:
        try:
            result = await self.prober.probe(operation, routes, values, accept=_accept_list)
        except ApiError as exc:
            if exc.is_dataset_too_large or raise_errors:
                raise
            logger.warning("%s failed: %s", operation, exc.message)
            return []
        return result or []

    async def list_by_organization_id(self, org_id: str | None, *, raise_errors: bool = False) -> list[Any]:
        if not org_id:
            return []
        key = org_cache_key(str(org_id))
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Serving %d cached scans for %s", len(cached), key)
            return cached

        try:
            scans = await self._list("org_scans", ORG_SCAN_ROUTES, {"id": org_id}, raise_errors=True)
        except ApiError as exc:
            self.prober.forget("org_scans")
            if exc.is_dataset_too_large or raise_errors:
                raise
            logger.warning("Fetching scans for organization %s failed: %s", org_id, exc.message)
            return []

        limit = self.settings.max_scan_items
        if limit > 0 and len(scans) > limit:
            logger.info("Limiting organization %s scans to %d (from %d)", org_id, limit, len(scans))
            scans = scans[:limit]
        self.cache.set(key, scans)
        return list(scans)

    async def list_by_organization(self, org_name: str | None, *, raise_errors: bool = False) -> list[Any]:
        if not org_name:
            return []
        return await self._list("org_name_scans", ORG_NAME_ROUTES, {"name": org_name}, raise_errors)

    async def list_by_user_id(self, user_id: str | None, *, raise_errors: bool = False) -> list[Any]:
        if not user_id:
            return []
        return await self._list("user_scans", USER_SCAN_ROUTES, {"id": user_id}, raise_errors)

    async def list_all(self, *, raise_errors: bool = False) -> list[Any]:
        return await self._list("all_scans", ALL_SCAN_ROUTES, {}, raise_errors)

    async def get_by_id(self, scan_id: str | None) -> Any:
        """Raw scan payload, or None when no candidate route knows the id."""
        if not scan_id:
            return None
        wanted = str(scan_id)

        def accept(payload: Any) -> Any:
            if isinstance(payload, list):
                # query routes may answer with a list; keep only the matching entry
                for item in payload:
                    if isinstance(item, Mapping) and wanted in candidate_scan_ids(item):
                        return item
                return None
            # HTML shells and other text bodies are not scans
            return payload if isinstance(payload, Mapping) else None

        try:
            return await self.prober.probe(
                "scan_by_id",
                SCAN_BY_ID_ROUTES,
                {"id": wanted},
                accept=accept,
                memoize=False,
                tolerate_errors=True,
            )
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected failure looking up scan %s", wanted)
            return None

    async def list_paged(self, page: int = 1, limit: int = 10, *, raise_errors: bool = False) -> ScanPage:
        try:
            data = await self.api.get_json(
                PAGED_SCANS_PATH,
                {"page": page, "limit": limit},
                timeout=self.timeout_for(PAGED_SCANS_PATH),
            )
        except ApiError as exc:
            if exc.is_dataset_too_large or raise_errors:
                raise
            logger.warning("Paged scan list failed: %s", exc.message)
            return ScanPage()

        if isinstance(data, Mapping) and isinstance(data.get("data"), list):
            return ScanPage(
                data=list(data["data"]),
                pagination=Pagination.from_mapping(data.get("pagination"), page=page, limit=limit),
            )
        return ScanPage(data=normalize_list_response(data))


__all__ = [
    "ALL_SCAN_ROUTES",
    "ORG_NAME_ROUTES",
    "ORG_SCAN_ROUTES",
    "SCAN_BY_ID_ROUTES",
    "ScanDirectory",
    "USER_SCAN_ROUTES",
    "normalize_list_response",
]
