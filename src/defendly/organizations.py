# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Organization listing."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .api import ApiClient
from .utils.fields import first_present

ORGANIZATIONS_PATH = "/api/organizations"
ORGANIZATION_ID_FIELDS = ("id", "_id", "organizationId", "orgId")


def organization_id(org: Mapping[str, Any] | None) -> str | None:
    if not org:
        return None
    value = first_present(org, ORGANIZATION_ID_FIELDS)
    return None if value is None else str(value)


def organization_name(org: Mapping[str, Any] | None) -> str | None:
    if not org:
        return None
    name = org.get("name")
    return str(name) if name else None


class OrganizationClient:
    def __init__(self, api: ApiClient):
        self.api = api

    async def list_organizations(self) -> list[dict[str, Any]]:
        data = await self.api.get_json(ORGANIZATIONS_PATH)
        if not isinstance(data, list):
            return []
        return [org for org in data if isinstance(org, dict)]
