# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import json

import pytest

from defendly.api import ApiClient
from defendly.auth import LOGIN_PATH, TOKEN_PATH, AuthClient
from defendly.config import ApiSettings
from defendly.errors import AuthenticationError
from defendly.http.adapters import StubHttpClient, json_response
from defendly.organizations import OrganizationClient, organization_id, organization_name
from defendly.tokens import TokenStore

BASE = "http://api.test"


def _api(responses=None, token=None):
    stub = StubHttpClient(responses or {})
    return ApiClient(ApiSettings(base_url=BASE), stub, TokenStore(token)), stub


@pytest.mark.asyncio
async def test_login_stores_token_and_builds_profile():
    api, stub = _api({f"{BASE}{LOGIN_PATH}": json_response({"token": "t1", "expiresIn": 3600, "role": "admin"})})
    auth = AuthClient(api)
    profile = await auth.login("jo@example.com", "secret")

    assert profile.email == "jo@example.com"
    assert profile.name == "jo"
    assert profile.role == "admin"
    assert auth.is_authenticated
    assert api.token_store.get() == "t1"
    assert json.loads(stub.requests[0].body) == {"email": "jo@example.com", "password": "secret"}

    auth.logout()
    assert not auth.is_authenticated


@pytest.mark.asyncio
async def test_login_failures():
    api, _ = _api({f"{BASE}{LOGIN_PATH}": json_response({"message": "bad"}, status_code=401)})
    auth = AuthClient(api)
    with pytest.raises(AuthenticationError, match="required"):
        await auth.login("", "x")
    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        await auth.login("a@b.c", "wrong")

    api, _ = _api({f"{BASE}{LOGIN_PATH}": json_response({"user": {}})})
    with pytest.raises(AuthenticationError, match="Missing token"):
        await AuthClient(api).login("a@b.c", "pw")


@pytest.mark.asyncio
async def test_token_for_organization():
    api, stub = _api({f"{BASE}{TOKEN_PATH}": json_response({"token": "org-token"})}, token="user-token")
    auth = AuthClient(api)
    assert await auth.token_for_organization("Acme") == "org-token"
    assert stub.requests[0].headers["Authorization"] == "Bearer user-token"
    assert api.token_store.get() == "org-token"

    api, _ = _api()
    assert await AuthClient(api).token_for_organization("Acme") is None


@pytest.mark.asyncio
async def test_list_organizations():
    api, _ = _api({f"{BASE}/api/organizations": json_response([{"_id": "o1", "name": "Acme"}, "junk"])})
    orgs = await OrganizationClient(api).list_organizations()
    assert orgs == [{"_id": "o1", "name": "Acme"}]
    assert organization_id(orgs[0]) == "o1"
    assert organization_name(orgs[0]) == "Acme"
    assert organization_id({"orgId": 7}) == "7"
    assert organization_id(None) is None

    api, _ = _api({f"{BASE}/api/organizations": json_response({"data": []})})
    assert await OrganizationClient(api).list_organizations() == []
