# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import json

import pytest

from defendly.api import ApiClient
from defendly.config import ApiSettings
from defendly.errors import ApiError, ApiTimeoutError, DatasetTooLargeError
from defendly.http.adapters import StubHttpClient, json_response
from defendly.http.models import HttpResponse
from defendly.tokens import TokenStore

BASE = "http://api.test"


def _api(responses=None, token=None, **settings):
    stub = StubHttpClient(responses or {})
    api = ApiClient(ApiSettings(base_url=BASE, **settings), stub, TokenStore(token))
    return api, stub


def test_build_headers_adds_bearer_only_with_token():
    api, _ = _api()
    headers = api.build_headers()
    assert headers["Accept"] == "application/json"
    assert headers["Content-Type"] == "application/json"
    assert "Authorization" not in headers

    api.token_store.set("abc")
    assert api.build_headers()["Authorization"] == "Bearer abc"


def test_url_for_requires_path():
    api, _ = _api()
    assert api.url_for("/api/scans", {"organizationId": "o1"}) == f"{BASE}/api/scans?organizationId=o1"
    with pytest.raises(ValueError):
        api.url_for("")


@pytest.mark.asyncio
async def test_get_json_returns_payload_and_sends_settings():
    api, stub = _api({f"{BASE}/api/scans": json_response([{"_id": "1"}])}, token="t", timeout=7.0)
    assert await api.get_json("/api/scans") == [{"_id": "1"}]
    sent = stub.requests[0]
    assert sent.timeout == 7.0
    assert sent.max_body_bytes == api.settings.max_response_bytes
    assert sent.headers["Authorization"] == "Bearer t"


@pytest.mark.asyncio
async def test_post_json_encodes_body():
    api, stub = _api({f"{BASE}/api/scans/initiate": json_response({"scan_id": "s1"})})
    assert await api.post_json("/api/scans/initiate", {"url": "https://x"}) == {"scan_id": "s1"}
    sent = stub.requests[0]
    assert sent.method == "POST"
    assert json.loads(sent.body) == {"url": "https://x"}


@pytest.mark.asyncio
async def test_non_2xx_uses_backend_message():
    api, _ = _api({f"{BASE}/x": json_response({"message": "Forbidden org"}, status_code=403)})
    with pytest.raises(ApiError) as excinfo:
        await api.get_json("/x")
    assert excinfo.value.status_code == 403
    assert excinfo.value.message == "Forbidden org"
    assert excinfo.value.payload == {"message": "Forbidden org"}


@pytest.mark.asyncio
async def test_non_2xx_without_message_and_404_default():
    api, _ = _api({f"{BASE}/x": HttpResponse(ok=True, status_code=500, text="oops")})
    with pytest.raises(ApiError, match="Request failed with status 500"):
        await api.get_json("/x")
    with pytest.raises(ApiError) as excinfo:
        await api.get_json("/missing")
    assert excinfo.value.is_not_found


@pytest.mark.asyncio
async def test_unparseable_json_is_none():
    bad = HttpResponse(ok=True, status_code=200, headers={"Content-Type": "application/json"}, text="{nope")
    api, _ = _api({f"{BASE}/x": bad})
    assert await api.get_json("/x") is None


@pytest.mark.asyncio
async def test_transport_failures_map_to_taxonomy():
    api, _ = _api(
        {
            f"{BASE}/slow": HttpResponse(ok=False, error_type="TimeoutException", error_message="t"),
            f"{BASE}/big": HttpResponse(
                ok=False,
                error_type="ResponseTooLarge",
                meta={"response_size": 11 * 1024 * 1024, "body_bytes_limit": 10 * 1024 * 1024},
            ),
            f"{BASE}/down": HttpResponse(ok=False, error_type="ConnectError", error_message="refused"),
        }
    )
    with pytest.raises(ApiTimeoutError):
        await api.get_json("/slow")
    with pytest.raises(DatasetTooLargeError) as excinfo:
        await api.get_json("/big")
    assert excinfo.value.response_size == 11 * 1024 * 1024
    with pytest.raises(ApiError) as excinfo:
        await api.get_json("/down")
    assert excinfo.value.status_code is None
    assert excinfo.value.message == "refused"


@pytest.mark.asyncio
async def test_unauthorized_clears_token():
    api, _ = _api({f"{BASE}/x": json_response({"message": "expired"}, status_code=401)}, token="old")
    with pytest.raises(ApiError):
        await api.get_json("/x")
    assert api.token_store.get() is None


@pytest.mark.asyncio
async def test_get_binary_success_and_headers():
    pdf = HttpResponse(ok=True, status_code=200, headers={"content-type": "application/pdf"}, content=b"%PDF-1.7")
    api, stub = _api({f"{BASE}/api/reports/pdf/1": pdf}, download_timeout=300.0)
    assert await api.get_binary("/api/reports/pdf/1") == b"%PDF-1.7"
    sent = stub.requests[0]
    assert sent.headers["Accept"] == "application/pdf"
    assert "Content-Type" not in sent.headers
    assert sent.max_body_bytes == 0
    assert sent.timeout == 300.0


@pytest.mark.asyncio
async def test_get_binary_errors():
    api, _ = _api(
        {
            f"{BASE}/json-err": json_response({"error": "Report not ready"}, status_code=409),
            f"{BASE}/text-err": HttpResponse(ok=True, status_code=500, text="generator crashed"),
            f"{BASE}/slow": HttpResponse(ok=False, error_type="TimeoutException"),
        }
    )
    with pytest.raises(ApiError, match="Report not ready"):
        await api.get_binary("/json-err")
    with pytest.raises(ApiError, match="generator crashed"):
        await api.get_binary("/text-err")
    with pytest.raises(ApiError, match="Failed to download binary: 404"):
        await api.get_binary("/missing")
    with pytest.raises(ApiTimeoutError, match="custom timeout"):
        await api.get_binary("/slow", timeout_message="custom timeout")


def test_token_store_expiry():
    now = [1000.0]
    store = TokenStore(clock=lambda: now[0])
    assert store.is_expired()
    store.set("tok", expires_in=600, refresh_token="r")
    assert store.get() == "tok"
    assert store.refresh_token == "r"
    assert not store.should_refresh()
    now[0] += 400
    assert store.should_refresh()
    now[0] += 200
    assert store.get() is None
    assert store.refresh_token is None
