# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import json

import pytest

from defendly.cli import main as cli
from defendly.cli.main import build_parser
from defendly.config import ApiSettings
from defendly.http.adapters import StubHttpClient, json_response
from defendly.http.models import HttpResponse
from defendly.runtime import Defendly

BASE = "http://api.test"


def _patch_client(monkeypatch, responses):
    stub = StubHttpClient(responses)
    monkeypatch.setattr(cli, "Defendly", lambda **kwargs: Defendly(http_client=stub, **kwargs))
    monkeypatch.setattr(cli, "setup_logging", lambda *_args, **_kwargs: None)
    return stub


def test_build_parser():
    parser = build_parser()
    args = parser.parse_args(["--json", "list", "--org-id", "o1"])
    assert args.json is True
    assert args.command == "list"
    assert args.org_id == "o1"

    args = parser.parse_args(["pdf", "s1", "-o", "out.pdf"])
    assert args.output == "out.pdf"
    args = parser.parse_args(["watch", "a", "b", "--timeout", "5"])
    assert args.scan_ids == ["a", "b"]
    assert args.timeout == 5.0

    with pytest.raises(SystemExit):
        parser.parse_args(["list", "--org-id", "o1", "--user-id", "u1"])


def test_cli_list_json(monkeypatch, capsys):
    stub = _patch_client(
        monkeypatch,
        {f"{BASE}/api/scans?organizationId=o1": json_response([{"_id": "s1", "url": "https://a.com", "status": "completed"}])},
    )
    assert cli.main(["--base-url", BASE, "--token", "tok", "--json", "list", "--org-id", "o1"]) == 0
    rows = json.loads(capsys.readouterr().out)
    assert rows[0]["id"] == "s1"
    assert rows[0]["scanTarget"] == "https://a.com"
    assert stub.requests[0].headers["Authorization"] == "Bearer tok"
    assert stub.closed


def test_cli_show_text_and_missing(monkeypatch, capsys):
    _patch_client(
        monkeypatch,
        {f"{BASE}/api/scans/s1": json_response({"_id": "s1", "url": "https://a.com", "alerts": [{"riskcode": "3"}]})},
    )
    assert cli.main(["--base-url", BASE, "show", "s1"]) == 0
    out = capsys.readouterr().out
    assert "Scan #s1" in out
    assert "high 1" in out

    assert cli.main(["--base-url", BASE, "show", "nope"]) == 1
    assert "not found" in capsys.readouterr().err


def test_cli_reports_api_errors(monkeypatch, capsys):
    _patch_client(monkeypatch, {f"{BASE}/api/scans": HttpResponse(ok=True, status_code=500, text="")})
    assert cli.main(["--base-url", BASE, "list"]) == 1
    err = capsys.readouterr().err
    assert err.startswith("The server rejected the request")
    assert "status 500" in err


def test_cli_csv_and_pdf_to_files(monkeypatch, tmp_path, capsys):
    _patch_client(
        monkeypatch,
        {
            f"{BASE}/api/scans/s1": json_response({"_id": "s1", "alerts": [{"name": "XSS", "riskcode": "3"}]}),
            f"{BASE}/api/reports/pdf/s1": HttpResponse(ok=True, status_code=200, content=b"%PDF-1.4"),
        },
    )
    csv_path = tmp_path / "report.csv"
    pdf_path = tmp_path / "report.pdf"
    assert cli.main(["--base-url", BASE, "csv", "s1", "-o", str(csv_path)]) == 0
    assert cli.main(["--base-url", BASE, "pdf", "s1", "-o", str(pdf_path)]) == 0
    assert "XSS,High" in csv_path.read_text(encoding="utf-8")
    assert pdf_path.read_bytes() == b"%PDF-1.4"
    assert "Wrote 8 bytes" in capsys.readouterr().out


def test_cli_watch_until_completed(monkeypatch, capsys):
    _patch_client(monkeypatch, {f"{BASE}/api/scans/s1": json_response({"_id": "s1", "status": "completed"})})
    assert cli.main(["--base-url", BASE, "watch", "s1", "--timeout", "5"]) == 0
    assert "s1: completed" in capsys.readouterr().out


def test_cli_initiate(monkeypatch, capsys):
    stub = _patch_client(monkeypatch, {f"{BASE}/api/scans/initiate": json_response({"scan_id": "n1"})})
    assert cli.main(["--base-url", BASE, "initiate", "https://a.com", "--project", "Shop"]) == 0
    assert "Scan n1 started for https://a.com" in capsys.readouterr().out
    assert json.loads(stub.requests[0].body)["projectName"] == "Shop"


@pytest.mark.asyncio
async def test_runtime_wires_shared_services_and_closes():
    stub = StubHttpClient()
    client = Defendly(stub, settings=ApiSettings(base_url=BASE), token="tok")
    assert client.directory.api is client.api
    assert client.reports.directory is client.directory
    assert client.directory.cache is client.cache
    assert client.auth.is_authenticated

    controller = client.controller("Acme")
    assert controller.organization_name == "Acme"
    async with client:
        pass
    assert controller.closed
    assert stub.closed
