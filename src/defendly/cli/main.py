# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Defendly CLI."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import os
import sys
from pathlib import Path
from typing import Any

from ..config import ApiSettings, load_api_settings
from ..errors import ApiError, AuthenticationError, categorize_exception, error_category_to_reason
from ..log import setup_logging
from ..models.scan import ScanRecord
from ..organizations import organization_id, organization_name
from ..runtime import Defendly
from ..scans.normalizer import normalize_scan, scan_duration
from ..scans.reports import ScanSubmission

CLI_TEXT_TRUNCATION = 200


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Defendly security-scan client")
    parser.add_argument("--base-url", help="Backend base URL (defaults to DEFENDLY_API_BASE_URL)")
    parser.add_argument("--token", help="Bearer token (defaults to DEFENDLY_TOKEN)")
    parser.add_argument("--json", action="store_true", help="Output JSON instead of a human-friendly summary")
    parser.add_argument("--log-level", help="Logging level (defaults to DEFENDLY_LOG_LEVEL)")
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Sign in and print a bearer token")
    login.add_argument("email")
    login.add_argument("--password", help="Password (prompted when omitted)")

    sub.add_parser("orgs", help="List organizations")

    listing = sub.add_parser("list", help="List scans")
    scope = listing.add_mutually_exclusive_group()
    scope.add_argument("--org-id", help="Organization id")
    scope.add_argument("--org", help="Organization name")
    scope.add_argument("--user-id", help="User id")
    scope.add_argument("--page", type=int, help="Page number of the paged listing")
    listing.add_argument("--limit", type=int, default=10, help="Page size for --page")

    show = sub.add_parser("show", help="Show one scan")
    show.add_argument("scan_id")

    initiate = sub.add_parser("initiate", help="Start a scan")
    initiate.add_argument("url", nargs="+", help="Target URL(s)")
    initiate.add_argument("--org", help="Organization name")
    initiate.add_argument("--project", help="Project name")
    initiate.add_argument("--label")
    initiate.add_argument("--login-url", help="Login page for authenticated scans")
    initiate.add_argument("--login-email", help="Account email for authenticated scans")
    initiate.add_argument("--login-password", help="Account password for authenticated scans")
    initiate.add_argument("--watch", action="store_true", help="Poll the new scan until it finishes")

    watch = sub.add_parser("watch", help="Poll scans until they finish")
    watch.add_argument("scan_ids", nargs="+")
    watch.add_argument("--timeout", type=float, help="Give up after this many seconds")

    pdf = sub.add_parser("pdf", help="Download the PDF report of a scan")
    pdf.add_argument("scan_id")
    pdf.add_argument("-o", "--output", required=True)

    csv_cmd = sub.add_parser("csv", help="Export a scan's alerts as CSV")
    csv_cmd.add_argument("scan_id")
    csv_cmd.add_argument("-o", "--output", help="Write to a file instead of stdout")
    return parser


def _truncate(value: Any, limit: int = CLI_TEXT_TRUNCATION) -> str:
    text = str(value)
    return text if len(text) <= limit else text[: limit - 3] + "..."


def _print_json(data: Any) -> None:
    payload = data.to_dict() if hasattr(data, "to_dict") else data
    json.dump(payload, sys.stdout, indent=2, sort_keys=True, default=str)
    sys.stdout.write("\n")


def _print_rows(records: list[ScanRecord] | tuple[ScanRecord, ...]) -> None:
    if not records:
        print("No scans found.")
        return
    for record in records:
        print(f"{record.scan_id:<28} {record.status:<12} {record.scan_start:<17} {_truncate(record.scan_target, 60)}")


def _print_record(record: ScanRecord) -> None:
    severity = record.details.severity
    print(f"Scan {record.scan_id} ({record.status})")
    print(f"Target: {record.scan_target}")
    print(f"Project: {record.target_name}")
    print(f"Organization: {record.organization}")
    print(f"Started: {record.scan_start}  Ended: {record.scan_end}  Duration: {scan_duration(record)}")
    print(
        f"Vulnerabilities: {record.details.vulnerabilities} "
        f"(critical {severity.critical}, high {severity.high}, medium {severity.medium}, "
        f"low {severity.low}, info {severity.info})"
    )


def _emit(args: argparse.Namespace, data: Any) -> None:
    if args.json:
        if isinstance(data, (list, tuple)):
            _print_json([item.to_dict() if hasattr(item, "to_dict") else item for item in data])
        else:
            _print_json(data)
        return
    if isinstance(data, ScanRecord):
        _print_record(data)
    elif isinstance(data, (list, tuple)):
        _print_rows(list(data))
    else:
        print(data)


async def _watch(client: Defendly, scan_ids: list[str], timeout: float | None) -> int:
    async with client.controller() as controller:
        def report(scan_id: str):
            def _on_status(status: str, _raw: Any) -> None:
                print(f"{scan_id}: {status}", flush=True)

            return _on_status

        for scan_id in scan_ids:
            await controller.start_polling(scan_id, on_status=report(scan_id))

        async def wait_done() -> None:
            while controller.active_polling_ids:
                await asyncio.sleep(min(controller.poll_interval, 0.5) or 0.1)

        try:
            await asyncio.wait_for(wait_done(), timeout=timeout)
        except asyncio.TimeoutError:
            print(f"Still running: {', '.join(sorted(controller.active_polling_ids))}", file=sys.stderr)
            return 1
    return 0


async def _run(args: argparse.Namespace, settings: ApiSettings) -> int:
    token = args.token or os.getenv("DEFENDLY_TOKEN")
    async with Defendly(settings=settings, token=token) as client:
        command = args.command

        if command == "login":
            password = args.password or os.getenv("DEFENDLY_PASSWORD") or getpass.getpass("Password: ")
            profile = await client.auth.login(args.email, password)
            token = client.tokens.get()
            if args.json:
                _print_json({"email": profile.email, "name": profile.name, "role": profile.role, "token": token})
            else:
                print(f"Signed in as {profile.name} <{profile.email}> ({profile.role})")
                print(f"export DEFENDLY_TOKEN={token}")
            return 0

        if command == "orgs":
            orgs = await client.organizations.list_organizations()
            if args.json:
                _print_json(orgs)
            else:
                for org in orgs:
                    print(f"{organization_id(org) or '-':<40} {organization_name(org) or '-'}")
            return 0

        if command == "list":
            if args.page is not None:
                page = await client.directory.list_paged(args.page, args.limit, raise_errors=True)
                raw_scans = page.data
                if page.pagination and not args.json:
                    p = page.pagination
                    print(f"Page {p.page}/{p.pages} ({p.total} scans)")
            elif args.org_id:
                raw_scans = await client.directory.list_by_organization_id(args.org_id, raise_errors=True)
            elif args.org:
                raw_scans = await client.directory.list_by_organization(args.org, raise_errors=True)
            elif args.user_id:
                raw_scans = await client.directory.list_by_user_id(args.user_id, raise_errors=True)
            else:
                raw_scans = await client.directory.list_all(raise_errors=True)
            _emit(args, [normalize_scan(raw, args.org) for raw in raw_scans])
            return 0

        if command == "show":
            raw = await client.directory.get_by_id(args.scan_id)
            if raw is None:
                print(f"Scan {args.scan_id} not found", file=sys.stderr)
                return 1
            _emit(args, normalize_scan(raw))
            return 0

        if command == "initiate":
            submission = ScanSubmission(
                scan_target=args.url[0],
                project_name=args.project,
                label=args.label,
                organization=args.org,
                email=args.login_email,
                password=args.login_password,
                login_url=args.login_url,
                scan_targets=list(args.url),
            )
            initiated = await client.reports.initiate(submission)
            if args.json:
                _print_json({"scan_id": initiated.scan_id, "status": initiated.status, "url": initiated.url})
            else:
                print(f"Scan {initiated.scan_id} started for {initiated.url} ({initiated.status})")
            if args.watch:
                return await _watch(client, [initiated.scan_id], None)
            return 0

        if command == "watch":
            return await _watch(client, list(args.scan_ids), args.timeout)

        if command == "pdf":
            data = await client.reports.download_pdf(args.scan_id)
            Path(args.output).write_bytes(data)
            print(f"Wrote {len(data)} bytes to {args.output}")
            return 0

        if command == "csv":
            content = await client.reports.download_csv(args.scan_id)
            if args.output:
                Path(args.output).write_text(content, encoding="utf-8")
                print(f"Wrote {args.output}")
            else:
                sys.stdout.write(content)
            return 0

    return 2


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    settings = load_api_settings()
    if args.base_url:
        settings.base_url = args.base_url.rstrip("/")

    try:
        return asyncio.run(_run(args, settings))
    except AuthenticationError as exc:
        print(f"Login failed: {exc}", file=sys.stderr)
        return 1
    except ApiError as exc:
        reason = error_category_to_reason(categorize_exception(exc))
        print(f"{reason}: {exc.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
