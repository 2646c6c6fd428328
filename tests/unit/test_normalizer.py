# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from datetime import datetime, timezone

from defendly.models.scan import Pagination, ScanRecord, is_scan_completed, is_terminal_status
from defendly.scans.normalizer import (
    alert_bucket,
    count_severities,
    extract_domain,
    normalize_scan,
    scan_duration,
    severity_label,
)
from defendly.utils.dates import (
    PLACEHOLDER,
    format_duration,
    format_timestamp,
    parse_datetime,
    sort_key_newest_first,
)
from defendly.utils.fields import candidate_scan_ids, dig, first_present, resolve_scan_id


def test_first_present_skips_empty_values():
    data = {"scan_id": "", "_id": None, "id": "abc"}
    assert first_present(data, ("scan_id", "_id", "id")) == "abc"
    assert first_present({"flag": False}, ("flag",), "d") == "d"
    assert first_present({"n": 0}, ("n",)) == 0
    assert first_present(None, ("x",), "d") == "d"
    assert resolve_scan_id({"_id": 42}) == "42"
    assert candidate_scan_ids({"scan_id": "s", "_id": "m"}) == {"s", "m"}
    assert dig({"a": {"b": {"c": 3}}}, "a", "b", "c") == 3
    assert dig({"a": 1}, "a", "b", default="x") == "x"


def test_parse_datetime_variants():
    assert parse_datetime("2024-03-05T10:20:00Z").year == 2024
    assert parse_datetime("03/05/2024 10:20").month == 3
    assert parse_datetime("2024-03-05 10:20:00") == datetime(2024, 3, 5, 10, 20)
    assert parse_datetime(0).year == 1970
    assert parse_datetime("garbage") is None
    assert parse_datetime("") is None
    assert parse_datetime(None) is None


def test_parse_datetime_compact_offsets():
    utc = timezone.utc
    assert parse_datetime("2024-01-02 10:00:00.000+0000") == datetime(2024, 1, 2, 10, 0, tzinfo=utc)
    assert parse_datetime("2024-01-02T10:00:00+0000") == datetime(2024, 1, 2, 10, 0, tzinfo=utc)
    assert parse_datetime("2024-01-02T10:00:00.12") == datetime(2024, 1, 2, 10, 0, 0, 120000)
    assert format_timestamp("2024-01-02 10:00:00.000+0000") != PLACEHOLDER


def test_format_timestamp_placeholder_and_naive():
    assert format_timestamp("not a date") == PLACEHOLDER
    assert format_timestamp(None) == PLACEHOLDER
    assert format_timestamp("2024-03-05T10:20:00") == "03/05/2024 10:20"


def test_sort_key_puts_unparseable_last():
    values = ["garbage", "2024-01-01T00:00:00", "2024-06-01T00:00:00"]
    assert sorted(values, key=sort_key_newest_first) == ["2024-06-01T00:00:00", "2024-01-01T00:00:00", "garbage"]


def test_format_duration():
    assert format_duration("2024-01-01T10:00:00", "2024-01-01T10:00:20") == "<1m"
    assert format_duration("2024-01-01T10:00:00", "2024-01-01T10:42:00") == "42m"
    assert format_duration("2024-01-01T10:00:00", "2024-01-01T12:00:00") == "2h"
    assert format_duration("2024-01-01T10:00:00", "2024-01-01T12:05:00") == "2h 5m"
    assert format_duration("x", "2024-01-01T12:05:00") is None


def test_alert_bucket_riskcode_then_text():
    assert alert_bucket({"riskcode": "3"}) == "high"
    assert alert_bucket({"riskcode": 4}) == "critical"
    assert alert_bucket({"riskcode": "9", "risk": "Medium"}) == "medium"
    assert alert_bucket({"riskdesc": "Low (Medium)"}) == "medium"
    assert alert_bucket({}) == "info"
    assert alert_bucket("not a dict") == "info"


def test_severity_label_prefers_text():
    assert severity_label({"risk": "High", "riskcode": "1"}) == "High"
    assert severity_label({"riskcode": "0"}) == "Informational"
    assert severity_label({"riskcode": "4"}) == "Critical"
    assert severity_label({}) == "Low"


def test_count_severities_sums_to_alert_count():
    alerts = [{"riskcode": "3"}, {"riskcode": "2"}, {"riskcode": "2"}, {"riskcode": "0"}, {}, {"risk": "critical"}]
    counts = count_severities(alerts)
    assert counts.to_dict() == {"critical": 1, "high": 1, "medium": 2, "low": 0, "info": 2}
    assert counts.total == len(alerts)


def test_normalize_full_payload():
    raw = {
        "_id": "abc123",
        "projectName": "Storefront",
        "url": "https://shop.example.com",
        "status": "in_progress",
        "scan_date": "2024-03-05T10:20:00",
        "updatedAt": "2024-03-05T11:25:00",
        "organization": {"name": "Acme"},
        "alerts": [{"riskcode": "3"}, {"riskcode": "2"}, {"riskcode": "0"}],
        "attack_surface_index": {"metrics": {"open_ports_count": 4}},
        "cyber_hygiene_score": {"score": 80},
    }
    record = normalize_scan(raw, "Fallback Org")
    assert record.id == "abc123"
    assert record.scan_id == "#abc123"
    assert record.target_name == "Storefront"
    assert record.scan_target == "https://shop.example.com"
    assert record.status == "in progress"
    assert record.scan_start == "03/05/2024 10:20"
    assert record.scan_end == "03/05/2024 11:25"
    assert record.organization == "Acme"
    assert record.description == "Security assessment for https://shop.example.com"
    assert record.details.vulnerabilities == 3
    assert record.details.severity.total == 3
    assert record.details.open_ports == 4
    assert record.details.risk_metrics == {
        "cyber_hygiene_score": {"score": 80},
        "attack_surface_index": {"metrics": {"open_ports_count": 4}},
    }
    assert record.original_scan == raw
    assert scan_duration(record) == "1h 5m"


def test_normalize_sparse_payload_uses_placeholders():
    record = normalize_scan({"scan_id": "#s-9", "scanStart": "garbage"})
    assert record.id == "#s-9"
    assert record.scan_id == "#s-9"
    assert record.target_name == PLACEHOLDER
    assert record.scan_target == PLACEHOLDER
    assert record.scan_start == PLACEHOLDER
    assert record.scan_end == PLACEHOLDER
    assert record.status == "in-progress"
    assert record.organization == PLACEHOLDER
    assert record.details.vulnerabilities == 0
    assert scan_duration(record) == PLACEHOLDER


def test_normalize_uses_precomputed_severity_without_alerts():
    record = normalize_scan({"id": "1", "severity": {"High": 2, "low": 1}, "total_vulnerabilities": 3})
    assert record.details.severity.high == 2
    assert record.details.severity.low == 1
    assert record.details.vulnerabilities == 3
    assert record.details.alerts == []


def test_normalize_organization_resolution_order():
    assert normalize_scan({"id": "1", "organizationName": "Named"}, "Fallback").organization == "Named"
    assert normalize_scan({"id": "1", "organization": "raw-org"}, "Fallback").organization == "Fallback"
    assert normalize_scan({"id": "1", "organization": "raw-org"}).organization == "raw-org"
    assert normalize_scan({"id": "1"}, None).target_name == PLACEHOLDER
    assert normalize_scan({"id": "1"}, "Fallback").target_name == "Fallback"


def test_normalize_never_raises_on_junk():
    assert isinstance(normalize_scan(None), ScanRecord)
    assert isinstance(normalize_scan(["not", "a", "mapping"]), ScanRecord)
    record = normalize_scan({"id": "x", "alerts": "not-a-list", "vulnerabilities": "many"})
    assert record.details.vulnerabilities == 0


def test_normalize_without_id_generates_distinct_ids():
    ids = {normalize_scan({"url": f"https://{n}.example.com"}).id for n in range(50)}
    assert len(ids) == 50
    assert normalize_scan(None).id != normalize_scan(None).id


def test_record_to_dict_is_camel_case():
    data = normalize_scan({"id": "1", "url": "https://a"}).to_dict()
    assert data["scanId"] == "#1"
    assert data["scanTarget"] == "https://a"
    assert data["details"]["openPorts"] == 0
    assert data["type"] == "AI Scan"


def test_status_helpers():
    assert is_terminal_status("completed")
    assert is_terminal_status("failed")
    assert is_terminal_status("error")
    assert not is_terminal_status("in-progress")
    assert not is_terminal_status(None)
    assert is_scan_completed("Completed")
    assert is_scan_completed("success")
    assert not is_scan_completed("running")


def test_pagination_defaults_for_falsy_values():
    p = Pagination.from_mapping({"page": 0, "pages": "3", "total": None}, page=2, limit=25)
    assert p == Pagination(page=2, limit=25, pages=3, total=0)
    assert Pagination.from_mapping(None) is None


def test_extract_domain():
    assert extract_domain("https://www.example.com/path") == "example.com"
    assert extract_domain("http://api.example.com") == "api.example.com"
    assert extract_domain("") == "Unnamed Target"
