"""이 파일은 .py 테스트 모듈로 composer/npm audit 출력 정규화를 검증합니다."""

from secbaseline.services.audit_parsers import (
    normalize_severity,
    parse_composer_audit,
    parse_npm_audit,
)


def _composer_advisory(advisory_id: str, severity: str = "high", package: str = "laravel/framework") -> dict:
    return {
        "package": package,
        "version": "11.40.0",
        "severity": severity,
        "title": f"Advisory {advisory_id}",
        "cve": f"CVE-2025-{advisory_id}",
        "advisoryId": advisory_id,
        "link": f"https://example.test/{advisory_id}",
        "affectedVersions": "<11.44.1",
        "fixedVersion": "11.44.1",
    }


def test_normalize_severity() -> None:
    assert normalize_severity("moderate") == "medium"
    assert normalize_severity("CRITICAL") == "critical"
    assert normalize_severity(None) == "unknown"
    assert normalize_severity("info") == "unknown"


def test_composer_parser_handles_flat_list() -> None:
    vulnerabilities, summary = parse_composer_audit({"advisories": [_composer_advisory("1")]})
    assert len(vulnerabilities) == 1
    record = vulnerabilities[0]
    assert record.ecosystem == "composer"
    assert record.package == "laravel/framework"
    assert record.advisory_id == "1"
    assert record.url == "https://example.test/1"
    assert record.fix_version == "11.44.1"
    assert summary.total == 1
    assert summary.high == 1


def test_composer_parser_handles_package_map() -> None:
    payload = {
        "advisories": {
            "livewire/livewire": [
                {"title": "Upload bypass", "severity": "critical", "advisoryId": "LW-1"},
            ],
            "filament/filament": [
                {"title": "Export leak", "severity": "moderate", "advisoryId": "FI-1"},
            ],
        }
    }
    vulnerabilities, summary = parse_composer_audit(payload)
    assert {item.package for item in vulnerabilities} == {"livewire/livewire", "filament/filament"}
    assert summary.critical == 1
    assert summary.medium == 1


def test_composer_parser_deduplicates_repeated_advisories() -> None:
    advisories = [_composer_advisory("1"), _composer_advisory("2", "low")]
    vulnerabilities, summary = parse_composer_audit({"advisories": advisories + advisories})
    assert len(vulnerabilities) == 2
    assert summary.total == 2


def test_composer_parser_caps_entries_with_minimum() -> None:
    advisories = [_composer_advisory(str(index)) for index in range(50)]
    vulnerabilities, _ = parse_composer_audit({"advisories": advisories}, max_entries=5)
    assert len(vulnerabilities) == 20
    vulnerabilities, summary = parse_composer_audit({"advisories": advisories}, max_entries=30)
    assert len(vulnerabilities) == 30
    assert summary.total == 30


def test_composer_parser_ignores_missing_advisories() -> None:
    vulnerabilities, summary = parse_composer_audit({})
    assert vulnerabilities == []
    assert summary.total == 0


def test_npm_parser_uses_only_object_via_entries() -> None:
    payload = {
        "vulnerabilities": {
            "axios": {
                "severity": "high",
                "range": "<1.7.4",
                "fixAvailable": {"name": "axios", "version": "1.7.4"},
                "via": [
                    "follow-redirects",
                    {
                        "name": "axios",
                        "title": "SSRF in axios",
                        "severity": "high",
                        "range": "<1.7.4",
                        "source": 1097679,
                        "url": "https://github.com/advisories/GHSA-8hc4",
                    },
                ],
            }
        }
    }
    vulnerabilities, summary = parse_npm_audit(payload)
    assert len(vulnerabilities) == 1
    record = vulnerabilities[0]
    assert record.title == "SSRF in axios"
    assert record.advisory_id == "1097679"
    assert record.fix_version == "1.7.4"
    assert summary.high == 1


def test_npm_parser_synthesizes_record_for_string_only_via() -> None:
    payload = {
        "vulnerabilities": {
            "follow-redirects": {
                "severity": "moderate",
                "range": "<=1.15.5",
                "fixAvailable": True,
                "via": ["some-parent"],
            }
        }
    }
    vulnerabilities, summary = parse_npm_audit(payload)
    assert len(vulnerabilities) == 1
    record = vulnerabilities[0]
    assert record.title == "NPM advisory: follow-redirects"
    assert record.severity == "medium"
    assert record.fix_version == "available"
    assert summary.medium == 1


def test_npm_parser_deduplicates_repeated_advisories() -> None:
    advisory = {"name": "lodash", "title": "Prototype pollution", "severity": "critical", "source": 1}
    payload = {
        "vulnerabilities": {
            "lodash": {"severity": "critical", "via": [advisory, dict(advisory)]},
        }
    }
    vulnerabilities, summary = parse_npm_audit(payload)
    assert len(vulnerabilities) == 1
    assert summary.critical == 1
