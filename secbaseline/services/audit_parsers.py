"""이 파일은 .py audit 파서 모듈로 composer/npm JSON 출력을 통합 취약점 모델로 정규화합니다."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from secbaseline.core.types import AuditSummary, VulnerabilityRecord

MIN_CAPPED_ENTRIES = 20

ParsedAudit = Tuple[List[VulnerabilityRecord], AuditSummary]


def normalize_severity(value: Any) -> str:
    # 도구마다 다른 심각도 표기(moderate 등)를 공통 값으로 맞춘다.
    normalized = str(value or "").lower()
    if not normalized:
        return "unknown"
    if "critical" in normalized:
        return "critical"
    if "high" in normalized:
        return "high"
    if "moderate" in normalized or "medium" in normalized:
        return "medium"
    if "low" in normalized:
        return "low"
    return "unknown"


def summarize_vulnerabilities(vulnerabilities: Iterable[VulnerabilityRecord]) -> AuditSummary:
    summary = AuditSummary()
    for item in vulnerabilities:
        summary.total += 1
        severity = normalize_severity(item.severity)
        setattr(summary, severity, getattr(summary, severity) + 1)
    return summary


def dedupe_vulnerabilities(vulnerabilities: Iterable[VulnerabilityRecord]) -> List[VulnerabilityRecord]:
    # (생태계, 패키지, advisory 식별자, 심각도) 키로 첫 항목만 남긴다.
    seen = set()
    unique: List[VulnerabilityRecord] = []
    for index, item in enumerate(vulnerabilities):
        key = (
            item.ecosystem or "unknown",
            item.package or "unknown",
            item.advisory_id or item.cve or item.title or f"idx-{index}",
            normalize_severity(item.severity),
        )
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def _finalize(vulnerabilities: List[VulnerabilityRecord], max_entries: int) -> ParsedAudit:
    capped = dedupe_vulnerabilities(vulnerabilities)[: max(MIN_CAPPED_ENTRIES, max_entries)]
    return capped, summarize_vulnerabilities(capped)


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _composer_record(entry: Dict[str, Any], package_name: Optional[str] = None) -> VulnerabilityRecord:
    return VulnerabilityRecord(
        ecosystem="composer",
        package=str(package_name or entry.get("package") or entry.get("packageName") or entry.get("name") or "unknown"),
        version=_optional_str(entry.get("version")),
        severity=normalize_severity(entry.get("severity")),
        title=str(entry.get("title") or entry.get("advisoryTitle") or "Composer advisory"),
        cve=_optional_str(entry.get("cve")),
        advisory_id=_optional_str(entry.get("advisoryId") or entry.get("id")),
        url=_optional_str(entry.get("link") or entry.get("url")),
        affected_versions=_optional_str(entry.get("affectedVersions") or entry.get("affected")),
        fix_version=_optional_str(entry.get("fixedVersion") or entry.get("recommendedVersion")),
    )


def parse_composer_audit(payload: Any, max_entries: int = 120) -> ParsedAudit:
    """composer audit --format=json 출력을 파싱한다.

    advisories는 평탄한 리스트이거나 패키지명을 키로 하는 딕셔너리일 수 있다.
    """
    vulnerabilities: List[VulnerabilityRecord] = []
    advisories = payload.get("advisories") if isinstance(payload, dict) else None

    if isinstance(advisories, list):
        for entry in advisories:
            if isinstance(entry, dict):
                vulnerabilities.append(_composer_record(entry))
    elif isinstance(advisories, dict):
        for package_name, advisory_list in advisories.items():
            if not isinstance(advisory_list, list):
                continue
            for entry in advisory_list:
                if isinstance(entry, dict):
                    vulnerabilities.append(_composer_record(entry, package_name))

    return _finalize(vulnerabilities, max_entries)


def _npm_fix_version(entry: Dict[str, Any]) -> Optional[str]:
    fix = entry.get("fixAvailable")
    if isinstance(fix, dict):
        return _optional_str(fix.get("version"))
    return "available" if fix else None


def parse_npm_audit(payload: Any, max_entries: int = 120) -> ParsedAudit:
    """npm audit --json 출력을 파싱한다.

    via 목록의 객체 항목만 advisory로 본다. 문자열 항목은 의존성 체인 참조일 뿐이므로,
    객체가 하나도 없으면 패키지 자체를 가리키는 일반 레코드를 하나 만든다.
    """
    vulnerabilities: List[VulnerabilityRecord] = []
    vulnerability_map = payload.get("vulnerabilities") if isinstance(payload, dict) else None

    for package_name, entry in (vulnerability_map or {}).items():
        if not isinstance(entry, dict):
            continue
        via_list = entry.get("via") if isinstance(entry.get("via"), list) else []
        advisories = [via for via in via_list if isinstance(via, dict)]
        fix_version = _npm_fix_version(entry)

        if not advisories:
            vulnerabilities.append(
                VulnerabilityRecord(
                    ecosystem="npm",
                    package=str(package_name),
                    version=_optional_str(entry.get("range")),
                    severity=normalize_severity(entry.get("severity")),
                    title=f"NPM advisory: {package_name}",
                    affected_versions=_optional_str(entry.get("range")),
                    fix_version=fix_version,
                )
            )
            continue

        for advisory in advisories:
            affected = _optional_str(advisory.get("range") or entry.get("range"))
            vulnerabilities.append(
                VulnerabilityRecord(
                    ecosystem="npm",
                    package=str(advisory.get("name") or package_name),
                    version=affected,
                    severity=normalize_severity(advisory.get("severity") or entry.get("severity")),
                    title=str(advisory.get("title") or f"NPM advisory: {package_name}"),
                    cve=_optional_str(advisory.get("cve")),
                    advisory_id=_optional_str(advisory.get("source")),
                    url=_optional_str(advisory.get("url")),
                    affected_versions=affected,
                    fix_version=fix_version,
                )
            )

    return _finalize(vulnerabilities, max_entries)


# 생태계 태그로 파서를 선택한다.
PARSERS: Dict[str, Callable[[Any, int], ParsedAudit]] = {
    "composer": parse_composer_audit,
    "npm": parse_npm_audit,
}
