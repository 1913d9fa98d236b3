"""이 파일은 .py 타입 정의 모듈로 컨트롤, 취약점, audit 결과, 점수 모델을 제공합니다."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

SEVERITIES = ("critical", "high", "medium", "low")
AUDIT_SEVERITIES = ("critical", "high", "medium", "low", "unknown")
STATUSES = ("pass", "warning", "fail", "unknown")
MODES = ("automated", "semi", "manual")


def _pick(data: Dict[str, Any], key: str, camel_key: str) -> Any:
    # 이전 스냅샷은 snake_case와 camelCase 키를 모두 받는다.
    value = data.get(key)
    return data.get(camel_key) if value is None else value


@dataclass(frozen=True)
class ControlDefinition:
    # 카탈로그(YAML)에서 읽은 불변 컨트롤 정의이다.
    id: str
    title: str
    category: str
    severity: str
    mode: str
    frequency: str


@dataclass
class Control:
    # 평가가 끝난 컨트롤로 status/message/evidence를 담는다.
    id: str
    title: str
    category: str
    severity: str
    mode: str
    frequency: str
    status: str = "unknown"
    message: str = ""
    recommendation: str = ""
    evidence: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_definition(
        cls,
        definition: ControlDefinition,
        status: Optional[str] = None,
        message: str = "",
        recommendation: str = "",
        evidence: Optional[Dict[str, Any]] = None,
    ) -> "Control":
        return cls(
            id=definition.id,
            title=definition.title,
            category=definition.category,
            severity=definition.severity,
            mode=definition.mode,
            frequency=definition.frequency,
            status=status or "unknown",
            message=message,
            recommendation=recommendation,
            evidence=evidence or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class VulnerabilityRecord:
    # composer/npm advisory를 통합한 단일 취약점 레코드이다.
    ecosystem: str
    package: str
    severity: str
    title: str
    version: Optional[str] = None
    cve: Optional[str] = None
    advisory_id: Optional[str] = None
    url: Optional[str] = None
    affected_versions: Optional[str] = None
    fix_version: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VulnerabilityRecord":
        return cls(
            ecosystem=str(data.get("ecosystem") or "unknown"),
            package=str(data.get("package") or "unknown"),
            severity=str(data.get("severity") or "unknown"),
            title=str(data.get("title") or ""),
            version=data.get("version"),
            cve=data.get("cve"),
            advisory_id=_pick(data, "advisory_id", "advisoryId"),
            url=data.get("url"),
            affected_versions=_pick(data, "affected_versions", "affectedVersions"),
            fix_version=_pick(data, "fix_version", "fixVersion"),
        )


@dataclass
class AuditSummary:
    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    unknown: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class AuditExecution:
    # 외부 도구 실행 결과(종료 코드, 소요 시간, 오류, 타임아웃 여부)이다.
    status: Optional[int] = None
    duration_ms: int = 0
    error: Optional[str] = None
    timed_out: bool = False

    @property
    def failed(self) -> bool:
        # 오류/타임아웃/비정상 종료 코드는 모두 실행 실패로 본다.
        return bool(self.error) or self.status is None or self.status > 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AuditResult:
    tool: str
    has_manifest: bool
    enabled: bool
    used_cache: bool
    source: str
    fingerprint: Optional[str]
    command: str
    summary: AuditSummary
    vulnerabilities: Optional[List[VulnerabilityRecord]]
    status: str
    message: str
    execution: Optional[AuditExecution]
    updated_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool": self.tool,
            "has_manifest": self.has_manifest,
            "enabled": self.enabled,
            "used_cache": self.used_cache,
            "source": self.source,
            "fingerprint": self.fingerprint,
            "command": self.command,
            "summary": self.summary.to_dict(),
            "vulnerabilities": [item.to_dict() for item in self.vulnerabilities or []],
            "status": self.status,
            "message": self.message,
            "execution": (self.execution or AuditExecution()).to_dict(),
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditResult":
        # 호출자가 JSON으로 보관한 previous_audit을 복원한다.
        # vulnerabilities가 리스트가 아니면 None을 유지해 캐시 미적중으로 처리되게 한다.
        raw_vulns = data.get("vulnerabilities")
        vulnerabilities = (
            [VulnerabilityRecord.from_dict(item) for item in raw_vulns if isinstance(item, dict)]
            if isinstance(raw_vulns, list)
            else None
        )
        raw_summary = data.get("summary") or {}
        raw_execution = data.get("execution")
        execution = None
        if isinstance(raw_execution, dict):
            execution = AuditExecution(
                status=raw_execution.get("status"),
                duration_ms=int(_pick(raw_execution, "duration_ms", "durationMs") or 0),
                error=raw_execution.get("error"),
                timed_out=bool(_pick(raw_execution, "timed_out", "timedOut")),
            )
        return cls(
            tool=str(data.get("tool") or ""),
            has_manifest=bool(_pick(data, "has_manifest", "hasManifest")),
            enabled=bool(data.get("enabled", True)),
            used_cache=bool(_pick(data, "used_cache", "usedCache")),
            source=str(data.get("source") or "runtime"),
            fingerprint=data.get("fingerprint"),
            command=str(data.get("command") or ""),
            summary=AuditSummary(**{key: int(raw_summary.get(key) or 0) for key in AuditSummary().to_dict()}),
            vulnerabilities=vulnerabilities,
            status=str(data.get("status") or "unknown"),
            message=str(data.get("message") or ""),
            execution=execution,
            updated_at=str(_pick(data, "updated_at", "updatedAt") or ""),
        )


@dataclass(frozen=True)
class VersionFloorResult:
    status: str
    message: str


@dataclass
class ScoreSummary:
    total: int = 0
    passed: int = 0
    warning: int = 0
    fail: int = 0
    unknown: int = 0
    score: int = 0

    def to_dict(self) -> Dict[str, int]:
        # pass는 예약어이므로 직렬화할 때만 키 이름을 바꾼다.
        return {
            "total": self.total,
            "pass": self.passed,
            "warning": self.warning,
            "fail": self.fail,
            "unknown": self.unknown,
            "score": self.score,
        }
