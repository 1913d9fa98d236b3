"""이 파일은 .py 의존성 audit 캐시 모듈로 매니페스트 fingerprint 기반 재사용과 외부 audit 실행을 담당합니다.

캐시는 내부 저장소 없이 (현재 fingerprint, 이전 스냅샷)의 순수 함수로 동작한다.
추적 파일 내용이 같으면 외부 도구를 다시 실행하지 않고 이전 결과를 새 객체로 돌려준다.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
import hashlib
import json
import logging
from pathlib import Path
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from secbaseline.adapters.sca import ScaRunner
from secbaseline.core.config import DEFAULT_AUDIT_MAX_ENTRIES, DEFAULT_AUDIT_TIMEOUT_MS
from secbaseline.core.errors import AdapterError, AuditTimeoutError
from secbaseline.core.types import AuditExecution, AuditResult, AuditSummary, VulnerabilityRecord

from .audit_parsers import PARSERS, ParsedAudit, summarize_vulnerabilities

logger = logging.getLogger(__name__)

Parser = Callable[[Any, int], ParsedAudit]


@dataclass(frozen=True)
class AuditSpec:
    # 생태계별 audit 명령과 추적 파일 목록이다.
    tool: str
    command: str
    args: Tuple[str, ...]
    manifest_files: Tuple[str, ...]
    fingerprint_files: Tuple[str, ...]


COMPOSER_AUDIT = AuditSpec(
    tool="composer",
    command="composer",
    args=("audit", "--locked", "--format=json", "--no-ansi"),
    manifest_files=("composer.lock", "composer.json"),
    fingerprint_files=("composer.lock", "composer.json"),
)

NPM_AUDIT = AuditSpec(
    tool="npm",
    command="npm",
    args=("audit", "--json", "--audit-level=low"),
    manifest_files=("package.json",),
    fingerprint_files=("package.json", "package-lock.json", "npm-shrinkwrap.json", "pnpm-lock.yaml", "yarn.lock"),
)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def hash_file(path: Path) -> Optional[str]:
    if not path.is_file():
        return None
    try:
        return hashlib.sha1(path.read_bytes()).hexdigest()
    except OSError:
        return None


def build_fingerprint(root: Path, files: Sequence[str]) -> Optional[str]:
    # "경로:파일해시" 쌍을 이어 붙여 다시 해시한다. 추적 파일이 하나도 없으면 None이다.
    parts: List[str] = []
    for relative_path in files:
        normalized = str(relative_path or "").replace("\\", "/")
        if not normalized:
            continue
        digest = hash_file(Path(root) / normalized)
        if digest is None:
            continue
        parts.append(f"{normalized}:{digest}")
    if not parts:
        return None
    return hashlib.sha1("|".join(parts).encode("utf-8")).hexdigest()


def resolve_audit_status(has_manifest: bool, summary: AuditSummary, execution: Optional[AuditExecution]) -> str:
    if not has_manifest:
        return "unknown"
    if execution is None or execution.failed:
        return "warning"
    if summary.critical > 0 or summary.high > 0:
        return "fail"
    if summary.total > 0:
        return "warning"
    return "pass"


def build_audit_message(
    tool: str,
    has_manifest: bool,
    summary: AuditSummary,
    execution: Optional[AuditExecution],
    cached: bool = False,
) -> str:
    if not has_manifest:
        if tool == "npm":
            return "Project has no package.json at the root."
        return "No composer.json/composer.lock at the root."

    if execution is None or execution.failed:
        if execution is not None and execution.timed_out:
            reason = "timeout while running audit."
        elif execution is not None and execution.error:
            reason = f"audit execution failed: {execution.error}"
        else:
            reason = f"audit returned status {execution.status if execution else None}."
        return f"{tool} audit could not be evaluated ({reason})"

    suffix = " (cache)" if cached else ""
    if summary.total == 0:
        return f"{tool} audit reported no vulnerabilities.{suffix}"
    return (
        f"{tool} audit reported {summary.total} vulnerability(ies): "
        f"critical={summary.critical}, high={summary.high}, "
        f"medium={summary.medium}, low={summary.low}.{suffix}"
    )


def _coerce_previous(previous_audit: Union[AuditResult, Dict[str, Any], None]) -> Optional[AuditResult]:
    if isinstance(previous_audit, AuditResult):
        return previous_audit
    if isinstance(previous_audit, dict):
        return AuditResult.from_dict(previous_audit)
    return None


def _is_cache_hit(previous: Optional[AuditResult], fingerprint: Optional[str]) -> bool:
    return bool(
        previous is not None
        and fingerprint
        and previous.fingerprint == fingerprint
        and previous.vulnerabilities is not None
        and previous.execution is not None
        and not previous.execution.error
        and previous.execution.status is not None
    )


def _run_command(
    runner: ScaRunner, command: str, args: Sequence[str], root: Path, timeout_ms: int
) -> Tuple[AuditExecution, str]:
    # 실행 실패/타임아웃은 예외로 전파하지 않고 execution 기록으로 남긴다.
    started = time.monotonic()
    stdout = ""
    execution = AuditExecution()
    try:
        result = runner.run([command, *args], cwd=str(root), timeout_ms=timeout_ms)
        execution.status = result.exit_code
        stdout = result.stdout
    except AuditTimeoutError as exc:
        execution.error = str(exc)
        execution.timed_out = True
        logger.warning("%s audit timed out in %s", command, root)
    except AdapterError as exc:
        execution.error = str(exc)
        logger.warning("%s audit failed in %s: %s", command, root, exc)
    execution.duration_ms = int((time.monotonic() - started) * 1000)
    return execution, stdout


def evaluate_audit(
    root: Union[str, Path],
    tool: str,
    command: str,
    args: Sequence[str],
    manifest_files: Sequence[str],
    fingerprint_files: Optional[Sequence[str]] = None,
    previous_audit: Union[AuditResult, Dict[str, Any], None] = None,
    enabled: bool = True,
    timeout_ms: int = DEFAULT_AUDIT_TIMEOUT_MS,
    max_entries: int = DEFAULT_AUDIT_MAX_ENTRIES,
    parser: Optional[Parser] = None,
    runner: Optional[ScaRunner] = None,
) -> AuditResult:
    root = Path(root)
    parser = parser or PARSERS[tool]
    has_manifest = any((root / relative_path).exists() for relative_path in manifest_files)
    fingerprint = build_fingerprint(root, fingerprint_files or manifest_files)
    command_line = " ".join([command, *args]).strip()

    def empty_result(source: str, message: str, is_enabled: bool) -> AuditResult:
        return AuditResult(
            tool=tool,
            has_manifest=has_manifest,
            enabled=is_enabled,
            used_cache=False,
            source=source,
            fingerprint=fingerprint,
            command=command_line,
            summary=AuditSummary(),
            vulnerabilities=[],
            status="unknown",
            message=message,
            execution=AuditExecution(),
            updated_at=now_iso(),
        )

    if not enabled:
        return empty_result("disabled", f"{tool} audit disabled in configuration.", False)

    if not has_manifest:
        return empty_result(
            "not-applicable",
            build_audit_message(tool, has_manifest, AuditSummary(), None),
            True,
        )

    previous = _coerce_previous(previous_audit)
    if _is_cache_hit(previous, fingerprint):
        # 저장된 summary를 신뢰하지 않고 캐시된 취약점 목록에서 다시 계산한다.
        vulnerabilities = [replace(item) for item in previous.vulnerabilities]
        summary = summarize_vulnerabilities(vulnerabilities)
        execution = replace(previous.execution)
        logger.info("%s audit cache hit (fingerprint %s)", tool, fingerprint[:12])
        return replace(
            previous,
            tool=tool,
            has_manifest=has_manifest,
            enabled=True,
            used_cache=True,
            source="cache",
            fingerprint=fingerprint,
            summary=summary,
            vulnerabilities=vulnerabilities,
            execution=execution,
            status=resolve_audit_status(has_manifest, summary, execution),
            message=build_audit_message(tool, has_manifest, summary, execution, cached=True),
            updated_at=now_iso(),
        )

    logger.info("Running %s in %s", command_line, root)
    execution, stdout = _run_command(runner or ScaRunner(), command, args, root, timeout_ms)

    vulnerabilities: List[VulnerabilityRecord] = []
    summary = AuditSummary()
    if not execution.error and stdout.strip():
        try:
            payload = json.loads(stdout)
        except json.JSONDecodeError as exc:
            execution.error = f"JSON parse error: {exc}"
            logger.warning("%s audit returned malformed JSON: %s", tool, exc)
        else:
            vulnerabilities, summary = parser(payload, max_entries)

    status = resolve_audit_status(has_manifest, summary, execution)
    return AuditResult(
        tool=tool,
        has_manifest=has_manifest,
        enabled=True,
        used_cache=False,
        source="runtime",
        fingerprint=fingerprint,
        command=command_line,
        summary=summary,
        vulnerabilities=vulnerabilities,
        status=status,
        message=build_audit_message(tool, has_manifest, summary, execution),
        execution=execution,
        updated_at=now_iso(),
    )


def run_audit_spec(
    spec: AuditSpec,
    root: Union[str, Path],
    previous_audit: Union[AuditResult, Dict[str, Any], None] = None,
    enabled: bool = True,
    timeout_ms: int = DEFAULT_AUDIT_TIMEOUT_MS,
    max_entries: int = DEFAULT_AUDIT_MAX_ENTRIES,
    runner: Optional[ScaRunner] = None,
) -> AuditResult:
    return evaluate_audit(
        root=root,
        tool=spec.tool,
        command=spec.command,
        args=spec.args,
        manifest_files=spec.manifest_files,
        fingerprint_files=spec.fingerprint_files,
        previous_audit=previous_audit,
        enabled=enabled,
        timeout_ms=timeout_ms,
        max_entries=max_entries,
        runner=runner,
    )
