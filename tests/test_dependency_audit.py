"""이 파일은 .py 테스트 모듈로 fingerprint 기반 audit 캐시와 상태 판정을 검증합니다."""

import subprocess

from conftest import FakeRunner, write_json

from secbaseline.core.errors import AdapterError, AuditTimeoutError
from secbaseline.adapters.sca import ScaRunner
from secbaseline.services.dependency_audit import (
    COMPOSER_AUDIT,
    NPM_AUDIT,
    build_fingerprint,
    evaluate_audit,
    run_audit_spec,
)

ONE_MEDIUM = {"advisories": [{"package": "a/b", "severity": "medium", "title": "x", "advisoryId": "A-1"}]}
ONE_HIGH = {"advisories": [{"package": "a/b", "severity": "high", "title": "x", "advisoryId": "A-2"}]}


def _composer_project(tmp_path):
    write_json(tmp_path / "composer.json", {"require": {"laravel/framework": "11.44.1"}})
    return tmp_path


def test_fingerprint_is_none_without_tracked_files(tmp_path) -> None:
    assert build_fingerprint(tmp_path, ["composer.lock", "composer.json"]) is None


def test_fingerprint_changes_with_single_byte(tmp_path) -> None:
    _composer_project(tmp_path)
    first = build_fingerprint(tmp_path, ["composer.json"])
    assert first == build_fingerprint(tmp_path, ["composer.json"])
    path = tmp_path / "composer.json"
    path.write_bytes(path.read_bytes() + b" ")
    assert build_fingerprint(tmp_path, ["composer.json"]) != first


def test_cache_hit_skips_external_tool(tmp_path) -> None:
    _composer_project(tmp_path)
    runner = FakeRunner({"composer": ONE_MEDIUM}, exit_code=1)
    first = run_audit_spec(COMPOSER_AUDIT, tmp_path, runner=runner)
    assert first.source == "runtime"
    assert len(runner.calls) == 1

    second = run_audit_spec(COMPOSER_AUDIT, tmp_path, previous_audit=first.to_dict(), runner=runner)
    assert len(runner.calls) == 1
    assert second.source == "cache"
    assert second.used_cache is True
    assert second.fingerprint == first.fingerprint
    assert second.summary.total == 1
    assert second.status == "warning"
    assert second.message.endswith("(cache)")
    # 이전 스냅샷은 수정되지 않는다.
    assert first.source == "runtime"


def test_cache_miss_after_manifest_change(tmp_path) -> None:
    _composer_project(tmp_path)
    runner = FakeRunner({"composer": ONE_MEDIUM}, exit_code=1)
    first = run_audit_spec(COMPOSER_AUDIT, tmp_path, runner=runner)
    write_json(tmp_path / "composer.lock", {"packages": []})
    second = run_audit_spec(COMPOSER_AUDIT, tmp_path, previous_audit=first, runner=runner)
    assert len(runner.calls) == 2
    assert second.source == "runtime"
    assert second.fingerprint != first.fingerprint


def test_failed_previous_execution_is_not_reused(tmp_path) -> None:
    _composer_project(tmp_path)
    failing = FakeRunner(error=AdapterError("spawn failed"))
    first = run_audit_spec(COMPOSER_AUDIT, tmp_path, runner=failing)
    assert first.status == "warning"

    runner = FakeRunner({"composer": {"advisories": []}})
    second = run_audit_spec(COMPOSER_AUDIT, tmp_path, previous_audit=first.to_dict(), runner=runner)
    assert len(runner.calls) == 1
    assert second.source == "runtime"
    assert second.status == "pass"


def test_cache_hit_recomputes_stale_summary(tmp_path) -> None:
    _composer_project(tmp_path)
    runner = FakeRunner({"composer": ONE_HIGH}, exit_code=1)
    previous = run_audit_spec(COMPOSER_AUDIT, tmp_path, runner=runner).to_dict()
    previous["summary"] = {"total": 0, "critical": 0, "high": 0, "medium": 0, "low": 0, "unknown": 0}
    cached = run_audit_spec(COMPOSER_AUDIT, tmp_path, previous_audit=previous, runner=runner)
    assert cached.source == "cache"
    assert cached.summary.high == 1
    assert cached.status == "fail"


def test_status_resolution_boundaries(tmp_path) -> None:
    _composer_project(tmp_path)
    medium = run_audit_spec(COMPOSER_AUDIT, tmp_path, runner=FakeRunner({"composer": ONE_MEDIUM}, exit_code=1))
    assert medium.status == "warning"
    high = run_audit_spec(COMPOSER_AUDIT, tmp_path, runner=FakeRunner({"composer": ONE_HIGH}, exit_code=1))
    assert high.status == "fail"
    clean = run_audit_spec(COMPOSER_AUDIT, tmp_path, runner=FakeRunner({"composer": ""}, exit_code=0))
    assert clean.status == "pass"
    assert clean.summary.total == 0
    assert clean.message == "composer audit reported no vulnerabilities."


def test_abnormal_exit_code_degrades_to_warning(tmp_path) -> None:
    _composer_project(tmp_path)
    result = run_audit_spec(COMPOSER_AUDIT, tmp_path, runner=FakeRunner({"composer": "{}"}, exit_code=2))
    assert result.status == "warning"
    assert "could not be evaluated" in result.message


def test_malformed_json_is_recorded_as_execution_error(tmp_path) -> None:
    _composer_project(tmp_path)
    result = run_audit_spec(COMPOSER_AUDIT, tmp_path, runner=FakeRunner({"composer": "not json"}))
    assert result.status == "warning"
    assert result.execution.error.startswith("JSON parse error")


def test_timeout_is_recorded(tmp_path) -> None:
    _composer_project(tmp_path)
    runner = FakeRunner(error=AuditTimeoutError("SCA command timeout after 10ms"))
    result = run_audit_spec(COMPOSER_AUDIT, tmp_path, runner=runner, timeout_ms=10)
    assert result.status == "warning"
    assert result.execution.timed_out is True
    assert "timeout" in result.message


def test_disabled_audit_does_not_run(tmp_path) -> None:
    _composer_project(tmp_path)
    runner = FakeRunner()
    result = run_audit_spec(COMPOSER_AUDIT, tmp_path, enabled=False, runner=runner)
    assert runner.calls == []
    assert result.source == "disabled"
    assert result.status == "unknown"
    assert result.enabled is False


def test_missing_manifest_is_not_applicable(tmp_path) -> None:
    runner = FakeRunner()
    result = run_audit_spec(NPM_AUDIT, tmp_path, runner=runner)
    assert runner.calls == []
    assert result.source == "not-applicable"
    assert result.has_manifest is False
    assert result.message == "Project has no package.json at the root."


def test_npm_lockfile_is_part_of_fingerprint(tmp_path) -> None:
    write_json(tmp_path / "package.json", {"name": "demo"})
    runner = FakeRunner({"npm": {"vulnerabilities": {}}})
    first = run_audit_spec(NPM_AUDIT, tmp_path, runner=runner)
    assert runner.calls[0][0] == ["npm", "audit", "--json", "--audit-level=low"]
    (tmp_path / "yarn.lock").write_text("# lock\n", encoding="utf-8")
    second = run_audit_spec(NPM_AUDIT, tmp_path, previous_audit=first, runner=runner)
    assert second.source == "runtime"
    assert len(runner.calls) == 2


def test_sca_runner_translates_timeout(monkeypatch) -> None:
    from secbaseline.adapters.sca import ScaRunner

    def fake_run(*args, **kwargs):
        raise subprocess.TimeoutExpired(cmd="composer", timeout=0.01)

    monkeypatch.setattr(subprocess, "run", fake_run)
    try:
        ScaRunner(timeout_ms=10).run(["composer", "audit"])
    except AuditTimeoutError as exc:
        assert "10ms" in str(exc)
    else:
        raise AssertionError("AuditTimeoutError not raised")


def _shell_audit(tmp_path, script: str, runner: ScaRunner, timeout_ms: int = 60000):
    # 실제 하위 프로세스로 composer audit 출력을 흉내 낸다.
    return evaluate_audit(
        tmp_path,
        tool="composer",
        command="sh",
        args=("-c", script),
        manifest_files=("composer.json",),
        timeout_ms=timeout_ms,
        runner=runner,
    )


def test_non_utf8_output_degrades_to_warning(tmp_path) -> None:
    _composer_project(tmp_path)
    result = _shell_audit(tmp_path, "printf '\\377\\376{}'", ScaRunner())
    assert result.status == "warning"
    assert result.execution.error.startswith("JSON parse error")


def test_oversized_output_is_an_execution_error(tmp_path) -> None:
    _composer_project(tmp_path)
    result = _shell_audit(tmp_path, "printf '%s' '{\"advisories\": []}              '", ScaRunner(max_output_bytes=16))
    assert result.status == "warning"
    assert "exceeded" in result.execution.error
    assert result.vulnerabilities == []


def test_call_timeout_overrides_injected_runner(tmp_path) -> None:
    _composer_project(tmp_path)
    result = _shell_audit(tmp_path, "sleep 2; echo '{}'", ScaRunner(), timeout_ms=200)
    assert result.status == "warning"
    assert result.execution.timed_out is True
    assert "200ms" in result.execution.error


def test_timeout_option_reaches_runner(tmp_path) -> None:
    _composer_project(tmp_path)
    runner = FakeRunner({"composer": {"advisories": []}})
    run_audit_spec(COMPOSER_AUDIT, tmp_path, timeout_ms=1500, runner=runner)
    assert runner.timeouts == [1500]


def test_camel_case_snapshot_is_reused(tmp_path) -> None:
    _composer_project(tmp_path)
    runner = FakeRunner({"composer": ONE_HIGH}, exit_code=1)
    first = run_audit_spec(COMPOSER_AUDIT, tmp_path, runner=runner)
    snapshot = {
        "tool": "composer",
        "hasManifest": True,
        "usedCache": False,
        "source": "runtime",
        "fingerprint": first.fingerprint,
        "command": first.command,
        "vulnerabilities": [
            {"ecosystem": "composer", "package": "a/b", "severity": "high", "title": "x", "advisoryId": "A-2"}
        ],
        "execution": {"status": 1, "durationMs": 42, "error": None, "timedOut": False},
        "updatedAt": "2024-01-01T00:00:00+00:00",
    }
    cached = run_audit_spec(COMPOSER_AUDIT, tmp_path, previous_audit=snapshot, runner=runner)
    assert len(runner.calls) == 1
    assert cached.source == "cache"
    assert cached.vulnerabilities[0].advisory_id == "A-2"
    assert cached.execution.duration_ms == 42
    assert cached.status == "fail"
