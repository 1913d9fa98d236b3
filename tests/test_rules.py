"""이 파일은 .py 테스트 모듈로 컨트롤 규칙 형태와 개별 규칙 판정을 검증합니다."""

from secbaseline.core.catalog import ControlCatalog
from secbaseline.core.types import AuditExecution, AuditResult, AuditSummary
from secbaseline.services.rules import (
    RULES,
    EvaluationContext,
    combine_signals,
    debug_mode_status,
    presence_is_bad,
    status_from_ratio,
    tiered_count,
    workflow_gate_status,
)
from secbaseline.services.signals import (
    AuthorizationCoverage,
    EnvironmentSignals,
    FrameworkFiles,
    HorizonSignals,
    SanctumSignals,
    SpatieSignals,
    StackSignals,
    WorkflowSignals,
)

CATALOG = ControlCatalog.from_default()


def _audit(tool: str, has_manifest: bool = False) -> AuditResult:
    return AuditResult(
        tool=tool,
        has_manifest=has_manifest,
        enabled=True,
        used_cache=False,
        source="runtime" if has_manifest else "not-applicable",
        fingerprint=None,
        command=tool,
        summary=AuditSummary(),
        vulnerabilities=[],
        status="pass" if has_manifest else "unknown",
        message=f"{tool} audit reported no vulnerabilities.",
        execution=AuditExecution(status=0),
        updated_at="",
    )


def _context(**overrides) -> EvaluationContext:
    values = dict(
        metrics={},
        violations=[],
        modules={},
        composer_versions={},
        workflow=WorkflowSignals(),
        environment=EnvironmentSignals(),
        framework=FrameworkFiles(),
        authz=AuthorizationCoverage(),
        stack=StackSignals(SpatieSignals(), SanctumSignals(), HorizonSignals()),
        composer_audit=_audit("composer"),
        npm_audit=_audit("npm"),
        floors=CATALOG.floors,
    )
    values.update(overrides)
    return EvaluationContext(**values)


def _evaluate(control_id: str, ctx: EvaluationContext):
    return RULES[control_id](CATALOG.get(control_id), ctx)


def test_ratio_boundaries() -> None:
    assert status_from_ratio(0.8, 0.8, 0.55) == "pass"
    assert status_from_ratio(0.6, 0.8, 0.55) == "warning"
    assert status_from_ratio(0.5, 0.8, 0.55) == "fail"
    assert status_from_ratio(None, 0.8, 0.55) == "unknown"


def test_rule_shapes() -> None:
    assert presence_is_bad(0) == "pass"
    assert presence_is_bad(1) == "fail"
    assert [tiered_count(count, 3) for count in (0, 3, 4)] == ["pass", "warning", "fail"]
    assert combine_signals(True, True) == "pass"
    assert combine_signals(True, False) == "warning"
    assert combine_signals(False, False) == "fail"
    assert workflow_gate_status(False, True) == "unknown"
    assert workflow_gate_status(True, False) == "warning"


def test_debug_mode_status() -> None:
    assert debug_mode_status("production", "") == "unknown"
    assert debug_mode_status("production", "true") == "fail"
    assert debug_mode_status("local", "true") == "warning"
    assert debug_mode_status("production", "false") == "pass"


def test_validated_payload_lists_violation_files() -> None:
    ctx = _context(
        metrics={"requestAllCalls": 2},
        violations=[
            {"type": "mass-assignment-risk", "file": "app/Http/Controllers/A.php"},
            {"type": "mass-assignment-risk", "file": "app/Http/Controllers/A.php"},
            {"type": "dynamic-raw-sql", "file": "app/B.php"},
        ],
    )
    control = _evaluate("input.validated_payload", ctx)
    assert control.status == "fail"
    assert control.evidence["files"] == ["app/Http/Controllers/A.php"]


def test_form_request_adoption_thresholds() -> None:
    assert _evaluate("input.form_request_adoption", _context()).status == "unknown"
    ctx = _context(metrics={"controllers": 10, "controllersUsingFormRequest": 7})
    control = _evaluate("input.form_request_adoption", ctx)
    assert control.status == "pass"
    assert "70%" in control.message
    ctx = _context(metrics={"controllers": 10, "controllersUsingFormRequest": 4})
    assert _evaluate("input.form_request_adoption", ctx).status == "fail"


def test_server_side_checks_uses_full_surface() -> None:
    ctx = _context(metrics={"controllers": 2, "filamentResources": 1, "livewireComponents": 1, "authorizationChecks": 2})
    control = _evaluate("authz.server_side_checks", ctx)
    assert control.status == "warning"
    assert control.evidence["surface_count"] == 4


def test_policy_coverage_unknown_without_models() -> None:
    assert _evaluate("authz.policy_model_coverage", _context()).status == "unknown"
    authz = AuthorizationCoverage(model_count=4, covered_model_count=3, coverage_ratio=0.75)
    assert _evaluate("authz.policy_model_coverage", _context(authz=authz)).status == "warning"


def test_optional_stack_controls_are_omitted_when_disabled() -> None:
    ctx = _context()
    for control_id in (
        "spatie.permission_enforcement",
        "sanctum.api_guard_usage",
        "horizon.dashboard_protection",
        "livewire.locked_properties",
        "filament.panel_access",
        "filament.pages_authorization",
        "filament.widgets_authorization",
        "dependencies.livewire_security_floor",
        "dependencies.filament_security_floor",
        "dependencies.composer_runtime_audit",
        "dependencies.npm_runtime_audit",
    ):
        assert _evaluate(control_id, ctx) is None, control_id


def test_spatie_requires_binding_and_enforcement() -> None:
    stack = StackSignals(
        SpatieSignals(enabled=True, models_with_has_roles=1, permission_check_calls=0),
        SanctumSignals(),
        HorizonSignals(),
    )
    ctx = _context(modules={"spatie-permission": True}, stack=stack)
    assert _evaluate("spatie.permission_enforcement", ctx).status == "warning"


def test_horizon_without_any_signal_fails() -> None:
    ctx = _context(modules={"horizon": True})
    assert _evaluate("horizon.dashboard_protection", ctx).status == "fail"


def test_livewire_without_public_properties_passes() -> None:
    ctx = _context(modules={"livewire": True}, metrics={"livewireComponents": 3})
    assert _evaluate("livewire.locked_properties", ctx).status == "pass"
    ctx = _context(modules={"livewire": True}, metrics={"livewirePublicProperties": 10, "livewireLockedProperties": 1})
    assert _evaluate("livewire.locked_properties", ctx).status == "fail"


def test_filament_pages_ratio() -> None:
    ctx = _context(modules={"filament": True}, metrics={"filamentPages": 4, "filamentPagesWithAuth": 2})
    control = _evaluate("filament.pages_authorization", ctx)
    assert control.status == "warning"
    assert control.evidence["ratio"] == 0.5


def test_uploads_require_half_validation() -> None:
    ctx = _context(metrics={"uploadHandlingMentions": 3, "uploadValidationMentions": 2})
    assert _evaluate("uploads.validation", ctx).status == "pass"
    ctx = _context(metrics={"uploadHandlingMentions": 3, "uploadValidationMentions": 1})
    assert _evaluate("uploads.validation", ctx).status == "warning"


def test_route_controls_need_route_files() -> None:
    assert _evaluate("routes.state_changing_auth", _context()).status == "unknown"
    ctx = _context(metrics={"routeFiles": 2, "stateChangingRouteFilesWithoutAuth": 1})
    assert _evaluate("routes.state_changing_auth", ctx).status == "fail"
    ctx = _context(metrics={"routeFiles": 2, "stateChangingRouteFilesWithoutThrottle": 1})
    assert _evaluate("routes.state_changing_throttle", ctx).status == "warning"


def test_framework_file_controls() -> None:
    ctx = _context()
    assert _evaluate("laravel.cors_config", ctx).status == "fail"
    assert _evaluate("laravel.trust_proxies", ctx).status == "warning"
    ctx = _context(framework=FrameworkFiles(cors_config=True, trust_hosts=True))
    assert _evaluate("laravel.cors_config", ctx).status == "pass"
    assert _evaluate("laravel.trust_hosts", ctx).status == "pass"


def test_laravel_floor_is_always_emitted() -> None:
    control = _evaluate("dependencies.laravel_security_floor", _context())
    assert control.status == "unknown"
    ctx = _context(composer_versions={"laravel/framework": "v11.40.0"})
    assert _evaluate("dependencies.laravel_security_floor", ctx).status == "fail"


def test_livewire_floor_emitted_when_package_present() -> None:
    ctx = _context(composer_versions={"livewire/livewire": "3.6.4"})
    assert _evaluate("dependencies.livewire_security_floor", ctx).status == "pass"


def test_runtime_audit_mirrors_audit_result() -> None:
    ctx = _context(composer_audit=_audit("composer", has_manifest=True))
    control = _evaluate("dependencies.composer_runtime_audit", ctx)
    assert control.status == "pass"
    assert control.message == "composer audit reported no vulnerabilities."


def test_pipeline_gates() -> None:
    assert _evaluate("pipeline.sast", _context()).status == "unknown"
    workflow = WorkflowSignals(has_workflows=True, sast=True, workflow_files=["ci.yml"])
    ctx = _context(workflow=workflow)
    assert _evaluate("pipeline.sast", ctx).status == "pass"
    assert _evaluate("pipeline.dast", ctx).status == "warning"
    # package.json이 없으면 npm 게이트는 판단할 수 없다.
    assert _evaluate("pipeline.npm_audit_gate", ctx).status == "unknown"


def test_runtime_audit_evidence_lists_existing_files(tmp_path) -> None:
    (tmp_path / "package.json").write_text("{}", encoding="utf-8")
    (tmp_path / "package-lock.json").write_text("{}", encoding="utf-8")
    ctx = _context(npm_audit=_audit("npm", has_manifest=True), root=tmp_path)
    control = _evaluate("dependencies.npm_runtime_audit", ctx)
    assert control.evidence["files"] == ["package.json", "package-lock.json"]

    (tmp_path / "composer.lock").write_text("{}", encoding="utf-8")
    ctx = _context(composer_audit=_audit("composer", has_manifest=True), root=tmp_path)
    control = _evaluate("dependencies.composer_runtime_audit", ctx)
    assert control.evidence["files"] == ["composer.lock"]
