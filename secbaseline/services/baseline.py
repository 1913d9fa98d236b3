"""이 파일은 .py 보안 베이스라인 조립 모듈로 신호 수집, audit, 평가, 점수화를 하나의 보고서로 묶습니다."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from secbaseline.adapters.sca import ScaRunner
from secbaseline.core.catalog import ControlCatalog
from secbaseline.core.config import BASELINE_ID, BASELINE_NAME, BASELINE_VERSION
from secbaseline.core.config_validation import resolve_audit_options
from secbaseline.core.types import AuditResult, Control, ScoreSummary

from .dependency_audit import COMPOSER_AUDIT, NPM_AUDIT, now_iso, run_audit_spec
from .evaluator import ControlEvaluator
from .modules import (
    DetectedModule,
    build_module_scope_draft,
    detect_project_modules,
    get_composer_dependency_versions,
)
from .rules import EvaluationContext
from .scoring import (
    DEFAULT_WEIGHTS,
    ScoringWeights,
    build_highlights,
    compute_domain_summary,
    compute_filament_scores,
    compute_mode_summary,
    compute_overall_score,
    sort_controls,
    summarize_controls,
)
from .signals import (
    AuthorizationCoverage,
    WorkflowSignals,
    collect_policy_and_gate_coverage,
    collect_stack_signals,
    detect_framework_files,
    detect_pipeline_signals,
    read_environment,
)

logger = logging.getLogger(__name__)

TRACKED_DEPENDENCIES = {
    "laravel": "laravel/framework",
    "livewire": "livewire/livewire",
    "filament": "filament/filament",
    "sanctum": "laravel/sanctum",
    "spatie_permission": "spatie/laravel-permission",
    "horizon": "laravel/horizon",
}


@dataclass
class BaselineReport:
    score: int
    totals: ScoreSummary
    mode_summary: Dict[str, ScoreSummary]
    domain_summary: Dict[str, ScoreSummary]
    filament_scores: Dict[str, Optional[Dict[str, Any]]]
    controls: List[Control]
    highlights: List[Dict[str, Any]]
    metadata: Dict[str, Any] = field(default_factory=dict)
    baseline: Dict[str, Any] = field(
        default_factory=lambda: {"id": BASELINE_ID, "version": BASELINE_VERSION, "name": BASELINE_NAME}
    )
    updated_at: str = field(default_factory=now_iso)

    def control(self, control_id: str) -> Optional[Control]:
        for item in self.controls:
            if item.id == control_id:
                return item
        return None

    @property
    def dependency_audits(self) -> Dict[str, Dict[str, Any]]:
        # 다음 실행의 previous_security_metadata로 저장할 audit 스냅샷이다.
        return self.metadata.get("dependency_audits", {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "baseline": dict(self.baseline),
            "score": self.score,
            "filament_scores": self.filament_scores,
            "domain_summary": {key: value.to_dict() for key, value in self.domain_summary.items()},
            "mode_summary": {key: value.to_dict() for key, value in self.mode_summary.items()},
            "totals": self.totals.to_dict(),
            "controls": [item.to_dict() for item in self.controls],
            "highlights": list(self.highlights),
            "updated_at": self.updated_at,
            "metadata": self.metadata,
        }


def _normalize_violations(violations: Optional[Sequence[Any]]) -> List[Dict[str, str]]:
    # dict 또는 type/file 속성을 가진 객체(pydantic 모델 등)를 모두 받는다.
    normalized: List[Dict[str, str]] = []
    for item in violations or []:
        if isinstance(item, Mapping):
            violation_type, path = item.get("type"), item.get("file")
        else:
            violation_type, path = getattr(item, "type", None), getattr(item, "file", None)
        if violation_type:
            normalized.append({"type": str(violation_type), "file": str(path or "")})
    return normalized


def _previous_audits(previous_security_metadata: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    metadata = previous_security_metadata or {}
    audits = metadata.get("dependency_audits")
    if audits is None:
        audits = metadata.get("dependencyAudits")
    return audits if isinstance(audits, Mapping) else {}


def evaluate_security_baseline(
    root: Union[str, Path],
    metrics: Optional[Mapping[str, Any]] = None,
    violations: Optional[Sequence[Any]] = None,
    file_index: Optional[Mapping[str, Any]] = None,
    previous_security_metadata: Optional[Mapping[str, Any]] = None,
    audit_options: Optional[Dict[str, Any]] = None,
    runner: Optional[ScaRunner] = None,
    catalog: Optional[ControlCatalog] = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> BaselineReport:
    """프로젝트 루트 하나에 대해 보안 베이스라인을 평가한다.

    metrics/violations/file_index는 외부 정적 스캐너가 만든 신호이다.
    previous_security_metadata는 이전 보고서의 metadata로, dependency_audits만 읽으며 수정하지 않는다.
    반환된 보고서의 metadata["dependency_audits"]를 다음 실행에 그대로 넘기면 audit 캐시가 동작한다.
    """
    root = Path(root)
    metrics = metrics or {}
    file_index = file_index or {}
    catalog = catalog or ControlCatalog.from_default()
    options = resolve_audit_options(audit_options)

    # 1) 의존성 버전과 모듈 탐지
    composer_versions = get_composer_dependency_versions(root)
    modules = detect_project_modules(root, metrics=metrics, composer_versions=composer_versions)
    module_flags = {module.id: module.enabled for module in modules}

    # 2) 런타임 의존성 audit (fingerprint 캐시 적용)
    previous_audits = _previous_audits(previous_security_metadata)
    audits: Dict[str, AuditResult] = {}
    for spec in (COMPOSER_AUDIT, NPM_AUDIT):
        audits[spec.tool] = run_audit_spec(
            spec,
            root,
            previous_audit=previous_audits.get(spec.tool),
            enabled=options[spec.tool],
            timeout_ms=options["timeout_ms"],
            max_entries=options["max_entries"],
            runner=runner,
        )

    # 3) 파일 기반 신호 수집
    authz = collect_policy_and_gate_coverage(root, file_index)
    stack = collect_stack_signals(
        root,
        has_spatie_permission=module_flags.get("spatie-permission", False),
        has_sanctum=module_flags.get("sanctum", False),
        has_horizon=module_flags.get("horizon", False),
    )
    workflow = detect_pipeline_signals(root)
    ctx = EvaluationContext(
        metrics=metrics,
        violations=_normalize_violations(violations),
        modules=module_flags,
        composer_versions=composer_versions,
        workflow=workflow,
        environment=read_environment(root),
        framework=detect_framework_files(root),
        authz=authz,
        stack=stack,
        composer_audit=audits["composer"],
        npm_audit=audits["npm"],
        floors=catalog.floors,
        root=root,
    )

    # 4) 컨트롤 평가와 점수화
    controls = sort_controls(ControlEvaluator(catalog).evaluate(ctx), weights)
    mode_summary = compute_mode_summary(controls, weights)
    totals = summarize_controls(controls, weights)
    totals.score = compute_overall_score(mode_summary, weights)
    domain_summary = compute_domain_summary(controls, weights)
    filament_scores = compute_filament_scores(controls, weights)

    report = BaselineReport(
        score=totals.score,
        totals=totals,
        mode_summary=mode_summary,
        domain_summary=domain_summary,
        filament_scores=filament_scores,
        controls=controls,
        highlights=build_highlights(controls),
    )
    report.metadata = _build_metadata(
        report, catalog, file_index, composer_versions, modules, workflow, authz, module_flags, audits
    )
    logger.info(
        "Baseline for %s: score=%d pass=%d warning=%d fail=%d unknown=%d",
        root,
        totals.score,
        totals.passed,
        totals.warning,
        totals.fail,
        totals.unknown,
    )
    return report


def _build_metadata(
    report: BaselineReport,
    catalog: ControlCatalog,
    file_index: Mapping[str, Any],
    composer_versions: Mapping[str, str],
    modules: List[DetectedModule],
    workflow: WorkflowSignals,
    authz: AuthorizationCoverage,
    module_flags: Mapping[str, bool],
    audits: Mapping[str, AuditResult],
) -> Dict[str, Any]:
    # 보고서 본문 외에 다음 실행과 리포팅 계층이 쓰는 부가 정보를 모은다.
    policy_control = report.control("authz.policy_model_coverage")
    gate_control = report.control("authz.gate_definition_coverage")
    return {
        "catalog_size": len(catalog),
        "scanned_files": len(file_index),
        "has_workflows": workflow.has_workflows,
        "workflow_files": list(workflow.workflow_files),
        "dependency_versions": {
            key: composer_versions.get(package) for key, package in TRACKED_DEPENDENCIES.items()
        },
        "dependency_audits": {tool: audit.to_dict() for tool, audit in audits.items()},
        "authz_coverage": {
            "policy_model_coverage": (
                {
                    "status": policy_control.status,
                    "model_count": authz.model_count,
                    "covered_model_count": authz.covered_model_count,
                    "missing_models": list(authz.missing_models),
                }
                if policy_control
                else None
            ),
            "gate_coverage": (
                {"status": gate_control.status, "gate_definitions": authz.gate_definitions}
                if gate_control
                else None
            ),
        },
        "filament_scores": report.filament_scores,
        "domain_summary": {key: value.to_dict() for key, value in report.domain_summary.items()},
        "optional_stacks": {
            "spatie_permission": module_flags.get("spatie-permission", False),
            "sanctum": module_flags.get("sanctum", False),
            "horizon": module_flags.get("horizon", False),
        },
        "modules": [module.to_dict() for module in modules],
        "module_scope_draft": build_module_scope_draft(modules),
    }
