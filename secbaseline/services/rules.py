"""이 파일은 .py 컨트롤 규칙 모듈로 신호 값을 컨트롤 상태로 매핑하는 순수 함수를 제공합니다.

규칙은 컨트롤 ID를 키로 RULES에 등록된다. 각 규칙은 카탈로그 정의와 평가 컨텍스트를 받아
Control을 돌려주며, 선택 스택이 비활성화된 경우 None을 돌려 컨트롤을 생략한다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from secbaseline.core.types import AuditResult, Control, ControlDefinition
from secbaseline.core.versions import evaluate_version_floor

from .scoring import round_half_up
from .signals import (
    AuthorizationCoverage,
    EnvironmentSignals,
    FrameworkFiles,
    StackSignals,
    WorkflowSignals,
)

MANUAL_MESSAGE = "Manual control: requires evidence outside local static analysis."
MANUAL_RECOMMENDATION = "Record evidence in docs/CI and formalize the decision for traceability."
NO_WORKFLOWS_MESSAGE = "No CI workflows detected in scope."
NO_ROUTES_MESSAGE = "No routes/*.php file analyzed in this cycle."


@dataclass
class EvaluationContext:
    # 평가 규칙이 읽는 모든 신호를 한곳에 모은다.
    metrics: Mapping[str, Any]
    violations: List[Dict[str, str]]
    modules: Mapping[str, bool]
    composer_versions: Mapping[str, str]
    workflow: WorkflowSignals
    environment: EnvironmentSignals
    framework: FrameworkFiles
    authz: AuthorizationCoverage
    stack: StackSignals
    composer_audit: AuditResult
    npm_audit: AuditResult
    floors: Mapping[str, Mapping[int, str]] = field(default_factory=dict)
    root: Optional[Path] = None

    def existing_files(self, candidates: List[str]) -> List[str]:
        # 프로젝트 루트에 실제로 있는 파일만 근거로 남긴다.
        if self.root is None:
            return []
        return [item for item in candidates if (self.root / item).exists()]

    def count(self, name: str) -> int:
        return int(self.metrics.get(name) or 0)

    def module_enabled(self, module_id: str) -> bool:
        return bool(self.modules.get(module_id))

    def violation_files(self, violation_type: str, limit: int = 8) -> List[str]:
        files: List[str] = []
        for violation in self.violations:
            if violation.get("type") != violation_type:
                continue
            path = violation.get("file")
            if path and path not in files:
                files.append(path)
            if len(files) >= limit:
                break
        return files


Rule = Callable[[ControlDefinition, EvaluationContext], Optional[Control]]
RULES: Dict[str, Rule] = {}


def rule(control_id: str) -> Callable[[Rule], Rule]:
    def register(func: Rule) -> Rule:
        if control_id in RULES:
            raise KeyError(f"Rule already registered: {control_id}")
        RULES[control_id] = func
        return func

    return register


def manual_control(definition: ControlDefinition) -> Control:
    return Control.from_definition(
        definition,
        status="unknown",
        message=MANUAL_MESSAGE,
        recommendation=MANUAL_RECOMMENDATION,
    )


# --- 규칙 형태(rule shapes) -------------------------------------------------


def presence_is_bad(count: int) -> str:
    return "fail" if count > 0 else "pass"


def tiered_count(count: int, warning_limit: int) -> str:
    if count == 0:
        return "pass"
    return "warning" if count <= warning_limit else "fail"


def status_from_ratio(ratio: Optional[float], pass_at: float = 0.8, warning_at: float = 0.55) -> str:
    if ratio is None:
        return "unknown"
    if ratio >= pass_at:
        return "pass"
    if ratio >= warning_at:
        return "warning"
    return "fail"


def combine_signals(first: bool, second: bool) -> str:
    # 두 신호가 모두 있으면 pass, 하나만 있으면 warning, 없으면 fail이다.
    if first and second:
        return "pass"
    if first or second:
        return "warning"
    return "fail"


def debug_mode_status(app_env: str, app_debug: str) -> str:
    if not app_debug:
        return "unknown"
    if app_debug == "true" and app_env == "production":
        return "fail"
    if app_debug == "true":
        return "warning"
    return "pass"


def workflow_gate_status(has_workflows: bool, signal_found: bool) -> str:
    if not has_workflows:
        return "unknown"
    return "pass" if signal_found else "warning"


def ratio(numerator: float, denominator: float) -> Optional[float]:
    return numerator / denominator if denominator > 0 else None


def yes_no(value: bool) -> str:
    return "yes" if value else "no"


# --- 입력 검증 / 인젝션 ------------------------------------------------------


@rule("input.validated_payload")
def validated_payload(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    count = ctx.count("requestAllCalls")
    return Control.from_definition(
        definition,
        status=presence_is_bad(count),
        message=(
            f"{count} occurrence(s) of $request->all() detected."
            if count
            else "No $request->all() usage detected."
        ),
        recommendation="Prefer $request->validated() (FormRequest) or a DTO with an explicit contract.",
        evidence={"count": count, "files": ctx.violation_files("mass-assignment-risk")},
    )


@rule("input.form_request_adoption")
def form_request_adoption(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    controllers = ctx.count("controllers")
    using = ctx.count("controllersUsingFormRequest")
    adoption = ratio(using, controllers)
    return Control.from_definition(
        definition,
        status=status_from_ratio(adoption, pass_at=0.7, warning_at=0.45),
        message=(
            "No controllers in scope to measure adoption."
            if adoption is None
            else f"Current FormRequest/DTO adoption: {round_half_up(adoption * 100)}%."
        ),
        recommendation="Standardize input validation to reduce payload poisoning and inconsistency.",
        evidence={"controllers": controllers, "controllers_using_form_request": using},
    )


@rule("sql.dynamic_raw_sql")
def dynamic_raw_sql(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    count = ctx.count("dynamicRawSql")
    return Control.from_definition(
        definition,
        status=presence_is_bad(count),
        message=(
            f"{count} raw SQL call site(s) with dynamic variables detected."
            if count
            else "No dynamic raw SQL detected."
        ),
        recommendation="Replace with parameterized bindings or Query Builder with a whitelist.",
        evidence={"count": count, "files": ctx.violation_files("dynamic-raw-sql")},
    )


@rule("sql.raw_sql_review")
def raw_sql_review(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    total = ctx.count("rawSqlCalls")
    unsafe = ctx.count("unsafeRawSqlCalls")
    if total == 0:
        message = "No raw SQL detected."
    elif unsafe == 0:
        message = f"{total} raw SQL call(s) detected without dynamic risk signals."
    else:
        message = f"{unsafe}/{total} raw SQL call(s) with dynamic signals require manual review."
    return Control.from_definition(
        definition,
        status=tiered_count(unsafe, 3),
        message=message,
        recommendation="For each raw SQL call, confirm safe binding, limits and the performance rationale.",
        evidence={
            "count": unsafe,
            "total_raw_sql_calls": total,
            "safe_raw_sql_calls": ctx.count("safeRawSqlCalls"),
            "files": ctx.violation_files("raw-sql-review"),
        },
    )


@rule("orm.unbounded_get")
def unbounded_get(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    count = ctx.count("unboundedGetCalls")
    return Control.from_definition(
        definition,
        status=tiered_count(count, 8),
        message=(
            f"{count} potentially unbounded query occurrence(s) detected."
            if count
            else "No `->get()` query without explicit limit detected."
        ),
        recommendation="Prefer paginate/cursorPaginate/limit to reduce excessive load risk.",
        evidence={"count": count, "files": ctx.violation_files("unbounded-get-query")},
    )


@rule("orm.eager_loading")
def eager_loading(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    count = ctx.count("possibleNPlusOneRisks")
    return Control.from_definition(
        definition,
        status=tiered_count(count, 5),
        message=(
            f"{count} file(s) with relation access inside loops without eager loading."
            if count
            else "No N+1 signals in loops in the current scope."
        ),
        recommendation="Apply with/load wherever entities with relations are iterated.",
        evidence={"count": count, "files": ctx.violation_files("possible-n-plus-one")},
    )


@rule("db.critical_transactions")
def critical_transactions(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    count = ctx.count("criticalWritesWithoutTransaction")
    return Control.from_definition(
        definition,
        status=tiered_count(count, 2),
        message=(
            f"{count} file(s) with critical writes without a `DB::transaction()` signal."
            if count
            else "No critical writes without transaction in scope."
        ),
        recommendation="Wrap financial/critical flows in transactions and reinforce idempotency.",
        evidence={"count": count, "files": ctx.violation_files("critical-write-without-transaction")},
    )


@rule("rce.dangerous_php_sinks")
def dangerous_php_sinks(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    count = ctx.count("dangerousSinkCalls")
    return Control.from_definition(
        definition,
        status=presence_is_bad(count),
        message=f"{count} dangerous sink(s) detected." if count else "No dangerous sink detected in scope.",
        recommendation="Remove direct sinks or apply strict validation plus operational isolation.",
        evidence={"count": count, "files": ctx.violation_files("dangerous-php-sink")},
    )


# --- 권한 -------------------------------------------------------------------


def surface_count(ctx: EvaluationContext) -> int:
    return (
        ctx.count("controllers")
        + ctx.count("filamentResources")
        + ctx.count("filamentPages")
        + ctx.count("filamentWidgets")
        + ctx.count("livewireComponents")
    )


@rule("authz.server_side_checks")
def server_side_checks(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    checks = ctx.count("authorizationChecks")
    surfaces = surface_count(ctx)
    coverage = ratio(checks, surfaces)
    return Control.from_definition(
        definition,
        status=status_from_ratio(coverage, pass_at=1.0, warning_at=0.35),
        message=(
            "No critical surface identified in the current scope."
            if coverage is None
            else f"Server-side authorization signals per surface: {checks}/{surfaces}."
        ),
        recommendation="Ensure authorize/policies on critical actions (read/write/export/delete/impersonate).",
        evidence={"authorization_checks": checks, "surface_count": surfaces},
    )


@rule("authz.policy_model_coverage")
def policy_model_coverage(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    authz = ctx.authz
    if authz.model_count == 0:
        status = "unknown"
        message = "No models detected in the current scope."
    else:
        status = status_from_ratio(authz.coverage_ratio, pass_at=0.82, warning_at=0.58)
        message = f"Model to policy coverage: {authz.covered_model_count}/{authz.model_count}."
    return Control.from_definition(
        definition,
        status=status,
        message=message,
        recommendation="Ensure a policy for critical models and register explicit mappings when off-convention.",
        evidence={
            "model_count": authz.model_count,
            "covered_model_count": authz.covered_model_count,
            "policy_file_count": authz.policy_file_count,
            "explicitly_mapped_model_count": authz.explicitly_mapped_model_count,
            "missing_models": list(authz.missing_models),
            "has_guess_policy_names_using": authz.has_guess_policy_names_using,
        },
    )


@rule("authz.gate_definition_coverage")
def gate_definition_coverage(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    authz = ctx.authz
    checks = ctx.count("authorizationChecks")
    has_scaffold = authz.covered_model_count > 0 or authz.gate_definitions > 0 or checks > 0
    if authz.gate_definitions > 0:
        status = "pass"
        message = f"{authz.gate_definitions} Gate::define/resource detected."
    elif has_scaffold:
        status = "warning"
        message = "No explicit Gate::define; existing policies cover part of the authorization."
    else:
        status = "warning"
        message = "Not enough policy/gate signals for non-model actions."
    return Control.from_definition(
        definition,
        status=status,
        message=message,
        recommendation="For actions outside model CRUD, prefer Gate::define/resource with explicit checks at use.",
        evidence={
            "gate_definitions": authz.gate_definitions,
            "authorization_checks": checks,
            "covered_model_count": authz.covered_model_count,
        },
    )


@rule("spatie.permission_enforcement")
def spatie_permission_enforcement(definition: ControlDefinition, ctx: EvaluationContext) -> Optional[Control]:
    if not ctx.module_enabled("spatie-permission"):
        return None
    spatie = ctx.stack.spatie_permission
    has_role_binding = spatie.models_with_has_roles > 0
    has_enforcement = spatie.route_files_with_permission_middleware > 0 or spatie.permission_check_calls > 0
    return Control.from_definition(
        definition,
        status=combine_signals(has_role_binding, has_enforcement),
        message=(
            f"Spatie signals: models with HasRoles {spatie.models_with_has_roles}, "
            f"routes with role/permission middleware {spatie.route_files_with_permission_middleware}, "
            f"checks {spatie.permission_check_calls}."
        ),
        recommendation="Ensure `HasRoles` on target models and enforce via middleware/policies/checks at access points.",
        evidence={
            "models_with_has_roles": spatie.models_with_has_roles,
            "route_files_with_permission_middleware": spatie.route_files_with_permission_middleware,
            "permission_check_calls": spatie.permission_check_calls,
        },
    )


@rule("sanctum.api_guard_usage")
def sanctum_api_guard_usage(definition: ControlDefinition, ctx: EvaluationContext) -> Optional[Control]:
    if not ctx.module_enabled("sanctum"):
        return None
    sanctum = ctx.stack.sanctum
    return Control.from_definition(
        definition,
        status=combine_signals(sanctum.route_files_with_sanctum_guard > 0, sanctum.models_with_api_tokens > 0),
        message=(
            f"Sanctum signals: routes with auth:sanctum {sanctum.route_files_with_sanctum_guard}, "
            f"models with HasApiTokens {sanctum.models_with_api_tokens}, "
            f"abilities usage {sanctum.route_files_with_sanctum_abilities}."
        ),
        recommendation="Protect sensitive APIs with `auth:sanctum` and confirm `HasApiTokens` on token-issuing models.",
        evidence={
            "route_files_with_sanctum_guard": sanctum.route_files_with_sanctum_guard,
            "models_with_api_tokens": sanctum.models_with_api_tokens,
            "route_files_with_sanctum_abilities": sanctum.route_files_with_sanctum_abilities,
        },
    )


@rule("horizon.dashboard_protection")
def horizon_dashboard_protection(definition: ControlDefinition, ctx: EvaluationContext) -> Optional[Control]:
    if not ctx.module_enabled("horizon"):
        return None
    horizon = ctx.stack.horizon
    if horizon.has_dashboard_auth_signal:
        status = "pass"
    elif horizon.has_provider or horizon.has_config:
        status = "warning"
    else:
        status = "fail"
    return Control.from_definition(
        definition,
        status=status,
        message=(
            f"Horizon signals: provider {yes_no(horizon.has_provider)}, config {yes_no(horizon.has_config)}, "
            f"auth signals {horizon.auth_signal_count}."
        ),
        recommendation="Define explicit dashboard protection (Gate viewHorizon/Horizon::auth and strong middleware).",
        evidence={
            "has_provider": horizon.has_provider,
            "has_config": horizon.has_config,
            "auth_signal_count": horizon.auth_signal_count,
        },
    )


# --- 라우트 / 프레임워크 설정 ------------------------------------------------


@rule("routes.state_changing_auth")
def state_changing_auth(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    route_files = ctx.count("routeFiles")
    without_auth = ctx.count("stateChangingRouteFilesWithoutAuth")
    if route_files == 0:
        status, message = "unknown", NO_ROUTES_MESSAGE
    elif without_auth > 0:
        status, message = "fail", f"{without_auth} route file(s) with writes and no auth detected."
    else:
        status, message = "pass", "No route file with unauthenticated writes detected."
    return Control.from_definition(
        definition,
        status=status,
        message=message,
        recommendation="Apply auth/policies to state-changing endpoints and validate tenant scope.",
        evidence={
            "route_files": route_files,
            "state_changing_route_files_without_auth": without_auth,
            "files": ctx.violation_files("state-route-without-auth"),
        },
    )


@rule("routes.state_changing_throttle")
def state_changing_throttle(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    route_files = ctx.count("routeFiles")
    without_throttle = ctx.count("stateChangingRouteFilesWithoutThrottle")
    if route_files == 0:
        status, message = "unknown", NO_ROUTES_MESSAGE
    elif without_throttle > 0:
        status, message = "warning", f"{without_throttle} route file(s) with writes and no throttle detected."
    else:
        status, message = "pass", "No state-changing routes without throttling detected."
    return Control.from_definition(
        definition,
        status=status,
        message=message,
        recommendation="Define rate limits per endpoint/actor (IP + account + operational cost).",
        evidence={
            "route_files": route_files,
            "state_changing_route_files_without_throttle": without_throttle,
            "files": ctx.violation_files("state-route-without-throttle"),
        },
    )


@rule("routes.csrf_bypass_review")
def csrf_bypass_review(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    route_files = ctx.count("routeFiles")
    without_csrf = ctx.count("routeFilesWithoutCsrf")
    if without_csrf > 0:
        status = "warning"
    else:
        status = "pass" if route_files > 0 else "unknown"
    if route_files == 0:
        message = NO_ROUTES_MESSAGE
    elif without_csrf > 0:
        message = f"{without_csrf} route file(s) with explicit CSRF bypass."
    else:
        message = "No explicit CSRF bypass detected on state-changing routes."
    return Control.from_definition(
        definition,
        status=status,
        message=message,
        recommendation="Confirm strong compensations when bypassing CSRF (robust auth, signature, nonce).",
        evidence={"route_files_without_csrf": without_csrf, "files": ctx.violation_files("state-route-without-csrf")},
    )


@rule("laravel.cors_config")
def cors_config(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    present = ctx.framework.cors_config
    return Control.from_definition(
        definition,
        status="pass" if present else "fail",
        message="config/cors.php found." if present else "config/cors.php not found.",
        recommendation="Restrict CORS to strictly required origins/methods/headers.",
        evidence={"file": "config/cors.php" if present else None},
    )


@rule("laravel.trust_proxies")
def trust_proxies(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    present = ctx.framework.trust_proxies
    return Control.from_definition(
        definition,
        status="pass" if present else "warning",
        message="TrustProxies middleware found." if present else "TrustProxies not found.",
        recommendation="Review trusted proxies/hosts to prevent header spoofing.",
        evidence={"file": "app/Http/Middleware/TrustProxies.php" if present else None},
    )


@rule("laravel.trust_hosts")
def trust_hosts(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    present = ctx.framework.trust_hosts
    return Control.from_definition(
        definition,
        status="pass" if present else "warning",
        message="TrustHosts middleware found." if present else "TrustHosts not found.",
        recommendation="Configure trusted hosts to reduce host header poisoning risk.",
        evidence={"file": "app/Http/Middleware/TrustHosts.php" if present else None},
    )


@rule("laravel.debug_mode")
def debug_mode(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    env = ctx.environment
    return Control.from_definition(
        definition,
        status=debug_mode_status(env.app_env, env.app_debug),
        message=(
            "APP_DEBUG not found in .env."
            if not env.app_debug
            else f"APP_ENV={env.app_env or '-'} APP_DEBUG={env.app_debug}."
        ),
        recommendation="In production ensure APP_DEBUG=false and safe exception handling.",
        evidence={"env_file_present": env.env_file_present},
    )


# --- Livewire / Filament ----------------------------------------------------


@rule("livewire.locked_properties")
def livewire_locked_properties(definition: ControlDefinition, ctx: EvaluationContext) -> Optional[Control]:
    if not ctx.module_enabled("livewire"):
        return None
    public = ctx.count("livewirePublicProperties")
    locked = ctx.count("livewireLockedProperties")
    # 공개 속성이 없으면 보호할 대상이 없으므로 pass이다.
    status = "pass" if public == 0 else status_from_ratio(locked / public, pass_at=0.35, warning_at=0.15)
    return Control.from_definition(
        definition,
        status=status,
        message=f"Livewire public props: {public}, locked: {locked}.",
        recommendation="Use #[Locked] for immutable fields and validate/authorize every mutation.",
        evidence={
            "livewire_components": ctx.count("livewireComponents"),
            "livewire_public_properties": public,
            "livewire_locked_properties": locked,
        },
    )


@rule("filament.panel_access")
def filament_panel_access(definition: ControlDefinition, ctx: EvaluationContext) -> Optional[Control]:
    if not ctx.module_enabled("filament"):
        return None
    calls = ctx.count("canAccessPanelCalls")
    return Control.from_definition(
        definition,
        status="pass" if calls > 0 else "warning",
        message=(
            "canAccessPanel() signal detected."
            if calls
            else "No canAccessPanel() signal in the analyzed scope."
        ),
        recommendation="Ensure canAccessPanel plus policies on Resources/Pages/Actions.",
        evidence={
            "filament_resources": ctx.count("filamentResources"),
            "filament_pages": ctx.count("filamentPages"),
            "filament_widgets": ctx.count("filamentWidgets"),
            "can_access_panel_calls": calls,
        },
    )


def _filament_ratio_control(
    definition: ControlDefinition,
    ctx: EvaluationContext,
    label: str,
    total: int,
    authorized: int,
    thresholds: tuple,
    violation_type: str,
    recommendation: str,
) -> Control:
    share = ratio(authorized, total)
    return Control.from_definition(
        definition,
        status="unknown" if total == 0 else status_from_ratio(share, *thresholds),
        message=(
            f"No Filament {label} detected in scope."
            if total == 0
            else f"Filament {label} with authorization signal: {authorized}/{total}."
        ),
        recommendation=recommendation,
        evidence={
            "total": total,
            "authorized": authorized,
            "ratio": share,
            "files": ctx.violation_files(violation_type),
        },
    )


@rule("filament.pages_authorization")
def filament_pages_authorization(definition: ControlDefinition, ctx: EvaluationContext) -> Optional[Control]:
    if not ctx.module_enabled("filament"):
        return None
    return _filament_ratio_control(
        definition,
        ctx,
        label="Pages",
        total=ctx.count("filamentPages"),
        authorized=ctx.count("filamentPagesWithAuth"),
        thresholds=(0.78, 0.45),
        violation_type="filament-page-missing-authz",
        recommendation="Standardize `canAccess()`/authorize/policy for every sensitive Page exposed in the panel.",
    )


@rule("filament.widgets_authorization")
def filament_widgets_authorization(definition: ControlDefinition, ctx: EvaluationContext) -> Optional[Control]:
    if not ctx.module_enabled("filament"):
        return None
    return _filament_ratio_control(
        definition,
        ctx,
        label="Widgets",
        total=ctx.count("filamentWidgets"),
        authorized=ctx.count("filamentWidgetsWithAuth"),
        thresholds=(0.7, 0.35),
        violation_type="filament-widget-missing-authz",
        recommendation="Implement `canView()` and/or server-side guards on widgets exposing sensitive data.",
    )


# --- 업로드 / 웹훅 -----------------------------------------------------------


@rule("uploads.validation")
def uploads_validation(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    handling = ctx.count("uploadHandlingMentions")
    validations = ctx.count("uploadValidationMentions")
    if handling == 0:
        status = "unknown"
    else:
        status = "pass" if validations >= max(1, math.ceil(handling * 0.5)) else "warning"
    return Control.from_definition(
        definition,
        status=status,
        message=(
            "No upload signals in the current scope."
            if handling == 0
            else f"Upload signals: {handling}; explicit validations: {validations}."
        ),
        recommendation="Apply a MIME/extension/size whitelist and server-side validation.",
        evidence={"upload_handling_mentions": handling, "upload_validation_mentions": validations},
    )


@rule("webhook.signature_validation")
def webhook_signature_validation(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    handling = ctx.count("webhookHandlingMentions")
    signatures = ctx.count("webhookSignatureMentions")
    if handling == 0:
        status, message = "unknown", "No webhook mentions in the current scope."
    elif signatures > 0:
        status, message = "pass", "Webhook validation/signature signals detected."
    else:
        status, message = "warning", "Webhook detected without signature validation evidence in scope."
    return Control.from_definition(
        definition,
        status=status,
        message=message,
        recommendation="Implement signatures plus an anti-replay window (timestamp/nonce).",
        evidence={"webhook_handling_mentions": handling, "webhook_signature_mentions": signatures},
    )


# --- 공급망 -----------------------------------------------------------------


def _floor_control(
    definition: ControlDefinition,
    ctx: EvaluationContext,
    package: str,
    recommendation: str,
) -> Control:
    version = ctx.composer_versions.get(package)
    if not version:
        return Control.from_definition(
            definition,
            status="unknown",
            message=f"{package} not found in lock/composer.",
            recommendation=recommendation,
            evidence={"package": package, "version": None},
        )
    floor = evaluate_version_floor(version, ctx.floors.get(package, {}))
    return Control.from_definition(
        definition,
        status=floor.status,
        message=f"{package}={version}. {floor.message}",
        recommendation=recommendation,
        evidence={"package": package, "version": version},
    )


@rule("dependencies.laravel_security_floor")
def laravel_security_floor(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    return _floor_control(
        definition,
        ctx,
        "laravel/framework",
        "Keep the framework on the safe floor for recent advisories.",
    )


@rule("dependencies.livewire_security_floor")
def livewire_security_floor(definition: ControlDefinition, ctx: EvaluationContext) -> Optional[Control]:
    if "livewire/livewire" not in ctx.composer_versions and not ctx.module_enabled("livewire"):
        return None
    return _floor_control(
        definition,
        ctx,
        "livewire/livewire",
        "Upgrade Livewire to a range without known auth/upload bypasses.",
    )


@rule("dependencies.filament_security_floor")
def filament_security_floor(definition: ControlDefinition, ctx: EvaluationContext) -> Optional[Control]:
    if "filament/filament" not in ctx.composer_versions and not ctx.module_enabled("filament"):
        return None
    return _floor_control(
        definition,
        ctx,
        "filament/filament",
        "Keep Filament updated to fix insecure bypasses/exports.",
    )


def _runtime_audit_control(
    definition: ControlDefinition,
    audit: AuditResult,
    recommendation: str,
    files: List[str],
) -> Optional[Control]:
    if not audit.has_manifest:
        return None
    summary = audit.summary
    return Control.from_definition(
        definition,
        status=audit.status,
        message=audit.message,
        recommendation=recommendation,
        evidence={
            "vulnerabilities": summary.total,
            "critical": summary.critical,
            "high": summary.high,
            "medium": summary.medium,
            "low": summary.low,
            "command": audit.command,
            "source": audit.source,
            "files": files,
        },
    )


@rule("dependencies.composer_runtime_audit")
def composer_runtime_audit(definition: ControlDefinition, ctx: EvaluationContext) -> Optional[Control]:
    return _runtime_audit_control(
        definition,
        ctx.composer_audit,
        "Run composer audit in CI/CD and keep dependencies on the safe floor with continuous updates.",
        ctx.existing_files(["composer.json", "composer.lock"]),
    )


@rule("dependencies.npm_runtime_audit")
def npm_runtime_audit(definition: ControlDefinition, ctx: EvaluationContext) -> Optional[Control]:
    return _runtime_audit_control(
        definition,
        ctx.npm_audit,
        "Run npm audit in the pipeline and fix vulnerabilities with available fixes, High/Critical first.",
        ctx.existing_files(["package.json", "package-lock.json", "npm-shrinkwrap.json"]),
    )


# --- 파이프라인 -------------------------------------------------------------


def _workflow_control(
    definition: ControlDefinition,
    ctx: EvaluationContext,
    signal_found: bool,
    label: str,
    recommendation: str,
) -> Control:
    workflow = ctx.workflow
    if not workflow.has_workflows:
        message = NO_WORKFLOWS_MESSAGE
    elif signal_found:
        message = f"{label} signal detected in CI."
    else:
        message = f"No {label} signal detected in CI."
    return Control.from_definition(
        definition,
        status=workflow_gate_status(workflow.has_workflows, signal_found),
        message=message,
        recommendation=recommendation,
        evidence={"workflows": list(workflow.workflow_files)},
    )


@rule("pipeline.composer_audit_gate")
def composer_audit_gate(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    return _workflow_control(
        definition,
        ctx,
        ctx.workflow.composer_audit,
        "composer audit",
        "Add a composer audit gate to block High/Critical advisories.",
    )


@rule("pipeline.npm_audit_gate")
def npm_audit_gate(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    if not ctx.framework.package_json:
        return Control.from_definition(
            definition,
            status="unknown",
            message="Project has no package.json at the root.",
            recommendation="Add npm audit (runtime) as a gate on PR/release.",
            evidence={"workflows": list(ctx.workflow.workflow_files)},
        )
    return _workflow_control(
        definition,
        ctx,
        ctx.workflow.npm_audit,
        "npm audit",
        "Add npm audit (runtime) as a gate on PR/release.",
    )


@rule("pipeline.secret_scanning")
def secret_scanning(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    return _workflow_control(
        definition,
        ctx,
        ctx.workflow.secret_scanning,
        "secret scanning",
        "Include gitleaks/trufflehog to prevent secret leaks.",
    )


@rule("pipeline.sast")
def sast(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    return _workflow_control(
        definition,
        ctx,
        ctx.workflow.sast,
        "SAST",
        "Add Semgrep/CodeQL/Larastan as a security gate on PRs.",
    )


@rule("pipeline.dast")
def dast(definition: ControlDefinition, ctx: EvaluationContext) -> Control:
    return _workflow_control(
        definition,
        ctx,
        ctx.workflow.dast,
        "DAST",
        "Add DAST on staging for critical endpoints and panels.",
    )
