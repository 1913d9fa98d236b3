"""이 파일은 .py 신호 수집 모듈로 CI 워크플로, .env, 권한 커버리지, 선택 스택 신호를 수집합니다."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
import re
from typing import Any, List, Mapping, Optional

logger = logging.getLogger(__name__)

WORKFLOW_PATTERNS = {
    "composer_audit": re.compile(r"composer\s+audit", re.IGNORECASE),
    "npm_audit": re.compile(r"npm\s+audit", re.IGNORECASE),
    "secret_scanning": re.compile(r"gitleaks|trufflehog|secret[\s_-]?scan|detect-secrets", re.IGNORECASE),
    "sast": re.compile(r"semgrep|codeql|sast|larastan|phpstan", re.IGNORECASE),
    "dast": re.compile(r"dast|owasp[\s_-]?zap|zap-baseline", re.IGNORECASE),
}

POLICY_MAPPING_PATTERN = re.compile(r"([A-Za-z0-9_\\]+)::class\s*=>\s*([A-Za-z0-9_\\]+Policy)::class")
POLICY_CALL_PATTERN = re.compile(
    r"Gate::policy\s*\(\s*([A-Za-z0-9_\\]+)::class\s*,\s*([A-Za-z0-9_\\]+Policy)::class\s*\)"
)
GATE_DEFINITION_PATTERN = re.compile(r"Gate::(?:define|resource)\s*\(")
GUESS_POLICY_PATTERN = re.compile(r"Gate::guessPolicyNamesUsing\s*\(")

PERMISSION_MIDDLEWARE_PATTERN = re.compile(
    r"(?:middleware\s*\(\s*[^)]*['\"][^'\"]*(?:role|permission):|->middleware\s*\(\s*['\"][^'\"]*(?:role|permission):)",
    re.IGNORECASE,
)
SANCTUM_GUARD_PATTERN = re.compile(r"\bauth:sanctum\b", re.IGNORECASE)
SANCTUM_ABILITY_PATTERN = re.compile(r"\b(?:ability|abilities):", re.IGNORECASE)
HAS_ROLES_PATTERN = re.compile(r"\bHasRoles\b")
HAS_API_TOKENS_PATTERN = re.compile(r"\bHasApiTokens\b")
PERMISSION_CHECK_PATTERN = re.compile(
    r"->(?:hasRole|hasAnyRole|hasAllRoles|hasPermissionTo|hasAnyPermission|hasAllPermissions|can)\s*\("
)
HORIZON_GATE_PATTERN = re.compile(r"Gate::define\s*\(\s*['\"]viewHorizon['\"]")
HORIZON_AUTH_PATTERN = re.compile(r"Horizon::auth\s*\(")
HORIZON_MIDDLEWARE_PATTERN = re.compile(r"['\"]middleware['\"]\s*=>\s*\[[^\]]*['\"]auth")

MAX_MISSING_MODELS = 30


def read_text(path: Path) -> str:
    if not path.is_file():
        return ""
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("Cannot read %s: %s", path, exc)
        return ""


def list_php_files(directory: Path) -> List[Path]:
    if not directory.is_dir():
        return []
    return sorted(path for path in directory.rglob("*.php") if path.is_file())


def _relative(root: Path, path: Path) -> str:
    return path.relative_to(root).as_posix()


@dataclass
class WorkflowSignals:
    has_workflows: bool = False
    composer_audit: bool = False
    npm_audit: bool = False
    secret_scanning: bool = False
    sast: bool = False
    dast: bool = False
    workflow_files: List[str] = field(default_factory=list)


def detect_pipeline_signals(root: Path) -> WorkflowSignals:
    # .github/workflows의 yml/yaml 텍스트에서 보안 게이트 키워드를 찾는다.
    signals = WorkflowSignals()
    workflows_dir = Path(root) / ".github" / "workflows"
    if not workflows_dir.is_dir():
        return signals

    files = sorted(
        path for path in workflows_dir.iterdir() if path.is_file() and path.suffix in (".yml", ".yaml")
    )
    signals.has_workflows = bool(files)
    signals.workflow_files = [path.name for path in files]
    for path in files:
        content = read_text(path)
        for name, pattern in WORKFLOW_PATTERNS.items():
            if pattern.search(content):
                setattr(signals, name, True)
    return signals


def get_env_var(content: str, key: str) -> Optional[str]:
    if not content:
        return None
    match = re.search(rf"^\s*{re.escape(key)}\s*=\s*(.+?)\s*$", content, re.MULTILINE | re.IGNORECASE)
    if not match:
        return None
    return re.sub(r"^['\"]|['\"]$", "", match.group(1)).strip()


@dataclass
class EnvironmentSignals:
    env_file_present: bool = False
    app_env: str = ""
    app_debug: str = ""


def read_environment(root: Path) -> EnvironmentSignals:
    content = read_text(Path(root) / ".env")
    return EnvironmentSignals(
        env_file_present=bool(content),
        app_env=(get_env_var(content, "APP_ENV") or "").lower(),
        app_debug=(get_env_var(content, "APP_DEBUG") or "").lower(),
    )


@dataclass
class AuthorizationCoverage:
    model_count: int = 0
    covered_model_count: int = 0
    coverage_ratio: Optional[float] = None
    policy_file_count: int = 0
    explicitly_mapped_model_count: int = 0
    gate_definitions: int = 0
    has_guess_policy_names_using: bool = False
    missing_models: List[str] = field(default_factory=list)
    indexed_file_count: int = 0


def _class_basename(candidate: str) -> str:
    return str(candidate or "").replace("\\", "/").split("/")[-1]


def _indexed_paths(file_index: Mapping[str, Any], kind: str) -> List[str]:
    paths = []
    for relative_path, entry in file_index.items():
        entry_kind = entry.get("kind") if isinstance(entry, Mapping) else getattr(entry, "kind", None)
        if entry_kind == kind:
            paths.append(str(relative_path))
    return paths


def collect_policy_and_gate_coverage(root: Path, file_index: Optional[Mapping[str, Any]] = None) -> AuthorizationCoverage:
    """Model ↔ Policy 커버리지와 Gate 정의 수를 계산한다.

    파일 인덱스에 분류가 없으면 app/Models, app/Policies, app/Providers를 직접 탐색한다.
    모델은 관례 이름의 Policy가 있거나 provider에서 명시적으로 매핑된 경우 커버된 것으로 본다.
    """
    root = Path(root)
    file_index = file_index or {}

    model_paths = _indexed_paths(file_index, "model")
    if not model_paths:
        model_paths = [_relative(root, path) for path in list_php_files(root / "app" / "Models")]

    policy_paths = _indexed_paths(file_index, "policy")
    if not policy_paths:
        policy_paths = [
            _relative(root, path)
            for path in list_php_files(root / "app" / "Policies")
            if path.name.endswith("Policy.php")
        ]

    provider_paths = [
        str(path) for path in file_index if "/Providers/" in str(path) and str(path).endswith(".php")
    ]
    if not provider_paths:
        provider_paths = [_relative(root, path) for path in list_php_files(root / "app" / "Providers")]

    model_names = list(dict.fromkeys(Path(path).stem for path in model_paths if Path(path).stem))
    policy_model_names = {
        Path(path).stem[: -len("Policy")]
        for path in policy_paths
        if Path(path).stem.endswith("Policy") and Path(path).stem != "Policy"
    }

    explicitly_mapped = set()
    gate_definitions = 0
    guess_hook = False
    for relative_path in provider_paths:
        content = read_text(root / relative_path)
        if not content:
            continue
        for match in POLICY_MAPPING_PATTERN.finditer(content):
            explicitly_mapped.add(_class_basename(match.group(1)))
        for match in POLICY_CALL_PATTERN.finditer(content):
            explicitly_mapped.add(_class_basename(match.group(1)))
        gate_definitions += len(GATE_DEFINITION_PATTERN.findall(content))
        guess_hook = guess_hook or bool(GUESS_POLICY_PATTERN.search(content))

    covered = [name for name in model_names if name in policy_model_names or name in explicitly_mapped]
    missing = [name for name in model_names if name not in covered][:MAX_MISSING_MODELS]
    model_count = len(model_names)

    return AuthorizationCoverage(
        model_count=model_count,
        covered_model_count=len(covered),
        coverage_ratio=len(covered) / model_count if model_count else None,
        policy_file_count=len(policy_paths),
        explicitly_mapped_model_count=len(explicitly_mapped),
        gate_definitions=gate_definitions,
        has_guess_policy_names_using=guess_hook,
        missing_models=missing,
        indexed_file_count=len(file_index),
    )


@dataclass
class SpatieSignals:
    enabled: bool = False
    models_with_has_roles: int = 0
    route_files_with_permission_middleware: int = 0
    permission_check_calls: int = 0


@dataclass
class SanctumSignals:
    enabled: bool = False
    models_with_api_tokens: int = 0
    route_files_with_sanctum_guard: int = 0
    route_files_with_sanctum_abilities: int = 0


@dataclass
class HorizonSignals:
    enabled: bool = False
    has_config: bool = False
    has_provider: bool = False
    has_dashboard_auth_signal: bool = False
    auth_signal_count: int = 0


@dataclass
class StackSignals:
    spatie_permission: SpatieSignals
    sanctum: SanctumSignals
    horizon: HorizonSignals


def collect_stack_signals(
    root: Path,
    has_spatie_permission: bool,
    has_sanctum: bool,
    has_horizon: bool,
) -> StackSignals:
    # 선택 스택이 활성화된 경우에만 관련 파일을 읽는다.
    root = Path(root)
    signals = StackSignals(
        spatie_permission=SpatieSignals(enabled=has_spatie_permission),
        sanctum=SanctumSignals(enabled=has_sanctum),
        horizon=HorizonSignals(enabled=has_horizon),
    )

    if has_spatie_permission or has_sanctum:
        for path in list_php_files(root / "routes"):
            content = read_text(path)
            if has_spatie_permission and PERMISSION_MIDDLEWARE_PATTERN.search(content):
                signals.spatie_permission.route_files_with_permission_middleware += 1
            if has_sanctum and SANCTUM_GUARD_PATTERN.search(content):
                signals.sanctum.route_files_with_sanctum_guard += 1
            if has_sanctum and SANCTUM_ABILITY_PATTERN.search(content):
                signals.sanctum.route_files_with_sanctum_abilities += 1
        for path in list_php_files(root / "app" / "Models"):
            content = read_text(path)
            if has_spatie_permission and HAS_ROLES_PATTERN.search(content):
                signals.spatie_permission.models_with_has_roles += 1
            if has_sanctum and HAS_API_TOKENS_PATTERN.search(content):
                signals.sanctum.models_with_api_tokens += 1

    if has_spatie_permission:
        for path in list_php_files(root / "app"):
            signals.spatie_permission.permission_check_calls += len(
                PERMISSION_CHECK_PATTERN.findall(read_text(path))
            )

    if has_horizon:
        provider = read_text(root / "app" / "Providers" / "HorizonServiceProvider.php")
        config = read_text(root / "config" / "horizon.php")
        horizon = signals.horizon
        horizon.has_provider = bool(provider)
        horizon.has_config = bool(config)
        horizon.auth_signal_count = (
            len(HORIZON_GATE_PATTERN.findall(provider))
            + len(HORIZON_AUTH_PATTERN.findall(provider))
            + len(HORIZON_MIDDLEWARE_PATTERN.findall(config))
        )
        horizon.has_dashboard_auth_signal = horizon.auth_signal_count > 0

    return signals


@dataclass
class FrameworkFiles:
    cors_config: bool = False
    trust_proxies: bool = False
    trust_hosts: bool = False
    package_json: bool = False


def detect_framework_files(root: Path) -> FrameworkFiles:
    root = Path(root)
    middleware = root / "app" / "Http" / "Middleware"
    return FrameworkFiles(
        cors_config=(root / "config" / "cors.php").exists(),
        trust_proxies=(middleware / "TrustProxies.php").exists(),
        trust_hosts=(middleware / "TrustHosts.php").exists(),
        package_json=(root / "package.json").exists(),
    )
