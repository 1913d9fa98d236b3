"""이 파일은 .py 프로젝트 모듈 탐지 모듈로 composer 의존성 버전과 선택 스택 활성화 여부를 판단합니다."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)


def _read_json(path: Path) -> Optional[Any]:
    if not path.is_file():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.debug("Ignoring unreadable manifest %s: %s", path, exc)
        return None


def get_composer_dependency_versions(root: Path) -> Dict[str, str]:
    """composer.lock의 설치 버전을 우선 사용하고, 없으면 composer.json 제약 문자열을 사용한다."""
    root = Path(root)
    versions: Dict[str, str] = {}
    lock = _read_json(root / "composer.lock")
    if isinstance(lock, dict) and isinstance(lock.get("packages"), list):
        for package in [*(lock.get("packages") or []), *(lock.get("packages-dev") or [])]:
            if isinstance(package, dict) and package.get("name") and package.get("version"):
                versions[str(package["name"])] = str(package["version"])
    if versions:
        return versions

    composer = _read_json(root / "composer.json")
    if not isinstance(composer, dict):
        return versions
    for name, version in (composer.get("require") or {}).items():
        versions[str(name)] = str(version)
    return versions


@dataclass(frozen=True)
class DetectionContext:
    root: Path
    metrics: Mapping[str, Any]
    composer_versions: Mapping[str, str]

    def metric(self, name: str) -> float:
        return float(self.metrics.get(name) or 0)

    def exists(self, *parts: str) -> bool:
        return self.root.joinpath(*parts).exists()


@dataclass(frozen=True)
class ModuleSpec:
    id: str
    title: str
    description: str
    detect: Callable[[DetectionContext], tuple]
    docs: List[Dict[str, str]] = field(default_factory=list)
    scope_hints: List[str] = field(default_factory=list)


@dataclass
class DetectedModule:
    id: str
    title: str
    description: str
    enabled: bool
    reason: str
    docs: List[Dict[str, str]]
    scope_hints: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "enabled": self.enabled,
            "reason": self.reason,
            "docs": list(self.docs),
            "scope_hints": list(self.scope_hints),
        }


def _detect_laravel(ctx: DetectionContext) -> tuple:
    if "laravel/framework" in ctx.composer_versions:
        return True, "laravel/framework detected"
    if "illuminate/support" in ctx.composer_versions or "illuminate/routing" in ctx.composer_versions:
        return True, "illuminate packages detected"
    return False, "no Laravel signals"


def _detect_filament(ctx: DetectionContext) -> tuple:
    enabled = (
        "filament/filament" in ctx.composer_versions
        or ctx.metric("filamentResources") > 0
        or ctx.metric("filamentPages") > 0
        or ctx.metric("filamentWidgets") > 0
        or ctx.exists("app", "Filament")
    )
    return enabled, "Filament surface detected" if enabled else "no Filament signals"


def _detect_livewire(ctx: DetectionContext) -> tuple:
    enabled = (
        "livewire/livewire" in ctx.composer_versions
        or ctx.metric("livewireComponents") > 0
        or ctx.exists("app", "Livewire")
    )
    return enabled, "Livewire surface detected" if enabled else "no Livewire signals"


def _detect_by_package(package: str, config_file: str, label: str) -> Callable[[DetectionContext], tuple]:
    # 의존성 또는 config 파일 존재로 활성화되는 단순 스택용 탐지기를 만든다.
    def detect(ctx: DetectionContext) -> tuple:
        enabled = package in ctx.composer_versions or ctx.exists("config", config_file)
        return enabled, f"{label} detected in dependency/config" if enabled else f"no {label} signals"

    return detect


MODULE_REGISTRY: List[ModuleSpec] = [
    ModuleSpec(
        id="laravel-core",
        title="Laravel Core",
        description="Base framework checks and security posture for Laravel projects.",
        detect=_detect_laravel,
        docs=[
            {"title": "Laravel Security", "url": "https://laravel.com/docs/11.x/security"},
            {"title": "Laravel Authorization", "url": "https://laravel.com/docs/11.x/authorization"},
            {"title": "Laravel Validation", "url": "https://laravel.com/docs/11.x/validation"},
        ],
        scope_hints=["app/Http/Controllers", "app/Http/Middleware", "app/Policies", "routes", "config"],
    ),
    ModuleSpec(
        id="filament",
        title="Filament",
        description="Panel, resources, pages and widgets authorization/security checks.",
        detect=_detect_filament,
        docs=[{"title": "Filament Docs", "url": "https://filamentphp.com/docs"}],
        scope_hints=["app/Filament", "routes", "config/filament.php", "app/Providers"],
    ),
    ModuleSpec(
        id="livewire",
        title="Livewire",
        description="Component input tampering and locked properties checks.",
        detect=_detect_livewire,
        docs=[
            {"title": "Livewire Security", "url": "https://livewire.laravel.com/docs/security"},
            {"title": "Livewire Locked Properties", "url": "https://livewire.laravel.com/docs/3.x/locked"},
        ],
        scope_hints=["app/Livewire", "resources/views/livewire", "routes", "app/Http/Controllers"],
    ),
    ModuleSpec(
        id="sanctum",
        title="Laravel Sanctum",
        description="API token and guard usage checks for Sanctum-based APIs.",
        detect=_detect_by_package("laravel/sanctum", "sanctum.php", "Sanctum"),
        docs=[{"title": "Sanctum", "url": "https://laravel.com/docs/11.x/sanctum"}],
        scope_hints=["routes/api.php", "app/Models", "config/sanctum.php", "app/Http/Middleware"],
    ),
    ModuleSpec(
        id="spatie-permission",
        title="Spatie Laravel Permission",
        description="Role/permission enforcement checks for authorization model.",
        detect=_detect_by_package("spatie/laravel-permission", "permission.php", "Spatie Permission"),
        docs=[{"title": "Spatie Permission Docs", "url": "https://spatie.be/docs/laravel-permission/v6/introduction"}],
        scope_hints=["app/Models", "routes", "app/Policies", "config/permission.php"],
    ),
    ModuleSpec(
        id="horizon",
        title="Laravel Horizon",
        description="Queue dashboard and operational protection checks for Horizon.",
        detect=_detect_by_package("laravel/horizon", "horizon.php", "Horizon"),
        docs=[{"title": "Laravel Horizon", "url": "https://laravel.com/docs/11.x/horizon"}],
        scope_hints=["app/Providers/HorizonServiceProvider.php", "config/horizon.php", "routes"],
    ),
]


def detect_project_modules(
    root: Path,
    metrics: Optional[Mapping[str, Any]] = None,
    composer_versions: Optional[Mapping[str, str]] = None,
) -> List[DetectedModule]:
    root = Path(root)
    versions = composer_versions if composer_versions is not None else get_composer_dependency_versions(root)
    ctx = DetectionContext(root=root, metrics=metrics or {}, composer_versions=versions)
    detected: List[DetectedModule] = []
    for spec in MODULE_REGISTRY:
        enabled, reason = spec.detect(ctx)
        detected.append(
            DetectedModule(
                id=spec.id,
                title=spec.title,
                description=spec.description,
                enabled=bool(enabled),
                reason=reason,
                docs=list(spec.docs),
                scope_hints=list(spec.scope_hints),
            )
        )
    return detected


def build_module_scope_draft(modules: List[DetectedModule]) -> List[Dict[str, Any]]:
    # 활성화된 모듈만 검토 범위 초안으로 만든다.
    return [
        {
            "module_id": module.id,
            "module_title": module.title,
            "scope_hints": list(module.scope_hints),
            "docs": list(module.docs),
        }
        for module in modules
        if module.enabled
    ]
