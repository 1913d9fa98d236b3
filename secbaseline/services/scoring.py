"""이 파일은 .py 점수 집계 모듈로 컨트롤 결과를 모드/도메인/전체 가중 점수로 변환합니다.

가중치 표는 ScoringWeights로 묶여 있어 테스트에서 다른 가중치를 주입할 수 있다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional

from secbaseline.core.types import MODES, Control, ScoreSummary

HIGHLIGHT_LIMIT = 12
PIPELINE_CATEGORY = "pipeline"


@dataclass(frozen=True)
class ScoringWeights:
    severity: Mapping[str, float] = field(
        default_factory=lambda: {"critical": 4, "high": 3, "medium": 2, "low": 1}
    )
    status: Mapping[str, float] = field(
        default_factory=lambda: {"pass": 1, "warning": 0.62, "fail": 0, "unknown": 0.45}
    )
    mode: Mapping[str, float] = field(
        default_factory=lambda: {"automated": 0.7, "semi": 0.2, "manual": 0.1}
    )
    status_priority: Mapping[str, int] = field(
        default_factory=lambda: {"fail": 3, "warning": 2, "unknown": 1, "pass": 0}
    )


DEFAULT_WEIGHTS = ScoringWeights()


def round_half_up(value: float) -> int:
    # JavaScript Math.round와 같이 .5는 항상 올림한다.
    return int(math.floor(value + 0.5))


def compute_counts(controls: Iterable[Control]) -> Dict[str, int]:
    counts = {"total": 0, "pass": 0, "warning": 0, "fail": 0, "unknown": 0}
    for control in controls:
        counts["total"] += 1
        status = control.status if control.status in counts else "unknown"
        counts[status] += 1
    return counts


def compute_score(controls: Iterable[Control], weights: ScoringWeights = DEFAULT_WEIGHTS) -> int:
    # round(100 × Σ(심각도×상태) / Σ 심각도), 빈 집합은 0점이다.
    weighted = 0.0
    total = 0.0
    for control in controls:
        severity_weight = weights.severity.get(control.severity, 1)
        weighted += severity_weight * weights.status.get(control.status, weights.status.get("unknown", 0))
        total += severity_weight
    if total <= 0:
        return 0
    return round_half_up(weighted / total * 100)


def summarize_controls(controls: List[Control], weights: ScoringWeights = DEFAULT_WEIGHTS) -> ScoreSummary:
    counts = compute_counts(controls)
    return ScoreSummary(
        total=counts["total"],
        passed=counts["pass"],
        warning=counts["warning"],
        fail=counts["fail"],
        unknown=counts["unknown"],
        score=compute_score(controls, weights),
    )


def compute_mode_summary(
    controls: List[Control], weights: ScoringWeights = DEFAULT_WEIGHTS
) -> Dict[str, ScoreSummary]:
    return {
        mode: summarize_controls([item for item in controls if item.mode == mode], weights) for mode in MODES
    }


def compute_overall_score(
    mode_summary: Mapping[str, ScoreSummary], weights: ScoringWeights = DEFAULT_WEIGHTS
) -> int:
    # 컨트롤이 하나 이상 있는 모드만 분자/분모에 포함해 재정규화한다.
    weighted = 0.0
    total_weight = 0.0
    for mode, summary in mode_summary.items():
        if summary.total <= 0:
            continue
        weight = weights.mode.get(mode, 0)
        weighted += summary.score * weight
        total_weight += weight
    if total_weight <= 0:
        return 0
    return round_half_up(weighted / total_weight)


def control_domain(control: Control) -> str:
    return "pipeline" if control.category == PIPELINE_CATEGORY else "code"


def compute_domain_summary(
    controls: List[Control], weights: ScoringWeights = DEFAULT_WEIGHTS
) -> Dict[str, ScoreSummary]:
    return {
        domain: summarize_controls([item for item in controls if control_domain(item) == domain], weights)
        for domain in ("code", "pipeline")
    }


def sort_controls(controls: Iterable[Control], weights: ScoringWeights = DEFAULT_WEIGHTS) -> List[Control]:
    # 모드 → 상태 우선순위(내림차순) → 심각도(내림차순) → id 순이다.
    mode_order = {mode: index for index, mode in enumerate(MODES)}

    def sort_key(control: Control) -> tuple:
        return (
            mode_order.get(control.mode, len(MODES)),
            -weights.status_priority.get(control.status, 0),
            -weights.severity.get(control.severity, 0),
            control.id,
        )

    return sorted(controls, key=sort_key)


def build_highlights(sorted_controls: Iterable[Control], limit: int = HIGHLIGHT_LIMIT) -> List[Dict[str, Any]]:
    highlights: List[Dict[str, Any]] = []
    for control in sorted_controls:
        if control.status == "pass":
            continue
        highlights.append(
            {
                "id": control.id,
                "title": control.title,
                "status": control.status,
                "severity": control.severity,
                "category": control.category,
                "message": control.message,
                "recommendation": control.recommendation,
            }
        )
        if len(highlights) >= limit:
            break
    return highlights


def compute_filament_scores(
    controls: Iterable[Control], weights: ScoringWeights = DEFAULT_WEIGHTS
) -> Dict[str, Optional[Dict[str, Any]]]:
    # Filament 페이지/위젯 권한 컨트롤이 있을 때만 개별 점수를 낸다.
    by_id = {control.id: control for control in controls}
    scores: Dict[str, Optional[Dict[str, Any]]] = {}
    for key, control_id in (
        ("pages", "filament.pages_authorization"),
        ("widgets", "filament.widgets_authorization"),
    ):
        control = by_id.get(control_id)
        if control is None:
            scores[key] = None
            continue
        scores[key] = {
            "score": compute_score([control], weights),
            "status": control.status,
            "total": control.evidence.get("total", 0),
            "authorized": control.evidence.get("authorized", 0),
        }
    return scores
