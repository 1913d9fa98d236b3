"""이 파일은 .py 테스트 모듈로 가중 점수 집계와 정렬 규칙을 검증합니다."""

from dataclasses import replace

from secbaseline.core.types import Control
from secbaseline.services.scoring import (
    ScoringWeights,
    build_highlights,
    compute_domain_summary,
    compute_mode_summary,
    compute_overall_score,
    compute_score,
    round_half_up,
    sort_controls,
)


def _control(control_id, status, severity="high", mode="automated", category="code") -> Control:
    return Control(
        id=control_id,
        title=control_id,
        category=category,
        severity=severity,
        mode=mode,
        frequency="PR",
        status=status,
    )


def _overall(controls) -> int:
    return compute_overall_score(compute_mode_summary(controls))


def test_empty_set_scores_zero() -> None:
    assert compute_score([]) == 0
    assert _overall([]) == 0


def test_score_weights_severity_and_status() -> None:
    controls = [_control("a", "pass", "critical"), _control("b", "fail", "low")]
    # (4×1 + 1×0) / 5 = 80
    assert compute_score(controls) == 80
    # warning 0.62, unknown 0.45
    assert compute_score([_control("c", "warning", "medium")]) == 62
    assert compute_score([_control("d", "unknown", "medium")]) == 45


def test_rounding_half_up() -> None:
    assert round_half_up(62.5) == 63
    assert round_half_up(0.5) == 1
    assert round_half_up(44.4999) == 44


def test_overall_renormalizes_over_non_empty_tiers() -> None:
    controls = [_control("a", "pass", mode="automated"), _control("b", "fail", mode="manual")]
    # (100×0.7 + 0×0.1) / 0.8 = 87.5 → 88
    assert _overall(controls) == 88
    assert _overall([_control("a", "pass", mode="semi")]) == 100


def test_score_monotonicity() -> None:
    base = [
        _control("a", "fail", "critical"),
        _control("b", "warning", "medium", mode="semi"),
        _control("c", "unknown", "high", mode="manual"),
        _control("d", "pass", "low"),
    ]
    improved = [replace(base[0], status="pass")] + base[1:]
    degraded = base[:3] + [replace(base[3], status="fail")]
    assert _overall(improved) >= _overall(base)
    assert _overall(degraded) <= _overall(base)


def test_domain_summary_splits_pipeline() -> None:
    controls = [
        _control("pipeline.sast", "fail", category="pipeline"),
        _control("laravel.cors_config", "pass", category="laravel"),
        _control("x", "pass", category="pipeline-ish"),
    ]
    summary = compute_domain_summary(controls)
    assert summary["pipeline"].total == 1
    assert summary["pipeline"].score == 0
    assert summary["code"].total == 2
    assert summary["code"].to_dict()["pass"] == 2


def test_sort_order() -> None:
    controls = [
        _control("z.manual", "fail", mode="manual"),
        _control("b.pass", "pass", "critical"),
        _control("c.warn_low", "warning", "low"),
        _control("a.warn_low", "warning", "low"),
        _control("d.fail", "fail", "medium"),
        _control("e.warn_high", "warning", "high"),
        _control("f.semi", "fail", mode="semi"),
    ]
    ordered = [item.id for item in sort_controls(controls)]
    assert ordered == [
        "d.fail",
        "e.warn_high",
        "a.warn_low",
        "c.warn_low",
        "b.pass",
        "f.semi",
        "z.manual",
    ]


def test_highlights_take_first_twelve_non_passing() -> None:
    controls = [_control(f"c{index:02d}", "fail") for index in range(15)] + [_control("ok", "pass")]
    highlights = build_highlights(sort_controls(controls))
    assert len(highlights) == 12
    assert all(item["status"] != "pass" for item in highlights)
    assert set(highlights[0]) == {"id", "title", "status", "severity", "category", "message", "recommendation"}


def test_custom_weights_are_injectable() -> None:
    weights = ScoringWeights(status={"pass": 1, "warning": 0.5, "fail": 0, "unknown": 0})
    assert compute_score([_control("a", "warning")], weights) == 50
    assert compute_score([_control("a", "unknown")], weights) == 0
