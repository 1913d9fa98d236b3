"""이 파일은 .py 서비스 패키지 초기화 모듈로 핵심 서비스를 노출합니다."""

from .baseline import BaselineReport, evaluate_security_baseline
from .dependency_audit import evaluate_audit
from .evaluator import ControlEvaluator
from .executor import BaselineExecutor

__all__ = [
    "BaselineExecutor",
    "BaselineReport",
    "ControlEvaluator",
    "evaluate_audit",
    "evaluate_security_baseline",
]
