"""이 파일은 .py 패키지 초기화 모듈로 베이스라인 평가 진입 함수를 노출합니다."""

from .services.baseline import BaselineReport, evaluate_security_baseline

__all__ = ["BaselineReport", "evaluate_security_baseline"]
