"""이 파일은 .py 어댑터 패키지 초기화 모듈로 외부 audit 도구 러너를 노출합니다."""

from .sca import ScaRunner, ToolResult

__all__ = ["ScaRunner", "ToolResult"]
