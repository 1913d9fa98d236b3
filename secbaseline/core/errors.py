"""이 파일은 .py 공통 예외 모듈로 오류 유형을 표준화합니다."""


class ConfigError(ValueError):
    """audit 옵션 등 설정 검증 실패 시 사용합니다."""


class AdapterError(RuntimeError):
    """외부 audit 도구 실행 오류에 사용합니다."""


class AuditTimeoutError(AdapterError):
    """외부 audit 도구가 제한 시간을 넘긴 경우입니다."""


class CatalogLookupError(KeyError):
    """카탈로그에 없는 컨트롤 ID를 조회한 경우로 프로그래밍 오류입니다."""
