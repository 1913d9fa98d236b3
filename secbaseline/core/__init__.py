"""이 파일은 .py 코어 패키지 초기화 모듈로 주요 심볼을 재노출합니다."""

from .catalog import ControlCatalog
from .config import DEFAULT_CATALOG_FILE
from .errors import AdapterError, AuditTimeoutError, CatalogLookupError, ConfigError
from .logging import setup_logging
from .types import AuditResult, Control, ControlDefinition, VulnerabilityRecord
from .versions import compare_versions, evaluate_version_floor, parse_version

__all__ = [
    "AdapterError",
    "AuditResult",
    "AuditTimeoutError",
    "CatalogLookupError",
    "ConfigError",
    "Control",
    "ControlCatalog",
    "ControlDefinition",
    "DEFAULT_CATALOG_FILE",
    "VulnerabilityRecord",
    "compare_versions",
    "evaluate_version_floor",
    "parse_version",
    "setup_logging",
]
