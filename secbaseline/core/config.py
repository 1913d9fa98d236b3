"""이 파일은 .py 설정 모듈로 경로와 감사(audit) 기본값을 정의합니다."""

import os
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
PACKAGE_DIR = REPO_ROOT / "secbaseline"
DATA_DIR = PACKAGE_DIR / "data"
DEFAULT_CATALOG_FILE = DATA_DIR / "controls.yml"
STORAGE_DIR = REPO_ROOT / "storage"
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite:///{(STORAGE_DIR / 'secbaseline.db').as_posix()}",
)

LOG_LEVEL = os.getenv("SECBASELINE_LOG_LEVEL", "INFO")

BASELINE_ID = "laravel-filament-livewire-security-v1"
BASELINE_VERSION = 1
BASELINE_NAME = "Security Baseline (Laravel + Filament + Livewire)"

# 외부 audit 도구 실행 제한값이다.
DEFAULT_AUDIT_TIMEOUT_MS = int(os.getenv("SECBASELINE_AUDIT_TIMEOUT_MS", "15000"))
DEFAULT_AUDIT_MAX_ENTRIES = int(os.getenv("SECBASELINE_AUDIT_MAX_ENTRIES", "120"))
MAX_AUDIT_OUTPUT_BYTES = 12 * 1024 * 1024

AUDIT_OPTIONS_SCHEMA = {
    "properties": {
        "composer": {"type": "boolean", "default": True},
        "npm": {"type": "boolean", "default": True},
        "timeout_ms": {"type": "integer", "default": DEFAULT_AUDIT_TIMEOUT_MS, "min": 1},
        "max_entries": {"type": "integer", "default": DEFAULT_AUDIT_MAX_ENTRIES, "min": 1},
    }
}
