"""이 파일은 .py SCA 어댑터로 composer/npm audit 같은 외부 도구 실행을 래핑합니다."""

from __future__ import annotations

from dataclasses import dataclass
import subprocess
from typing import List, Optional

from secbaseline.core.config import DEFAULT_AUDIT_TIMEOUT_MS, MAX_AUDIT_OUTPUT_BYTES
from secbaseline.core.errors import AdapterError, AuditTimeoutError


@dataclass
class ToolResult:
    exit_code: int
    stdout: str
    stderr: str


class ScaRunner:
    def __init__(
        self,
        timeout_ms: int = DEFAULT_AUDIT_TIMEOUT_MS,
        max_output_bytes: int = MAX_AUDIT_OUTPUT_BYTES,
    ) -> None:
        self.timeout_ms = timeout_ms
        self.max_output_bytes = max_output_bytes

    def run(self, command: List[str], cwd: Optional[str] = None, timeout_ms: Optional[int] = None) -> ToolResult:
        # 호출마다 넘긴 타임아웃이 러너 기본값보다 우선한다.
        timeout_ms = self.timeout_ms if timeout_ms is None else timeout_ms
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                timeout=timeout_ms / 1000,
                check=False,
                cwd=cwd,
            )
        except subprocess.TimeoutExpired as exc:
            raise AuditTimeoutError(f"SCA command timeout after {timeout_ms}ms") from exc
        except OSError as exc:
            raise AdapterError(f"SCA execution failed: {exc}") from exc

        # 출력이 상한을 넘으면 잘린 JSON을 신뢰하지 않고 실행 오류로 본다.
        stdout, stderr = result.stdout or b"", result.stderr or b""
        if len(stdout) + len(stderr) > self.max_output_bytes:
            raise AdapterError(f"SCA output exceeded {self.max_output_bytes} bytes")

        # UTF-8이 아닌 바이트는 치환해서 JSON 파싱 단계에서 오류로 처리되게 한다.
        return ToolResult(
            result.returncode,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )
