"""이 파일은 .py 테스트 설정 모듈로 경로와 공용 fixture를 초기화합니다."""

import json
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from secbaseline.adapters.sca import ToolResult  # noqa: E402


class FakeRunner:
    """실제 composer/npm 대신 미리 정한 결과를 돌려주는 러너이다."""

    def __init__(self, outputs=None, exit_code=0, error=None):
        # outputs: 명령 이름(composer/npm) -> stdout(문자열 또는 JSON 직렬화 가능한 값)
        self.outputs = outputs or {}
        self.exit_code = exit_code
        self.error = error
        self.calls = []
        self.timeouts = []

    def run(self, command, cwd=None, timeout_ms=None):
        self.calls.append((list(command), cwd))
        self.timeouts.append(timeout_ms)
        if self.error is not None:
            raise self.error
        output = self.outputs.get(command[0], "")
        if not isinstance(output, str):
            output = json.dumps(output)
        return ToolResult(self.exit_code, output, "")


@pytest.fixture
def fake_runner():
    return FakeRunner()


def write_json(path: Path, payload) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")
