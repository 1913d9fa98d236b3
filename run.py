"""이 파일은 .py 엔트리포인트로 프로젝트 루트 하나에 대한 보안 베이스라인 실행을 제공합니다."""

import json
import sys
from pathlib import Path

from secbaseline.core.logging import setup_logging
from secbaseline.core.schemas import BaselineRequest
from secbaseline.db.session import get_session, init_db
from secbaseline.services.executor import BaselineExecutor


def main() -> None:
    # 사용법: python run.py [프로젝트 루트] [신호 JSON 파일]
    setup_logging()
    root = Path(sys.argv[1]) if len(sys.argv) > 1 else Path.cwd()
    request = BaselineRequest()
    if len(sys.argv) > 2:
        request = BaselineRequest.model_validate(json.loads(Path(sys.argv[2]).read_text(encoding="utf-8")))

    init_db()
    session = next(get_session())
    try:
        report = BaselineExecutor(session).run(root, request)
    finally:
        session.close()

    print(
        json.dumps(
            {
                "root": str(root),
                "score": report.score,
                "totals": report.totals.to_dict(),
                "domain_summary": {key: value.to_dict() for key, value in report.domain_summary.items()},
                "highlights": report.highlights,
            },
            ensure_ascii=False,
            indent=2,
        )
    )


if __name__ == "__main__":
    main()
