"""이 파일은 .py 로깅 초기화 모듈로 베이스라인 실행용 로그 포맷과 레벨을 설정합니다."""

import logging
from typing import Optional

from .config import LOG_LEVEL


def setup_logging(level: Optional[str] = None) -> None:
    # 레벨을 지정하지 않으면 SECBASELINE_LOG_LEVEL 환경 변수 값을 쓴다.
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # SQL 로그는 베이스라인 결과를 가리므로 경고 이상만 남긴다.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
