"""이 파일은 .py DB 세션 모듈로 베이스라인 실행 기록용 엔진과 세션 팩토리를 만듭니다."""

from __future__ import annotations

from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from secbaseline.core.config import DATABASE_URL, STORAGE_DIR
from .base import Base


def build_engine(url: str = DATABASE_URL) -> Engine:
    # 파일 기반 sqlite는 storage 디렉토리를 먼저 만든다. 메모리 DB는 그대로 연결한다.
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if ":memory:" not in url and url != "sqlite://":
            STORAGE_DIR.mkdir(parents=True, exist_ok=True)
    return create_engine(url, connect_args=connect_args)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> Engine:
    # 기본 엔진은 처음 사용할 때 만든다.
    global _engine
    if _engine is None:
        _engine = build_engine()
    return _engine


def init_db(engine: Optional[Engine] = None) -> None:
    Base.metadata.create_all(bind=engine or get_engine())


def get_session() -> Generator[Session, None, None]:
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())
    session = _session_factory()
    try:
        yield session
    finally:
        session.close()
