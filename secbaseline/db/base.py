"""이 파일은 .py DB 베이스 모듈로 ORM 선언 베이스를 제공합니다."""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
