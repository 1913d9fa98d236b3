"""이 파일은 .py DB 모델 정의 모듈로 BaselineRun/AuditSnapshot을 제공합니다."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, JSON, String, UniqueConstraint

from .base import Base


class BaselineRun(Base):
    __tablename__ = "baseline_runs"

    id = Column(Integer, primary_key=True, index=True)
    root = Column(String, nullable=False, index=True)
    status = Column(String, default="PENDING")
    score = Column(Integer, nullable=True)
    totals = Column(JSON, default={})
    report = Column(JSON, nullable=True)
    error_message = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    finished_at = Column(DateTime, nullable=True)


class AuditSnapshot(Base):
    # 생태계별 마지막 audit 결과로, 다음 실행의 previous_audit 입력이 된다.
    __tablename__ = "audit_snapshots"
    __table_args__ = (UniqueConstraint("root", "ecosystem", name="uq_audit_snapshot_root_ecosystem"),)

    id = Column(Integer, primary_key=True)
    root = Column(String, nullable=False, index=True)
    ecosystem = Column(String, nullable=False)
    fingerprint = Column(String, nullable=True)
    payload = Column(JSON, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow)
