"""이 파일은 .py 베이스라인 실행 모듈로 평가 실행과 audit 스냅샷 저장을 담당합니다."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from sqlalchemy.orm import Session

from secbaseline.adapters.sca import ScaRunner
from secbaseline.core.catalog import ControlCatalog
from secbaseline.core.schemas import BaselineRequest
from secbaseline.db import models

from .baseline import BaselineReport, evaluate_security_baseline


class BaselineExecutor:
    def __init__(
        self,
        session: Session,
        catalog: Optional[ControlCatalog] = None,
        runner: Optional[ScaRunner] = None,
    ) -> None:
        # 실행 기록과 audit 스냅샷을 저장할 DB 세션을 사용한다.
        self.session = session
        # 카탈로그는 실행마다 다시 읽지 않도록 한 번만 로드한다.
        self.catalog = catalog or ControlCatalog.from_default()
        # None이면 기본 러너를 쓰며, 타임아웃은 audit 설정값이 호출마다 전달된다.
        self.runner = runner

    def run(self, root: Union[str, Path], request: Optional[BaselineRequest] = None) -> BaselineReport:
        request = request or BaselineRequest()
        root_key = str(Path(root).resolve())
        run = models.BaselineRun(root=root_key, status="RUNNING")
        self.session.add(run)
        self.session.commit()

        try:
            # 1) 이전 audit 스냅샷을 previous_security_metadata 형태로 복원
            previous = self.load_previous_metadata(root_key)
            # 2) 베이스라인 평가
            report = evaluate_security_baseline(
                root,
                metrics=request.metrics,
                violations=request.violations,
                file_index=request.file_index,
                previous_security_metadata=previous,
                audit_options=request.audit_options,
                runner=self.runner,
                catalog=self.catalog,
            )
            # 3) 새 스냅샷 저장 (다음 실행의 캐시 입력)
            self._store_snapshots(root_key, report.dependency_audits)

            run.status = "COMPLETED"
            run.score = report.score
            run.totals = report.totals.to_dict()
            run.report = report.to_dict()
            run.error_message = None
            run.finished_at = datetime.utcnow()
            self.session.commit()
            return report
        except Exception as exc:
            # 오류 발생 시 실패 상태로 저장하고 예외를 전파한다.
            self.session.rollback()
            run.status = "FAILED"
            run.error_message = str(exc)
            run.finished_at = datetime.utcnow()
            self.session.commit()
            raise

    def load_previous_metadata(self, root: Union[str, Path]) -> Dict[str, Any]:
        root_key = str(Path(root).resolve())
        snapshots = (
            self.session.query(models.AuditSnapshot)
            .filter(models.AuditSnapshot.root == root_key)
            .all()
        )
        return {"dependency_audits": {item.ecosystem: dict(item.payload or {}) for item in snapshots}}

    def _store_snapshots(self, root_key: str, audits: Dict[str, Dict[str, Any]]) -> None:
        # (root, ecosystem) 단위로 마지막 결과만 유지한다.
        for ecosystem, payload in audits.items():
            snapshot = (
                self.session.query(models.AuditSnapshot)
                .filter(
                    models.AuditSnapshot.root == root_key,
                    models.AuditSnapshot.ecosystem == ecosystem,
                )
                .one_or_none()
            )
            if snapshot is None:
                snapshot = models.AuditSnapshot(root=root_key, ecosystem=ecosystem)
                self.session.add(snapshot)
            snapshot.fingerprint = payload.get("fingerprint")
            snapshot.payload = payload
            snapshot.updated_at = datetime.utcnow()
        self.session.commit()
