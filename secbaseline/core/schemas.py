"""이 파일은 .py 입력 스키마 모듈로 외부 스캐너가 넘기는 신호 페이로드를 검증합니다."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ViolationIn(BaseModel):
    # 정적 스캐너가 만든 파일 단위 위반 항목이다.
    type: str
    file: str = ""
    line: Optional[int] = None
    message: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class FileIndexEntry(BaseModel):
    # 파일 분류(model/policy/controller 등) 정보이다.
    kind: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class BaselineRequest(BaseModel):
    # 한 번의 베이스라인 평가에 필요한 외부 신호 묶음이다.
    metrics: Dict[str, Union[int, float]] = Field(default_factory=dict)
    violations: List[ViolationIn] = Field(default_factory=list)
    # file_index는 상대 경로 -> 분류 정보 구조다.
    file_index: Dict[str, FileIndexEntry] = Field(default_factory=dict)
    # audit_options는 composer/npm/timeout_ms/max_entries 설정이다.
    audit_options: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("metrics")
    @classmethod
    def validate_metrics(cls, value: Dict[str, Union[int, float]]) -> Dict[str, Union[int, float]]:
        # 카운터는 음수가 될 수 없다.
        negative = sorted(key for key, number in value.items() if number < 0)
        if negative:
            raise ValueError(f"metrics must be non-negative: {', '.join(negative)}")
        return value
