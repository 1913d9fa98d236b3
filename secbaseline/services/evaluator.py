"""이 파일은 .py 컨트롤 평가기 모듈로 카탈로그 순서대로 규칙을 적용해 Control 목록을 만듭니다."""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from secbaseline.core.catalog import ControlCatalog
from secbaseline.core.errors import CatalogLookupError
from secbaseline.core.types import Control

from .rules import RULES, EvaluationContext, Rule, manual_control

logger = logging.getLogger(__name__)


class ControlEvaluator:
    def __init__(self, catalog: Optional[ControlCatalog] = None, rules: Optional[Mapping[str, Rule]] = None) -> None:
        # 카탈로그와 규칙 맵을 준비한다. 테스트에서는 별도 규칙 맵을 주입할 수 있다.
        self.catalog = catalog or ControlCatalog.from_default()
        self.rules: Dict[str, Rule] = dict(rules if rules is not None else RULES)
        # 카탈로그에 없는 규칙은 카탈로그/평가기 불일치이므로 생성 시점에 실패한다.
        for control_id in self.rules:
            self.catalog.get(control_id)

    def evaluate(self, ctx: EvaluationContext) -> List[Control]:
        controls: List[Control] = []
        for definition in self.catalog:
            # 수동 컨트롤은 신호로 추론하지 않고 항상 unknown이다.
            if definition.mode == "manual":
                controls.append(manual_control(definition))
                continue

            rule = self.rules.get(definition.id)
            if rule is None:
                raise CatalogLookupError(f"No evaluation rule for control: {definition.id}")

            # 선택 스택 규칙은 전제 조건이 없으면 None을 돌려 컨트롤을 생략한다.
            control = rule(definition, ctx)
            if control is None:
                logger.debug("Control %s skipped (prerequisite not met)", definition.id)
                continue
            controls.append(control)

        logger.info("Evaluated %d/%d controls", len(controls), len(self.catalog))
        return controls
