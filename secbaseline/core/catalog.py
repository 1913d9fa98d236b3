"""이 파일은 .py 컨트롤 카탈로그 모듈로 YAML 정의 로딩과 ID 조회를 담당합니다."""

from pathlib import Path
from typing import Dict, Iterator, List, Optional

import yaml

from .config import DEFAULT_CATALOG_FILE
from .errors import CatalogLookupError, ConfigError
from .types import MODES, SEVERITIES, ControlDefinition

REQUIRED_FIELDS = ("id", "title", "category", "severity", "mode", "frequency")


class ControlCatalog:
    def __init__(
        self,
        definitions: List[ControlDefinition],
        floors: Optional[Dict[str, Dict[int, str]]] = None,
    ):
        # 카탈로그 순서를 유지하면서 ID 인덱스를 만든다.
        self.definitions = list(definitions)
        self.floors = floors or {}
        self._index: Dict[str, ControlDefinition] = {}
        for definition in self.definitions:
            if definition.id in self._index:
                raise ConfigError(f"Duplicate control id in catalog: {definition.id}")
            self._index[definition.id] = definition

    @classmethod
    def from_file(cls, path: Path) -> "ControlCatalog":
        # YAML 파일을 읽어 컨트롤 정의와 버전 floor 테이블을 구성한다.
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        definitions: List[ControlDefinition] = []

        for item in data.get("controls", []) or []:
            for field in REQUIRED_FIELDS:
                if not item.get(field):
                    raise ConfigError(f"Missing required field {field} in {path}")
            severity = str(item["severity"]).lower()
            mode = str(item["mode"]).lower()
            if severity not in SEVERITIES:
                raise ConfigError(f"Invalid severity '{severity}' for {item['id']} in {path}")
            if mode not in MODES:
                raise ConfigError(f"Invalid mode '{mode}' for {item['id']} in {path}")
            definitions.append(
                ControlDefinition(
                    id=str(item["id"]),
                    title=str(item["title"]),
                    category=str(item["category"]),
                    severity=severity,
                    mode=mode,
                    frequency=str(item["frequency"]),
                )
            )

        floors: Dict[str, Dict[int, str]] = {}
        for package, table in (data.get("floors") or {}).items():
            # major 키는 정수로, floor 버전은 문자열로 정규화한다.
            floors[str(package)] = {int(major): str(version) for major, version in (table or {}).items()}

        return cls(definitions, floors)

    @classmethod
    def from_default(cls) -> "ControlCatalog":
        return cls.from_file(DEFAULT_CATALOG_FILE)

    def get(self, control_id: str) -> ControlDefinition:
        # 없는 ID 조회는 카탈로그/평가기 불일치이므로 즉시 실패한다.
        definition = self._index.get(control_id)
        if definition is None:
            raise CatalogLookupError(f"Control not found in catalog: {control_id}")
        return definition

    def __iter__(self) -> Iterator[ControlDefinition]:
        return iter(self.definitions)

    def __len__(self) -> int:
        return len(self.definitions)

    def __contains__(self, control_id: object) -> bool:
        return control_id in self._index
