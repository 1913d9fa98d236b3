"""이 파일은 .py 설정 스키마 검증 모듈로 audit 옵션 기본값 주입과 타입 검사를 수행합니다."""

from __future__ import annotations

from typing import Any, Dict, Optional

from .config import AUDIT_OPTIONS_SCHEMA
from .errors import ConfigError


_TYPE_MAP = {
    # JSON 스키마 타입을 파이썬 타입으로 매핑한다.
    "string": str,
    "integer": int,
    "number": (int, float),
    "boolean": bool,
    "object": dict,
    "array": list,
}


def apply_config_schema(schema: Optional[Dict[str, Any]], config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    # 스키마가 없으면 전달된 설정을 그대로 반환한다.
    if not schema:
        return config or {}
    if config is None:
        config = {}
    if not isinstance(config, dict):
        raise ConfigError("Config must be an object")

    props = schema.get("properties", {})
    required = schema.get("required", [])
    errors = []
    result = dict(config)

    for key in required:
        # 필수 필드가 없으면 default를 주입하거나 오류로 수집한다.
        if key not in result:
            default = props.get(key, {}).get("default")
            if default is not None:
                result[key] = default
            else:
                errors.append(f"Missing required config: {key}")

    for key, spec in props.items():
        # 값이 없거나 None이면 default를 주입한다.
        if result.get(key) is None and "default" in spec:
            result[key] = spec["default"]

    for key, value in result.items():
        spec = props.get(key)
        if not spec:
            continue
        expected = spec.get("type")
        if expected:
            expected_type = _TYPE_MAP.get(expected)
            if expected_type is None:
                errors.append(f"Unsupported type in schema: {expected}")
            else:
                # bool은 int의 하위 타입이므로 integer 검증에서 예외 처리한다.
                if expected == "integer" and isinstance(value, bool):
                    errors.append(f"Config '{key}' must be integer")
                elif not isinstance(value, expected_type):
                    errors.append(f"Config '{key}' must be {expected}")
        if "enum" in spec and value not in spec["enum"]:
            errors.append(f"Config '{key}' must be one of {spec['enum']}")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if "min" in spec and value < spec["min"]:
                errors.append(f"Config '{key}' must be >= {spec['min']}")
            if "max" in spec and value > spec["max"]:
                errors.append(f"Config '{key}' must be <= {spec['max']}")

    if errors:
        raise ConfigError("; ".join(errors))

    return result


def resolve_audit_options(options: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    # camelCase 키(timeoutMs/maxEntries)도 받아 snake_case로 정규화한다.
    normalized = dict(options or {})
    for legacy, key in (("timeoutMs", "timeout_ms"), ("maxEntries", "max_entries")):
        if legacy in normalized:
            normalized.setdefault(key, normalized.pop(legacy))
    return apply_config_schema(AUDIT_OPTIONS_SCHEMA, normalized)
