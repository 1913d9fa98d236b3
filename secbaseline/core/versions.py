"""이 파일은 .py 버전 비교 모듈로 느슨한 버전 문자열 파싱과 보안 floor 판정을 제공합니다."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from .types import VersionFloorResult

VERSION_PATTERN = re.compile(r"(\d+)(?:\.(\d+))?(?:\.(\d+))?")


@dataclass(frozen=True)
class ParsedVersion:
    raw: str
    major: int
    minor: int
    patch: int

    @property
    def key(self):
        return (self.major, self.minor, self.patch)


def parse_version(raw: Optional[str]) -> Optional[ParsedVersion]:
    # 앞의 v 접두사를 제거하고 첫 번째 major[.minor[.patch]] 숫자열을 찾는다.
    if not raw:
        return None
    clean = str(raw).strip()
    if clean[:1] in ("v", "V"):
        clean = clean[1:]
    match = VERSION_PATTERN.search(clean)
    if not match:
        return None
    major, minor, patch = (int(group or 0) for group in match.groups())
    return ParsedVersion(raw=str(raw), major=major, minor=minor, patch=patch)


def compare_versions(a: Optional[str], b: Optional[str]) -> Optional[int]:
    left = parse_version(a)
    right = parse_version(b)
    if left is None or right is None:
        return None
    if left.key == right.key:
        return 0
    return 1 if left.key > right.key else -1


def evaluate_version_floor(
    current_version: Optional[str],
    floors: Mapping[Union[int, str], str],
) -> VersionFloorResult:
    """현재 버전이 해당 major 라인의 마지막 안전 패치(floor) 이상인지 판정한다."""
    parsed = parse_version(current_version)
    if parsed is None:
        return VersionFloorResult("unknown", "Version could not be identified in lock/composer files.")

    # YAML에서 major 키가 문자열로 들어올 수 있어 정수로 맞춘다.
    normalized = {int(major): str(floor) for major, floor in floors.items()}
    floor = normalized.get(parsed.major)
    if floor is None:
        if normalized and parsed.major > max(normalized):
            return VersionFloorResult(
                "pass",
                f"Version {current_version} is above the majors monitored by the baseline.",
            )
        return VersionFloorResult(
            "warning",
            f"Major {parsed.major} is not mapped in the current security baseline.",
        )

    comparison = compare_versions(current_version, floor)
    if comparison is None:
        return VersionFloorResult("unknown", f"Could not compare {current_version} with floor {floor}.")
    if comparison >= 0:
        return VersionFloorResult("pass", f"Version {current_version} meets floor {floor}.")
    return VersionFloorResult("fail", f"Version {current_version} is below security floor {floor}.")
