from __future__ import annotations

from typing import Callable, Iterable
import re

from gloss.config import ScanConfig

ScanMatcher = Callable[[str], bool]


def normalize_relpath(value: str) -> str:
    normalized = value.replace("\\", "/")
    if normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a scan glob into an anchored regex.

    ``**`` crosses directory separators, ``*`` and ``?`` do not.
    """
    normalized = normalize_relpath(pattern.strip())
    parts = ["^"]
    index = 0
    while index < len(normalized):
        char = normalized[index]
        if char == "*" and normalized[index + 1 : index + 2] == "*":
            parts.append(".*")
            index += 2
            continue
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        index += 1
    parts.append("$")
    return re.compile("".join(parts))


def _compile(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    return [glob_to_regex(pattern) for pattern in patterns if pattern.strip()]


def create_scan_matcher(scan: ScanConfig | None = None) -> ScanMatcher:
    includes = _compile(scan.include) if scan else []
    excludes = _compile(scan.exclude) if scan else []

    def matches(relpath: str) -> bool:
        normalized = normalize_relpath(relpath)
        if includes and not any(pattern.match(normalized) for pattern in includes):
            return False
        if any(pattern.match(normalized) for pattern in excludes):
            return False
        return True

    return matches
