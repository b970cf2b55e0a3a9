from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Collection
import bisect
import logging
import re

from gloss.config import HardcodedTextConfig, ScanConfig
from gloss.constants import IGNORE_MARKER, IssueKind
from gloss.keys import is_likely_translation_key
from gloss.scan_filters import create_scan_matcher
from gloss.sources import iter_source_files

logger = logging.getLogger(__name__)

IGNORED_DIRECTORIES = {
    "node_modules",
    ".git",
    ".next",
    ".nuxt",
    ".turbo",
    "dist",
    "build",
    "coverage",
    "out",
    "storybook-static",
}

SCANNED_EXTENSIONS = (".tsx", ".jsx")

JSX_TEXT_PATTERN = re.compile(r">\s*([A-Za-z][A-Za-z0-9 .,!?'’\"-]+)\s*<")
JSX_ATTRIBUTE_PATTERN = re.compile(
    r"\b(?:title|label|placeholder|alt|aria-label|helperText|tooltip|description)"
    r"\s*=\s*[\"'`]([^\"'`]+)[\"'`]"
)

_WHITESPACE = re.compile(r"\s+")
_LETTER = re.compile(r"[A-Za-z]")
_KEY_SEPARATOR = re.compile(r"[.:/]")
_LITERAL_WORD = re.compile(r"^(?:true|false|null|undefined)$", re.IGNORECASE)
_URL_OR_PATH = re.compile(r"^(?:https?:|/|#)", re.IGNORECASE)
_CODE_PUNCTUATION = re.compile(r"[=;(){}|]|=>")
_JS_KEYWORD = re.compile(r"\b(?:return|const|let|var|function|import|export)\b")
_TYPE_WORD = re.compile(
    r"\b(?:void|promise|string|number|boolean|record|unknown|any|extends|infer)\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class HardcodedTextIssue:
    file: str
    line: int
    kind: str
    text: str

    def as_dict(self) -> dict:
        return {"file": self.file, "line": self.line, "kind": self.kind, "text": self.text}


@dataclass(frozen=True)
class HardcodedScan:
    issues: list[HardcodedTextIssue]
    suppressed: int


def collapse_whitespace(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


def is_likely_hardcoded_text(
    value: str, *, min_length: int = 3, existing_keys: Collection[str] = ()
) -> bool:
    """Heuristic: does ``value`` read like user-facing prose rather than code?"""
    text = collapse_whitespace(value)
    if len(text) < min_length:
        return False
    if not _LETTER.search(text):
        return False
    if text in existing_keys:
        return False
    # plain words like "Save" stay candidates; dotted or namespaced keys do not
    if is_likely_translation_key(text) and _KEY_SEPARATOR.search(text):
        return False
    if _LITERAL_WORD.match(text) or _URL_OR_PATH.match(text):
        return False
    if _CODE_PUNCTUATION.search(text):
        return False
    if _JS_KEYWORD.search(text) or _TYPE_WORD.search(text):
        return False
    return True


def has_ignore_marker(lines: list[str], line_index: int, column: int) -> bool:
    """True when a marker precedes ``column`` on the line or sits on the previous non-blank line."""
    if IGNORE_MARKER in lines[line_index][:column]:
        return True
    for previous in range(line_index - 1, -1, -1):
        if lines[previous].strip():
            return IGNORE_MARKER in lines[previous]
    return False


def _line_offsets(source: str) -> list[int]:
    offsets = [0]
    for index, char in enumerate(source):
        if char == "\n":
            offsets.append(index + 1)
    return offsets


def _line_index(offsets: list[int], position: int) -> int:
    return bisect.bisect_right(offsets, position) - 1


def scan_source_text(
    source: str,
    relpath: str,
    policy: HardcodedTextConfig,
    existing_keys: Collection[str] = (),
) -> HardcodedScan:
    """Find hardcoded text candidates in one source string."""
    lines = source.split("\n")
    offsets = _line_offsets(source)
    excludes = policy.compiled_exclude_patterns()
    issues: list[HardcodedTextIssue] = []
    suppressed = 0
    seen: set[tuple[str, int, str, str]] = set()

    for kind, pattern in (
        (IssueKind.JSX_TEXT, JSX_TEXT_PATTERN),
        (IssueKind.JSX_ATTRIBUTE, JSX_ATTRIBUTE_PATTERN),
    ):
        for match in pattern.finditer(source):
            text = collapse_whitespace(match.group(1))
            if not is_likely_hardcoded_text(
                text, min_length=policy.min_length, existing_keys=existing_keys
            ):
                continue
            position = match.start(1)
            line_index = _line_index(offsets, position)
            dedupe_key = (relpath, line_index + 1, kind, text)
            if dedupe_key in seen:
                continue
            seen.add(dedupe_key)
            column = position - offsets[line_index]
            if has_ignore_marker(lines, line_index, column) or any(
                exclude.search(text) for exclude in excludes
            ):
                suppressed += 1
                continue
            issues.append(HardcodedTextIssue(relpath, line_index + 1, kind, text))
    return HardcodedScan(issues, suppressed)


def scan_hardcoded_text(
    root: Path,
    policy: HardcodedTextConfig,
    scan: ScanConfig | None = None,
    existing_keys: Collection[str] = (),
) -> HardcodedScan:
    if not policy.enabled:
        return HardcodedScan([], 0)

    issues: list[HardcodedTextIssue] = []
    suppressed = 0
    for source in iter_source_files(
        Path(root),
        extensions=SCANNED_EXTENSIONS,
        ignored_dirs=IGNORED_DIRECTORIES,
        matcher=create_scan_matcher(scan),
        skip_hidden=True,
    ):
        try:
            text = source.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Skipping unreadable source file %s: %s", source.relpath, exc)
            continue
        result = scan_source_text(text, source.relpath, policy, existing_keys)
        issues.extend(result.issues)
        suppressed += result.suppressed

    issues.sort(key=lambda issue: (issue.file, issue.line, issue.text))
    logger.debug("Hardcoded text scan: %d issues, %d suppressed", len(issues), suppressed)
    return HardcodedScan(issues, suppressed)
