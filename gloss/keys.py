from __future__ import annotations

import re

MAX_KEY_LENGTH = 160

TRANSLATION_KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._:/-]*$")
_WHITESPACE = re.compile(r"\s")
_FORBIDDEN_CHARS = re.compile(r"[+;,{}()\[\]\\]")

LEADING_OR_TRAILING_DOT = "leading or trailing dot"
CONSECUTIVE_DOTS = "consecutive dots"
EMPTY_SEGMENT = "empty segment"


def is_likely_translation_key(value: str) -> bool:
    key = value.strip()
    if not key or len(key) > MAX_KEY_LENGTH:
        return False
    if _WHITESPACE.search(key):
        return False
    if _FORBIDDEN_CHARS.search(key):
        return False
    if "://" in key:
        return False
    return bool(TRANSLATION_KEY_PATTERN.match(key))


def invalid_key_reason(key: str) -> str | None:
    if key.startswith(".") or key.endswith("."):
        return LEADING_OR_TRAILING_DOT
    if ".." in key:
        return CONSECUTIVE_DOTS
    if any(not segment.strip() for segment in key.split(".")):
        return EMPTY_SEGMENT
    return None
