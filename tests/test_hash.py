from __future__ import annotations

from gloss import hash as glosshash


def test_canonical_hash_ignores_key_order() -> None:
    first = {"locales": ["en", "nl"], "scan": {"mode": "regex", "include": []}}
    second = {"scan": {"include": [], "mode": "regex"}, "locales": ["en", "nl"]}
    assert glosshash.canonical_hash(first) == glosshash.canonical_hash(second)
    assert glosshash.canonical_hash(first) != glosshash.canonical_hash({"locales": ["nl", "en"]})


def test_canonical_json_keeps_non_ascii() -> None:
    assert glosshash.canonical_json({"b": "é", "a": 1}) == '{"a":1,"b":"é"}'


def test_file_signature() -> None:
    assert glosshash.file_signature(1700000000000000000, 42) == "1700000000000000000:42"
