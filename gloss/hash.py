from __future__ import annotations

import hashlib
import json


def canonical_json(obj: object) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def canonical_json_bytes(obj: object) -> bytes:
    return canonical_json(obj).encode("utf-8")


def canonical_hash(obj: object) -> str:
    """sha256 hex digest of the canonical JSON form of ``obj``."""
    return hashlib.sha256(canonical_json_bytes(obj)).hexdigest()


def file_signature(mtime_ns: int, size: int) -> str:
    return f"{mtime_ns}:{size}"
