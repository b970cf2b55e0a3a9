"""In-memory signature cache for per-file extraction results.

A file is treated as unchanged when its ``(st_mtime_ns, st_size)`` pair
matches the stored signature. This is a heuristic, not a content hash: a
rewrite that keeps both the size and the modification time is not seen.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from gloss import hash as glosshash
from gloss.config import ScanConfig


@dataclass(frozen=True)
class CacheEntry:
    signature: str
    keys: tuple[str, ...]
    imports: tuple[str, ...]
    mtime_ns: int
    size: int


@dataclass(frozen=True)
class BucketSummary:
    cache_key: str
    file_count: int
    total_size_bytes: int
    oldest_mtime_ns: int | None

    def as_dict(self) -> dict:
        return {
            "cache_key": self.cache_key,
            "file_count": self.file_count,
            "total_size_bytes": self.total_size_bytes,
            "oldest_mtime_ns": self.oldest_mtime_ns,
        }


@dataclass(frozen=True)
class ClearReport:
    bucket_count: int
    file_count: int


@dataclass
class CacheBucket:
    cache_key: str
    files: dict[str, CacheEntry] = field(default_factory=dict)

    def get(self, relpath: str, signature: str | None = None) -> CacheEntry | None:
        entry = self.files.get(relpath)
        if entry is None:
            return None
        if signature is not None and entry.signature != signature:
            return None
        return entry

    def put(self, relpath: str, entry: CacheEntry) -> None:
        self.files[relpath] = entry

    def retain(self, relpaths: Iterable[str]) -> int:
        keep = set(relpaths)
        stale = [relpath for relpath in self.files if relpath not in keep]
        for relpath in stale:
            del self.files[relpath]
        return len(stale)

    def summary(self) -> BucketSummary:
        total_size = 0
        oldest: int | None = None
        for entry in self.files.values():
            total_size += entry.size
            oldest = entry.mtime_ns if oldest is None else min(oldest, entry.mtime_ns)
        return BucketSummary(self.cache_key, len(self.files), total_size, oldest)

    def __len__(self) -> int:
        return len(self.files)


class SignatureCache:
    def __init__(self) -> None:
        self._buckets: dict[str, CacheBucket] = {}

    def bucket(self, cache_key: str) -> CacheBucket:
        existing = self._buckets.get(cache_key)
        if existing is None:
            existing = CacheBucket(cache_key)
            self._buckets[cache_key] = existing
        return existing

    def peek(self, cache_key: str) -> CacheBucket | None:
        return self._buckets.get(cache_key)

    def keys(self) -> list[str]:
        return sorted(self._buckets)

    def clear(self, cache_key: str | None = None) -> ClearReport:
        if cache_key is not None:
            bucket = self._buckets.pop(cache_key, None)
            if bucket is None:
                return ClearReport(0, 0)
            return ClearReport(1, len(bucket))
        report = ClearReport(
            len(self._buckets),
            sum(len(bucket) for bucket in self._buckets.values()),
        )
        self._buckets.clear()
        return report


def scan_settings(scan: ScanConfig | None) -> dict:
    if scan is None:
        return ScanConfig().model_dump(mode="json")
    return scan.model_dump(mode="json")


def cache_key_for(kind: str, roots: Iterable[Path], scan: ScanConfig | None) -> str:
    resolved = "::".join(str(Path(root).resolve()) for root in roots)
    return f"{kind}::{resolved}::{glosshash.canonical_json(scan_settings(scan))}"
