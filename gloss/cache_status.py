from __future__ import annotations

from dataclasses import dataclass
import time

from gloss.cache import ClearReport, SignatureCache
from gloss.cache_metrics import clear_cache_metrics, read_cache_metrics
from gloss.config import GlossConfig
from gloss.constants import CacheKind
from gloss.usage import usage_scanner_cache_key
from gloss.usage_graph import key_usage_cache_key


@dataclass(frozen=True)
class BucketStatus:
    cache_key: str
    file_count: int
    total_size_bytes: int
    oldest_mtime_ns: int | None
    stale_relative_to_config: bool
    source: str


@dataclass(frozen=True)
class CacheStatusReport:
    metrics_file_found: bool
    metrics_updated_at: str | None
    usage_scanner: BucketStatus
    key_usage: BucketStatus
    total_cached_files: int
    total_cached_size_bytes: int
    oldest_entry_age_ms: int | None
    stale_relative_to_config: bool


@dataclass(frozen=True)
class CacheClearReport:
    memory: ClearReport
    metrics_existed: bool
    metrics_path: str


def _bucket_status(
    cache_key: str, metrics: dict | None, kind: str, cache: SignatureCache | None
) -> BucketStatus:
    entry = (metrics or {}).get(kind, {}).get(cache_key)
    if entry is not None:
        return BucketStatus(
            cache_key=cache_key,
            file_count=entry["file_count"],
            total_size_bytes=entry["total_size_bytes"],
            oldest_mtime_ns=entry["oldest_mtime_ns"],
            stale_relative_to_config=False,
            source="metrics",
        )
    bucket = cache.peek(cache_key) if cache is not None else None
    if bucket is None:
        return BucketStatus(cache_key, 0, 0, None, True, "missing")
    summary = bucket.summary()
    return BucketStatus(
        cache_key=cache_key,
        file_count=summary.file_count,
        total_size_bytes=summary.total_size_bytes,
        oldest_mtime_ns=summary.oldest_mtime_ns,
        stale_relative_to_config=summary.file_count == 0,
        source="memory",
    )


def get_cache_status(config: GlossConfig, cache: SignatureCache | None = None) -> CacheStatusReport:
    metrics = read_cache_metrics(config.root_dir)
    usage = _bucket_status(
        usage_scanner_cache_key(config), metrics, CacheKind.USAGE_SCANNER, cache
    )
    key_usage = _bucket_status(key_usage_cache_key(config), metrics, CacheKind.KEY_USAGE, cache)
    oldest_candidates = [
        value for value in (usage.oldest_mtime_ns, key_usage.oldest_mtime_ns) if value is not None
    ]
    oldest_age_ms = None
    if oldest_candidates:
        oldest_age_ms = max(0, (time.time_ns() - min(oldest_candidates)) // 1_000_000)
    return CacheStatusReport(
        metrics_file_found=metrics is not None,
        metrics_updated_at=metrics["updated_at"] if metrics else None,
        usage_scanner=usage,
        key_usage=key_usage,
        total_cached_files=usage.file_count + key_usage.file_count,
        total_cached_size_bytes=usage.total_size_bytes + key_usage.total_size_bytes,
        oldest_entry_age_ms=oldest_age_ms,
        stale_relative_to_config=usage.stale_relative_to_config
        or key_usage.stale_relative_to_config,
    )


def clear_caches(config: GlossConfig, cache: SignatureCache | None = None) -> CacheClearReport:
    memory = cache.clear() if cache is not None else ClearReport(0, 0)
    existed, path = clear_cache_metrics(config.root_dir)
    try:
        shown = path.relative_to(config.root_dir).as_posix()
    except ValueError:
        shown = str(path)
    return CacheClearReport(memory=memory, metrics_existed=existed, metrics_path=shown)
