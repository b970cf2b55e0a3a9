from __future__ import annotations

from pathlib import Path

import pytest

from conftest import build_config, write_json, write_text
from gloss.cache import BucketSummary, SignatureCache
from gloss.cache_metrics import (
    metrics_path,
    read_cache_metrics,
    record_cache_metrics,
    update_cache_metrics,
)
from gloss.cache_status import clear_caches, get_cache_status
from gloss.constants import CACHE_METRICS_SCHEMA_VERSION, CacheKind
from gloss.usage import scan_usage, usage_scanner_cache_key
from gloss.usage_graph import build_key_usage_map, key_usage_cache_key


def _project(root: Path) -> None:
    write_json(root / "src" / "i18n" / "en.json", {"home": {"title": "Home"}})
    write_json(root / "src" / "i18n" / "nl.json", {"home": {"title": "Start"}})
    write_text(root / "src" / "pages" / "Home.tsx", 'export default () => t("home.title");\n')
    write_text(root / "src" / "lib" / "util.ts", "export const x = 1;\n")


def test_update_and_read_metrics(tmp_path: Path) -> None:
    summary = BucketSummary("usage_scanner::/x::{}", 2, 120, 1000)
    update_cache_metrics(tmp_path, CacheKind.USAGE_SCANNER, summary)

    metrics = read_cache_metrics(tmp_path)
    assert metrics["schema_version"] == CACHE_METRICS_SCHEMA_VERSION
    entry = metrics["usage_scanner"]["usage_scanner::/x::{}"]
    assert entry["file_count"] == 2
    assert entry["total_size_bytes"] == 120
    assert entry["oldest_mtime_ns"] == 1000
    assert metrics["key_usage"] == {}


def test_update_rejects_unknown_kind(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        update_cache_metrics(tmp_path, "other", BucketSummary("k", 0, 0, None))


def test_read_ignores_corrupt_or_foreign_metrics(tmp_path: Path) -> None:
    path = metrics_path(tmp_path)
    path.parent.mkdir(parents=True)
    path.write_text("{broken", encoding="utf-8")
    assert read_cache_metrics(tmp_path) is None

    write_json(path, {"schema_version": 99, "updated_at": "now"})
    assert read_cache_metrics(tmp_path) is None


def test_read_drops_malformed_entries(tmp_path: Path) -> None:
    write_json(
        metrics_path(tmp_path),
        {
            "schema_version": CACHE_METRICS_SCHEMA_VERSION,
            "updated_at": "2026-01-01T00:00:00+00:00",
            "usage_scanner": {
                "good": {
                    "cache_key": "good",
                    "file_count": 1,
                    "total_size_bytes": 10,
                    "oldest_mtime_ns": None,
                    "updated_at": "2026-01-01T00:00:00+00:00",
                },
                "bad": {"cache_key": "bad", "file_count": -1},
            },
            "key_usage": "not a mapping",
        },
    )
    metrics = read_cache_metrics(tmp_path)
    assert list(metrics["usage_scanner"]) == ["good"]
    assert metrics["key_usage"] == {}


def test_record_metrics_swallows_os_errors(tmp_path: Path, caplog) -> None:
    blocker = tmp_path / ".gloss"
    blocker.write_text("not a directory", encoding="utf-8")
    with caplog.at_level("WARNING"):
        record_cache_metrics(tmp_path, CacheKind.KEY_USAGE, BucketSummary("k", 0, 0, None))
    assert "Could not persist cache metrics" in caplog.text


def test_status_without_any_cache(tmp_path: Path) -> None:
    _project(tmp_path)
    report = get_cache_status(build_config(tmp_path))

    assert not report.metrics_file_found
    assert report.usage_scanner.source == "missing"
    assert report.key_usage.source == "missing"
    assert report.stale_relative_to_config
    assert report.total_cached_files == 0
    assert report.oldest_entry_age_ms is None


def test_status_reads_persisted_metrics(tmp_path: Path) -> None:
    _project(tmp_path)
    config = build_config(tmp_path)
    cache = SignatureCache()
    scan_usage(tmp_path, config.scan, cache=cache, metrics_root=tmp_path)
    build_key_usage_map(config, cache=cache)

    report = get_cache_status(config)
    assert report.metrics_file_found
    assert report.usage_scanner.cache_key == usage_scanner_cache_key(config)
    assert report.usage_scanner.source == "metrics"
    assert report.usage_scanner.file_count == 2
    assert report.key_usage.cache_key == key_usage_cache_key(config)
    assert report.key_usage.file_count == 2
    assert report.total_cached_files == 4
    assert not report.stale_relative_to_config
    assert report.oldest_entry_age_ms is not None


def test_status_flags_config_change(tmp_path: Path) -> None:
    _project(tmp_path)
    config = build_config(tmp_path)
    build_key_usage_map(config, cache=SignatureCache())

    changed = build_config(tmp_path, {"scan": {"mode": "syntax"}})
    report = get_cache_status(changed)
    assert report.metrics_file_found
    assert report.key_usage.source == "missing"
    assert report.key_usage.stale_relative_to_config


def test_status_falls_back_to_memory(tmp_path: Path) -> None:
    _project(tmp_path)
    config = build_config(tmp_path)
    cache = SignatureCache()
    scan_usage(tmp_path, config.scan, cache=cache)

    report = get_cache_status(config, cache)
    assert not report.metrics_file_found
    assert report.usage_scanner.source == "memory"
    assert report.usage_scanner.file_count == 2


def test_clear_caches(tmp_path: Path) -> None:
    _project(tmp_path)
    config = build_config(tmp_path)
    cache = SignatureCache()
    build_key_usage_map(config, cache=cache)

    report = clear_caches(config, cache)
    assert report.memory.bucket_count == 1
    assert report.memory.file_count == 2
    assert report.metrics_existed
    assert report.metrics_path == ".gloss/cache-metrics.json"
    assert not metrics_path(tmp_path).exists()
    assert cache.keys() == []

    again = clear_caches(config, cache)
    assert not again.metrics_existed
    assert again.memory.bucket_count == 0
