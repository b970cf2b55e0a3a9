from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import json
import logging
import math

from gloss.cache import BucketSummary
from gloss.constants import (
    CACHE_METRICS_FILENAME,
    CACHE_METRICS_SCHEMA_VERSION,
    GLOSS_DIRNAME,
    CacheKind,
)
from gloss.store import write_atomic_text

logger = logging.getLogger(__name__)

METRIC_KINDS = (CacheKind.USAGE_SCANNER, CacheKind.KEY_USAGE)


def metrics_path(project_root: Path) -> Path:
    return project_root / GLOSS_DIRNAME / CACHE_METRICS_FILENAME


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_count(value: object) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value >= 0
    )


def _normalize_entry(value: object) -> dict | None:
    if not isinstance(value, dict):
        return None
    cache_key = value.get("cache_key")
    if not isinstance(cache_key, str) or not cache_key.strip():
        return None
    if not _is_count(value.get("file_count")) or not _is_count(value.get("total_size_bytes")):
        return None
    oldest = value.get("oldest_mtime_ns")
    if oldest is not None and not _is_count(oldest):
        return None
    if not isinstance(value.get("updated_at"), str):
        return None
    return {
        "cache_key": cache_key,
        "file_count": int(value["file_count"]),
        "total_size_bytes": int(value["total_size_bytes"]),
        "oldest_mtime_ns": None if oldest is None else int(oldest),
        "updated_at": value["updated_at"],
    }


def _normalize_entries(value: object) -> dict[str, dict]:
    if not isinstance(value, dict):
        return {}
    entries = {}
    for key, raw in value.items():
        entry = _normalize_entry(raw)
        if entry is not None:
            entries[str(key)] = entry
    return entries


def read_cache_metrics(project_root: Path) -> dict | None:
    path = metrics_path(project_root)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.debug("Cache metrics unreadable (%s): %s", path, exc)
        return None
    if not isinstance(payload, dict):
        return None
    if payload.get("schema_version") != CACHE_METRICS_SCHEMA_VERSION:
        return None
    if not isinstance(payload.get("updated_at"), str):
        return None
    metrics = {
        "schema_version": CACHE_METRICS_SCHEMA_VERSION,
        "updated_at": payload["updated_at"],
    }
    for kind in METRIC_KINDS:
        metrics[kind] = _normalize_entries(payload.get(kind))
    return metrics


def _empty_metrics() -> dict:
    metrics = {"schema_version": CACHE_METRICS_SCHEMA_VERSION, "updated_at": _now_iso()}
    for kind in METRIC_KINDS:
        metrics[kind] = {}
    return metrics


def update_cache_metrics(project_root: Path, kind: str, summary: BucketSummary) -> None:
    if kind not in METRIC_KINDS:
        raise ValueError(f"unknown cache kind: {kind}")
    metrics = read_cache_metrics(project_root) or _empty_metrics()
    updated_at = _now_iso()
    metrics["updated_at"] = updated_at
    metrics[kind][summary.cache_key] = {**summary.as_dict(), "updated_at": updated_at}
    path = metrics_path(project_root)
    path.parent.mkdir(parents=True, exist_ok=True)
    write_atomic_text(path, json.dumps(metrics, indent=2, ensure_ascii=False) + "\n")


def record_cache_metrics(project_root: Path | None, kind: str, summary: BucketSummary) -> None:
    """Persist ``summary``; failures are logged and ignored."""
    if project_root is None:
        return
    try:
        update_cache_metrics(project_root, kind, summary)
    except OSError as exc:
        logger.warning("Could not persist cache metrics: %s", exc)


def clear_cache_metrics(project_root: Path) -> tuple[bool, Path]:
    path = metrics_path(project_root)
    try:
        path.unlink()
    except FileNotFoundError:
        return False, path
    return True, path
