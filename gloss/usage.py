from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import logging

from gloss.cache import SignatureCache, cache_key_for
from gloss.cache_metrics import record_cache_metrics
from gloss.config import GlossConfig, ScanConfig
from gloss.constants import CacheKind
from gloss.extractor import extractor_for
from gloss.scan_filters import create_scan_matcher
from gloss.sources import iter_source_files, load_source_file

logger = logging.getLogger(__name__)

IGNORED_DIRECTORIES = {
    "node_modules",
    "dist",
    "build",
    "out",
    ".git",
    ".next",
    ".nuxt",
    ".turbo",
    "coverage",
    "storybook-static",
}

SCANNED_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")


@dataclass
class UsageEntry:
    count: int = 0
    files: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"count": self.count, "files": list(self.files)}


UsageMap = dict[str, UsageEntry]


def infer_usage_root(config: GlossConfig) -> Path:
    """Directory the source scan starts from.

    Translations outside the project scan the whole project; otherwise the
    translations directory's parent, stepping over a ``src`` parent.
    """
    root = config.root_dir.resolve()
    translations = config.translations_dir.resolve()
    try:
        translations.relative_to(root)
    except ValueError:
        return root
    if translations == root:
        return root
    parent = translations.parent
    if parent.name == "src":
        return parent.parent
    return parent


def usage_scanner_cache_key(config: GlossConfig) -> str:
    return cache_key_for(CacheKind.USAGE_SCANNER, [infer_usage_root(config)], config.scan)


def scan_usage(
    root: Path,
    scan: ScanConfig | None = None,
    *,
    cache: SignatureCache | None = None,
    metrics_root: Path | None = None,
) -> UsageMap:
    """Aggregate translation key hits under ``root``.

    ``count`` is the number of extraction hits, ``files`` the sorted unique
    relative paths containing the key. With a ``cache``, unchanged files
    reuse their previous extraction.
    """
    root = Path(root)
    extractor = extractor_for(scan.mode if scan else None)
    matcher = create_scan_matcher(scan)
    bucket = cache.bucket(cache_key_for(CacheKind.USAGE_SCANNER, [root], scan)) if cache else None

    usage: UsageMap = {}
    seen_files: dict[str, set[str]] = {}
    scanned: list[str] = []
    for source in iter_source_files(
        root,
        extensions=SCANNED_EXTENSIONS,
        ignored_dirs=IGNORED_DIRECTORIES,
        matcher=matcher,
    ):
        loaded = load_source_file(source, extractor, bucket=bucket)
        if loaded is None:
            continue
        scanned.append(source.relpath)
        for key in loaded.keys:
            entry = usage.setdefault(key, UsageEntry())
            entry.count += 1
            files = seen_files.setdefault(key, set())
            if source.relpath not in files:
                files.add(source.relpath)
                entry.files.append(source.relpath)

    for entry in usage.values():
        entry.files.sort()

    if bucket is not None:
        dropped = bucket.retain(scanned)
        if dropped:
            logger.debug("Dropped %d vanished files from usage cache", dropped)
        record_cache_metrics(metrics_root, CacheKind.USAGE_SCANNER, bucket.summary())
    return usage
