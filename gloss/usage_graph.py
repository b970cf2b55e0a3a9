from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
import logging
import os
import re

from gloss.cache import SignatureCache, cache_key_for
from gloss.cache_metrics import record_cache_metrics
from gloss.config import GlossConfig
from gloss.constants import CacheKind
from gloss.extractor import extractor_for
from gloss.scan_filters import create_scan_matcher
from gloss.sources import SourceFile, iter_source_files, load_source_file

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".vue", ".svelte")

SKIP_DIRECTORIES = {"node_modules", ".git", "dist", "build", ".next", ".nuxt", "coverage"}

APP_ENTRY_PATTERN = re.compile(r"^App\.(tsx?|jsx?)$")
NEXT_APP_PAGE_PATTERN = re.compile(r"(/|^)(page|layout|route)\.(tsx?|jsx?|vue|svelte)$")


@dataclass(frozen=True)
class UsageRecord:
    id: str
    file: str
    keys: tuple[str, ...]

    def as_dict(self) -> dict:
        return {"id": self.id, "file": self.file, "keys": list(self.keys)}


@dataclass(frozen=True)
class KeyUsageMap:
    pages: list[UsageRecord]
    files: list[UsageRecord]
    generated_at: str

    def as_dict(self) -> dict:
        return {
            "pages": [page.as_dict() for page in self.pages],
            "files": [item.as_dict() for item in self.files],
            "generated_at": self.generated_at,
        }


def key_usage_cache_key(config: GlossConfig) -> str:
    return cache_key_for(
        CacheKind.KEY_USAGE, [config.root_dir, config.translations_dir], config.scan
    )


def source_roots(config: GlossConfig) -> list[Path]:
    root = config.root_dir.resolve()
    candidates = [
        config.translations_dir.resolve().parent,
        root / "src",
        root / "app",
        root / "pages",
        root / "routes",
    ]
    roots: list[Path] = []
    for candidate in candidates:
        if candidate == root or candidate in roots:
            continue
        roots.append(candidate)
    return roots


def is_page_file(relpath: str) -> bool:
    normalized = relpath.replace("\\", "/")
    anchored = f"/{normalized}"
    name = PurePosixPath(normalized).name
    if "/pages/" in anchored or "/routes/" in anchored:
        return True
    if APP_ENTRY_PATTERN.match(name):
        return True
    return "/app/" in anchored and bool(NEXT_APP_PAGE_PATTERN.search(normalized))


def page_id(relpath: str) -> str:
    return re.sub(r"\.[^./]+$", "", relpath)


def resolve_import(from_file: Path, specifier: str) -> Path | None:
    """Resolve a relative specifier to an existing file, or ``None``.

    A specifier with an extension is taken as-is; otherwise each supported
    extension is tried, then ``index.<ext>`` inside the directory.
    """
    base = Path(os.path.normpath(os.path.join(from_file.parent, specifier)))
    if base.suffix:
        candidates = [base]
    else:
        candidates = [Path(f"{base}{extension}") for extension in SUPPORTED_EXTENSIONS]
        candidates.extend(base / f"index{extension}" for extension in SUPPORTED_EXTENSIONS)
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def _collect_files(config: GlossConfig, cache: SignatureCache | None) -> list[SourceFile]:
    root = config.root_dir.resolve()
    extractor = extractor_for(config.scan.mode)
    matcher = create_scan_matcher(config.scan)
    bucket = cache.bucket(key_usage_cache_key(config)) if cache is not None else None

    files: list[SourceFile] = []
    seen: set[str] = set()
    for source_root in source_roots(config):
        if not source_root.is_dir():
            continue
        for source in iter_source_files(
            source_root,
            extensions=SUPPORTED_EXTENSIONS,
            ignored_dirs=SKIP_DIRECTORIES,
            matcher=matcher,
            skip_hidden=True,
            base=root,
        ):
            if source.relpath in seen:
                continue
            seen.add(source.relpath)
            loaded = load_source_file(source, extractor, bucket=bucket, with_imports=True)
            if loaded is not None:
                files.append(loaded)

    if bucket is not None:
        bucket.retain(item.relpath for item in files)
        record_cache_metrics(config.root_dir, CacheKind.KEY_USAGE, bucket.summary())
    return files


def build_import_graph(files: list[SourceFile]) -> dict[Path, list[Path]]:
    by_path = {Path(os.path.abspath(item.path)) for item in files}
    adjacency: dict[Path, list[Path]] = {}
    for item in files:
        current = Path(os.path.abspath(item.path))
        targets: list[Path] = []
        for specifier in item.imports:
            resolved = resolve_import(current, specifier)
            if resolved is not None and resolved in by_path:
                targets.append(resolved)
        adjacency[current] = targets
    return adjacency


def reachable_keys(
    start: Path,
    adjacency: dict[Path, list[Path]],
    keys_by_path: dict[Path, tuple[str, ...]],
) -> list[str]:
    keys: set[str] = set()
    visited: set[Path] = set()
    stack = [start]
    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)
        keys.update(keys_by_path.get(current, ()))
        stack.extend(target for target in adjacency.get(current, []) if target not in visited)
    return sorted(keys)


def build_key_usage_map(config: GlossConfig, *, cache: SignatureCache | None = None) -> KeyUsageMap:
    files = _collect_files(config, cache)
    adjacency = build_import_graph(files)
    keys_by_path = {Path(os.path.abspath(item.path)): item.keys for item in files}

    file_records = sorted(
        (
            UsageRecord(id=item.relpath, file=item.relpath, keys=tuple(sorted(set(item.keys))))
            for item in files
            if item.keys
        ),
        key=lambda record: record.file,
    )
    page_records = sorted(
        (
            UsageRecord(
                id=page_id(item.relpath),
                file=item.relpath,
                keys=tuple(
                    reachable_keys(Path(os.path.abspath(item.path)), adjacency, keys_by_path)
                ),
            )
            for item in files
            if is_page_file(item.relpath)
        ),
        key=lambda record: record.file,
    )
    logger.debug(
        "Key usage map: %d files, %d pages, %d import edges",
        len(files),
        len(page_records),
        sum(len(targets) for targets in adjacency.values()),
    )
    return KeyUsageMap(
        pages=page_records,
        files=file_records,
        generated_at=datetime.now(timezone.utc).isoformat(),
    )
