from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator
import logging
import os

from gloss import hash as glosshash
from gloss.cache import CacheBucket, CacheEntry
from gloss.extractor import KeyExtractor, extract_relative_imports
from gloss.scan_filters import ScanMatcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourcePath:
    path: Path
    relpath: str


@dataclass(frozen=True)
class SourceFile:
    path: Path
    relpath: str
    keys: tuple[str, ...]
    imports: tuple[str, ...]


def relpath_of(path: Path, base: Path) -> str:
    return Path(os.path.relpath(path, base)).as_posix()


def has_ignored_segment(relpath: str, ignored_dirs: Iterable[str]) -> bool:
    ignored = set(ignored_dirs)
    return any(segment in ignored for segment in relpath.split("/"))


def iter_source_files(
    root: Path,
    *,
    extensions: Iterable[str],
    ignored_dirs: Iterable[str],
    matcher: ScanMatcher | None = None,
    skip_hidden: bool = False,
    base: Path | None = None,
) -> Iterator[SourcePath]:
    """Lazily yield eligible files under ``root`` in sorted order.

    Relative paths are computed against ``base`` (default ``root``) and
    filtered by ``matcher`` before any file is opened.
    """
    suffixes = tuple(extensions)
    ignored = set(ignored_dirs)
    relative_base = base if base is not None else root
    stack = [root]
    while stack:
        directory = stack.pop()
        try:
            entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
        except OSError as exc:
            logger.warning("Skipping unreadable directory %s: %s", directory, exc)
            continue
        subdirectories: list[Path] = []
        for entry in entries:
            if skip_hidden and entry.name.startswith("."):
                continue
            if entry.is_dir(follow_symlinks=False):
                if entry.name not in ignored:
                    subdirectories.append(Path(entry.path))
                continue
            if not entry.is_file(follow_symlinks=False) or not entry.name.endswith(suffixes):
                continue
            path = Path(entry.path)
            relpath = relpath_of(path, relative_base)
            if has_ignored_segment(relpath, ignored):
                continue
            if matcher is not None and not matcher(relpath):
                continue
            yield SourcePath(path, relpath)
        stack.extend(reversed(subdirectories))


def load_source_file(
    source: SourcePath,
    extractor: KeyExtractor,
    *,
    bucket: CacheBucket | None = None,
    with_imports: bool = False,
) -> SourceFile | None:
    """Return keys (and imports) for one file, reusing ``bucket`` entries.

    Unreadable or undecodable files are logged and yield ``None``.
    """
    try:
        stat = source.path.stat()
        signature = glosshash.file_signature(stat.st_mtime_ns, stat.st_size)
        cached = bucket.get(source.relpath, signature) if bucket is not None else None
        if cached is not None:
            return SourceFile(source.path, source.relpath, cached.keys, cached.imports)
        text = source.path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Skipping unreadable source file %s: %s", source.relpath, exc)
        return None

    keys = tuple(extractor.extract(text, source.path))
    imports = tuple(extract_relative_imports(text)) if with_imports else ()
    if bucket is not None:
        bucket.put(
            source.relpath,
            CacheEntry(
                signature=signature,
                keys=keys,
                imports=imports,
                mtime_ns=stat.st_mtime_ns,
                size=stat.st_size,
            ),
        )
    return SourceFile(source.path, source.relpath, keys, imports)
