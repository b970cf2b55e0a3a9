from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import logging

from gloss.extractor import extractor_for
from gloss.sources import iter_source_files
from gloss.store import write_atomic_text

logger = logging.getLogger(__name__)

IGNORED_DIRECTORIES = {"node_modules", "dist", "build", ".git", "coverage"}

SCANNED_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")


@dataclass(frozen=True)
class RenameResult:
    changed_files: list[str] = field(default_factory=list)
    files_scanned: int = 0
    replacements: int = 0

    def as_dict(self) -> dict:
        return {
            "changed_files": list(self.changed_files),
            "files_scanned": self.files_scanned,
            "replacements": self.replacements,
        }


def rename_key_usage(
    old_key: str, new_key: str, root: Path, mode: str | None = None
) -> RenameResult:
    """Rewrite literal references to ``old_key`` in source files under ``root``."""
    if not old_key or not new_key or old_key == new_key:
        return RenameResult()

    extractor = extractor_for(mode)
    changed: list[str] = []
    scanned = 0
    replacements = 0
    for source in iter_source_files(
        Path(root), extensions=SCANNED_EXTENSIONS, ignored_dirs=IGNORED_DIRECTORIES
    ):
        scanned += 1
        try:
            text = source.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Skipping unreadable source file %s: %s", source.relpath, exc)
            continue
        result = extractor.rewrite(text, source.path, old_key, new_key)
        if result.replacements == 0 or result.text == text:
            continue
        write_atomic_text(source.path, result.text)
        replacements += result.replacements
        changed.append(source.relpath)
        logger.debug("Rewrote %d references in %s", result.replacements, source.relpath)

    return RenameResult(changed_files=changed, files_scanned=scanned, replacements=replacements)
