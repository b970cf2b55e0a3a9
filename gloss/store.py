from __future__ import annotations

from pathlib import Path
from typing import Mapping
import json
import logging
import os
import shutil
import tempfile

from gloss import locks
from gloss.config import GlossConfig
from gloss.translation_tree import (
    FlatTranslations,
    TranslationTree,
    flatten_by_locale,
    sort_tree,
    unflatten_tree,
)

logger = logging.getLogger(__name__)


def serialize_tree(tree: Mapping[str, object]) -> str:
    return json.dumps(sort_tree(tree), indent=2, ensure_ascii=False) + "\n"


def read_locale_tree(path: Path) -> TranslationTree:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        logger.debug("Locale file missing, starting empty: %s", path)
        return {}
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.debug("Locale file unreadable, starting empty (%s): %s", path, exc)
        return {}
    if not isinstance(payload, dict):
        logger.debug("Locale file is not a JSON object, starting empty: %s", path)
        return {}
    return payload


def read_locale_trees(config: GlossConfig) -> dict[str, TranslationTree]:
    return {locale: read_locale_tree(config.locale_file(locale)) for locale in config.locales}


def read_all_translations(config: GlossConfig) -> dict[str, FlatTranslations]:
    return flatten_by_locale(config.locales, read_locale_trees(config))


def _fsync_file(path: Path) -> None:
    with open(path, "rb") as handle:
        os.fsync(handle.fileno())


def _write_temp(directory: Path, final_name: str, content: str) -> Path:
    tmp_handle = tempfile.NamedTemporaryFile(
        dir=str(directory),
        prefix=f".{final_name}.",
        suffix=".tmp",
        delete=False,
    )
    tmp_path = Path(tmp_handle.name)
    tmp_handle.close()
    try:
        tmp_path.write_text(content, encoding="utf-8")
        _fsync_file(tmp_path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    return tmp_path


def _discard_temps(temps: list[Path]) -> None:
    for tmp_path in temps:
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove temporary file %s: %s", tmp_path, exc)


def write_atomic_text(path: Path, content: str) -> None:
    tmp_path = _write_temp(path.parent, path.name, content)
    try:
        if path.exists():
            shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def _hold_write_lock(config: GlossConfig):
    directory = config.translations_dir
    directory.mkdir(parents=True, exist_ok=True)
    return locks.acquire_write_lock(
        directory,
        timeout_seconds=config.lock_timeout_seconds,
        check_interval_seconds=config.lock_retry_seconds,
    )


def _commit_locales(
    config: GlossConfig, data: Mapping[str, Mapping[str, object]]
) -> list[Path]:
    # Caller holds the write lock.
    directory = config.translations_dir
    staged: list[tuple[Path, Path]] = []
    try:
        for locale in config.locales:
            final_path = config.locale_file(locale)
            content = serialize_tree(data.get(locale) or {})
            tmp_path = _write_temp(directory, final_path.name, content)
            staged.append((tmp_path, final_path))
        for tmp_path, final_path in staged:
            os.replace(tmp_path, final_path)
    finally:
        _discard_temps([tmp_path for tmp_path, _ in staged if tmp_path.exists()])
    logger.debug("Wrote %d locale files to %s", len(staged), directory)
    return [final_path for _, final_path in staged]


def write_all_translations(
    config: GlossConfig, data: Mapping[str, Mapping[str, object]]
) -> list[Path]:
    """Persist every configured locale as a sorted JSON tree.

    All locale files are staged as temp files first; final paths are only
    replaced once every temp write succeeded. The write lock is held for
    the whole batch and ``LockTimeoutError`` is raised if it cannot be
    acquired within the configured timeout.
    """
    with _hold_write_lock(config):
        return _commit_locales(config, data)


def write_flat_translations(
    config: GlossConfig, flat_by_locale: Mapping[str, Mapping[str, str]]
) -> list[Path]:
    trees = {locale: unflatten_tree(flat) for locale, flat in flat_by_locale.items()}
    return write_all_translations(config, trees)


def _conflicting_key(flat: Mapping[str, str], new_key: str, moved_key: str) -> str | None:
    """Existing key that ``new_key`` would collide with once nested, if any."""
    keys = [key for key in flat if key != moved_key]
    if new_key in keys:
        return new_key
    child_prefix = f"{new_key}."
    for key in keys:
        if key.startswith(child_prefix):
            return key
    parts = new_key.split(".")
    for index in range(1, len(parts)):
        parent = ".".join(parts[:index])
        if parent in keys:
            return parent
    return None


def rename_translation_key(config: GlossConfig, old_key: str, new_key: str) -> list[str]:
    """Move ``old_key`` to ``new_key`` in every locale; return the locales touched.

    Raises ``ValueError`` when ``new_key`` already exists, or is the parent or
    a child of an existing key, in any locale; nothing is written then.
    """
    with _hold_write_lock(config):
        flat_by_locale = read_all_translations(config)
        touched = [locale for locale in config.locales if old_key in flat_by_locale[locale]]
        if not touched:
            raise KeyError(old_key)
        for locale in config.locales:
            conflict = _conflicting_key(flat_by_locale[locale], new_key, old_key)
            if conflict == new_key:
                raise ValueError(f"translation key already exists: {new_key}")
            if conflict is not None:
                raise ValueError(
                    f"translation key {new_key} conflicts with existing key {conflict} ({locale})"
                )
        for locale in touched:
            flat = flat_by_locale[locale]
            flat[new_key] = flat.pop(old_key)
        trees = {locale: unflatten_tree(flat) for locale, flat in flat_by_locale.items()}
        _commit_locales(config, trees)
    return touched
