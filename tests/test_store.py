from __future__ import annotations

import threading
from pathlib import Path

import pytest

from conftest import build_config, write_json
from gloss import locks, store
from gloss.constants import WRITE_LOCK_FILENAME


def _dir_names(path: Path) -> list[str]:
    return sorted(item.name for item in path.iterdir())


def test_write_all_sorts_and_indents(tmp_path: Path) -> None:
    config = build_config(tmp_path)
    store.write_all_translations(
        config, {"en": {"b": "2", "a": {"y": "1", "x": "0"}}, "nl": {}}
    )
    assert config.locale_file("en").read_text(encoding="utf-8") == (
        '{\n  "a": {\n    "x": "0",\n    "y": "1"\n  },\n  "b": "2"\n}\n'
    )
    assert config.locale_file("nl").read_text(encoding="utf-8") == "{}\n"


def test_serialization_is_order_independent(tmp_path: Path) -> None:
    first = build_config(tmp_path / "one")
    second = build_config(tmp_path / "two")
    store.write_all_translations(first, {"en": {"a": "1", "b": {"c": "2", "d": "3"}}})
    store.write_all_translations(second, {"en": {"b": {"d": "3", "c": "2"}, "a": "1"}})
    assert first.locale_file("en").read_bytes() == second.locale_file("en").read_bytes()


def test_write_keeps_non_ascii(tmp_path: Path) -> None:
    config = build_config(tmp_path)
    store.write_all_translations(config, {"en": {"cafe": "Café"}, "nl": {"cafe": "café ☕"}})
    assert '"café ☕"' in config.locale_file("nl").read_text(encoding="utf-8")


def test_read_missing_and_unparseable_files(tmp_path: Path) -> None:
    config = build_config(tmp_path)
    config.translations_dir.mkdir(parents=True)
    config.locale_file("en").write_text("{not json", encoding="utf-8")
    assert store.read_all_translations(config) == {"en": {}, "nl": {}}


def test_read_non_object_file(tmp_path: Path) -> None:
    config = build_config(tmp_path)
    write_json(config.locale_file("en"), ["not", "a", "tree"])
    assert store.read_locale_tree(config.locale_file("en")) == {}


def test_read_all_flattens(tmp_path: Path) -> None:
    config = build_config(tmp_path)
    write_json(config.locale_file("en"), {"home": {"title": "Home"}})
    write_json(config.locale_file("nl"), {"home": {"title": "Start"}})
    assert store.read_all_translations(config) == {
        "en": {"home.title": "Home"},
        "nl": {"home.title": "Start"},
    }


def test_failed_batch_promotes_nothing(tmp_path: Path, monkeypatch) -> None:
    config = build_config(tmp_path)
    write_json(config.locale_file("en"), {"a": "old"})
    write_json(config.locale_file("nl"), {"a": "oud"})
    original_en = config.locale_file("en").read_bytes()

    real_write_temp = store._write_temp
    calls = {"count": 0}

    def _flaky_write_temp(directory, final_name, content):
        calls["count"] += 1
        if calls["count"] == 2:
            raise OSError("disk full")
        return real_write_temp(directory, final_name, content)

    monkeypatch.setattr(store, "_write_temp", _flaky_write_temp)
    with pytest.raises(OSError, match="disk full"):
        store.write_all_translations(config, {"en": {"a": "new"}, "nl": {"a": "nieuw"}})

    assert config.locale_file("en").read_bytes() == original_en
    assert _dir_names(config.translations_dir) == [WRITE_LOCK_FILENAME, "en.json", "nl.json"]


def test_lock_timeout_leaves_files_untouched(tmp_path: Path) -> None:
    config = build_config(tmp_path, {"lock_timeout_ms": 100, "lock_retry_ms": 10})
    write_json(config.locale_file("en"), {"a": "old"})
    before = config.locale_file("en").read_bytes()

    with locks.acquire_write_lock(
        config.translations_dir, timeout_seconds=1, check_interval_seconds=0.01
    ):
        with pytest.raises(locks.LockTimeoutError) as excinfo:
            store.write_all_translations(config, {"en": {"a": "new"}, "nl": {}})

    assert excinfo.value.code == "LOCK_TIMEOUT"
    assert config.locale_file("en").read_bytes() == before
    assert not config.locale_file("nl").exists()
    assert not [name for name in _dir_names(config.translations_dir) if name.endswith(".tmp")]


def test_concurrent_writers_serialize(tmp_path: Path) -> None:
    config = build_config(tmp_path, {"lock_timeout_ms": 10000, "lock_retry_ms": 5})
    payloads = [
        {"en": {"writer": "first"}, "nl": {"writer": "eerste"}},
        {"en": {"writer": "second"}, "nl": {"writer": "tweede"}},
    ]
    errors: list[BaseException] = []

    def _write(payload: dict) -> None:
        try:
            for _ in range(5):
                store.write_all_translations(config, payload)
        except BaseException as exc:
            errors.append(exc)

    threads = [threading.Thread(target=_write, args=(payload,)) for payload in payloads]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    final = store.read_all_translations(config)
    assert final in (
        {"en": {"writer": "first"}, "nl": {"writer": "eerste"}},
        {"en": {"writer": "second"}, "nl": {"writer": "tweede"}},
    )


def test_write_flat_translations(tmp_path: Path) -> None:
    config = build_config(tmp_path)
    store.write_flat_translations(config, {"en": {"a.b": "x"}, "nl": {"a.b": "y"}})
    assert store.read_locale_tree(config.locale_file("en")) == {"a": {"b": "x"}}


def test_rename_translation_key(tmp_path: Path) -> None:
    config = build_config(tmp_path)
    write_json(config.locale_file("en"), {"old": {"key": "Value"}, "other": "x"})
    write_json(config.locale_file("nl"), {"other": "y"})

    touched = store.rename_translation_key(config, "old.key", "new.key")

    assert touched == ["en"]
    assert store.read_all_translations(config) == {
        "en": {"new.key": "Value", "other": "x"},
        "nl": {"other": "y"},
    }


def test_rename_translation_key_errors(tmp_path: Path) -> None:
    config = build_config(tmp_path)
    write_json(config.locale_file("en"), {"a": "1", "b": "2"})
    write_json(config.locale_file("nl"), {})

    with pytest.raises(KeyError):
        store.rename_translation_key(config, "missing", "c")
    with pytest.raises(ValueError):
        store.rename_translation_key(config, "a", "b")
    assert store.read_all_translations(config)["en"] == {"a": "1", "b": "2"}


@pytest.mark.parametrize("new_key", ["a", "a.c.d"])
def test_rename_translation_key_rejects_nesting_conflicts(tmp_path: Path, new_key: str) -> None:
    config = build_config(tmp_path)
    write_json(config.locale_file("en"), {"a": {"b": "B", "c": "C"}})
    write_json(config.locale_file("nl"), {"a": {"c": "C-nl"}})
    before = {locale: config.locale_file(locale).read_bytes() for locale in config.locales}

    with pytest.raises(ValueError):
        store.rename_translation_key(config, "a.b", new_key)

    assert {locale: config.locale_file(locale).read_bytes() for locale in config.locales} == before
