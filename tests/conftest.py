from __future__ import annotations

import copy
import json
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from gloss.config import GlossConfig  # noqa: E402


def _deep_merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if (
            key in merged
            and isinstance(merged[key], dict)
            and isinstance(value, dict)
        ):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def build_config_dict(overrides: dict | None = None) -> dict:
    base = {
        "locales": ["en", "nl"],
        "default_locale": "en",
        "path": "src/i18n",
        "format": "json",
        "strict_placeholders": True,
        "hardcoded_text": {"enabled": True, "min_length": 3, "exclude_patterns": []},
        "scan": {"include": [], "exclude": [], "mode": "regex"},
        "lock_timeout_ms": 5000,
        "lock_retry_ms": 20,
    }
    if overrides:
        return _deep_merge(base, overrides)
    return base


def build_config(root: Path, overrides: dict | None = None) -> GlossConfig:
    return GlossConfig.model_validate({**build_config_dict(overrides), "root_dir": root})


def write_json(path: Path, payload: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Project root with ``src/i18n`` translations for ``en`` and ``nl``."""
    write_json(tmp_path / "src" / "i18n" / "en.json", {})
    write_json(tmp_path / "src" / "i18n" / "nl.json", {})
    return tmp_path
