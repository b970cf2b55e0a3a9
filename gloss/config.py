from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal
import json
import logging
import re

from gloss import hash as glosshash
from gloss.constants import CONFIG_FILE_NAMES, ConfigErrorCode, ScanModeLiteral
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)

LOCALE_CODE_PATTERN = re.compile(r"^[A-Za-z]{2,3}(?:[-_][A-Za-z0-9]{2,8})*$")

DISCOVERY_IGNORED_DIRECTORIES = {
    "node_modules",
    ".git",
    ".next",
    ".nuxt",
    ".turbo",
    "dist",
    "build",
    "coverage",
    "out",
}

DIRECTORY_NAME_SCORES = {
    "i18n": 80,
    "locales": 80,
    "locale": 60,
    "translations": 55,
    "translation": 45,
    "lang": 35,
    "langs": 35,
    "messages": 25,
}


class GlossConfigError(Exception):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


def _clean_patterns(value: object) -> object:
    if not isinstance(value, list):
        return value
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


class _BaseModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ScanConfig(_BaseModel):
    include: list[StrictStr] = Field(default_factory=list)
    exclude: list[StrictStr] = Field(default_factory=list)
    mode: ScanModeLiteral = "regex"

    @field_validator("include", "exclude", mode="before")
    @classmethod
    def _strip_patterns(cls, value: object) -> object:
        return _clean_patterns(value)


class HardcodedTextConfig(_BaseModel):
    enabled: StrictBool = True
    min_length: StrictInt = Field(default=3, ge=1)
    exclude_patterns: list[StrictStr] = Field(default_factory=list)

    @field_validator("exclude_patterns")
    @classmethod
    def _patterns_compile(cls, value: list[str]) -> list[str]:
        for pattern in value:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(
                    f"hardcoded_text.exclude_patterns contains an invalid regex {pattern!r}: {exc}"
                ) from exc
        return value

    def compiled_exclude_patterns(self) -> list[re.Pattern[str]]:
        return [re.compile(pattern) for pattern in self.exclude_patterns]


class GlossConfig(_BaseModel):
    locales: list[StrictStr] = Field(min_length=1)
    default_locale: StrictStr
    path: StrictStr = Field(min_length=1)
    format: Literal["json"] = "json"
    strict_placeholders: StrictBool = True
    hardcoded_text: HardcodedTextConfig = Field(default_factory=HardcodedTextConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    lock_timeout_ms: StrictInt = Field(default=5000, ge=0)
    lock_retry_ms: StrictInt = Field(default=50, gt=0)
    root_dir: Path = Field(default_factory=Path.cwd)
    config_hash: StrictStr = ""

    @field_validator("locales")
    @classmethod
    def _locales_unique(cls, value: list[str]) -> list[str]:
        cleaned = [item.strip() for item in value]
        if any(not item for item in cleaned):
            raise ValueError("locales must not contain empty codes")
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("locales must not contain duplicates")
        return cleaned

    @model_validator(mode="after")
    def _default_locale_known(self) -> "GlossConfig":
        if self.default_locale not in self.locales:
            raise ValueError("default_locale must be included in locales")
        return self

    def model_post_init(self, __context: object) -> None:
        self.config_hash = glosshash.canonical_hash(self.data)

    @property
    def data(self) -> dict:
        return self.model_dump(mode="json", exclude={"root_dir", "config_hash"})

    @property
    def translations_dir(self) -> Path:
        configured = Path(self.path)
        if configured.is_absolute():
            return configured
        return self.root_dir / configured

    def locale_file(self, locale: str) -> Path:
        return self.translations_dir / f"{locale}.json"

    @property
    def lock_timeout_seconds(self) -> float:
        return self.lock_timeout_ms / 1000.0

    @property
    def lock_retry_seconds(self) -> float:
        return self.lock_retry_ms / 1000.0


@dataclass(frozen=True)
class LocaleDirectoryCandidate:
    directory: Path
    locales: list[str]
    depth: int


def is_likely_locale_code(value: str) -> bool:
    return bool(LOCALE_CODE_PATTERN.match(value))


def _json_stems(directory: Path) -> list[str]:
    try:
        entries = sorted(directory.iterdir(), key=lambda item: item.name)
    except OSError:
        return []
    return [
        entry.name[: -len(".json")].strip()
        for entry in entries
        if entry.is_file() and entry.name.endswith(".json") and entry.name[: -len(".json")].strip()
    ]


def discover_locales(directory: Path) -> list[str]:
    candidates = _json_stems(directory)
    likely = [item for item in candidates if is_likely_locale_code(item)]
    return sorted(likely or candidates)


def discover_locale_directories(root: Path) -> list[LocaleDirectoryCandidate]:
    candidates: list[LocaleDirectoryCandidate] = []
    stack = [root]
    while stack:
        directory = stack.pop()
        locales = sorted({stem for stem in _json_stems(directory) if is_likely_locale_code(stem)})
        if locales:
            relative = directory.relative_to(root)
            depth = 0 if relative == Path(".") else len(relative.parts)
            candidates.append(LocaleDirectoryCandidate(directory, locales, depth))
        try:
            children = sorted(directory.iterdir(), key=lambda item: item.name, reverse=True)
        except OSError as exc:
            logger.debug("Locale discovery skipped %s: %s", directory, exc)
            continue
        for child in children:
            if not child.is_dir():
                continue
            if child.name.startswith(".") or child.name in DISCOVERY_IGNORED_DIRECTORIES:
                continue
            stack.append(child)
    return candidates


def _score_candidate(
    candidate: LocaleDirectoryCandidate, root: Path, preferred_locales: list[str]
) -> int:
    relative = candidate.directory.relative_to(root).as_posix()
    name_score = sum(DIRECTORY_NAME_SCORES.get(part.lower(), 0) for part in relative.split("/"))
    src_hint = 15 if "/src/" in f"/{relative}/" else 0
    depth_score = max(0, 30 - candidate.depth * 3)
    count_score = len(candidate.locales) * 10
    matches = [locale for locale in preferred_locales if locale in candidate.locales]
    all_match = bool(preferred_locales) and len(matches) == len(preferred_locales)
    preferred_score = len(matches) * 25 + (80 if all_match else 0)
    return name_score + src_hint + depth_score + count_score + preferred_score


def select_locale_directory(
    candidates: list[LocaleDirectoryCandidate],
    root: Path,
    preferred_locales: list[str],
) -> LocaleDirectoryCandidate | None:
    if not candidates:
        return None
    ranked = sorted(
        candidates,
        key=lambda item: (
            -_score_candidate(item, root, preferred_locales),
            item.depth,
            str(item.directory),
        ),
    )
    return ranked[0]


def _relative_or_absolute(root: Path, directory: Path) -> str:
    try:
        relative = directory.relative_to(root)
    except ValueError:
        return str(directory)
    text = relative.as_posix()
    return text or "."


def find_config_path(root: Path) -> Path | None:
    for name in CONFIG_FILE_NAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "config"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


def build_config(raw: dict, root: Path) -> GlossConfig:
    """Fill discovered defaults into ``raw`` and validate it.

    Raises ``GlossConfigError`` for every configuration problem.
    """
    payload = dict(raw)
    if "root_dir" in payload or "config_hash" in payload:
        raise GlossConfigError(
            ConfigErrorCode.INVALID_CONFIG,
            "root_dir and config_hash cannot be set in the config file.",
        )

    configured_path = payload.get("path")
    if configured_path is not None and (
        not isinstance(configured_path, str) or not configured_path.strip()
    ):
        raise GlossConfigError(
            ConfigErrorCode.INVALID_CONFIG,
            "path must be a non-empty string when provided.",
        )
    raw_locales = payload.get("locales")
    if raw_locales is not None and not isinstance(raw_locales, list):
        raise GlossConfigError(
            ConfigErrorCode.INVALID_CONFIG,
            "locales must be a list of locale codes when provided.",
        )
    configured_locales = [
        item.strip() for item in (raw_locales or []) if isinstance(item, str) and item.strip()
    ]

    candidate = None
    if configured_path:
        translations_path = configured_path.strip()
    else:
        candidate = select_locale_directory(
            discover_locale_directories(root), root, configured_locales
        )
        if candidate is None:
            raise GlossConfigError(
                ConfigErrorCode.NO_LOCALES,
                "No locale directory found. Set path in config or add locale JSON files "
                "(for example src/locales/en.json).",
            )
        translations_path = _relative_or_absolute(root, candidate.directory)
    payload["path"] = translations_path

    if configured_locales:
        locales = configured_locales
    elif candidate is not None:
        locales = list(candidate.locales)
    else:
        directory = Path(translations_path)
        locales = discover_locales(directory if directory.is_absolute() else root / directory)
    if not locales:
        raise GlossConfigError(
            ConfigErrorCode.NO_LOCALES,
            f'No locales found. Add "locales" in config or place *.json files in {translations_path}.',
        )
    payload["locales"] = locales

    default_locale = payload.get("default_locale")
    if default_locale is None:
        payload["default_locale"] = "en" if "en" in locales else locales[0]
    elif not isinstance(default_locale, str) or not default_locale.strip():
        raise GlossConfigError(
            ConfigErrorCode.INVALID_CONFIG,
            "default_locale must be a non-empty string when provided.",
        )
    else:
        payload["default_locale"] = default_locale.strip()

    try:
        return GlossConfig.model_validate({**payload, "root_dir": root})
    except ValidationError as exc:
        raise GlossConfigError(
            ConfigErrorCode.INVALID_CONFIG, _format_validation_error(exc)
        ) from exc


def load_config(config_path: Path, root: Path | None = None) -> GlossConfig:
    project_root = root if root is not None else config_path.parent
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise GlossConfigError(
            ConfigErrorCode.MISSING_CONFIG, f"Config not found: {config_path}"
        ) from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise GlossConfigError(
            ConfigErrorCode.INVALID_CONFIG, f"Invalid {config_path.name}: {exc}"
        ) from exc
    if not isinstance(raw, dict):
        raise GlossConfigError(
            ConfigErrorCode.INVALID_CONFIG, f"{config_path.name} must be a JSON object."
        )
    return build_config(raw, project_root)


def load_config_from_root(root: Path) -> GlossConfig:
    config_path = find_config_path(root)
    if config_path is None:
        raise GlossConfigError(
            ConfigErrorCode.MISSING_CONFIG,
            f"Missing config in {root}. Expected one of: {', '.join(CONFIG_FILE_NAMES)}.",
        )
    return load_config(config_path, root)
