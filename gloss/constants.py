"""String constants used across Gloss modules."""

from typing import Literal


class ScanMode:
    """Key extraction mode identifiers."""

    REGEX = "regex"
    SYNTAX = "syntax"


class IssueKind:
    """Hardcoded text issue kinds."""

    JSX_TEXT = "jsx_text"
    JSX_ATTRIBUTE = "jsx_attribute"


class CacheKind:
    """Signature cache bucket kinds."""

    USAGE_SCANNER = "usage_scanner"
    KEY_USAGE = "key_usage"


class ConfigErrorCode:
    """Configuration error codes."""

    MISSING_CONFIG = "MISSING_CONFIG"
    INVALID_CONFIG = "INVALID_CONFIG"
    NO_LOCALES = "NO_LOCALES"


class OutputFormat:
    """Check report output formats."""

    HUMAN = "human"
    JSON = "json"
    BOTH = "both"


ScanModeLiteral = Literal[ScanMode.REGEX, ScanMode.SYNTAX]
OutputFormatLiteral = Literal[OutputFormat.HUMAN, OutputFormat.JSON, OutputFormat.BOTH]


GLOSS_DIRNAME = ".gloss"
CONFIG_FILE_NAMES = ["gloss.config.json", ".gloss/config.json"]
WRITE_LOCK_FILENAME = ".gloss-write.lock"
CACHE_METRICS_FILENAME = "cache-metrics.json"

# Schema versions
CACHE_METRICS_SCHEMA_VERSION = 1

LOCK_ERROR_CODE = "LOCK_TIMEOUT"
IGNORE_MARKER = "gloss-ignore"
