from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging

from gloss.cache import SignatureCache
from gloss.config import GlossConfig
from gloss.hardcoded import HardcodedTextIssue, scan_hardcoded_text
from gloss.keys import invalid_key_reason
from gloss.store import read_all_translations
from gloss.translation_tree import has_value
from gloss.usage import infer_usage_root, scan_usage
from gloss.validate import PlaceholderMismatchIssue, compare_placeholders

logger = logging.getLogger(__name__)

SAMPLE_LIMIT = 12


@dataclass(frozen=True)
class MissingTranslationIssue:
    key: str
    missing_locales: list[str]
    used_in_code: bool

    def as_dict(self) -> dict:
        return {
            "key": self.key,
            "missing_locales": list(self.missing_locales),
            "used_in_code": self.used_in_code,
        }


@dataclass(frozen=True)
class OrphanKeyIssue:
    key: str
    locales_with_value: list[str]

    def as_dict(self) -> dict:
        return {"key": self.key, "locales_with_value": list(self.locales_with_value)}


@dataclass(frozen=True)
class InvalidKeyIssue:
    key: str
    reason: str

    def as_dict(self) -> dict:
        return {"key": self.key, "reason": self.reason}


@dataclass(frozen=True)
class CheckSummary:
    missing_translations: int
    orphan_keys: int
    invalid_keys: int
    placeholder_mismatches: int
    hardcoded_texts: int
    suppressed_hardcoded_texts: int
    error_issues: int
    warning_issues: int
    total_issues: int

    def as_dict(self) -> dict:
        return {
            "missing_translations": self.missing_translations,
            "orphan_keys": self.orphan_keys,
            "invalid_keys": self.invalid_keys,
            "placeholder_mismatches": self.placeholder_mismatches,
            "hardcoded_texts": self.hardcoded_texts,
            "suppressed_hardcoded_texts": self.suppressed_hardcoded_texts,
            "error_issues": self.error_issues,
            "warning_issues": self.warning_issues,
            "total_issues": self.total_issues,
        }


@dataclass(frozen=True)
class CheckResult:
    ok: bool
    generated_at: str
    root_dir: str
    locales: list[str]
    summary: CheckSummary
    missing_translations: list[MissingTranslationIssue] = field(default_factory=list)
    orphan_keys: list[OrphanKeyIssue] = field(default_factory=list)
    invalid_keys: list[InvalidKeyIssue] = field(default_factory=list)
    placeholder_mismatches: list[PlaceholderMismatchIssue] = field(default_factory=list)
    hardcoded_texts: list[HardcodedTextIssue] = field(default_factory=list)

    @property
    def status(self) -> str:
        return "pass" if self.ok else "fail"

    def as_dict(self) -> dict:
        return {
            "ok": self.ok,
            "status": self.status,
            "generated_at": self.generated_at,
            "root_dir": self.root_dir,
            "locales": list(self.locales),
            "summary": self.summary.as_dict(),
            "missing_translations": [issue.as_dict() for issue in self.missing_translations],
            "orphan_keys": [issue.as_dict() for issue in self.orphan_keys],
            "invalid_keys": [issue.as_dict() for issue in self.invalid_keys],
            "placeholder_mismatches": [
                issue.as_dict() for issue in self.placeholder_mismatches
            ],
            "hardcoded_texts": [issue.as_dict() for issue in self.hardcoded_texts],
        }


def _summarize(
    config: GlossConfig,
    missing: list[MissingTranslationIssue],
    orphans: list[OrphanKeyIssue],
    invalid: list[InvalidKeyIssue],
    placeholders: list[PlaceholderMismatchIssue],
    hardcoded: list[HardcodedTextIssue],
    suppressed: int,
) -> CheckSummary:
    errors = len(missing) + len(invalid)
    warnings = len(orphans) + len(hardcoded)
    if config.strict_placeholders:
        errors += len(placeholders)
    else:
        warnings += len(placeholders)
    return CheckSummary(
        missing_translations=len(missing),
        orphan_keys=len(orphans),
        invalid_keys=len(invalid),
        placeholder_mismatches=len(placeholders),
        hardcoded_texts=len(hardcoded),
        suppressed_hardcoded_texts=suppressed,
        error_issues=errors,
        warning_issues=warnings,
        total_issues=errors + warnings,
    )


def run_check(config: GlossConfig, *, cache: SignatureCache | None = None) -> CheckResult:
    """Run every consistency check against the configured project.

    Missing translations and invalid keys are errors; orphan keys and
    hardcoded text are warnings. Placeholder mismatches are errors only
    with ``strict_placeholders``.
    """
    flat_by_locale = read_all_translations(config)
    usage_root = infer_usage_root(config)
    usage = scan_usage(usage_root, config.scan, cache=cache, metrics_root=config.root_dir)

    translation_keys: set[str] = set()
    for locale in config.locales:
        translation_keys.update(flat_by_locale.get(locale, {}))
    sorted_translation_keys = sorted(translation_keys)

    missing: list[MissingTranslationIssue] = []
    for key in sorted(translation_keys | set(usage)):
        missing_locales = [
            locale
            for locale in config.locales
            if not has_value(flat_by_locale.get(locale, {}), key)
        ]
        if missing_locales:
            missing.append(MissingTranslationIssue(key, missing_locales, key in usage))

    orphans = [
        OrphanKeyIssue(
            key,
            [
                locale
                for locale in config.locales
                if has_value(flat_by_locale.get(locale, {}), key)
            ],
        )
        for key in sorted_translation_keys
        if key not in usage
    ]

    invalid: list[InvalidKeyIssue] = []
    for key in sorted_translation_keys:
        reason = invalid_key_reason(key)
        if reason:
            invalid.append(InvalidKeyIssue(key, reason))

    placeholders: list[PlaceholderMismatchIssue] = []
    for key in sorted_translation_keys:
        issue = compare_placeholders(key, config.locales, config.default_locale, flat_by_locale)
        if issue is not None:
            placeholders.append(issue)

    hardcoded = scan_hardcoded_text(
        usage_root, config.hardcoded_text, config.scan, existing_keys=translation_keys
    )

    summary = _summarize(
        config, missing, orphans, invalid, placeholders, hardcoded.issues, hardcoded.suppressed
    )
    logger.debug(
        "Check finished: %d errors, %d warnings", summary.error_issues, summary.warning_issues
    )
    return CheckResult(
        ok=summary.error_issues == 0,
        generated_at=datetime.now(timezone.utc).isoformat(),
        root_dir=str(config.root_dir),
        locales=list(config.locales),
        summary=summary,
        missing_translations=missing,
        orphan_keys=orphans,
        invalid_keys=invalid,
        placeholder_mismatches=placeholders,
        hardcoded_texts=hardcoded.issues,
    )


def _format_sample(title: str, lines: list[str]) -> list[str]:
    output = ["", f"{title} ({len(lines)})"]
    output.extend(f"- {line}" for line in lines[:SAMPLE_LIMIT])
    if len(lines) > SAMPLE_LIMIT:
        output.append(f"- ... +{len(lines) - SAMPLE_LIMIT} more")
    return output


def _describe_placeholder(issue: PlaceholderMismatchIssue) -> str:
    plural_info = ""
    if issue.plural_mismatches:
        plural_info = f"; plural mismatches: {len(issue.plural_mismatches)}"
    return (
        f"{issue.key} -> expected [{', '.join(issue.expected_placeholders)}] "
        f"from {issue.reference_locale}; locales: [{', '.join(issue.mismatched_locales)}]"
        f"{plural_info}"
    )


def format_check_report(result: CheckResult) -> str:
    summary = result.summary
    rows = [
        ("Missing translations", summary.missing_translations),
        ("Orphan keys", summary.orphan_keys),
        ("Invalid keys", summary.invalid_keys),
        ("Placeholder mismatches", summary.placeholder_mismatches),
        ("Hardcoded text candidates", summary.hardcoded_texts),
        ("Suppressed hardcoded text", summary.suppressed_hardcoded_texts),
        ("Errors", summary.error_issues),
        ("Warnings", summary.warning_issues),
        ("Total issues", summary.total_issues),
    ]
    width = max(len(label) for label, _ in rows)
    lines = [f"Gloss check for {result.root_dir}", ""]
    lines.extend(f"{label.ljust(width)} : {value}" for label, value in rows)

    lines.extend(
        _format_sample(
            "Missing translations",
            [
                f"{issue.key} -> missing in [{', '.join(issue.missing_locales)}]"
                + (" (used)" if issue.used_in_code else "")
                for issue in result.missing_translations
            ],
        )
    )
    lines.extend(
        _format_sample(
            "Orphan keys",
            [
                f"{issue.key} -> present in [{', '.join(issue.locales_with_value)}]"
                for issue in result.orphan_keys
            ],
        )
    )
    lines.extend(
        _format_sample(
            "Invalid keys", [f"{issue.key} -> {issue.reason}" for issue in result.invalid_keys]
        )
    )
    lines.extend(
        _format_sample(
            "Placeholder mismatches",
            [_describe_placeholder(issue) for issue in result.placeholder_mismatches],
        )
    )
    lines.extend(
        _format_sample(
            "Hardcoded text candidates",
            [
                f"{issue.file}:{issue.line} [{issue.kind}] {issue.text}"
                for issue in result.hardcoded_texts
            ],
        )
    )
    lines.append("")
    lines.append("Result: PASS" if result.ok else "Result: FAIL")
    return "\n".join(lines)
