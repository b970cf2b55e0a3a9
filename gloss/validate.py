from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from gloss.translation_tree import has_value

SIMPLE_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")
ICU_PLACEHOLDER = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\s*,\s*(plural|select|selectordinal)\s*,")
ICU_PLURAL_START = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\s*,\s*plural\s*,")
ICU_CATEGORY = re.compile(r"(?:^|[\s,])(=?\d+|zero|one|two|few|many|other)\s*\{")


@dataclass(frozen=True)
class PluralMismatch:
    locale: str
    variable: str
    expected_categories: list[str]
    actual_categories: list[str]

    def as_dict(self) -> dict:
        return {
            "locale": self.locale,
            "variable": self.variable,
            "expected_categories": list(self.expected_categories),
            "actual_categories": list(self.actual_categories),
        }


@dataclass(frozen=True)
class PlaceholderMismatchIssue:
    key: str
    reference_locale: str
    expected_placeholders: list[str]
    by_locale: dict[str, list[str]]
    mismatched_locales: list[str]
    plural_mismatches: list[PluralMismatch] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "key": self.key,
            "reference_locale": self.reference_locale,
            "expected_placeholders": list(self.expected_placeholders),
            "by_locale": {locale: list(items) for locale, items in self.by_locale.items()},
            "mismatched_locales": list(self.mismatched_locales),
            "plural_mismatches": [item.as_dict() for item in self.plural_mismatches],
        }


def _unique_sorted(items: Iterable[str]) -> list[str]:
    return sorted(set(items))


def find_matching_brace_end(value: str, start: int) -> int:
    """Index of the brace closing the one opened at ``start``, or -1."""
    depth = 0
    for index in range(start, len(value)):
        char = value[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return -1


def extract_placeholders(value: str) -> list[str]:
    names = {match.group(1) for match in SIMPLE_PLACEHOLDER.finditer(value)}
    names.update(match.group(1) for match in ICU_PLACEHOLDER.finditer(value))
    return _unique_sorted(names)


def extract_plural_categories(value: str) -> dict[str, list[str]]:
    categories: dict[str, set[str]] = {}
    position = 0
    while True:
        match = ICU_PLURAL_START.search(value, position)
        if match is None:
            break
        end = find_matching_brace_end(value, match.start())
        if end == -1:
            position = match.end()
            continue
        block = value[match.start() : end + 1]
        found = categories.setdefault(match.group(1), set())
        found.update(category.group(1) for category in ICU_CATEGORY.finditer(block))
        position = end + 1
    return {variable: _unique_sorted(found) for variable, found in categories.items()}


def compare_placeholders(
    key: str,
    locales: list[str],
    default_locale: str,
    flat_by_locale: Mapping[str, Mapping[str, str]],
) -> PlaceholderMismatchIssue | None:
    """Compare one key's placeholders and plural categories across locales.

    Only locales holding a non-blank value take part; with fewer than two
    there is nothing to compare. The default locale is the reference when
    it has a value, otherwise the first participating locale.
    """
    with_value = [locale for locale in locales if has_value(flat_by_locale.get(locale, {}), key)]
    if len(with_value) <= 1:
        return None

    reference = default_locale if default_locale in with_value else with_value[0]
    reference_value = flat_by_locale[reference][key]
    expected = extract_placeholders(reference_value)
    expected_plurals = extract_plural_categories(reference_value)

    by_locale: dict[str, list[str]] = {}
    mismatched: list[str] = []
    plural_mismatches: list[PluralMismatch] = []
    for locale in with_value:
        value = flat_by_locale[locale][key]
        placeholders = extract_placeholders(value)
        by_locale[locale] = placeholders
        if placeholders != expected:
            mismatched.append(locale)

        actual_plurals = extract_plural_categories(value)
        for variable in _unique_sorted([*expected_plurals, *actual_plurals]):
            expected_categories = expected_plurals.get(variable, [])
            actual_categories = actual_plurals.get(variable, [])
            if expected_categories != actual_categories:
                plural_mismatches.append(
                    PluralMismatch(locale, variable, expected_categories, actual_categories)
                )

    if not mismatched and not plural_mismatches:
        return None
    return PlaceholderMismatchIssue(
        key=key,
        reference_locale=reference,
        expected_placeholders=expected,
        by_locale=by_locale,
        mismatched_locales=_unique_sorted(mismatched),
        plural_mismatches=plural_mismatches,
    )
