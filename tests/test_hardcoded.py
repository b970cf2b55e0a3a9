from __future__ import annotations

from pathlib import Path

import pytest

from conftest import write_text
from gloss.config import HardcodedTextConfig, ScanConfig
from gloss.hardcoded import (
    is_likely_hardcoded_text,
    scan_hardcoded_text,
    scan_source_text,
)


@pytest.mark.parametrize(
    "value",
    ["Save changes", "Save", "Welcome back, friend!", "  Spread   over\n  lines  "],
)
def test_prose_is_flagged(value: str) -> None:
    assert is_likely_hardcoded_text(value)


@pytest.mark.parametrize(
    "value",
    [
        "ab",
        "123",
        "home.title",
        "auth:login",
        "true",
        "Undefined",
        "https://example.com",
        "/settings",
        "#anchor",
        "a => b",
        "x = 1",
        "const value",
        "Promise of string",
    ],
)
def test_code_like_values_are_not_flagged(value: str) -> None:
    assert not is_likely_hardcoded_text(value)


def test_existing_keys_and_min_length() -> None:
    assert not is_likely_hardcoded_text("Home", existing_keys={"Home"})
    assert not is_likely_hardcoded_text("Save", min_length=5)
    assert is_likely_hardcoded_text("Save", min_length=4)


def test_text_and_attribute_issues_with_lines() -> None:
    source = "\n".join(
        [
            "export const Card = () => (",
            '  <section title="Account details">',
            "    <h2>Your profile</h2>",
            '    <img alt="Company logo" />',
            "  </section>",
            ");",
        ]
    )
    result = scan_source_text(source, "src/Card.tsx", HardcodedTextConfig())
    assert [(issue.line, issue.kind, issue.text) for issue in result.issues] == [
        (3, "jsx_text", "Your profile"),
        (2, "jsx_attribute", "Account details"),
        (4, "jsx_attribute", "Company logo"),
    ]
    assert result.suppressed == 0


def test_ignore_marker_on_previous_line() -> None:
    source = "\n".join(
        [
            "export const Page = () => (",
            "  <main>",
            "    {/* gloss-ignore */}",
            "",
            "    <p>Ignore this</p>",
            "    <p>Keep this</p>",
            "  </main>",
            ");",
        ]
    )
    result = scan_source_text(source, "src/Page.tsx", HardcodedTextConfig())
    assert [issue.text for issue in result.issues] == ["Keep this"]
    assert result.suppressed == 1


def test_ignore_marker_earlier_on_same_line() -> None:
    source = "\n".join(
        [
            '<input /* gloss-ignore */ placeholder="Type your name" />',
            "<hr />",
            '<input placeholder="Type your email" />',
        ]
    )
    result = scan_source_text(source, "src/Form.tsx", HardcodedTextConfig())
    assert [issue.text for issue in result.issues] == ["Type your email"]
    assert result.suppressed == 1


def test_exclude_patterns_count_as_suppressed() -> None:
    source = "<main><p>Ignore this text</p>\n<p>Keep this text</p></main>\n"
    policy = HardcodedTextConfig(exclude_patterns=["^Ignore this text$"])
    result = scan_source_text(source, "src/Page.tsx", policy)
    assert [issue.text for issue in result.issues] == ["Keep this text"]
    assert result.suppressed == 1


def test_duplicates_on_one_line_are_collapsed() -> None:
    source = "<div><b>Repeat me</b><i>Repeat me</i></div>\n"
    result = scan_source_text(source, "src/Dup.tsx", HardcodedTextConfig())
    assert len(result.issues) == 1


def test_scan_walks_jsx_files_only(tmp_path: Path) -> None:
    write_text(tmp_path / "src" / "b" / "Second.tsx", "export const B = () => <p>Second text</p>;\n")
    write_text(tmp_path / "src" / "a" / "First.jsx", "export const A = () => <p>First text</p>;\n")
    write_text(tmp_path / "src" / "plain.ts", "const html = '<p>Not scanned</p>';\n")
    write_text(tmp_path / "node_modules" / "x" / "X.tsx", "<p>Vendor text</p>\n")
    write_text(tmp_path / ".storybook" / "Story.tsx", "<p>Hidden text</p>\n")

    result = scan_hardcoded_text(tmp_path, HardcodedTextConfig())
    assert [(issue.file, issue.text) for issue in result.issues] == [
        ("src/a/First.jsx", "First text"),
        ("src/b/Second.tsx", "Second text"),
    ]


def test_scan_honours_scan_matcher(tmp_path: Path) -> None:
    write_text(tmp_path / "src" / "Keep.tsx", "<p>Keep this</p>\n")
    write_text(tmp_path / "src" / "Skip.stories.tsx", "<p>Skip this</p>\n")
    result = scan_hardcoded_text(
        tmp_path, HardcodedTextConfig(), ScanConfig(exclude=["**/*.stories.tsx"])
    )
    assert [issue.text for issue in result.issues] == ["Keep this"]


def test_disabled_policy_scans_nothing(tmp_path: Path) -> None:
    write_text(tmp_path / "src" / "Page.tsx", "<p>Visible text</p>\n")
    result = scan_hardcoded_text(tmp_path, HardcodedTextConfig(enabled=False))
    assert result.issues == []
    assert result.suppressed == 0
