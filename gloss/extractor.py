from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Callable, Iterator
import re

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from gloss.constants import ScanMode
from gloss.keys import is_likely_translation_key

USAGE_PATTERNS = [
    re.compile(r"\b(?:t|i18n\.t|translate)\(\s*[\"'`]([^\"'`]+)[\"'`]\s*[),]"),
    re.compile(r"\bi18nKey\s*=\s*[\"'`]([^\"'`]+)[\"'`]"),
]

REWRITE_CALL_PATTERN = re.compile(r"(\b(?:t|translate)\s*\(\s*)([\"'`])([^\"'`]+)\2")
REWRITE_ATTRIBUTE_PATTERN = re.compile(r"(\bi18nKey\s*=\s*)([\"'`])([^\"'`]+)\2")

IMPORT_PATTERNS = [
    re.compile(r"import\s+[\s\S]*?\s+from\s+[\"']([^\"']+)[\"']"),
    re.compile(r"import\(\s*[\"']([^\"']+)[\"']\s*\)"),
]

TYPESCRIPT_SUFFIXES = {".ts", ".mts", ".cts"}
SYNTAX_SUFFIXES = TYPESCRIPT_SUFFIXES | {".tsx", ".js", ".jsx", ".mjs", ".cjs"}
TRANSLATION_CALLEES = {"t", "translate"}


@dataclass(frozen=True)
class RewriteResult:
    text: str
    replacements: int


def _accept(value: str | None) -> str | None:
    if value is None:
        return None
    key = value.strip()
    if key and is_likely_translation_key(key):
        return key
    return None


def extract_relative_imports(text: str) -> list[str]:
    imports: list[str] = []
    seen: set[str] = set()
    for pattern in IMPORT_PATTERNS:
        for match in pattern.finditer(text):
            specifier = match.group(1)
            if specifier.startswith(".") and specifier not in seen:
                seen.add(specifier)
                imports.append(specifier)
    return imports


class KeyExtractor:
    """Finds translation key references in one source file."""

    mode: str = ""

    def extract(self, text: str, path: Path) -> list[str]:
        raise NotImplementedError

    def rewrite(self, text: str, path: Path, old_key: str, new_key: str) -> RewriteResult:
        raise NotImplementedError


class RegexExtractor(KeyExtractor):
    mode = ScanMode.REGEX

    def extract(self, text: str, path: Path) -> list[str]:
        keys: list[str] = []
        for pattern in USAGE_PATTERNS:
            for match in pattern.finditer(text):
                key = _accept(match.group(1))
                if key:
                    keys.append(key)
        return keys

    def rewrite(self, text: str, path: Path, old_key: str, new_key: str) -> RewriteResult:
        replacements = 0

        def _swap(match: re.Match[str]) -> str:
            nonlocal replacements
            prefix, quote, key = match.group(1), match.group(2), match.group(3)
            if key != old_key:
                return match.group(0)
            replacements += 1
            return f"{prefix}{quote}{new_key}{quote}"

        updated = REWRITE_CALL_PATTERN.sub(_swap, text)
        updated = REWRITE_ATTRIBUTE_PATTERN.sub(_swap, updated)
        return RewriteResult(updated, replacements)


@lru_cache(maxsize=None)
def _language(typescript: bool) -> Language:
    if typescript:
        return Language(tree_sitter_typescript.language_typescript())
    return Language(tree_sitter_typescript.language_tsx())


def _parse(source: bytes, path: Path) -> Node:
    parser = Parser(_language(path.suffix.lower() in TYPESCRIPT_SUFFIXES))
    return parser.parse(source).root_node


def _walk(root: Node) -> Iterator[Node]:
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _literal_node(node: Node | None) -> Node | None:
    if node is None:
        return None
    if node.type == "string":
        return node
    if node.type == "template_string":
        if any(child.type == "template_substitution" for child in node.children):
            return None
        return node
    return None


def _literal_text(node: Node) -> str:
    return node.text[1:-1].decode("utf-8", errors="replace")


def _is_translation_callee(node: Node | None) -> bool:
    if node is None:
        return False
    if node.type == "identifier":
        return node.text.decode("utf-8") in TRANSLATION_CALLEES
    if node.type == "member_expression":
        obj = node.child_by_field_name("object")
        prop = node.child_by_field_name("property")
        return (
            obj is not None
            and prop is not None
            and obj.type == "identifier"
            and obj.text == b"i18n"
            and prop.text == b"t"
            and not any(child.type == "optional_chain" for child in node.children)
        )
    return False


def _key_literals(root: Node) -> Iterator[Node]:
    """Yield the literal nodes that carry a translation key."""
    for node in _walk(root):
        if node.type == "call_expression":
            if not _is_translation_callee(node.child_by_field_name("function")):
                continue
            arguments = node.child_by_field_name("arguments")
            if arguments is None or arguments.type != "arguments":
                continue
            first = arguments.named_children[0] if arguments.named_children else None
            literal = _literal_node(first)
            if literal is not None:
                yield literal
        elif node.type == "jsx_attribute":
            if not node.children:
                continue
            name = node.children[0]
            if name.type != "property_identifier" or name.text != b"i18nKey":
                continue
            value = node.children[-1] if len(node.children) > 1 else None
            if value is not None and value.type == "jsx_expression":
                inner = value.named_children[0] if value.named_children else None
                literal = _literal_node(inner)
            else:
                literal = _literal_node(value)
            if literal is not None:
                yield literal


class SyntaxExtractor(KeyExtractor):
    """Syntax-tree extraction via tree-sitter.

    Only JavaScript-family files are parsed; anything else (for example
    ``.vue`` or ``.svelte`` single-file components) goes through the
    regex extractor.
    """

    mode = ScanMode.SYNTAX

    def __init__(self) -> None:
        self._fallback = RegexExtractor()

    def extract(self, text: str, path: Path) -> list[str]:
        if path.suffix.lower() not in SYNTAX_SUFFIXES:
            return self._fallback.extract(text, path)
        root = _parse(text.encode("utf-8"), path)
        keys: list[str] = []
        for literal in _key_literals(root):
            key = _accept(_literal_text(literal))
            if key:
                keys.append(key)
        return keys

    def rewrite(self, text: str, path: Path, old_key: str, new_key: str) -> RewriteResult:
        if path.suffix.lower() not in SYNTAX_SUFFIXES:
            return self._fallback.rewrite(text, path, old_key, new_key)
        source = text.encode("utf-8")
        edits: list[tuple[int, int, bytes]] = []
        for literal in _key_literals(_parse(source, path)):
            if _literal_text(literal) != old_key:
                continue
            quote = literal.text[:1]
            edits.append((literal.start_byte, literal.end_byte, quote + new_key.encode("utf-8") + quote))
        # back to front so earlier offsets stay valid
        edits.sort(key=lambda edit: edit[0], reverse=True)
        updated = source
        for start, end, replacement in edits:
            updated = updated[:start] + replacement + updated[end:]
        return RewriteResult(updated.decode("utf-8"), len(edits))


_EXTRACTORS: dict[str, Callable[[], KeyExtractor]] = {
    ScanMode.REGEX: RegexExtractor,
    ScanMode.SYNTAX: SyntaxExtractor,
}


def extractor_for(mode: str | None) -> KeyExtractor:
    factory = _EXTRACTORS.get(mode or ScanMode.REGEX)
    if factory is None:
        raise ValueError(f"unsupported scan mode: {mode}")
    return factory()
