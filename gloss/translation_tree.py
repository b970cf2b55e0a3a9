from __future__ import annotations

from typing import Mapping

TranslationTree = dict[str, object]
FlatTranslations = dict[str, str]


def coerce_leaf(value: object) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join("" if item is None else coerce_leaf(item) for item in value)
    return str(value)


def flatten_tree(tree: Mapping[str, object]) -> FlatTranslations:
    result: FlatTranslations = {}
    stack: list[tuple[str, Mapping[str, object]]] = [("", tree)]
    while stack:
        prefix, node = stack.pop()
        nested: list[tuple[str, Mapping[str, object]]] = []
        for key, value in node.items():
            path = f"{prefix}.{key}" if prefix else str(key)
            if isinstance(value, Mapping):
                nested.append((path, value))
                continue
            result[path] = coerce_leaf(value)
        stack.extend(reversed(nested))
    return result


def unflatten_tree(flat: Mapping[str, str]) -> TranslationTree:
    root: TranslationTree = {}
    for key, value in flat.items():
        parts = [part for part in key.split(".") if part]
        if not parts:
            continue
        cursor = root
        for part in parts[:-1]:
            existing = cursor.get(part)
            if not isinstance(existing, dict):
                existing = {}
                cursor[part] = existing
            cursor = existing
        cursor[parts[-1]] = value
    return root


def sort_tree(tree: Mapping[str, object]) -> TranslationTree:
    """Return a copy of ``tree`` with keys sorted at every nesting level."""
    result: TranslationTree = {}
    for key in sorted(tree.keys()):
        value = tree[key]
        result[key] = sort_tree(value) if isinstance(value, Mapping) else value
    return result


def flatten_by_locale(
    locales: list[str], trees: Mapping[str, Mapping[str, object]]
) -> dict[str, FlatTranslations]:
    return {locale: flatten_tree(trees.get(locale) or {}) for locale in locales}


def has_value(flat: Mapping[str, str], key: str) -> bool:
    value = flat.get(key)
    return value is not None and value.strip() != ""
