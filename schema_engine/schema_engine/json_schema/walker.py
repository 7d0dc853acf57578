"""Traversal helpers over JSON Schema documents.

Only schema-valued keywords are descended into.  Values under ``enum``,
``default``, ``examples``, ``const`` and extension keys are data, so a
property that happens to be named ``$ref`` is never mistaken for a
reference.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from typing import Any

# Keywords whose value is a single schema.
SINGLE_SCHEMA_KEYWORDS = frozenset(
    {"items", "additionalProperties", "not", "propertyNames", "if", "then", "else", "contains", "additionalItems"}
)

# Keywords whose value is a list of schemas.
LIST_SCHEMA_KEYWORDS = frozenset({"anyOf", "oneOf", "allOf", "prefixItems"})

# Keywords whose value maps names to schemas.
MAP_SCHEMA_KEYWORDS = frozenset({"properties", "patternProperties", "definitions", "$defs", "dependentSchemas"})

DEFINITIONS_KEYS = ("definitions", "$defs")

_REF_PATTERN = re.compile(r"^#/(definitions|\$defs)/(.+)$")


def ref_name(ref: Any) -> str | None:
    """Return the definition name of a local ``#/definitions/X`` or ``#/$defs/X`` ref."""
    if not isinstance(ref, str):
        return None
    match = _REF_PATTERN.match(ref)
    if match is None:
        return None
    return match.group(2).replace("~1", "/").replace("~0", "~")


def definitions_of(doc: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
    """Return ``(key, definitions)`` of *doc*, or ``(None, {})``.

    When both keys are present their entries are merged, ``$defs`` winning.
    """
    found_key: str | None = None
    merged: dict[str, Any] = {}
    for key in DEFINITIONS_KEYS:
        value = doc.get(key)
        if isinstance(value, dict):
            found_key = found_key or key
            merged.update(value)
    return found_key, merged


def map_children(node: dict[str, Any], fn: Callable[[Any], Any], *, skip_definitions: bool = False) -> dict[str, Any]:
    """Return a copy of *node* with *fn* applied to every direct subschema."""
    result: dict[str, Any] = {}
    for key, value in node.items():
        if key in SINGLE_SCHEMA_KEYWORDS:
            if isinstance(value, list):
                result[key] = [fn(v) for v in value]
            else:
                result[key] = fn(value)
        elif key in LIST_SCHEMA_KEYWORDS and isinstance(value, list):
            result[key] = [fn(v) for v in value]
        elif key in MAP_SCHEMA_KEYWORDS and isinstance(value, dict):
            if skip_definitions and key in DEFINITIONS_KEYS:
                result[key] = value
            else:
                result[key] = {name: fn(v) for name, v in value.items()}
        else:
            result[key] = value
    return result


def transform(node: Any, fn: Callable[[dict[str, Any]], dict[str, Any]]) -> Any:
    """Apply *fn* bottom-up to every schema object in *node*.

    Returns a new document; *node* is not modified.
    """
    if not isinstance(node, dict):
        return node
    rebuilt = map_children(node, lambda child: transform(child, fn))
    return fn(rebuilt)


def iter_refs(node: Any) -> Iterator[str]:
    """Yield the definition names of every local ref reachable in *node*."""
    if not isinstance(node, dict):
        return
    name = ref_name(node.get("$ref"))
    if name is not None:
        yield name
    for key, value in node.items():
        if key in SINGLE_SCHEMA_KEYWORDS:
            children = value if isinstance(value, list) else [value]
        elif key in LIST_SCHEMA_KEYWORDS and isinstance(value, list):
            children = value
        elif key in MAP_SCHEMA_KEYWORDS and isinstance(value, dict):
            children = list(value.values())
        else:
            continue
        for child in children:
            yield from iter_refs(child)


def count_refs(node: Any) -> int:
    """Return the number of local refs in *node*."""
    return sum(1 for _ in iter_refs(node))
