"""Post-processing of generated schema documents: ref inlining and flattening.

:func:`resolve` substitutes every local ``$ref`` with the definition it
points at, up to a nesting depth; :func:`flatten` inlines every
non-recursive ref and simplifies trivial combinators; and
:func:`optimize_for_llm` trims a document for structured-output prompts.
All three return new documents and never modify their input.
"""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from schema_engine.json_schema.walker import (
    DEFINITIONS_KEYS,
    count_refs,
    iter_refs,
    map_children,
    ref_name,
    transform,
)

if TYPE_CHECKING:
    from schema_engine.config import Settings

logger = logging.getLogger(__name__)


class ResolveOptions(BaseModel):
    """Options for :func:`resolve`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_depth: int = Field(default=10, ge=0, description="Maximum nested ref expansions along one path.")
    preserve_titles: bool = Field(
        default=True,
        description="A title next to a $ref overrides the inlined target's title.",
    )
    preserve_descriptions: bool = Field(
        default=True,
        description="A description next to a $ref overrides the inlined target's description.",
    )

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> ResolveOptions:
        return cls(**{"max_depth": settings.resolve_max_depth, **overrides})


class FlattenOptions(BaseModel):
    """Options for :func:`flatten`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    preserve_complex_refs: bool = Field(
        default=False,
        description="Keep refs to object-typed definitions instead of inlining them.",
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _split_document(document: dict[str, Any]) -> tuple[str | None, dict[str, Any], dict[str, Any]]:
    """Return ``(definitions key, definitions, root without definitions)``."""
    key: str | None = None
    definitions: dict[str, Any] = {}
    root: dict[str, Any] = {}
    for name, value in document.items():
        if name in DEFINITIONS_KEYS and isinstance(value, dict):
            key = key or name
            definitions.update(value)
        else:
            root[name] = value
    return key, definitions, root


def _attach_definitions(
    root: dict[str, Any],
    key: str | None,
    definitions: dict[str, Any],
) -> dict[str, Any]:
    if key is not None and definitions:
        root[key] = definitions
    return root


# ---------------------------------------------------------------------------
# resolve
# ---------------------------------------------------------------------------


def resolve(
    document: dict[str, Any],
    options: ResolveOptions | None = None,
    **overrides: Any,
) -> dict[str, Any]:
    """Inline every local ``$ref`` of *document*.

    Depth counts nested ref expansions along one path.  A ref reached at
    ``max_depth`` is left in place, so self-referential schemas terminate.
    The definitions key is always removed, so a ref left at the depth
    limit points nowhere and marks where the recursion was cut.

    Parameters
    ----------
    document:
        A schema document, typically from :func:`generate`.
    options:
        Resolution options.
    **overrides:
        Individual option values applied on top of *options*.
    """
    opts = options or ResolveOptions()
    if overrides:
        opts = ResolveOptions(**{**opts.model_dump(), **overrides})

    _, definitions, root = _split_document(document)

    def walk(node: Any, depth: int) -> Any:
        if isinstance(node, list):
            return [walk(item, depth) for item in node]
        if not isinstance(node, dict):
            return copy.deepcopy(node)

        name = ref_name(node.get("$ref"))
        if name is None or name not in definitions:
            return map_children(node, lambda child: walk(child, depth))
        if depth >= opts.max_depth:
            return copy.deepcopy(node)

        resolved = walk(definitions[name], depth + 1)
        merged = dict(resolved) if isinstance(resolved, dict) else {"allOf": [resolved]}
        for sibling, value in node.items():
            if sibling == "$ref":
                continue
            if sibling == "title":
                if opts.preserve_titles or "title" not in merged:
                    merged["title"] = copy.deepcopy(value)
            elif sibling == "description":
                if opts.preserve_descriptions or "description" not in merged:
                    merged["description"] = copy.deepcopy(value)
            else:
                merged[sibling] = map_children({sibling: value}, lambda child: walk(child, depth))[sibling]
        return merged

    resolved_root = walk(root, 0)
    logger.debug("Resolved document: %d refs left at the depth limit", count_refs(resolved_root))
    return resolved_root


# ---------------------------------------------------------------------------
# flatten
# ---------------------------------------------------------------------------


def _recursive_definitions(definitions: dict[str, Any]) -> set[str]:
    """Names of definitions that can reach themselves through refs."""
    edges = {name: set(iter_refs(schema)) & set(definitions) for name, schema in definitions.items()}
    recursive: set[str] = set()
    for start in definitions:
        stack = list(edges[start])
        seen: set[str] = set()
        while stack:
            current = stack.pop()
            if current == start:
                recursive.add(start)
                break
            if current in seen:
                continue
            seen.add(current)
            stack.extend(edges.get(current, ()))
    return recursive


def _collapse_combinators(node: dict[str, Any]) -> dict[str, Any]:
    for keyword in ("anyOf", "oneOf", "allOf"):
        members = node.get(keyword)
        if isinstance(members, list) and len(members) == 1 and isinstance(members[0], dict):
            rest = {k: v for k, v in node.items() if k != keyword}
            merged = dict(members[0])
            merged.update(rest)
            node = merged
    return node


def flatten(
    document: dict[str, Any],
    options: FlattenOptions | None = None,
    **overrides: Any,
) -> dict[str, Any]:
    """Inline every non-recursive ref and simplify single-member combinators.

    Refs into recursive definitions are kept (they cannot be inlined
    finitely), as are refs to object-typed definitions when
    ``preserve_complex_refs`` is set.  Unused definitions are pruned.
    """
    opts = options or FlattenOptions()
    if overrides:
        opts = FlattenOptions(**{**opts.model_dump(), **overrides})

    key, definitions, root = _split_document(document)
    recursive = _recursive_definitions(definitions)

    def keep_ref(name: str) -> bool:
        if name in recursive:
            return True
        target = definitions[name]
        return opts.preserve_complex_refs and isinstance(target, dict) and target.get("type") == "object"

    def walk(node: Any) -> Any:
        if isinstance(node, list):
            return [walk(item) for item in node]
        if not isinstance(node, dict):
            return copy.deepcopy(node)

        name = ref_name(node.get("$ref"))
        if name is not None and name in definitions and not keep_ref(name):
            inlined = walk(definitions[name])
            merged = dict(inlined) if isinstance(inlined, dict) else {"allOf": [inlined]}
            for sibling, value in node.items():
                if sibling != "$ref":
                    merged[sibling] = map_children({sibling: value}, walk)[sibling]
            return _collapse_combinators(merged)

        return _collapse_combinators(map_children(node, walk))

    flat_root = walk(root)
    flat_definitions: dict[str, Any] = {}
    pending = [n for n in iter_refs(flat_root) if n in definitions]
    while pending:
        name = pending.pop(0)
        if name in flat_definitions:
            continue
        flat_definitions[name] = walk(definitions[name])
        pending.extend(n for n in iter_refs(flat_definitions[name]) if n in definitions)

    logger.debug(
        "Flattened document: %d recursive, %d definitions kept",
        len(recursive),
        len(flat_definitions),
    )
    return _attach_definitions(flat_root, key, flat_definitions)


# ---------------------------------------------------------------------------
# optimize_for_llm
# ---------------------------------------------------------------------------


def optimize_for_llm(
    document: dict[str, Any],
    remove_descriptions: bool = False,
    max_union_variants: int | None = None,
    max_properties: int | None = None,
) -> dict[str, Any]:
    """Trim *document* for structured-output prompts.

    Parameters
    ----------
    remove_descriptions:
        Drop every ``description`` keyword.
    max_union_variants:
        Keep at most this many members of each ``anyOf``/``oneOf``.
    max_properties:
        Keep at most this many properties per object (declaration order);
        ``required`` is pruned to match.
    """

    def optimise(node: dict[str, Any]) -> dict[str, Any]:
        result = dict(node)
        if remove_descriptions:
            result.pop("description", None)
        if max_union_variants is not None:
            for keyword in ("anyOf", "oneOf"):
                members = result.get(keyword)
                if isinstance(members, list) and len(members) > max_union_variants:
                    result[keyword] = members[:max_union_variants]
        if max_properties is not None and isinstance(result.get("properties"), dict):
            names = list(result["properties"])[:max_properties]
            result["properties"] = {n: result["properties"][n] for n in names}
            if isinstance(result.get("required"), list):
                result["required"] = [n for n in result["required"] if n in names]
        return result

    return transform(copy.deepcopy(document), optimise)

