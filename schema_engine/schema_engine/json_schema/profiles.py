"""Target profiles: named, pure transforms over schema documents.

Different structured-output producers accept different JSON Schema
subsets.  Rather than teaching the generator about each of them, a
:class:`ProfileRegistry` maps profile names to transforms applied after
generation.  Supporting a new producer means registering a profile.

Built-in profiles
-----------------
* **generic** -- identity.
* **openai** -- ``additionalProperties: false`` on every record object,
  ``properties`` always present, ``date``/``time``/``email`` formats removed.
* **anthropic** -- ``additionalProperties: false`` on every record object,
  ``required`` always present, ``uri``/``uuid`` formats removed.
* **strict_output** -- ``additionalProperties: false`` on every record
  object, every property required, readOnly properties and ``x-``
  extension keys removed.

Map-typed objects (``additionalProperties`` holding a value schema) keep
their value schema; only record objects are closed.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from schema_engine.json_schema.walker import transform

logger = logging.getLogger(__name__)

SchemaTransform = Callable[[dict[str, Any]], dict[str, Any]]


class UnknownProfileError(Exception):
    """Raised when a target profile name is not registered."""


@dataclass(frozen=True, slots=True)
class TargetProfile:
    """A named document transform."""

    name: str
    transform: SchemaTransform = field(repr=False, compare=False)
    description: str = ""

    def apply(self, document: dict[str, Any]) -> dict[str, Any]:
        return self.transform(copy.deepcopy(document))


# ---------------------------------------------------------------------------
# Node-level helpers
# ---------------------------------------------------------------------------


def _is_record(node: dict[str, Any]) -> bool:
    if "properties" in node:
        return True
    return node.get("type") == "object" and not isinstance(node.get("additionalProperties"), dict)


def _close_record(node: dict[str, Any]) -> dict[str, Any]:
    if _is_record(node):
        node["additionalProperties"] = False
    return node


def _strip_formats(formats: frozenset[str]) -> SchemaTransform:
    def strip(node: dict[str, Any]) -> dict[str, Any]:
        if node.get("format") in formats:
            node.pop("format")
        return node

    return strip


# ---------------------------------------------------------------------------
# Built-in transforms
# ---------------------------------------------------------------------------

_OPENAI_FORMATS = frozenset({"date", "time", "email"})
_ANTHROPIC_FORMATS = frozenset({"uri", "uuid"})


def _generic(document: dict[str, Any]) -> dict[str, Any]:
    return document


def _openai(document: dict[str, Any]) -> dict[str, Any]:
    strip = _strip_formats(_OPENAI_FORMATS)

    def node_fn(node: dict[str, Any]) -> dict[str, Any]:
        node = strip(node)
        if _is_record(node):
            node.setdefault("properties", {})
            node["additionalProperties"] = False
        return node

    return transform(document, node_fn)


def _anthropic(document: dict[str, Any]) -> dict[str, Any]:
    strip = _strip_formats(_ANTHROPIC_FORMATS)

    def node_fn(node: dict[str, Any]) -> dict[str, Any]:
        node = strip(node)
        if _is_record(node):
            node["additionalProperties"] = False
            node.setdefault("required", [])
        return node

    return transform(document, node_fn)


def _strict_output(document: dict[str, Any]) -> dict[str, Any]:
    def node_fn(node: dict[str, Any]) -> dict[str, Any]:
        node = {k: v for k, v in node.items() if not k.startswith("x-")}
        properties = node.get("properties")
        if isinstance(properties, dict):
            kept = {
                name: schema
                for name, schema in properties.items()
                if not (isinstance(schema, dict) and schema.get("readOnly") is True)
            }
            node["properties"] = kept
            node["required"] = list(kept)
        return _close_record(node)

    return transform(document, node_fn)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class ProfileRegistry:
    """Registry of target profiles keyed by name."""

    def __init__(self) -> None:
        self._profiles: dict[str, TargetProfile] = {}

    def register(self, name: str, transform_fn: SchemaTransform, description: str = "") -> None:
        """Register a profile.

        Parameters
        ----------
        name:
            Profile name, matched case-insensitively.
        transform_fn:
            Pure function from a schema document to a schema document.  It
            receives a private deep copy.
        description:
            Optional human-readable summary.

        Raises
        ------
        ValueError
            If a profile with the same name is already registered.
        """
        key = name.lower()
        if key in self._profiles:
            raise ValueError(f"Profile {key} is already registered. Unregister the existing profile first.")
        self._profiles[key] = TargetProfile(name=key, transform=transform_fn, description=description)
        logger.debug("Registered target profile: %s", key)

    def unregister(self, name: str) -> None:
        """Remove a profile.

        Raises
        ------
        KeyError
            If the profile is not registered.
        """
        key = name.lower()
        if key not in self._profiles:
            raise KeyError(f"Profile {key} is not registered.")
        del self._profiles[key]
        logger.debug("Unregistered target profile: %s", key)

    def get(self, name: str) -> TargetProfile | None:
        """Look up a profile by name.

        Returns ``None`` if the name is not registered.
        """
        return self._profiles.get(name.lower())

    def names(self) -> list[str]:
        """Return all registered profile names, sorted."""
        return sorted(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._profiles


def create_default_profiles() -> ProfileRegistry:
    """Create a :class:`ProfileRegistry` with all built-in profiles."""
    registry = ProfileRegistry()
    registry.register("generic", _generic, "Identity transform.")
    registry.register("openai", _openai, "Closed records, properties always present, no date/time/email formats.")
    registry.register("anthropic", _anthropic, "Closed records, required always present, no uri/uuid formats.")
    registry.register(
        "strict_output",
        _strict_output,
        "Closed records, every property required, no readOnly properties or x- extensions.",
    )
    return registry


_DEFAULT_PROFILES = create_default_profiles()


def enforce_target_profile(
    document: dict[str, Any],
    profile: str,
    profiles: ProfileRegistry | None = None,
) -> dict[str, Any]:
    """Apply target profile *profile* to a copy of *document*.

    Parameters
    ----------
    document:
        A schema document.
    profile:
        Registered profile name.
    profiles:
        Registry to look the profile up in.  Defaults to the built-in
        profiles.

    Raises
    ------
    UnknownProfileError
        If *profile* is not registered.
    """
    registry = profiles if profiles is not None else _DEFAULT_PROFILES
    target = registry.get(profile)
    if target is None:
        raise UnknownProfileError(f"Unknown target profile '{profile}'. Registered: {registry.names()}.")
    logger.debug("Applying target profile %s", target.name)
    return target.apply(document)
