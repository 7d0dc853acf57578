"""Per-call bookkeeping of referenced schemas during generation.

One :class:`ReferenceStore` lives for exactly one ``generate`` call.  The
type mapper records every registry it emits a ``$ref`` for; the generator
then drains the pending set, generating each referenced schema into the
definitions map.  Generating a definition may record further references,
so draining repeats until nothing is pending.
"""

from __future__ import annotations

import logging
from typing import Any

from schema_engine.registry.models import FieldRegistry

logger = logging.getLogger(__name__)


class SchemaGenerationError(Exception):
    """Raised when a schema document cannot be generated.

    Covers unresolvable schema references and two different registries
    claiming the same definition name.
    """


class ReferenceStore:
    """Registries referenced so far and the definitions generated for them."""

    def __init__(self, definitions_key: str = "definitions") -> None:
        self._definitions_key = definitions_key
        self._registries: dict[str, FieldRegistry] = {}
        self._definitions: dict[str, dict[str, Any]] = {}
        self._in_progress: set[str] = set()

    @property
    def definitions_key(self) -> str:
        return self._definitions_key

    def ref_path(self, name: str) -> str:
        """Return the local JSON pointer for definition *name*."""
        escaped = name.replace("~", "~0").replace("/", "~1")
        return f"#/{self._definitions_key}/{escaped}"

    def add_reference(self, name: str, registry: FieldRegistry) -> str:
        """Record that *registry* is referenced under *name* and return the ref path.

        Raises
        ------
        SchemaGenerationError
            If a different registry was already recorded under *name*.
        """
        existing = self._registries.get(name)
        if existing is None:
            self._registries[name] = registry
            logger.debug("Recorded schema reference: %s", name)
        elif existing is not registry:
            raise SchemaGenerationError(
                f"Two different schemas are named '{name}'; definition names must be unique within one document."
            )
        return self.ref_path(name)

    def has_reference(self, name: str) -> bool:
        return name in self._registries

    def pending(self) -> list[str]:
        """Names referenced but neither generated nor being generated, in reference order."""
        return [n for n in self._registries if n not in self._definitions and n not in self._in_progress]

    def registry(self, name: str) -> FieldRegistry:
        return self._registries[name]

    def begin_definition(self, name: str) -> None:
        self._in_progress.add(name)

    def add_definition(self, name: str, schema: dict[str, Any]) -> None:
        self._in_progress.discard(name)
        self._definitions[name] = schema

    @property
    def definitions(self) -> dict[str, dict[str, Any]]:
        """Generated definitions in reference order."""
        return {n: self._definitions[n] for n in self._registries if n in self._definitions}

    def __len__(self) -> int:
        return len(self._registries)
