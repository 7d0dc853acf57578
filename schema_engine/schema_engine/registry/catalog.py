"""Named catalog of field registries.

Registries are immutable, so two schemas that reference each other cannot
both embed the other at build time.  A :class:`SchemaCatalog` breaks the
cycle: a schema reference that carries no registry object is looked up
here by name when it is first needed.
"""

from __future__ import annotations

import logging

from schema_engine.registry.models import FieldRegistry

logger = logging.getLogger(__name__)


class SchemaCatalog:
    """Registry of :class:`FieldRegistry` objects keyed by name.

    The catalog must not be mutated while validations that use it are
    running.
    """

    def __init__(self) -> None:
        self._registries: dict[str, FieldRegistry] = {}

    def register(self, registry: FieldRegistry, name: str | None = None) -> None:
        """Register a field registry.

        Parameters
        ----------
        registry:
            The registry to store.
        name:
            Key to store it under.  Defaults to ``registry.name``.

        Raises
        ------
        ValueError
            If a registry with the same name is already registered.
        """
        key = name or registry.name
        if key in self._registries:
            raise ValueError(f"Schema {key} is already registered. Unregister the existing schema first.")
        self._registries[key] = registry
        logger.debug("Registered schema: %s", key)

    def unregister(self, name: str) -> None:
        """Remove a registry from the catalog.

        Raises
        ------
        KeyError
            If the name is not registered.
        """
        if name not in self._registries:
            raise KeyError(f"Schema {name} is not registered.")
        del self._registries[name]
        logger.debug("Unregistered schema: %s", name)

    def get(self, name: str) -> FieldRegistry | None:
        """Look up a registry by name.

        Returns ``None`` if the name is not registered.
        """
        return self._registries.get(name)

    def get_all(self) -> list[FieldRegistry]:
        """Return all registered registries, sorted by name."""
        return [self._registries[n] for n in sorted(self._registries)]

    def names(self) -> list[str]:
        """Return all registered names, sorted."""
        return sorted(self._registries)

    def __len__(self) -> int:
        return len(self._registries)

    def __contains__(self, name: str) -> bool:
        return name in self._registries


def lookup_ref(
    target_id: str,
    target: FieldRegistry | None,
    owner: FieldRegistry | None,
    catalog: SchemaCatalog | None = None,
) -> FieldRegistry | None:
    """Find the registry a schema reference points at.

    Tried in order: the registry embedded in the reference, the owning
    registry itself (self reference), the owner's catalog and finally
    *catalog*.  Returns ``None`` when nothing matches.
    """
    if target is not None:
        return target
    if owner is not None:
        if owner.name == target_id:
            return owner
        if owner.catalog is not None:
            found = owner.catalog.get(target_id)
            if found is not None:
                return found
    if catalog is not None:
        return catalog.get(target_id)
    return None
