"""Typed container classes for validated data.

A registry built with ``materialize=True`` carries a frozen pydantic model
class whose fields mirror the registry's fields (regular and derived).  The
container only packs already-validated data, so it types every field as
``Any`` and never re-validates values.  A failure to pack therefore means
the engine itself is inconsistent and raises
:class:`InternalConsistencyFault`.
"""

from __future__ import annotations

import keyword
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, create_model
from pydantic import ValidationError as PydanticValidationError

from schema_engine.registry.models import FieldDescriptor

logger = logging.getLogger(__name__)


class InternalConsistencyFault(Exception):
    """Raised when validated data cannot be packed into its container."""


def _attribute_name(descriptor: FieldDescriptor, index: int) -> str:
    name = descriptor.name
    if (
        name.isidentifier()
        and not keyword.iskeyword(name)
        and not name.startswith("_")
        and not hasattr(BaseModel, name)
    ):
        return name
    return f"field_{index}"


def build_container(name: str, fields: tuple[FieldDescriptor, ...]) -> type[BaseModel]:
    """Create the frozen container model for a registry's fields.

    Parameters
    ----------
    name:
        Class name for the container (the registry name).
    fields:
        All descriptors, regular and derived, in registry order.

    Returns
    -------
    type[BaseModel]
        A pydantic model class.  Each field's alias is the registry field
        name; the attribute name is the same when it is a usable Python
        identifier and ``field_<index>`` otherwise.
    """
    definitions: dict[str, Any] = {}
    for index, descriptor in enumerate(fields):
        attribute = _attribute_name(descriptor, index)
        while attribute in definitions:
            attribute = f"{attribute}_"
        definitions[attribute] = (
            Any,
            Field(default=None, alias=descriptor.name, description=descriptor.description),
        )

    container = create_model(
        name,
        __config__=ConfigDict(frozen=True, extra="forbid", protected_namespaces=()),
        **definitions,
    )
    logger.debug("Built container %s with %d fields", name, len(fields))
    return container


def pack(container: type[BaseModel], data: dict[str, Any]) -> BaseModel:
    """Pack validated *data* into an instance of *container*.

    Raises
    ------
    InternalConsistencyFault
        If the data does not fit the container.
    """
    try:
        return container.model_validate(data)
    except PydanticValidationError as exc:
        raise InternalConsistencyFault(
            f"Validated data does not fit container {container.__name__}: {exc}"
        ) from exc


def unpack(instance: BaseModel) -> dict[str, Any]:
    """Return the plain mapping an instance was packed from.

    Only keys that were present in the packed data are returned, so
    ``unpack(pack(cls, data)) == data``.
    """
    return instance.model_dump(by_alias=True, exclude_unset=True)
