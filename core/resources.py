"""Resource definitions for the village storage ledger."""
from __future__ import annotations

from enum import Enum
from typing import Dict, List


class Resource(str, Enum):
    """Enumeration of the three stockpiled resources."""

    WOOD = "Wood"
    STONE = "Stone"
    GOLD = "Gold"


ALL_RESOURCES: List[Resource] = [
    Resource.WOOD,
    Resource.STONE,
    Resource.GOLD,
]


_RESOURCE_LOOKUP: Dict[str, Resource] = {}
for _resource in ALL_RESOURCES:
    _RESOURCE_LOOKUP[_resource.value.lower()] = _resource
    _RESOURCE_LOOKUP[_resource.name.lower()] = _resource


def resource_from_id(identifier: str) -> Resource:
    """Return the resource associated with ``identifier``.

    The lookup accepts either the persisted name (``"Wood"``) or the enum name
    (``"WOOD"``) regardless of capitalisation. A :class:`KeyError` is raised if
    the identifier is unknown.
    """

    resource = _RESOURCE_LOOKUP.get(str(identifier).strip().lower())
    if resource is None:
        raise KeyError(f"Unknown resource: {identifier}")
    return resource


def normalise_resource(value: Resource | str) -> Resource:
    """Coerce ``value`` into a :class:`Resource` instance."""

    if isinstance(value, Resource):
        return value
    return resource_from_id(value)


__all__ = [
    "ALL_RESOURCES",
    "Resource",
    "normalise_resource",
    "resource_from_id",
]
