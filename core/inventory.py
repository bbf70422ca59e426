"""Stockpile of wood, stone and gold bounded by depot storage."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from . import config
from .resources import ALL_RESOURCES, Resource


@dataclass
class PlayerResources:
    """Resource counters and the depot-driven storage cap.

    ``max_storage`` is derived from ``depot_count`` and is only changed
    through :meth:`update_max_storage_from_depots`.
    """

    wood: int = 0
    stone: int = 0
    gold: int = 0
    depot_count: int = 0
    max_storage: int = config.BASE_STORAGE

    # Quantities ------------------------------------------------------
    def get_amount(self, resource: Resource) -> int:
        if resource is Resource.WOOD:
            return self.wood
        if resource is Resource.STONE:
            return self.stone
        return self.gold

    def set_amount(self, resource: Resource, amount: int) -> None:
        amount = max(0, int(amount))
        if resource is Resource.WOOD:
            self.wood = amount
        elif resource is Resource.STONE:
            self.stone = amount
        else:
            self.gold = amount

    # Capacity helpers ------------------------------------------------
    def set_depot_count(self, count: int) -> None:
        self.depot_count = max(0, min(int(count), config.MAX_DEPOTS))

    def update_max_storage_from_depots(self) -> None:
        self.max_storage = config.max_storage_for(self.depot_count)

    def clamp_to_capacity(self) -> None:
        for resource in ALL_RESOURCES:
            if self.get_amount(resource) > self.max_storage:
                self.set_amount(resource, self.max_storage)

    # Queries ---------------------------------------------------------
    def has_enough(self, wood: int, stone: int, gold: int) -> bool:
        return self.wood >= wood and self.stone >= stone and self.gold >= gold

    def is_storage_full(self) -> bool:
        return any(self.get_amount(resource) >= self.max_storage for resource in ALL_RESOURCES)

    # Serialisation ---------------------------------------------------
    def snapshot(self) -> Dict[str, int | bool]:
        return {
            "wood": self.wood,
            "stone": self.stone,
            "gold": self.gold,
            "depot_count": self.depot_count,
            "max_storage": self.max_storage,
            "storage_full": self.is_storage_full(),
        }

    def bulk_export(self) -> Dict[str, int]:
        return {
            "Wood": self.wood,
            "Stone": self.stone,
            "Gold": self.gold,
            "DepotCount": self.depot_count,
        }

    def bulk_load(self, data: Dict[str, object]) -> None:
        """Restore persisted counters, re-deriving the cap and clamping to it."""

        values = {key: int(data.get(key, 0) or 0) for key in ("Wood", "Stone", "Gold", "DepotCount")}
        self.wood = max(0, values["Wood"])
        self.stone = max(0, values["Stone"])
        self.gold = max(0, values["Gold"])
        self.set_depot_count(values["DepotCount"])
        self.update_max_storage_from_depots()
        self.clamp_to_capacity()


__all__ = ["PlayerResources"]
