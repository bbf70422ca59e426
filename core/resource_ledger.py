"""Resource ledger enforcing storage caps and persisting the stockpile."""

from __future__ import annotations

import json
import logging
from typing import Callable, Dict, List, Optional

from . import config
from .grid_models import BuildingState, GridMap
from .grid_state import GridStateStore
from .inventory import PlayerResources
from .kv_store import KeyValueStore, StorageError
from .resources import Resource, normalise_resource


logger = logging.getLogger(__name__)

Listener = Callable[[], None]

_PERSISTENCE_ERRORS = (StorageError, OSError, ValueError, TypeError)


class ResourceLedger:
    """Owns the player's wood, stone, gold and depot count.

    Every successful mutator persists the ledger and then calls the
    registered listeners in order. Validation failures return ``False`` and
    leave state, storage and listeners untouched.
    """

    def __init__(self, store: KeyValueStore, grid_state: GridStateStore) -> None:
        self._store = store
        self._grid_state = grid_state
        self._resources = PlayerResources()
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    @property
    def current(self) -> PlayerResources:
        return self._resources

    def snapshot(self) -> Dict[str, int | bool]:
        return self._resources.snapshot()

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    # Queries ---------------------------------------------------------
    def has_enough(self, wood: int, stone: int, gold: int) -> bool:
        return self._resources.has_enough(wood, stone, gold)

    def is_storage_full(self) -> bool:
        return self._resources.is_storage_full()

    # Resource mutators -----------------------------------------------
    async def add(self, resource: Resource | str, amount: int) -> bool:
        resource = normalise_resource(resource)
        if amount <= 0:
            return False
        current = self._resources.get_amount(resource)
        self._resources.set_amount(
            resource, min(self._resources.max_storage, current + int(amount))
        )
        await self._save_and_notify()
        return True

    async def add_wood(self, amount: int) -> bool:
        return await self.add(Resource.WOOD, amount)

    async def add_stone(self, amount: int) -> bool:
        return await self.add(Resource.STONE, amount)

    async def add_gold(self, amount: int) -> bool:
        return await self.add(Resource.GOLD, amount)

    async def spend(self, wood: int, stone: int, gold: int) -> bool:
        """Take all three amounts at once, or nothing if any is short.

        Negative amounts are refused: spending them would add resources
        without passing through the storage cap.
        """

        if min(wood, stone, gold) < 0:
            return False
        if not self._resources.has_enough(wood, stone, gold):
            return False
        self._resources.wood -= int(wood)
        self._resources.stone -= int(stone)
        self._resources.gold -= int(gold)
        await self._save_and_notify()
        return True

    # Depot management ------------------------------------------------
    async def add_depot(self) -> bool:
        if self._resources.depot_count >= config.MAX_DEPOTS:
            return False
        self._resources.set_depot_count(self._resources.depot_count + 1)
        self._resources.update_max_storage_from_depots()
        await self._save_and_notify()
        return True

    async def remove_depot(self) -> bool:
        if self._resources.depot_count <= 0:
            return False
        self._resources.set_depot_count(self._resources.depot_count - 1)
        self._resources.update_max_storage_from_depots()
        # Shrinking storage discards whatever no longer fits.
        self._resources.clamp_to_capacity()
        await self._save_and_notify()
        return True

    async def refresh_depots_from_grid(self, grid: Optional[GridMap] = None) -> int:
        """Recount depots from the grid and return the new depot count.

        ``grid`` is the caller's in-memory map; without it the stored grid is
        loaded through the grid state store.
        """

        # Every cell that is part of a building counts as one depot.
        occupied = await self._grid_state.count_cells_in_state(
            BuildingState.PART_OF_BUILDING, grid
        )
        self._resources.set_depot_count(min(occupied, config.MAX_DEPOTS))
        self._resources.update_max_storage_from_depots()
        self._resources.clamp_to_capacity()
        await self._save_and_notify()
        return self._resources.depot_count

    # Persistence -----------------------------------------------------
    async def load(self) -> None:
        try:
            serialized = await self._store.get(config.RESOURCES_STORAGE_KEY)
            if not serialized:
                self._resources.update_max_storage_from_depots()
                return
            data = json.loads(serialized)
            if not isinstance(data, dict):
                raise ValueError("resource snapshot is not an object")
            self._resources.bulk_load(data)
        except _PERSISTENCE_ERRORS as exc:
            logger.warning("Error loading resources: %s", exc)
            self._resources.update_max_storage_from_depots()
            return
        logger.debug("Loaded resources %s", self._resources.bulk_export())

    async def clear(self) -> None:
        """Forget the persisted stockpile and start again from zero."""

        self._resources = PlayerResources()
        try:
            await self._store.remove(config.RESOURCES_STORAGE_KEY)
        except _PERSISTENCE_ERRORS as exc:
            logger.warning("Error clearing resources: %s", exc)
        self._notify()

    async def _save(self) -> None:
        try:
            serialized = json.dumps(self._resources.bulk_export())
            await self._store.set(config.RESOURCES_STORAGE_KEY, serialized)
        except _PERSISTENCE_ERRORS as exc:
            logger.warning("Error saving resources: %s", exc)

    async def _save_and_notify(self) -> None:
        await self._save()
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()


__all__ = ["ResourceLedger"]
