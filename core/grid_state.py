"""Load, save and reset the village map through the key-value store."""
from __future__ import annotations

import json
import logging
from typing import Optional

from . import config
from .grid_models import BuildingState, Cell, GridMap
from .kv_store import KeyValueStore, StorageError
from .terrain import generate_default_terrain


logger = logging.getLogger(__name__)

_PERSISTENCE_ERRORS = (StorageError, OSError, ValueError, TypeError)


class GridStateStore:
    """Owns the persisted terrain/building grid.

    The first :meth:`load` on an empty store paints the default terrain and
    writes the ``terrain-initialized`` marker, so a grid that was deliberately
    emptied is not regenerated until :meth:`clear` removes that marker.
    """

    def __init__(
        self,
        store: KeyValueStore,
        rows: int = config.GRID_ROWS,
        cols: int = config.GRID_COLS,
    ) -> None:
        self._store = store
        self.rows = int(rows)
        self.cols = int(cols)

    # ------------------------------------------------------------------
    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    async def load(self) -> GridMap:
        try:
            serialized = await self._store.get(config.GRID_STORAGE_KEY)
            if serialized:
                return self._deserialize(serialized)

            marker = await self._store.get(config.TERRAIN_INITIALISED_KEY)
            if marker:
                return {}
        except _PERSISTENCE_ERRORS as exc:
            logger.warning("Error loading grid state: %s", exc)
            return {}

        grid = generate_default_terrain(self.rows, self.cols)
        logger.info("Generated default terrain %sx%s", self.rows, self.cols)
        if not await self.save(grid):
            # Without a stored snapshot the marker would hide the terrain for good.
            return grid
        try:
            await self._store.set(
                config.TERRAIN_INITIALISED_KEY, config.TERRAIN_INITIALISED_MARKER
            )
        except _PERSISTENCE_ERRORS as exc:
            logger.warning("Error writing terrain marker: %s", exc)
        return grid

    async def save(self, grid: GridMap) -> bool:
        """Overwrite the stored snapshot; returns ``False`` if it was not stored."""

        try:
            records = [cell.to_record() for cell in grid.values()]
            await self._store.set(config.GRID_STORAGE_KEY, json.dumps(records))
        except _PERSISTENCE_ERRORS as exc:
            logger.warning("Error saving grid state: %s", exc)
            return False
        return True

    async def clear(self) -> None:
        # Marker first: a failure halfway leaves the old grid, not a lone marker.
        try:
            await self._store.remove(config.TERRAIN_INITIALISED_KEY)
            await self._store.remove(config.GRID_STORAGE_KEY)
        except _PERSISTENCE_ERRORS as exc:
            logger.warning("Error clearing grid state: %s", exc)

    async def count_cells_in_state(
        self, state: BuildingState, grid: Optional[GridMap] = None
    ) -> int:
        if grid is None:
            grid = await self.load()
        return sum(1 for cell in grid.values() if cell.building is state)

    # ------------------------------------------------------------------
    def _deserialize(self, serialized: str) -> GridMap:
        records = json.loads(serialized)
        if not isinstance(records, list):
            raise ValueError("grid snapshot is not a list")
        grid: GridMap = {}
        dropped = 0
        for record in records:
            cell = Cell.from_record(record) if isinstance(record, dict) else None
            if cell is None:
                dropped += 1
                continue
            grid[cell.key] = cell
        if dropped:
            logger.debug("Dropped %s malformed grid records", dropped)
        return grid


__all__ = ["GridStateStore"]
