"""Core singleton wiring the key-value store, grid and resource ledger."""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional

from . import config
from .grid_models import BuildingState, GridMap
from .grid_state import GridStateStore
from .kv_store import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore
from .resource_ledger import ResourceLedger


logger = logging.getLogger(__name__)


class CellOutOfBoundsError(Exception):
    """Raised when a grid edit targets a coordinate outside the map."""

    def __init__(self, row: int, col: int):
        self.row = row
        self.col = col
        super().__init__(f"Cell ({row}, {col}) is outside the village map")


def _default_store() -> KeyValueStore:
    path = config.data_path_from_env()
    if path is None:
        return InMemoryKeyValueStore()
    logger.info("Persisting village state to %s", path)
    return JsonFileKeyValueStore(path)


class GameSession:
    """Central holder for the per-session services.

    Mutations are expected to arrive one at a time; callers that may run on
    several threads (the Flask bridge) hold :attr:`lock` around each action.
    """

    _instance: Optional["GameSession"] = None

    def __init__(
        self,
        store: KeyValueStore | None = None,
        rows: int = config.GRID_ROWS,
        cols: int = config.GRID_COLS,
    ) -> None:
        self.lock = threading.RLock()
        self.store: KeyValueStore = store if store is not None else _default_store()
        self.grid_state = GridStateStore(self.store, rows=rows, cols=cols)
        self.ledger = ResourceLedger(self.store, self.grid_state)
        self.grid: GridMap = {}
        self.change_count = 0
        self.initialised = False
        self.ledger.subscribe(self._on_resources_changed)

    # ------------------------------------------------------------------
    @classmethod
    def get_instance(cls) -> "GameSession":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def install(cls, session: "GameSession") -> "GameSession":
        cls._instance = session
        return session

    def _on_resources_changed(self) -> None:
        self.change_count += 1

    # ------------------------------------------------------------------
    async def initialise(self) -> None:
        await self.ledger.load()
        self.grid = await self.grid_state.load()
        self.initialised = True
        logger.info(
            "Session ready: %s cells, resources=%s",
            len(self.grid),
            self.ledger.snapshot(),
        )

    async def reset(self) -> None:
        """Drop all persisted state; the next load regenerates the terrain."""

        await self.grid_state.clear()
        await self.ledger.clear()
        self.grid = await self.grid_state.load()
        self.initialised = True

    async def ensure_initialised(self) -> None:
        """Load persisted state once, before the first action touches it."""

        if not self.initialised:
            await self.initialise()

    async def set_building_state(self, row: int, col: int, state: BuildingState) -> int:
        """Edit one cell, save the grid and return the refreshed depot count."""

        if not self.grid_state.in_bounds(row, col):
            raise CellOutOfBoundsError(row, col)
        cell = self.grid.get((row, col))
        if cell is None:
            raise CellOutOfBoundsError(row, col)
        cell.building = state
        await self.grid_state.save(self.grid)
        return await self.ledger.refresh_depots_from_grid(self.grid)

    # ------------------------------------------------------------------
    def grid_snapshot(self) -> Dict[str, object]:
        cells: List[Dict[str, object]] = [
            cell.to_record() for cell in sorted(self.grid.values(), key=lambda c: c.key)
        ]
        return {
            "rows": self.grid_state.rows,
            "cols": self.grid_state.cols,
            "cells": cells,
        }

    def snapshot_state(self) -> Dict[str, object]:
        occupied = sum(
            1 for cell in self.grid.values() if cell.building is BuildingState.PART_OF_BUILDING
        )
        return {
            "resources": self.ledger.snapshot(),
            "grid": {
                "rows": self.grid_state.rows,
                "cols": self.grid_state.cols,
                "cells": len(self.grid),
                "building_cells": occupied,
            },
            "version": self.change_count,
        }


def get_game_state() -> GameSession:
    return GameSession.get_instance()
