"""Centralised configuration for the village state core."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Tuple

# ---------------------------------------------------------------------------
# Persistence keys

RESOURCES_STORAGE_KEY = "player-resources"
GRID_STORAGE_KEY = "grid-state"
TERRAIN_INITIALISED_KEY = "terrain-initialized"
TERRAIN_INITIALISED_MARKER = "true"

# ---------------------------------------------------------------------------
# Storage capacity

BASE_STORAGE = 4
STORAGE_PER_DEPOT = 2
MAX_DEPOTS = 4

# ---------------------------------------------------------------------------
# Grid dimensions and default terrain

GRID_ROWS = 41
GRID_COLS = 57

# Column bands for the reference width, left to right: (terrain name, width).
# Other widths scale these boundaries proportionally.
TERRAIN_BANDS: Tuple[Tuple[str, int], ...] = (
    ("Woods", 11),
    ("Rocky", 12),
    ("Field", 12),
    ("Scrub", 12),
    ("Crag", 10),
)

# ---------------------------------------------------------------------------
# Application wiring

DATA_PATH_ENV = "PENCIL_VILLAGE_DATA"


def max_storage_for(depot_count: int) -> int:
    """Return the storage cap granted by ``depot_count`` depots."""

    return max(BASE_STORAGE, BASE_STORAGE + STORAGE_PER_DEPOT * int(depot_count))


def data_path_from_env() -> Optional[Path]:
    """Return the JSON store path configured through the environment, if any."""

    raw = os.environ.get(DATA_PATH_ENV, "").strip()
    if not raw:
        return None
    return Path(raw)
