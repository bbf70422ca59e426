"""Deterministic default terrain for a freshly created village map."""
from __future__ import annotations

from typing import List, Sequence, Tuple

from . import config
from .grid_models import BuildingState, Cell, GridMap, TerrainType, parse_terrain

# Inclusive column range painted with one terrain type.
Band = Tuple[int, int, TerrainType]


def terrain_bands(
    cols: int = config.GRID_COLS,
    layout: Sequence[Tuple[str, int]] = config.TERRAIN_BANDS,
) -> List[Band]:
    """Return contiguous column bands covering ``cols`` columns.

    Band boundaries follow ``layout`` exactly when ``cols`` equals the sum of
    its widths, otherwise the cumulative boundaries are scaled to ``cols``.
    Bands that would be empty on a very narrow map are skipped.
    """

    if cols <= 0:
        return []
    reference = sum(width for _, width in layout)
    bands: List[Band] = []
    start = 0
    cumulative = 0
    for index, (name, width) in enumerate(layout):
        cumulative += width
        if index == len(layout) - 1:
            end = cols - 1
        else:
            end = (cumulative * cols + reference // 2) // reference - 1
        if end >= start:
            terrain = parse_terrain(name) or TerrainType.FIELD
            bands.append((start, end, terrain))
            start = end + 1
    return bands


def terrain_for_column(col: int, bands: Sequence[Band]) -> TerrainType:
    for start, end, terrain in bands:
        if start <= col <= end:
            return terrain
    return TerrainType.FIELD


def generate_default_terrain(
    rows: int = config.GRID_ROWS, cols: int = config.GRID_COLS
) -> GridMap:
    """Build the full ``rows`` x ``cols`` grid painted by column band."""

    bands = terrain_bands(cols)
    column_terrain = [terrain_for_column(col, bands) for col in range(cols)]
    grid: GridMap = {}
    for row in range(rows):
        for col in range(cols):
            grid[(row, col)] = Cell(
                row=row,
                col=col,
                terrain=column_terrain[col],
                building=BuildingState.NONE,
            )
    return grid


__all__ = ["generate_default_terrain", "terrain_bands", "terrain_for_column"]
