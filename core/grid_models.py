"""Data models for the terrain and building grid."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple


class TerrainType(str, Enum):
    """Terrain painted on a grid cell."""

    FIELD = "Field"
    WOODS = "Woods"
    ROCKY = "Rocky"
    SCRUB = "Scrub"
    CRAG = "Crag"


class BuildingState(str, Enum):
    """Occupancy of a grid cell by a structure."""

    NONE = "None"
    PART_OF_BUILDING = "PartOfBuilding"


_TERRAIN_LOOKUP: Dict[str, TerrainType] = {}
for _terrain in TerrainType:
    _TERRAIN_LOOKUP[_terrain.value.lower()] = _terrain
    _TERRAIN_LOOKUP[_terrain.name.lower()] = _terrain

_BUILDING_LOOKUP: Dict[str, BuildingState] = {}
for _state in BuildingState:
    _BUILDING_LOOKUP[_state.value.lower()] = _state
    _BUILDING_LOOKUP[_state.name.lower()] = _state


def parse_terrain(value: object) -> Optional[TerrainType]:
    """Return the terrain named by ``value`` or ``None`` if it is unknown."""

    if isinstance(value, TerrainType):
        return value
    if not isinstance(value, str):
        return None
    return _TERRAIN_LOOKUP.get(value.strip().lower())


def parse_building_state(value: object) -> Optional[BuildingState]:
    """Return the building state named by ``value`` or ``None`` if it is unknown."""

    if isinstance(value, BuildingState):
        return value
    if not isinstance(value, str):
        return None
    return _BUILDING_LOOKUP.get(value.strip().lower())


@dataclass(unsafe_hash=True)
class Cell:
    """One square of the village map.

    Two cells are equal when they sit on the same coordinate; terrain and
    building state do not take part in equality or hashing.
    """

    row: int
    col: int
    terrain: TerrainType = field(default=TerrainType.FIELD, compare=False)
    building: BuildingState = field(default=BuildingState.NONE, compare=False)

    @property
    def key(self) -> Tuple[int, int]:
        return (self.row, self.col)

    def to_record(self) -> Dict[str, object]:
        return {
            "Row": self.row,
            "Col": self.col,
            "Terrain": self.terrain.value,
            "Building": self.building.value,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, object]) -> Optional["Cell"]:
        """Build a cell from a persisted record, or ``None`` if it is malformed."""

        row = record.get("Row")
        col = record.get("Col")
        if isinstance(row, bool) or isinstance(col, bool):
            return None
        if not isinstance(row, int) or not isinstance(col, int):
            return None
        terrain = parse_terrain(record.get("Terrain"))
        building = parse_building_state(record.get("Building"))
        if terrain is None or building is None:
            return None
        return cls(row=row, col=col, terrain=terrain, building=building)

    def __str__(self) -> str:
        return f"Cell({self.row}, {self.col}) - {self.terrain.value}, {self.building.value}"


GridMap = Dict[Tuple[int, int], Cell]


__all__ = [
    "BuildingState",
    "Cell",
    "GridMap",
    "TerrainType",
    "parse_building_state",
    "parse_terrain",
]
