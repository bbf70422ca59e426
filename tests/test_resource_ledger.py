import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest

from core import config
from core.grid_models import BuildingState, Cell
from core.grid_state import GridStateStore
from core.kv_store import InMemoryKeyValueStore, StorageError
from core.resource_ledger import ResourceLedger
from core.resources import Resource


class ReadOnlyStore(InMemoryKeyValueStore):
    async def set(self, key, value):
        raise StorageError("quota exceeded")


@pytest.fixture()
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture()
def ledger(kv):
    return ResourceLedger(kv, GridStateStore(kv))


def _fill(ledger, amount):
    for resource in Resource:
        asyncio.run(ledger.add(resource, amount))


def _persisted(kv):
    return json.loads(kv.export()[config.RESOURCES_STORAGE_KEY])


def test_new_ledger_starts_empty(ledger):
    asyncio.run(ledger.load())
    assert ledger.snapshot() == {
        "wood": 0,
        "stone": 0,
        "gold": 0,
        "depot_count": 0,
        "max_storage": 4,
        "storage_full": False,
    }


@pytest.mark.parametrize("start, amount, expected", [(0, 3, 3), (2, 2, 4), (3, 5, 4)])
def test_add_clamps_to_storage(ledger, start, amount, expected):
    if start:
        asyncio.run(ledger.add_wood(start))
    assert asyncio.run(ledger.add_wood(amount)) is True
    assert ledger.current.wood == expected


@pytest.mark.parametrize("amount", [0, -1, -10])
def test_add_rejects_non_positive(kv, ledger, amount):
    calls = []
    ledger.subscribe(lambda: calls.append(1))
    for method in (ledger.add_wood, ledger.add_stone, ledger.add_gold):
        assert asyncio.run(method(amount)) is False
    assert (ledger.current.wood, ledger.current.stone, ledger.current.gold) == (0, 0, 0)
    assert config.RESOURCES_STORAGE_KEY not in kv.export()
    assert calls == []


def test_successful_mutation_persists_then_notifies(kv, ledger):
    seen = []
    ledger.subscribe(lambda: seen.append(_persisted(kv)))
    asyncio.run(ledger.add_stone(2))
    assert seen == [{"Wood": 0, "Stone": 2, "Gold": 0, "DepotCount": 0}]


def test_listeners_run_in_order_and_can_unsubscribe(ledger):
    order = []
    first = lambda: order.append("first")  # noqa: E731
    second = lambda: order.append("second")  # noqa: E731
    ledger.subscribe(first)
    ledger.subscribe(second)
    asyncio.run(ledger.add_gold(1))
    ledger.unsubscribe(first)
    ledger.unsubscribe(first)
    asyncio.run(ledger.add_gold(1))
    assert order == ["first", "second", "second"]


def test_spend_is_all_or_nothing(ledger):
    asyncio.run(ledger.add_wood(3))
    asyncio.run(ledger.add_stone(2))
    asyncio.run(ledger.add_gold(1))

    assert asyncio.run(ledger.spend(2, 2, 2)) is False
    assert (ledger.current.wood, ledger.current.stone, ledger.current.gold) == (3, 2, 1)

    assert asyncio.run(ledger.spend(2, 2, 1)) is True
    assert (ledger.current.wood, ledger.current.stone, ledger.current.gold) == (1, 0, 0)


def test_spend_zero_succeeds(ledger):
    assert asyncio.run(ledger.spend(0, 0, 0)) is True


def test_spend_rejects_negative_amounts(ledger):
    asyncio.run(ledger.add_wood(4))
    assert asyncio.run(ledger.spend(-3, 0, 0)) is False
    assert ledger.current.wood == 4


def test_has_enough_and_storage_full(ledger):
    asyncio.run(ledger.add_wood(4))
    assert ledger.has_enough(4, 0, 0)
    assert not ledger.has_enough(4, 1, 0)
    assert ledger.is_storage_full()


def test_add_depot_grows_storage_until_limit(ledger):
    for expected in (6, 8, 10, 12):
        assert asyncio.run(ledger.add_depot()) is True
        assert ledger.current.max_storage == expected
    assert asyncio.run(ledger.add_depot()) is False
    assert ledger.current.depot_count == 4
    assert ledger.current.max_storage == 12


def test_remove_depot_clamps_resources(ledger):
    asyncio.run(ledger.add_depot())
    asyncio.run(ledger.add_depot())
    _fill(ledger, 8)
    asyncio.run(ledger.add_wood(1))  # already at the cap
    asyncio.run(ledger.spend(0, 3, 0))

    assert asyncio.run(ledger.remove_depot()) is True

    assert ledger.current.max_storage == 6
    assert (ledger.current.wood, ledger.current.stone, ledger.current.gold) == (6, 5, 6)


def test_remove_depot_fails_without_depots(ledger):
    calls = []
    ledger.subscribe(lambda: calls.append(1))
    assert asyncio.run(ledger.remove_depot()) is False
    assert ledger.current.max_storage == 4
    assert calls == []


def test_storage_formula_holds_after_each_operation(ledger):
    operations = [
        lambda: ledger.add_depot(),
        lambda: ledger.add_wood(9),
        lambda: ledger.add_depot(),
        lambda: ledger.remove_depot(),
        lambda: ledger.spend(1, 0, 0),
        lambda: ledger.remove_depot(),
        lambda: ledger.remove_depot(),
    ]
    for operation in operations:
        asyncio.run(operation())
        current = ledger.current
        assert current.max_storage == 4 + 2 * current.depot_count
        assert 0 <= current.depot_count <= 4
        assert current.wood <= current.max_storage


def test_load_round_trip(kv, ledger):
    asyncio.run(ledger.add_depot())
    asyncio.run(ledger.add_depot())
    asyncio.run(ledger.add_wood(7))
    asyncio.run(ledger.add_stone(3))
    asyncio.run(ledger.add_gold(8))

    restored = ResourceLedger(kv, GridStateStore(kv))
    asyncio.run(restored.load())

    assert restored.snapshot() == ledger.snapshot()
    assert "MaxStorage" not in _persisted(kv)


def test_load_recomputes_storage_and_clamps(kv):
    snapshot = {"Wood": 20, "Stone": 5, "Gold": -2, "DepotCount": 9, "MaxStorage": 100}
    asyncio.run(kv.set(config.RESOURCES_STORAGE_KEY, json.dumps(snapshot)))
    ledger = ResourceLedger(kv, GridStateStore(kv))

    asyncio.run(ledger.load())

    assert ledger.current.depot_count == 4
    assert ledger.current.max_storage == 12
    assert (ledger.current.wood, ledger.current.stone, ledger.current.gold) == (12, 5, 0)


def test_load_of_corrupt_snapshot_keeps_defaults(kv):
    asyncio.run(kv.set(config.RESOURCES_STORAGE_KEY, '{"Wood": "lots"}'))
    ledger = ResourceLedger(kv, GridStateStore(kv))
    asyncio.run(ledger.load())
    assert ledger.current.wood == 0
    assert ledger.current.max_storage == 4


def test_save_failure_keeps_memory_ahead_of_storage():
    store = ReadOnlyStore()
    ledger = ResourceLedger(store, GridStateStore(store))
    calls = []
    ledger.subscribe(lambda: calls.append(1))

    assert asyncio.run(ledger.add_wood(2)) is True

    assert ledger.current.wood == 2
    assert calls == [1]
    assert store.export() == {}


def test_refresh_depots_from_grid_caps_at_four(kv, ledger):
    grid = {
        (0, col): Cell(0, col, building=BuildingState.PART_OF_BUILDING) for col in range(7)
    }
    grid[(1, 0)] = Cell(1, 0)
    asyncio.run(GridStateStore(kv).save(grid))

    assert asyncio.run(ledger.refresh_depots_from_grid()) == 4
    assert ledger.current.max_storage == 12
    assert _persisted(kv)["DepotCount"] == 4


def test_refresh_depots_shrinks_and_clamps(kv, ledger):
    for _ in range(3):
        asyncio.run(ledger.add_depot())
    _fill(ledger, 10)
    grid = {(0, 0): Cell(0, 0, building=BuildingState.PART_OF_BUILDING)}
    asyncio.run(GridStateStore(kv).save(grid))

    assert asyncio.run(ledger.refresh_depots_from_grid()) == 1

    assert ledger.current.max_storage == 6
    assert (ledger.current.wood, ledger.current.stone, ledger.current.gold) == (6, 6, 6)


def test_clear_resets_and_removes_snapshot(kv, ledger):
    asyncio.run(ledger.add_depot())
    asyncio.run(ledger.add_wood(5))
    asyncio.run(ledger.clear())
    assert ledger.current.wood == 0
    assert ledger.current.max_storage == 4
    assert config.RESOURCES_STORAGE_KEY not in kv.export()
