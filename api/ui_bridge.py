"""Public API between the UI layer and the backend logic."""
from __future__ import annotations

import asyncio
from typing import Any, Coroutine, Dict, Mapping, TypeVar

from core.game_state import CellOutOfBoundsError, GameSession, get_game_state
from core.grid_models import parse_building_state
from core.resources import resource_from_id


T = TypeVar("T")


async def _after_load(state: GameSession, coroutine: Coroutine[Any, Any, T]) -> T:
    await state.ensure_initialised()
    return await coroutine


def _run(state: GameSession, coroutine: Coroutine[Any, Any, T]) -> T:
    # One UI action at a time: the lock spans the whole persistence round trip.
    with state.lock:
        return asyncio.run(_after_load(state, coroutine))


def _success_response(**payload: object) -> Dict[str, object]:
    response: Dict[str, object] = {"ok": True}
    response.update(payload)
    return response


def _error_response(
    code: str, message: str, *, http_status: int | None = None
) -> Dict[str, object]:
    payload: Dict[str, object] = {
        "ok": False,
        "error_code": code,
        "error_message": message,
        "error": message,
    }
    if http_status is not None:
        payload["http_status"] = int(http_status)
    return payload


def _rejected(action: str, state: GameSession) -> Dict[str, object]:
    payload = _error_response("rejected", f"{action} was not applied", http_status=409)
    payload["resources"] = state.ledger.snapshot()
    return payload


def _should_reset(flag: object) -> bool:
    if flag is None:
        return False
    if isinstance(flag, str):
        return flag.strip().lower() not in {"", "0", "false", "no"}
    return bool(flag)


def _as_amount(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


# ---------------------------------------------------------------------------
# Initialisation and snapshots


def init_game(force_reset: object = None) -> Dict[str, object]:
    """Load persisted state, optionally wiping it first."""

    state = get_game_state()
    if _should_reset(force_reset):
        _run(state, state.reset())
    _run(state, state.initialise())
    return _success_response(**state.snapshot_state())


def reset_game() -> Dict[str, object]:
    state = get_game_state()
    _run(state, state.reset())
    return _success_response(**state.snapshot_state())


def get_state() -> Dict[str, object]:
    state = get_game_state()
    _run(state, state.ensure_initialised())
    return _success_response(**state.snapshot_state())


def get_grid() -> Dict[str, object]:
    state = get_game_state()
    _run(state, state.ensure_initialised())
    return _success_response(**state.grid_snapshot())


# ---------------------------------------------------------------------------
# Resources


def add_resource(resource_id: str, amount: object) -> Dict[str, object]:
    try:
        resource = resource_from_id(resource_id)
    except KeyError:
        return _error_response(
            "unknown_resource", f"Unknown resource: {resource_id}", http_status=404
        )
    value = _as_amount(amount)
    if value is None:
        return _error_response("invalid_amount", "Amount must be an integer", http_status=400)

    state = get_game_state()
    if not _run(state, state.ledger.add(resource, value)):
        return _rejected(f"Adding {value} {resource.value}", state)
    return _success_response(resources=state.ledger.snapshot())


def spend_resources(payload: Mapping[str, object]) -> Dict[str, object]:
    amounts = {key: _as_amount(payload.get(key, 0)) for key in ("wood", "stone", "gold")}
    if any(value is None for value in amounts.values()):
        return _error_response("invalid_amount", "Amounts must be integers", http_status=400)

    state = get_game_state()
    spent = _run(
        state, state.ledger.spend(amounts["wood"], amounts["stone"], amounts["gold"])
    )
    if not spent:
        return _rejected("Spend", state)
    return _success_response(resources=state.ledger.snapshot())


# ---------------------------------------------------------------------------
# Depots


def add_depot() -> Dict[str, object]:
    state = get_game_state()
    if not _run(state, state.ledger.add_depot()):
        return _rejected("Adding a depot", state)
    return _success_response(resources=state.ledger.snapshot())


def remove_depot() -> Dict[str, object]:
    state = get_game_state()
    if not _run(state, state.ledger.remove_depot()):
        return _rejected("Removing a depot", state)
    return _success_response(resources=state.ledger.snapshot())


def refresh_depots() -> Dict[str, object]:
    state = get_game_state()
    depots = _run(state, state.ledger.refresh_depots_from_grid())
    return _success_response(depot_count=depots, resources=state.ledger.snapshot())


# ---------------------------------------------------------------------------
# Grid edits


def set_cell_building(row: int, col: int, building: object) -> Dict[str, object]:
    building_state = parse_building_state(building)
    if building_state is None:
        return _error_response(
            "invalid_building", f"Unknown building state: {building}", http_status=400
        )
    state = get_game_state()
    try:
        depots = _run(state, state.set_building_state(int(row), int(col), building_state))
    except CellOutOfBoundsError as exc:
        return _error_response("cell_out_of_bounds", str(exc), http_status=404)
    cell = state.grid[(int(row), int(col))]
    return _success_response(
        cell=cell.to_record(), depot_count=depots, resources=state.ledger.snapshot()
    )
