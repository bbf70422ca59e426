import logging
import uuid
from datetime import datetime, timezone

from flask import Flask, jsonify, request

from api import ui_bridge

app = Flask(__name__)

logger = logging.getLogger(__name__)


def _generate_request_metadata() -> tuple[str, str]:
    request_id = str(uuid.uuid4())
    server_time = datetime.now(timezone.utc).isoformat()
    return request_id, server_time


def _enrich_payload(payload: dict, request_id: str, server_time: str) -> dict:
    body = dict(payload or {})
    body["request_id"] = request_id
    body["server_time"] = server_time
    return body


def _json_response(payload: dict, status: int | None = None):
    request_id, server_time = _generate_request_metadata()
    if status is None:
        status = int(payload.get("http_status", 200)) if not payload.get("ok", True) else 200
    body = _enrich_payload(payload, request_id, server_time)
    body.pop("http_status", None)
    response = jsonify(body)
    response.status_code = status
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"
    return response


@app.post("/api/init")
def api_init():
    """Load the session state, optionally wiping it first."""

    reset_flag = request.args.get("reset")
    if reset_flag is None:
        payload = request.get_json(silent=True) or {}
        reset_flag = payload.get("reset")
    return _json_response(ui_bridge.init_game(reset_flag))


@app.get("/api/state")
def api_state():
    return _json_response(ui_bridge.get_state())


@app.post("/api/reset")
def api_reset():
    """Clear persisted resources and grid; terrain is regenerated."""

    logger.info("Reset requested")
    return _json_response(ui_bridge.reset_game())


@app.post("/api/resources/<resource_id>")
def api_add_resource(resource_id: str):
    payload = request.get_json(silent=True) or {}
    amount = payload.get("amount")
    response = ui_bridge.add_resource(resource_id, amount)
    logger.info(
        "Add resource resource=%s amount=%s ok=%s", resource_id, amount, response.get("ok")
    )
    return _json_response(response)


@app.post("/api/spend")
def api_spend():
    payload = request.get_json(silent=True) or {}
    response = ui_bridge.spend_resources(payload)
    logger.info("Spend payload=%s ok=%s", payload, response.get("ok"))
    return _json_response(response)


@app.post("/api/depots")
def api_add_depot():
    return _json_response(ui_bridge.add_depot())


@app.delete("/api/depots")
def api_remove_depot():
    return _json_response(ui_bridge.remove_depot())


@app.post("/api/depots/refresh")
def api_refresh_depots():
    return _json_response(ui_bridge.refresh_depots())


@app.get("/api/grid")
def api_grid():
    """Return every cell of the village map."""

    return _json_response(ui_bridge.get_grid())


@app.put("/api/grid/<int:row>/<int:col>")
def api_set_cell(row: int, col: int):
    payload = request.get_json(silent=True) or {}
    building = payload.get("building")
    response = ui_bridge.set_cell_building(row, col, building)
    logger.info(
        "Cell edit row=%s col=%s building=%s ok=%s", row, col, building, response.get("ok")
    )
    return _json_response(response)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    ui_bridge.init_game()
    app.run(debug=True)
